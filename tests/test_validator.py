"""Tests for the end-to-end lyrics validation."""

import json

import pytest
from lyrics_validator.utils import GenreConfig
from lyrics_validator.validation.feedback import InMemoryFeedbackStore
from lyrics_validator.validation.validator import (
    analyze_lyrics,
    compute_scores,
    score_from_issues,
)

CANCAO = "Eu vou cantar uma canção\nPra te fazer feliz então"


def _no_genres(name):
    return None


class TestScoring:
    """Test score arithmetic."""

    def test_score_from_issues(self):
        assert score_from_issues(0, 8) == 100
        assert score_from_issues(2, 8) == 84
        assert score_from_issues(20, 8) == 0

    def test_weighted_total(self):
        scores = compute_scores(grammar_count=1, rhyme_count=1, musical_count=0, theme_count=0)
        assert scores.grammar == 92
        assert scores.rhymes == 90
        assert scores.total == pytest.approx(92 * 0.3 + 90 * 0.25 + 100 * 0.25 + 100 * 0.2)


class TestEmptyLyrics:
    """Test graceful handling of empty input."""

    @pytest.mark.parametrize("lyrics", ["", None, "\n\n"])
    def test_empty_report(self, lyrics):
        report = analyze_lyrics(lyrics, store=InMemoryFeedbackStore(), genre_lookup=_no_genres)
        assert report.sections == []
        assert report.rhyme_issues == []
        assert report.grammar_issues == []
        assert report.cadence_issues == []
        assert report.variance_issues == []
        assert report.coherence.drift_issues == []
        assert report.coherence.emotion_issues == []
        assert report.cacophony_issues == []
        assert report.alliteration_issues == []
        scores = report.scores
        assert (scores.grammar, scores.rhymes, scores.musical, scores.theme, scores.total) == (
            100, 100, 100, 100, 100,
        )


class TestScenarios:
    """Test the reference scenarios."""

    def test_consonant_couplet(self):
        report = analyze_lyrics(CANCAO, store=InMemoryFeedbackStore(), genre_lookup=_no_genres)
        assert len(report.sections) == 1
        pairs = report.rhymes[0].pairs
        assert len(pairs) == 1
        assert pairs[0].type == "consonant"
        assert report.rhyme_issues == []
        assert report.grammar_issues == []
        assert report.meter.section_stats[0].syllables == [8, 8]
        assert report.scores.total == 100

    def test_pra_mim_fazer(self):
        report = analyze_lyrics("pra mim fazer", genre_lookup=_no_genres)
        assert "grammar_pra_mim_fazer" in [issue.id for issue in report.grammar_issues]
        assert report.scores.grammar == 92

    def test_theme_drift(self):
        lyrics = "O mar azul brilha\nO mar azul\n\nCidade cinza chora\nCidade cinza"
        report = analyze_lyrics(lyrics, genre_lookup=_no_genres)
        assert len(report.coherence.drift_issues) == 1
        assert report.coherence.drift_issues[0].similarity == 0
        assert report.scores.theme == 90

    def test_rhyme_break(self):
        report = analyze_lyrics("Eu vi o mar\nQuero cantar\nSob a luz", genre_lookup=_no_genres)
        assert [(i.section_index, i.line_index) for i in report.rhyme_issues] == [(0, 2)]
        assert report.rhyme_issues[0].reason == "quebra_de_rima"
        assert report.scores.rhymes == 90

    def test_scores_bounded(self):
        lyrics = "\n".join(["seje menas maneiro, ela tinha por cada"] * 12)
        report = analyze_lyrics(lyrics, genre_lookup=_no_genres)
        scores = report.scores
        for value in (scores.grammar, scores.rhymes, scores.musical, scores.theme, scores.total):
            assert 0 <= value <= 100
        assert scores.grammar == 0


class TestGenre:
    """Test genre lookup and time signature handling."""

    def test_lookup_is_case_insensitive(self):
        seen = []

        def lookup(name):
            seen.append(name)
            return GenreConfig(syllable_range=(6, 10), time_signatures={"2/4"})

        report = analyze_lyrics(CANCAO, genre=" Samba ", time_signature="4/4", genre_lookup=lookup)
        assert seen == ["samba"]
        assert report.genre == "samba"
        assert [i.type for i in report.cadence_issues] == ["time_signature_mismatch"]
        assert report.scores.musical == 92

    def test_default_time_signature(self):
        report = analyze_lyrics(CANCAO, time_signature=None, genre_lookup=_no_genres)
        assert report.time_signature == "4/4"

    def test_non_string_time_signature(self):
        report = analyze_lyrics(CANCAO, genre=None, time_signature=3, genre_lookup=_no_genres)
        assert report.time_signature == "3"

    def test_unknown_genre_disables_checks(self):
        report = analyze_lyrics(CANCAO, genre="desconhecido", time_signature="7/8",
                                genre_lookup=_no_genres)
        assert report.cadence_issues == []


class TestFeedback:
    """Test that runs are recorded in the feedback store."""

    def test_runs_accumulate(self):
        store = InMemoryFeedbackStore()
        analyze_lyrics("pra mim fazer", store=store, genre_lookup=_no_genres)
        report = analyze_lyrics("pra mim fazer", store=store, genre_lookup=_no_genres)

        assert store.data["totalRuns"] == 2
        assert store.data["ruleHits"]["grammar_pra_mim_fazer"] == 2
        assert len(store.data["history"]) == 2
        assert report.feedback.rule_hits["grammar_pra_mim_fazer"] == 2
        assert report.run_rule_hits["grammar_pra_mim_fazer"] == 1
        assert report.feedback_saved

    def test_history_record(self):
        store = InMemoryFeedbackStore()
        analyze_lyrics("pra mim fazer", genre="Rock", store=store, genre_lookup=_no_genres)
        record = store.data["history"][0]
        assert record["genre"] == "rock"
        assert record["timeSignature"] == "4/4"
        assert record["issues"]["grammar"] == 1
        assert record["scores"]["grammar"] == 92
        assert record["version"] == "1.0.0"

    def test_weight_raised_after_threshold(self):
        store = InMemoryFeedbackStore({"ruleHits": {"grammar_seje": 19}})
        report = analyze_lyrics("que seje", store=store, genre_lookup=_no_genres)
        assert report.feedback.dynamic_weights["grammar_seje"] == pytest.approx(0.05)
        assert store.data["dynamicWeights"]["grammar_seje"] == pytest.approx(0.05)

    def test_weights_never_decrease(self):
        store = InMemoryFeedbackStore({"ruleHits": {"grammar_seje": 40}})
        previous = 0.0
        for _ in range(8):
            analyze_lyrics("que seje", store=store, genre_lookup=_no_genres)
            weight = store.data["dynamicWeights"]["grammar_seje"]
            assert previous <= weight <= 0.3
            previous = weight

    def test_idempotent_with_reset_store(self):
        store = InMemoryFeedbackStore()
        lyrics = "Refrão\n" + CANCAO + "\n\nsem rima aqui\npra mim fazer"
        first = analyze_lyrics(lyrics, store=store, genre_lookup=_no_genres)
        store.reset()
        second = analyze_lyrics(lyrics, store=store, genre_lookup=_no_genres)

        assert first.scores == second.scores
        assert first.to_dict()["checks"] == second.to_dict()["checks"]
        assert first.to_dict()["feedback"] == second.to_dict()["feedback"]

    def test_save_failure_still_returns_report(self):
        class BrokenStore(InMemoryFeedbackStore):
            def save(self, state):
                raise OSError("disk full")

        report = analyze_lyrics(CANCAO, store=BrokenStore(), genre_lookup=_no_genres)
        assert not report.feedback_saved
        assert "disk full" in report.warning
        assert report.feedback.total_runs == 1
        assert report.scores.total == 100

    def test_store_error_on_save_still_returns_report(self):
        class BrokenStore(InMemoryFeedbackStore):
            def save(self, state):
                raise RuntimeError("db down")

        store = BrokenStore({"ruleHits": {"grammar_seje": 3}})
        report = analyze_lyrics("que seje", store=store, genre_lookup=_no_genres)
        assert not report.feedback_saved
        assert "db down" in report.warning
        assert report.feedback.rule_hits["grammar_seje"] == 4
        assert store.data == {"ruleHits": {"grammar_seje": 3}}

    def test_unreadable_store_falls_back_to_fresh_state(self):
        class UnreachableStore(InMemoryFeedbackStore):
            def load(self):
                raise OSError("unreachable")

        store = UnreachableStore({"totalRuns": 9})
        report = analyze_lyrics("uma linha", store=store, genre_lookup=_no_genres)
        assert not report.feedback_saved
        assert "unreachable" in report.warning
        assert report.feedback.total_runs == 1
        assert store.saves == 0
        assert store.data == {"totalRuns": 9}

    def test_without_store(self):
        report = analyze_lyrics(CANCAO, genre_lookup=_no_genres)
        assert not report.feedback_saved
        assert report.feedback.total_runs == 1


class TestReportDict:
    """Test the JSON-shaped report."""

    def test_shape(self):
        report = analyze_lyrics(CANCAO, title="Teste", genre_lookup=_no_genres)
        data = report.to_dict()
        json.dumps(data, ensure_ascii=False)

        assert data["meta"]["title"] == "Teste"
        assert data["meta"]["timeSignature"] == "4/4"
        assert set(data["checks"]) == {
            "rhymes", "meter", "grammar", "musicalAdherence", "coherence", "phonetics",
        }
        section = data["sections"][0]
        assert section["name"] == "verso"
        assert section["rhymeScheme"] == "AA"
        assert section["metrics"] == {"averageSyllables": 8.0, "std": 0.0, "syllables": [8, 8]}
        pair = data["checks"]["rhymes"]["pairs"][0]["pairs"][0]
        assert pair["type"] == "consonant"
        assert pair["words"] == ["canção", "então"]
        assert data["scores"]["total"] == 100
        assert set(data["feedback"]) >= {"ruleHits", "dynamicWeights"}
