"""Lyrics validation pipeline.

Runs every check on a song's lyrics:
1. Rhyme pairs and rhyme breaks per section
2. Meter (poetic syllables) and section variance
3. Grammar rules and outdated slang
4. Musical adherence to the genre cadence and time signature
5. Thematic coherence and emotion shifts between sections
6. Cacophony and alliteration

Produces a ValidationReport with four category scores and a weighted total,
and records the run in the feedback store.
"""

import logging
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Callable

from lyrics_validator.analysis.coherence import CoherenceAnalysis, analyze_coherence
from lyrics_validator.analysis.lyric_analyzer import (
    CadenceIssue,
    MeterAnalysis,
    Section,
    VarianceIssue,
    analyze_cadence,
    analyze_meter,
    find_variance_issues,
    sectionize,
)
from lyrics_validator.analysis.phonetics import (
    RhymePair,
    analyze_rhymes,
    detect_section_rhyme_scheme,
)
from lyrics_validator.utils import GenreConfig, get_history_limit, load_genre_config
from lyrics_validator.validation.feedback import FeedbackState, FeedbackStore
from lyrics_validator.validation.grammar import (
    AlliterationIssue,
    CacophonyIssue,
    GrammarIssue,
    analyze_grammar,
    analyze_phonetics,
)

logger = logging.getLogger(__name__)

DEFAULT_TIME_SIGNATURE = "4/4"

# Points lost per issue in each category
ISSUE_WEIGHTS = {
    "grammar": 8,
    "rhymes": 10,
    "musical": 8,
    "theme": 10,
}

SCORE_WEIGHTS = {
    "grammar": 0.30,
    "rhymes": 0.25,
    "musical": 0.25,
    "theme": 0.20,
}

PROTOCOL = {
    "phase1": "validacao_automatica_concluida",
    "phase2": "revisao_especialista_pendente",
    "phase3": "teste_compositores_pendente",
}

GenreLookup = Callable[[str], GenreConfig | None]


@dataclass
class RhymeIssue:
    section: str
    section_index: int
    line_index: int
    reason: str = "quebra_de_rima"


@dataclass
class SectionRhymes:
    section: str
    scheme: str
    pairs: list[RhymePair] = field(default_factory=list)


@dataclass
class Scores:
    grammar: float
    rhymes: float
    musical: float
    theme: float
    total: float


@dataclass
class ValidationReport:
    title: str
    genre: str
    time_signature: str
    generated_at: str
    sections: list[Section]
    meter: MeterAnalysis
    rhymes: list[SectionRhymes]
    rhyme_issues: list[RhymeIssue]
    variance_issues: list[VarianceIssue]
    grammar_issues: list[GrammarIssue]
    cadence_issues: list[CadenceIssue]
    coherence: CoherenceAnalysis
    cacophony_issues: list[CacophonyIssue]
    alliteration_issues: list[AlliterationIssue]
    scores: Scores
    run_rule_hits: dict[str, int] = field(default_factory=dict)
    feedback: FeedbackState = field(default_factory=FeedbackState)
    feedback_saved: bool = False
    warning: str | None = None

    def to_dict(self) -> dict:
        """JSON-shaped report for transport to callers."""
        return {
            "meta": {
                "title": self.title,
                "genre": self.genre,
                "timeSignature": self.time_signature,
                "generatedAt": self.generated_at,
            },
            "sections": [
                {
                    "name": section.name,
                    "lines": list(section.lines),
                    "rhymeScheme": self.rhymes[idx].scheme,
                    "metrics": {
                        "averageSyllables": round(stat.average, 2),
                        "std": round(stat.std, 2),
                        "syllables": list(stat.syllables),
                    },
                }
                for idx, (section, stat) in enumerate(
                    zip(self.sections, self.meter.section_stats)
                )
            ],
            "checks": {
                "rhymes": {
                    "issues": [
                        {
                            "section": issue.section,
                            "sectionIndex": issue.section_index,
                            "lineIndex": issue.line_index,
                            "reason": issue.reason,
                        }
                        for issue in self.rhyme_issues
                    ],
                    "pairs": [
                        {
                            "section": rhymes.section,
                            "pairs": [_pair_to_dict(pair) for pair in rhymes.pairs],
                        }
                        for rhymes in self.rhymes
                    ],
                },
                "meter": {
                    "varianceIssues": [
                        {"sectionIndex": issue.section_index, "std": issue.std}
                        for issue in self.variance_issues
                    ],
                    "lineMetrics": [
                        {
                            "sectionIndex": metric.section_index,
                            "lineIndex": metric.line_index,
                            "syllables": metric.syllables,
                        }
                        for metric in self.meter.line_metrics
                    ],
                },
                "grammar": {
                    "issues": [
                        {"id": issue.id, "lineIndex": issue.line_index, "label": issue.label}
                        for issue in self.grammar_issues
                    ],
                },
                "musicalAdherence": {
                    "cadenceIssues": [_cadence_to_dict(issue) for issue in self.cadence_issues],
                    "timeSignature": self.time_signature,
                    "genre": self.genre,
                },
                "coherence": {
                    "driftIssues": [
                        {"index": i.index, "nextIndex": i.next_index, "similarity": i.similarity}
                        for i in self.coherence.drift_issues
                    ],
                    "emotionIssues": [
                        {"index": i.index, "nextIndex": i.next_index, "delta": i.delta}
                        for i in self.coherence.emotion_issues
                    ],
                    "sectionKeywords": [r.keywords for r in self.coherence.results],
                    "emotionScores": [r.emotion_score for r in self.coherence.results],
                },
                "phonetics": {
                    "cacophonyIssues": [
                        {"lineIndex": issue.line_index, "hit": issue.hit}
                        for issue in self.cacophony_issues
                    ],
                    "alliterationIssues": [
                        {"lineIndex": issue.line_index} for issue in self.alliteration_issues
                    ],
                },
            },
            "scores": asdict(self.scores),
            "protocol": dict(PROTOCOL),
            "feedback": {
                "ruleHits": dict(self.feedback.rule_hits),
                "runRuleHits": dict(self.run_rule_hits),
                "dynamicWeights": dict(self.feedback.dynamic_weights),
                "totalRuns": self.feedback.total_runs,
                "saved": self.feedback_saved,
                "warning": self.warning,
            },
        }


def _pair_to_dict(pair: RhymePair) -> dict:
    return {
        "lineIndex": pair.line_index,
        "nextLineIndex": pair.next_line_index,
        "type": pair.type,
        "richness": pair.richness,
        "words": list(pair.words),
    }


def _cadence_to_dict(issue: CadenceIssue) -> dict:
    if issue.type == "time_signature_mismatch":
        return {"type": issue.type, "timeSignature": issue.time_signature}
    return {
        "type": issue.type,
        "sectionIndex": issue.section_index,
        "lineIndex": issue.line_index,
        "syllables": issue.syllables,
        "expected": list(issue.expected),
    }


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def score_from_issues(issue_count: int, weight: float, base: float = 100) -> float:
    return max(0.0, min(100.0, base - issue_count * weight))


def compute_scores(
    grammar_count: int,
    rhyme_count: int,
    musical_count: int,
    theme_count: int,
) -> Scores:
    grammar = score_from_issues(grammar_count, ISSUE_WEIGHTS["grammar"])
    rhymes = score_from_issues(rhyme_count, ISSUE_WEIGHTS["rhymes"])
    musical = score_from_issues(musical_count, ISSUE_WEIGHTS["musical"])
    theme = score_from_issues(theme_count, ISSUE_WEIGHTS["theme"])
    total = (
        grammar * SCORE_WEIGHTS["grammar"]
        + rhymes * SCORE_WEIGHTS["rhymes"]
        + musical * SCORE_WEIGHTS["musical"]
        + theme * SCORE_WEIGHTS["theme"]
    )
    return Scores(
        grammar=round(grammar, 2),
        rhymes=round(rhymes, 2),
        musical=round(musical, 2),
        theme=round(theme, 2),
        total=round(total, 2),
    )


def tally_rule_hits(
    rhyme_issues: list[RhymeIssue],
    grammar_issues: list[GrammarIssue],
    cadence_issues: list[CadenceIssue],
    variance_issues: list[VarianceIssue],
    coherence: CoherenceAnalysis,
    cacophony_issues: list[CacophonyIssue],
    alliteration_issues: list[AlliterationIssue],
) -> dict[str, int]:
    hits: Counter = Counter()
    hits["rhyme_break"] += len(rhyme_issues)
    for issue in grammar_issues:
        hits[issue.id] += 1
    for issue in cadence_issues:
        hits[issue.type] += 1
    hits["cacophony"] += len(cacophony_issues)
    hits["alliteration"] += len(alliteration_issues)
    hits["meter_variance"] += len(variance_issues)
    hits["theme_drift"] += len(coherence.drift_issues)
    hits["emotion_shift"] += len(coherence.emotion_issues)
    return {rule: count for rule, count in hits.items() if count > 0}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def analyze_lyrics(
    lyrics: str | None,
    genre: str | None = None,
    time_signature: str | None = DEFAULT_TIME_SIGNATURE,
    *,
    title: str = "",
    genre_lookup: GenreLookup | None = None,
    store: FeedbackStore | None = None,
) -> ValidationReport:
    """Analyze a song's lyrics and score it.

    Args:
        lyrics: Raw lyrics text; empty or None yields an empty report.
        genre: Genre name (case-insensitive). Unknown or missing disables the
            genre range and time-signature checks.
        time_signature: Requested time signature, "4/4" when omitted.
        title: Song title, echoed in the report.
        genre_lookup: Callable returning the GenreConfig for a lowercased
            genre name. Defaults to the genres.yaml lookup.
        store: Feedback store to record the run in. When None the run is
            scored but nothing is persisted.

    Returns:
        ValidationReport with sections, issues, scores and the feedback snapshot.
    """
    genre_key = str(genre or "").strip().lower()
    time_signature = str(time_signature or DEFAULT_TIME_SIGNATURE).strip() or DEFAULT_TIME_SIGNATURE
    lookup = genre_lookup or load_genre_config
    genre_config = lookup(genre_key) if genre_key else None

    sections = sectionize(lyrics)
    all_lines = [line for section in sections for line in section.lines]

    # Rhymes
    rhymes = []
    rhyme_issues = []
    for section_index, section in enumerate(sections):
        analysis = analyze_rhymes(section.lines)
        rhymes.append(SectionRhymes(
            section=section.name,
            scheme=detect_section_rhyme_scheme(section.lines),
            pairs=analysis.pairs,
        ))
        for line_index in analysis.breaks:
            rhyme_issues.append(RhymeIssue(
                section=section.name,
                section_index=section_index,
                line_index=line_index,
            ))

    # Meter, grammar, cadence, coherence, phonetics
    meter = analyze_meter(sections)
    variance_issues = find_variance_issues(meter.section_stats)
    grammar_issues = analyze_grammar(all_lines)
    cadence_issues = analyze_cadence(meter.section_stats, genre_config, time_signature)
    coherence = analyze_coherence(sections)
    cacophony_issues, alliteration_issues = analyze_phonetics(all_lines)

    musical_count = len(cadence_issues) + len(variance_issues)
    theme_count = len(coherence.drift_issues) + len(coherence.emotion_issues)
    scores = compute_scores(
        grammar_count=len(grammar_issues),
        rhyme_count=len(rhyme_issues),
        musical_count=musical_count,
        theme_count=theme_count,
    )
    run_hits = tally_rule_hits(
        rhyme_issues,
        grammar_issues,
        cadence_issues,
        variance_issues,
        coherence,
        cacophony_issues,
        alliteration_issues,
    )

    generated_at = datetime.now(timezone.utc).isoformat()
    feedback, saved, warning = _record_run(
        store,
        run_hits,
        {
            "timestamp": generated_at,
            "scores": asdict(scores),
            "genre": genre_key or None,
            "timeSignature": time_signature,
            "issues": {
                "grammar": len(grammar_issues),
                "rhymes": len(rhyme_issues),
                "musical": musical_count,
                "theme": theme_count,
            },
        },
    )

    logger.info(
        "Validated '%s': %d sections, total score %.2f",
        title or "untitled", len(sections), scores.total,
    )

    return ValidationReport(
        title=title or "",
        genre=genre_key,
        time_signature=time_signature,
        generated_at=generated_at,
        sections=sections,
        meter=meter,
        rhymes=rhymes,
        rhyme_issues=rhyme_issues,
        variance_issues=variance_issues,
        grammar_issues=grammar_issues,
        cadence_issues=cadence_issues,
        coherence=coherence,
        cacophony_issues=cacophony_issues,
        alliteration_issues=alliteration_issues,
        scores=scores,
        run_rule_hits=run_hits,
        feedback=feedback,
        feedback_saved=saved,
        warning=warning,
    )


def _record_run(
    store: FeedbackStore | None,
    run_hits: dict[str, int],
    record: dict,
) -> tuple[FeedbackState, bool, str | None]:
    """Record the run in the store. A failing store never fails the run.

    When the store cannot be read the snapshot is a fresh state with this run
    applied, and nothing is written back.
    """
    history_limit = get_history_limit()
    applied: list[FeedbackState] = []

    def apply(state: FeedbackState) -> None:
        state.apply_run(run_hits, {**record, "version": state.version}, history_limit)
        applied.append(state)

    if store is None:
        state = FeedbackState()
        apply(state)
        return state, False, None

    try:
        state = store.update(apply)
    except Exception as e:
        logger.exception("Could not update feedback state")
        if applied:
            state = applied[0]
        else:
            state = FeedbackState()
            apply(state)
        return state, False, f"feedback state not saved: {e}"
    return state, True, None
