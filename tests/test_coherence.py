"""Tests for keyword extraction, theme drift and emotion shifts."""

import pytest
from lyrics_validator.analysis.coherence import (
    analyze_coherence,
    extract_keywords,
    jaccard_similarity,
)
from lyrics_validator.analysis.lyric_analyzer import Section


class TestExtractKeywords:
    """Test per-section keyword extraction."""

    def test_frequency_then_first_occurrence(self):
        assert extract_keywords(["O mar azul, o mar", "Sol e céu"]) == ["mar", "azul", "sol", "ceu"]

    def test_stopwords_skipped(self):
        assert extract_keywords(["Eu não sei se você vem"]) == ["sei", "vem"]

    def test_limit(self):
        lines = ["um dois três quatro cinco seis sete oito"]
        keywords = extract_keywords(lines)
        assert len(keywords) == 6
        assert keywords[0] == "dois"

    def test_empty(self):
        assert extract_keywords([]) == []


class TestJaccard:
    """Test keyword-set similarity."""

    def test_overlap(self):
        assert jaccard_similarity({"a", "b"}, {"b", "c"}) == pytest.approx(1 / 3)

    def test_disjoint(self):
        assert jaccard_similarity({"a"}, {"b"}) == 0

    def test_empty_side_is_similar(self):
        assert jaccard_similarity(set(), {"a"}) == 1.0
        assert jaccard_similarity(set(), set()) == 1.0


class TestAnalyzeCoherence:
    """Test cross-section checks."""

    def test_disjoint_sections_drift(self):
        sections = [
            Section("verso", ["O mar azul brilha"]),
            Section("refrão", ["Cidade cinza chora"]),
        ]
        result = analyze_coherence(sections)
        assert len(result.drift_issues) == 1
        issue = result.drift_issues[0]
        assert (issue.index, issue.next_index, issue.similarity) == (0, 1, 0)

    def test_shared_theme_no_drift(self):
        sections = [
            Section("verso", ["O mar azul"]),
            Section("refrão", ["Azul é o mar"]),
        ]
        assert analyze_coherence(sections).drift_issues == []

    def test_emotion_shift(self):
        sections = [
            Section("verso", ["amor, paz, alegria e luz"]),
            Section("refrão", ["luz e paz"]),
            Section("ponte", ["dor e medo"]),
        ]
        result = analyze_coherence(sections)
        assert [r.emotion_score for r in result.results] == [4, 2, -2]
        assert [(i.index, i.delta) for i in result.emotion_issues] == [(1, 4)]

    def test_only_adjacent_sections_compared(self):
        sections = [
            Section("verso", ["mar azul"]),
            Section("refrão", ["mar azul"]),
            Section("verso", ["mar azul"]),
        ]
        result = analyze_coherence(sections)
        assert result.drift_issues == []
        assert len(result.results) == 3

    def test_single_section(self):
        result = analyze_coherence([Section("verso", ["algo"])])
        assert result.drift_issues == []
        assert result.emotion_issues == []
