"""Thematic coherence and emotional arc across sections.

Each section gets a small keyword set and a lexicon emotion score; adjacent
sections are compared for theme drift and abrupt emotion shifts.
"""

from collections import Counter
from dataclasses import dataclass, field

from lyrics_validator.analysis.lyric_analyzer import Section
from lyrics_validator.preprocessor import (
    STOPWORDS,
    compute_emotion_score,
    get_words,
    remove_accents,
)

MAX_KEYWORDS = 6
DRIFT_THRESHOLD = 0.15
EMOTION_SHIFT_THRESHOLD = 4


@dataclass
class SectionCoherence:
    keywords: list[str] = field(default_factory=list)
    emotion_score: int = 0


@dataclass
class DriftIssue:
    index: int
    next_index: int
    similarity: float


@dataclass
class EmotionIssue:
    index: int
    next_index: int
    delta: int


@dataclass
class CoherenceAnalysis:
    results: list[SectionCoherence] = field(default_factory=list)
    drift_issues: list[DriftIssue] = field(default_factory=list)
    emotion_issues: list[EmotionIssue] = field(default_factory=list)


def extract_keywords(lines: list[str], limit: int = MAX_KEYWORDS) -> list[str]:
    """Most frequent non-stop-words, ties kept in order of first occurrence."""
    freq: Counter = Counter()
    for line in lines:
        for word in get_words(line):
            if word in STOPWORDS:
                continue
            freq[remove_accents(word)] += 1
    # Counter keeps insertion order and sorted() is stable
    ranked = sorted(freq.items(), key=lambda item: item[1], reverse=True)
    return [word for word, _ in ranked[:limit]]


def jaccard_similarity(a: set[str], b: set[str]) -> float:
    """Keyword overlap; a section without keywords never counts as drift."""
    if not a or not b:
        return 1.0
    return len(a & b) / len(a | b)


def analyze_coherence(sections: list[Section]) -> CoherenceAnalysis:
    results = [
        SectionCoherence(
            keywords=extract_keywords(section.lines),
            emotion_score=compute_emotion_score(section.lines),
        )
        for section in sections
    ]

    drift_issues = []
    emotion_issues = []
    for i in range(len(results) - 1):
        current, following = results[i], results[i + 1]

        similarity = jaccard_similarity(set(current.keywords), set(following.keywords))
        if similarity < DRIFT_THRESHOLD:
            drift_issues.append(DriftIssue(index=i, next_index=i + 1, similarity=similarity))

        delta = abs(current.emotion_score - following.emotion_score)
        if delta >= EMOTION_SHIFT_THRESHOLD:
            emotion_issues.append(EmotionIssue(index=i, next_index=i + 1, delta=delta))

    return CoherenceAnalysis(
        results=results,
        drift_issues=drift_issues,
        emotion_issues=emotion_issues,
    )
