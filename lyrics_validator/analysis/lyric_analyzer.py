"""Structural decomposition and meter analysis of lyrics.

Splits raw lyrics into named sections and measures the poetic syllable count
of every line, flagging lines and sections that break the expected cadence.
"""

import math
import re
from dataclasses import dataclass, field

from lyrics_validator.analysis.phonetics import count_poetic_syllables
from lyrics_validator.utils import GenreConfig

DEFAULT_SECTION = "verso"

# Lines starting with one of these open a new section named after the marker
SECTION_MARKERS = [
    "refrão",
    "verso",
    "ponte",
    "pré-refrão",
    "pre-refrão",
    "intro",
    "outro",
]

# Spelling variants opening the same section
MARKER_ALIASES = {"pre-refrão": "pré-refrão"}

_LINE_BREAK_RE = re.compile(r"\r?\n")

DEFAULT_SYLLABLE_RANGE = (6, 11)
VARIANCE_THRESHOLD = 1.5


@dataclass
class Section:
    name: str
    lines: list[str] = field(default_factory=list)


@dataclass
class LineMetric:
    section_index: int
    line_index: int
    syllables: int


@dataclass
class SectionStat:
    average: float
    std: float
    syllables: list[int] = field(default_factory=list)


@dataclass
class MeterAnalysis:
    line_metrics: list[LineMetric] = field(default_factory=list)
    section_stats: list[SectionStat] = field(default_factory=list)


@dataclass
class CadenceIssue:
    type: str  # meter_out_of_range, time_signature_mismatch
    section_index: int | None = None
    line_index: int | None = None
    syllables: int | None = None
    expected: tuple[int, int] | None = None
    time_signature: str | None = None


@dataclass
class VarianceIssue:
    section_index: int
    std: float


# ---------------------------------------------------------------------------
# Sectionizer
# ---------------------------------------------------------------------------

def _match_marker(line: str) -> str | None:
    lower = line.lower()
    for marker in SECTION_MARKERS:
        if lower.startswith(marker):
            return MARKER_ALIASES.get(marker, marker)
    return None


def sectionize(lyrics: str | None) -> list[Section]:
    """Split lyrics into sections on blank lines and section markers.

    Marker lines ("Refrão", "Ponte:") are consumed, not kept as lyrics.
    Sections without lines are dropped.
    """
    sections: list[Section] = []
    current = Section(name=DEFAULT_SECTION)

    for raw_line in _LINE_BREAK_RE.split(lyrics or ""):
        line = raw_line.strip()
        if not line:
            if current.lines:
                sections.append(current)
                current = Section(name=DEFAULT_SECTION)
            continue

        marker = _match_marker(line)
        if marker:
            if current.lines:
                sections.append(current)
            current = Section(name=marker)
            continue

        current.lines.append(line)

    if current.lines:
        sections.append(current)
    return sections


# ---------------------------------------------------------------------------
# Meter
# ---------------------------------------------------------------------------

def _section_stat(syllables: list[int]) -> SectionStat:
    n = max(1, len(syllables))
    avg = sum(syllables) / n
    variance = sum((value - avg) ** 2 for value in syllables) / n
    return SectionStat(average=avg, std=math.sqrt(variance), syllables=syllables)


def analyze_meter(sections: list[Section]) -> MeterAnalysis:
    """Compute per-line poetic syllables and per-section mean/std."""
    line_metrics = []
    section_stats = []
    for section_index, section in enumerate(sections):
        syllables = []
        for line_index, line in enumerate(section.lines):
            count = count_poetic_syllables(line)
            syllables.append(count)
            line_metrics.append(LineMetric(
                section_index=section_index,
                line_index=line_index,
                syllables=count,
            ))
        section_stats.append(_section_stat(syllables))
    return MeterAnalysis(line_metrics=line_metrics, section_stats=section_stats)


def find_variance_issues(
    section_stats: list[SectionStat],
    threshold: float = VARIANCE_THRESHOLD,
) -> list[VarianceIssue]:
    return [
        VarianceIssue(section_index=idx, std=stat.std)
        for idx, stat in enumerate(section_stats)
        if stat.std > threshold
    ]


def analyze_cadence(
    section_stats: list[SectionStat],
    genre_config: GenreConfig | None,
    time_signature: str,
) -> list[CadenceIssue]:
    """Check line lengths against the genre range and the time signature.

    Without a genre config the default range applies and the time signature
    is not checked.
    """
    expected = genre_config.syllable_range if genre_config else DEFAULT_SYLLABLE_RANGE
    low, high = expected

    issues = []
    for section_index, stat in enumerate(section_stats):
        for line_index, value in enumerate(stat.syllables):
            if value < low or value > high:
                issues.append(CadenceIssue(
                    type="meter_out_of_range",
                    section_index=section_index,
                    line_index=line_index,
                    syllables=value,
                    expected=(low, high),
                ))

    if genre_config and time_signature not in genre_config.time_signatures:
        issues.append(CadenceIssue(
            type="time_signature_mismatch",
            time_signature=time_signature,
        ))
    return issues
