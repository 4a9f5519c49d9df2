"""Grammar rules, outdated slang and sound-quality checks.

All checks are line-scoped. Line indexes refer to the flattened list of lyric
lines across every section.
"""

import re
from dataclasses import dataclass

from lyrics_validator.preprocessor import get_words, normalize_text


@dataclass(frozen=True)
class GrammarRule:
    id: str
    label: str
    pattern: re.Pattern


@dataclass
class GrammarIssue:
    id: str
    line_index: int
    label: str


@dataclass
class CacophonyIssue:
    line_index: int
    hit: str


@dataclass
class AlliterationIssue:
    line_index: int


def _rule(rule_id: str, label: str, pattern: str) -> GrammarRule:
    return GrammarRule(id=rule_id, label=label, pattern=re.compile(pattern, re.IGNORECASE))


GRAMMAR_RULES: list[GrammarRule] = [
    _rule("grammar_pra_mim_fazer", "Uso incorreto de pronome após preposição",
          r"pra\s+mim\s+\w+|para\s+mim\s+\w+"),
    _rule("grammar_a_gente_vamos", "Concordância com 'a gente'",
          r"a\s+gente\s+(vamos|fomos|iremos|cantamos)"),
    _rule("grammar_os_problema", "Concordância nominal irregular",
          r"(os|as)\s+(problema|criança|pessoa|coisa|menina)\b"),
    _rule("grammar_menos_eu", "Regência com 'menos eu'",
          r"menos\s+eu"),
    _rule("grammar_ha_atras", "Redundância com há",
          r"há\s+\w+\s+atrás"),
    _rule("grammar_menas", "Uso incorreto de 'menas'",
          r"\bmenas\b"),
    _rule("grammar_seje", "Uso incorreto de 'seje'",
          r"\bseje\b"),
    _rule("grammar_mais_melhor", "Comparativo redundante",
          r"mais\s+melhor|mais\s+pior|mais\s+menor"),
]

SLANG_OUTDATED = ["maneiro", "da hora", "irado"]

_SLANG_PATTERNS = [
    (slang, re.compile(rf"\b{re.escape(slang)}\b", re.IGNORECASE))
    for slang in SLANG_OUTDATED
]

# Sound clashes that appear when adjacent words are read together
CACOPHONY_RISKS = ["latinha", "mamão", "porcada", "bocadela"]

_ALLITERATION_RE = re.compile(r"(.)\1{2,}")
MIN_ALLITERATION_WORDS = 4


def analyze_grammar(lines: list[str]) -> list[GrammarIssue]:
    """One issue per rule that matches a line, plus one per outdated slang term."""
    issues = []
    for index, line in enumerate(lines):
        for rule in GRAMMAR_RULES:
            if rule.pattern.search(line):
                issues.append(GrammarIssue(id=rule.id, line_index=index, label=rule.label))
        for slang, pattern in _SLANG_PATTERNS:
            if pattern.search(line):
                issues.append(GrammarIssue(
                    id="slang_outdated",
                    line_index=index,
                    label=f"Gíria desatualizada: {slang}",
                ))
    return issues


def detect_cacophony(line: str) -> list[str]:
    compact = normalize_text(line).replace(" ", "")
    return [risk for risk in CACOPHONY_RISKS if risk in compact]


def detect_alliteration(line: str) -> bool:
    """Three or more consecutive words starting with the same letter."""
    words = get_words(line)
    if len(words) < MIN_ALLITERATION_WORDS:
        return False
    initials = "".join(w[0] for w in words if w)
    return bool(_ALLITERATION_RE.search(initials))


def analyze_phonetics(lines: list[str]) -> tuple[list[CacophonyIssue], list[AlliterationIssue]]:
    cacophony = [
        CacophonyIssue(line_index=index, hit=hit)
        for index, line in enumerate(lines)
        for hit in detect_cacophony(line)
    ]
    alliteration = [
        AlliterationIssue(line_index=index)
        for index, line in enumerate(lines)
        if detect_alliteration(line)
    ]
    return cacophony, alliteration
