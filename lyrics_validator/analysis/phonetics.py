"""Portuguese phonetic analysis for meter and rhyme detection.

Provides vowel-group syllable counting, stress detection, poetic syllable
scansion with synalepha, rhyme keys and a suffix-based part-of-speech guess.
"""

import re
from collections import Counter
from dataclasses import dataclass, field

from lyrics_validator.preprocessor import get_last_word, get_words, remove_accents

VOWELS = "aeiouáàâãéêíóôõúü"
ACCENTED_VOWELS = "áàâãéêíóôõúü"

_VOWEL_GROUP_RE = re.compile(f"[{VOWELS}]+", re.IGNORECASE)
_NON_LETTER_RE = re.compile(r"[^a-z]")
_NON_VOWEL_RE = re.compile(r"[^aeiou]")

# Unaccented endings that put the stress on the second-to-last syllable
PAROXYTONE_ENDINGS = (
    "a", "e", "o", "as", "es", "os", "am", "em", "ens", "um", "uns", "im", "ins",
)

# Evaluated in order on the accent-stripped word; first match wins
POS_RULES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"(ar|er|ir)$"), "verb"),
    (re.compile(r"(ando|endo|indo)$"), "verb"),
    (re.compile(r"(ou|ei|ava|ia|ira|aremos|eremos|iremos)$"), "verb"),
    (re.compile(r"mente$"), "adverb"),
    (re.compile(r"(cao|coes|sao|soes)$"), "noun"),
    (re.compile(r"(dade|tude|agem|encia|ismo)$"), "noun"),
    (re.compile(r"(oso|osa|ivel|avel|ico|ica|ado|ada)$"), "adj"),
]


@dataclass
class VowelGroup:
    start: int
    end: int
    value: str


@dataclass
class WordEnding:
    word: str
    rhyme_key: str
    rhyme_vowel_key: str
    pos: str


@dataclass
class RhymePair:
    line_index: int
    next_line_index: int
    type: str  # consonant, assonant, none
    richness: str  # rich, poor, neutral
    words: tuple[str, str]


@dataclass
class RhymeAnalysis:
    pairs: list[RhymePair] = field(default_factory=list)
    breaks: list[int] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Syllables and stress
# ---------------------------------------------------------------------------

def vowel_groups(word: str) -> list[VowelGroup]:
    """Find maximal vowel runs; each run is one syllable nucleus."""
    return [
        VowelGroup(start=m.start(), end=m.end(), value=m.group(0))
        for m in _VOWEL_GROUP_RE.finditer(word)
    ]


def syllable_count(word: str) -> int:
    return len(vowel_groups(word)) or 1


def detect_stress_group_index(word: str) -> int:
    """Index of the stressed vowel group of a word.

    An explicit accent wins (right-most accented vowel). Otherwise the
    paroxytone endings put the stress on the penultimate group and everything
    else is oxytone.
    """
    groups = vowel_groups(word)
    if not groups:
        return 0
    lower = word.lower()

    accented_index = -1
    for i in range(len(lower) - 1, -1, -1):
        if lower[i] in ACCENTED_VOWELS:
            accented_index = i
            break
    if accented_index >= 0:
        for idx, group in enumerate(groups):
            if group.start <= accented_index < group.end:
                return idx
        return len(groups) - 1

    if len(groups) == 1:
        return 0
    if remove_accents(lower).endswith(PAROXYTONE_ENDINGS):
        return max(0, len(groups) - 2)
    return len(groups) - 1


def _is_vowel(char: str) -> bool:
    return char.lower() in VOWELS


def starts_with_vowel(word: str) -> bool:
    """True when the word opens on a vowel sound; a leading 'h' is silent."""
    if not word:
        return False
    lower = word.lower()
    if lower.startswith("h") and len(lower) > 1:
        return _is_vowel(lower[1])
    return _is_vowel(lower[0])


def ends_with_vowel(word: str) -> bool:
    return bool(word) and _is_vowel(word[-1])


def count_poetic_syllables(line: str) -> int:
    """Scan a line the Portuguese way.

    Counting stops at the stressed syllable of the last word, and one syllable
    is removed for every vowel-to-vowel word boundary (synalepha).
    """
    words = get_words(line)
    if not words:
        return 1

    total = sum(syllable_count(w) for w in words[:-1])
    total += detect_stress_group_index(words[-1]) + 1

    for current, following in zip(words, words[1:]):
        if ends_with_vowel(current) and starts_with_vowel(following):
            total -= 1
    return max(total, 1)


# ---------------------------------------------------------------------------
# Rhyme keys and word class
# ---------------------------------------------------------------------------

def rhyme_key(word: str) -> str:
    """Letters from the stressed vowel to the end of the word, accents removed."""
    if not word:
        return ""
    clean = word.lower()
    groups = vowel_groups(clean)
    if not groups:
        return _NON_LETTER_RE.sub("", remove_accents(clean))
    start = groups[detect_stress_group_index(clean)].start
    return _NON_LETTER_RE.sub("", remove_accents(clean[start:]))


def rhyme_vowel_key(word: str) -> str:
    return _NON_VOWEL_RE.sub("", rhyme_key(word))


def guess_pos(word: str) -> str:
    """Best-effort word class from common Portuguese suffixes."""
    lower = remove_accents(word.lower())
    for pattern, tag in POS_RULES:
        if pattern.search(lower):
            return tag
    return "unknown"


def word_ending(word: str) -> WordEnding:
    return WordEnding(
        word=word,
        rhyme_key=rhyme_key(word),
        rhyme_vowel_key=rhyme_vowel_key(word),
        pos=guess_pos(word),
    )


# ---------------------------------------------------------------------------
# Rhyme analysis per section
# ---------------------------------------------------------------------------

def classify_rhyme(a: WordEnding, b: WordEnding) -> str:
    if a.rhyme_key and a.rhyme_key == b.rhyme_key:
        return "consonant"
    if a.rhyme_vowel_key and a.rhyme_vowel_key == b.rhyme_vowel_key:
        return "assonant"
    return "none"


def classify_richness(a: WordEnding, b: WordEnding) -> str:
    """Rich rhymes pair different word classes, poor ones the same class."""
    if a.pos == "unknown" or b.pos == "unknown":
        return "neutral"
    return "rich" if a.pos != b.pos else "poor"


def analyze_rhymes(lines: list[str]) -> RhymeAnalysis:
    """Classify adjacent line-ending pairs and flag endings that never repeat.

    Args:
        lines: Lines of a single section.

    Returns:
        RhymeAnalysis with one pair per adjacent line couple (skipping lines
        without words) and the indexes of lines whose rhyme key is unique.
    """
    endings = [word_ending(get_last_word(line)) for line in lines]

    pairs = []
    for i in range(len(endings) - 1):
        current, following = endings[i], endings[i + 1]
        if not current.word or not following.word:
            continue
        pairs.append(RhymePair(
            line_index=i,
            next_line_index=i + 1,
            type=classify_rhyme(current, following),
            richness=classify_richness(current, following),
            words=(current.word, following.word),
        ))

    key_counts = Counter(end.rhyme_key for end in endings if end.rhyme_key)
    breaks = [
        idx for idx, end in enumerate(endings)
        if end.rhyme_key and key_counts[end.rhyme_key] == 1
    ]
    return RhymeAnalysis(pairs=pairs, breaks=breaks)


def detect_section_rhyme_scheme(lines: list[str]) -> str:
    """Detect the rhyme scheme of a section (e.g., AABB, ABAB, ABBA, FREE).

    Each ending gets the letter of the first earlier ending it rhymes with
    (consonant or assonant), or a fresh letter.
    """
    if len(lines) < 2:
        return "FREE"

    endings = [word_ending(get_last_word(line)) for line in lines]
    scheme: list[str] = []
    next_letter = ord("A")

    for i, ending in enumerate(endings):
        letter = None
        if ending.word:
            for j in range(i):
                if endings[j].word and classify_rhyme(ending, endings[j]) != "none":
                    letter = scheme[j]
                    break
        if letter is None:
            letter = chr(next_letter)
            next_letter += 1
        scheme.append(letter)

    pattern = "".join(scheme)
    return pattern if len(set(pattern)) < len(pattern) else "FREE"
