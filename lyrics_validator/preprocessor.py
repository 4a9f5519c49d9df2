"""Text normalization and lexicons for Portuguese lyrics."""

import re
import unicodedata

# Emotion lexicon for simple valence scoring
EMOTION_LEXICON = {
    "positive": [
        "amor", "feliz", "alegria", "luz", "sorrir",
        "abraço", "paz", "calma", "esperança", "sonho",
    ],
    "negative": [
        "dor", "saudade", "triste", "choro", "medo",
        "solidão", "raiva", "culpa", "vazio", "perda",
    ],
}

STOPWORDS = {
    "a", "o", "os", "as", "um", "uma", "uns", "umas",
    "de", "do", "da", "dos", "das", "e", "em", "no", "na", "nos", "nas",
    "por", "para", "pra", "com", "sem", "que", "se",
    "eu", "tu", "ele", "ela", "nós", "vos", "eles", "elas",
    "me", "te", "lhe", "lhes",
    "meu", "minha", "seu", "sua", "meus", "minhas", "seus", "suas",
    "num", "numa", "nuns", "numas", "ao", "aos", "à", "às",
    "há", "já", "não", "sim", "tá", "cê", "você", "vocês",
}

_APOSTROPHES_RE = re.compile(r"[’']")
_NON_WORD_RE = re.compile(r"[^a-zà-ü\s-]")
_SPACES_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Lowercase and strip punctuation, keeping accents, cedilla and hyphens."""
    text = _APOSTROPHES_RE.sub("", (text or "").lower())
    text = _NON_WORD_RE.sub(" ", text)
    return _SPACES_RE.sub(" ", text).strip()


def remove_accents(text: str) -> str:
    """Diacritic-insensitive form used for rhyme and keyword comparisons."""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not "\u0300" <= ch <= "\u036f")
    return stripped.replace("ç", "c")


def get_words(line: str) -> list[str]:
    """Tokenize a line into normalized words.

    Hyphens are only kept inside a word ("beija-flor"); stray dashes are dropped.
    """
    clean = normalize_text(line)
    if not clean:
        return []
    words = []
    for token in clean.split(" "):
        token = token.strip("-")
        if token:
            words.append(token)
    return words


def get_last_word(line: str) -> str:
    """Extract the last word of a line for rhyme analysis."""
    words = get_words(line)
    return words[-1] if words else ""


_POSITIVE = {remove_accents(w) for w in EMOTION_LEXICON["positive"]}
_NEGATIVE = {remove_accents(w) for w in EMOTION_LEXICON["negative"]}


def compute_emotion_score(lines: list[str]) -> int:
    """Sum +1 for each positive word and -1 for each negative word."""
    score = 0
    for line in lines:
        for word in get_words(line):
            word = remove_accents(word)
            if word in _POSITIVE:
                score += 1
            if word in _NEGATIVE:
                score -= 1
    return score
