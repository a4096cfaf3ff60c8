from __future__ import annotations

import re
import unicodedata

from turnguard.types import SentenceMetrics

# pictographs, dingbats, flags, skin tones, plus ZWJ / variation selectors
_EMOJI_CHARS = (
    "\U0001F000-\U0001FAFF"
    "\u2600-\u27BF"
    "\u2B00-\u2BFF"
    "\U0001F1E6-\U0001F1FF"
    "\u200D\uFE0E\uFE0F\u20E3"
)
LEADING_EMOJI_RE = re.compile(rf"^[{_EMOJI_CHARS}\s]+")
ZERO_WIDTH_RE = re.compile("[\u200B-\u200D\uFEFF]")
WS_RE = re.compile(r"\s+")
# \w is unicode-aware, so Hangul and other scripts survive
PUNCT_RE = re.compile(r"[^\w\s']")
SENTENCE_END_RE = re.compile(r"[.?!。？！]+")

_ASCII_LOWER = str.maketrans("ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz")
# typographic apostrophes fold to ASCII so PUNCT_RE keeps them
_APOSTROPHES = str.maketrans({"\u2019": "'", "\u02BC": "'"})


def lower_ascii(text: str) -> str:
    return text.translate(_ASCII_LOWER)


def fold_apostrophes(text: str) -> str:
    return text.translate(_APOSTROPHES)


def strip_leading_emoji(text: str) -> str:
    return LEADING_EMOJI_RE.sub("", text).strip()


def opener_norm(content: str, max_tokens: int = 12) -> str:
    """
    Canonical opener of an assistant message:
    strip leading emoji, lowercase ASCII, collapse whitespace,
    drop punctuation except apostrophes, keep the first max_tokens tokens.
    """
    t = strip_leading_emoji(content or "")
    t = fold_apostrophes(lower_ascii(t))
    t = WS_RE.sub(" ", t).strip()
    t = PUNCT_RE.sub("", t)
    return " ".join(t.split()[:max_tokens])


def normalize_no_punct(text: str) -> str:
    t = unicodedata.normalize("NFKC", text or "")
    t = ZERO_WIDTH_RE.sub("", t)
    t = WS_RE.sub(" ", t).strip()
    t = fold_apostrophes(lower_ascii(t))
    return PUNCT_RE.sub("", t)


def token_trigrams(text: str) -> frozenset[str]:
    tokens = (text or "").split()
    if len(tokens) < 3:
        return frozenset()
    return frozenset(" ".join(tokens[i : i + 3]) for i in range(len(tokens) - 2))


def jaccard_similarity(a: str, b: str) -> float:
    """3-gram Jaccard over whitespace tokens; 0.0 when either side has < 3 tokens."""
    ga, gb = token_trigrams(a), token_trigrams(b)
    if not ga or not gb:
        return 0.0
    return len(ga & gb) / len(ga | gb)


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in SENTENCE_END_RE.split(text or "") if s.strip()]


def sentence_metrics(text: str) -> SentenceMetrics:
    sentences = split_sentences(text)
    total_words = sum(len(s.split()) for s in sentences)
    count = len(sentences)
    return SentenceMetrics(
        sentence_count=count,
        total_words=total_words,
        avg_words_per_sentence=(total_words / count) if count else 0.0,
    )
