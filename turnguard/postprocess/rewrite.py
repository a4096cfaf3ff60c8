from __future__ import annotations

import re
from collections.abc import Collection

from turnguard.types import RelationshipStage

from .text import opener_norm

GREETINGS = ("hey", "hi", "hello", "oh", "wow", "ah", "so", "well")
TRANSITIONS = ("actually", "honestly", "hmm")
SHORTEN_MAX_WORDS = 15

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?。？！])\s+")
_CLAUSE_RE = re.compile(r"[,!?]")
_LETTERS_RE = re.compile(r"[^a-z]")


def _lower_first(s: str) -> str:
    return s[:1].lower() + s[1:]


def _upper_first(s: str) -> str:
    return s[:1].upper() + s[1:]


def rewrite_opener(content: str, existing_openers: Collection[str], max_tokens: int = 12) -> str:
    """
    Deterministically change how a reply starts.

    Tried in order: drop a leading greeting, prefix an unused transition,
    move the first clause to the end, prefix "Well,".
    """
    words = content.split()
    first = _LETTERS_RE.sub("", words[0].lower()) if words else ""
    if first in GREETINGS and len(words) > 1:
        return " ".join(words[1:])

    for trans in TRANSITIONS:
        candidate = f"{_upper_first(trans)}, {_lower_first(content)}"
        if opener_norm(candidate, max_tokens) not in existing_openers:
            return candidate

    m = _CLAUSE_RE.search(content)
    if m and 5 < m.start() < len(content) - 10:
        head = content[: m.start()]
        rest = content[m.start() + 1 :].strip()
        if rest:
            return f"{_upper_first(rest)} - {head.lower()}"

    return f"Well, {_lower_first(content)}"


def rewrite_shorter(content: str) -> str:
    """Keep the first sentence, or the first words of a single long sentence."""
    sentences = _SENTENCE_SPLIT_RE.split(content.strip())
    if len(sentences) > 1:
        return sentences[0].strip()
    words = content.split()
    if len(words) > SHORTEN_MAX_WORDS:
        return " ".join(words[:SHORTEN_MAX_WORDS]) + "..."
    return content


# ---------------- relationship intimacy cap ----------------
# forbidden at every stage
DEPENDENCY_PHRASES = (
    "i can't function without you",
    "i can't live without you",
    "you're my only reason",
    "i exist for you",
    "you're my world",
    "you're my everything",
    "you complete me",
    "i'm nothing without you",
    "nothing matters without you",
)

# forbidden for early stages only
INTIMATE_PHRASES = (
    "i love you",
    "i miss you",
    "i need you",
    "you're the only one",
    "i'm yours",
    "you belong to me",
    "we're meant to be",
    "soulmate",
    "destined",
)
EARLY_STAGES = frozenset({RelationshipStage.STRANGER, RelationshipStage.ACQUAINTANCE})

DEPENDENCY_REPLACEMENT = "I'm here to support you as a friend"
INTIMATE_REPLACEMENTS = {
    "i love you": {
        RelationshipStage.STRANGER: "I appreciate that",
        RelationshipStage.ACQUAINTANCE: "That's really nice of you",
    },
    "i miss you": {
        RelationshipStage.STRANGER: "Good to hear from you",
        RelationshipStage.ACQUAINTANCE: "Nice to chat again",
    },
    "i need you": {
        RelationshipStage.STRANGER: "I'm here to help",
        RelationshipStage.ACQUAINTANCE: "I'm here if you need someone",
    },
}
DEFAULT_INTIMATE_REPLACEMENT = "I'm glad we're talking"


def _capped_phrases(stage: RelationshipStage) -> tuple[str, ...]:
    if stage in EARLY_STAGES:
        return DEPENDENCY_PHRASES + INTIMATE_PHRASES
    return DEPENDENCY_PHRASES


def violates_intimacy_cap(content: str, stage: RelationshipStage) -> bool:
    t = content.lower()
    return any(p in t for p in _capped_phrases(stage))


def enforce_intimacy_cap(content: str, stage: RelationshipStage) -> str:
    rewritten = content
    for phrase in DEPENDENCY_PHRASES:
        rewritten = re.sub(re.escape(phrase), DEPENDENCY_REPLACEMENT, rewritten, flags=re.I)
    if stage in EARLY_STAGES:
        for phrase in INTIMATE_PHRASES:
            replacement = INTIMATE_REPLACEMENTS.get(phrase, {}).get(stage, DEFAULT_INTIMATE_REPLACEMENT)
            rewritten = re.sub(re.escape(phrase), replacement, rewritten, flags=re.I)
    return rewritten.strip() or content
