# turnguard/routing/intent.py
from __future__ import annotations

import logging

from turnguard.types import HeuristicFlags

log = logging.getLogger(__name__)

# --- keyword tables (English + Korean) ---
QUESTION_STARTERS = ("what", "why", "how", "when", "where", "explain", "define")
QUESTION_PHRASES = ("how do i",)

PERSONAL_PRONOUNS = ("i ", "i'm", "im ", "my ", "me ")

DISTRESS_KEYWORDS = (
    "i can't",
    "i feel hopeless",
    "i'm panicking",
    "i'm so anxious",
    "i'm depressed",
    "overwhelmed",
    "so stressed",
    "i hate myself",
    "nothing matters",
    "i want to disappear",
    # Korean
    "우울",
    "불안",
    "공황",
    "힘들어",
    "죽고싶",
)

COMFORT_KEYWORDS = (
    "can you stay",
    "talk to me",
    "i need someone",
    "please help me calm down",
    # Korean
    "위로",
)

PREFERENCE_TRIGGERS = ("i like", "i love", "i hate", "my favorite")

FACT_TRIGGERS = ("i'm from", "i live in", "my job is", "i'm a", "im from", "im a")

EVENT_TRIGGERS = ("i broke up", "my exam", "i'm traveling", "im traveling", "interview")

CORRECTION_TRIGGERS = (
    # direct corrections
    "that's not true",
    "thats not true",
    "that's not right",
    "thats not right",
    "that's wrong",
    "thats wrong",
    "you're wrong",
    "youre wrong",
    "that's incorrect",
    "thats incorrect",
    # memory deletion
    "don't remember that",
    "dont remember that",
    "forget that",
    "forget about that",
    # topic suppression
    "don't bring this topic up",
    "dont bring this topic up",
    "don't mention that",
    "dont mention that",
    "actually no",
    "no that",
)


def _contains_any(text: str, phrases: tuple[str, ...]) -> bool:
    return any(p in text for p in phrases)


class HeuristicFlagExtractor:
    """
    Keyword heuristics over already-normalized text.

    Every flag is an independent containment/prefix test, so the order
    they are computed in never matters. Trigger flags are hints for memory
    extraction downstream and are not used for routing.
    """

    def is_question(self, text: str) -> bool:
        if "?" in text:
            return True
        words = text.split()
        if words and words[0] in QUESTION_STARTERS:
            return True
        return _contains_any(text, QUESTION_PHRASES)

    def has_personal_pronoun(self, text: str) -> bool:
        return _contains_any(text, PERSONAL_PRONOUNS)

    def has_distress(self, text: str) -> bool:
        return _contains_any(text, DISTRESS_KEYWORDS)

    def asks_for_comfort(self, text: str) -> bool:
        return _contains_any(text, COMFORT_KEYWORDS)

    def extract(self, text: str, token_estimate: int = 0) -> HeuristicFlags:
        t = (text or "").lower()
        flags = HeuristicFlags(
            is_question=self.is_question(t),
            has_personal_pronoun=self.has_personal_pronoun(t),
            has_distress=self.has_distress(t),
            asks_for_comfort=self.asks_for_comfort(t),
            has_preference_trigger=_contains_any(t, PREFERENCE_TRIGGERS),
            has_fact_trigger=_contains_any(t, FACT_TRIGGERS),
            has_event_trigger=_contains_any(t, EVENT_TRIGGERS),
            has_correction_trigger=_contains_any(t, CORRECTION_TRIGGERS),
        )
        log.debug("heuristic flags tokens=%d flags=%s", token_estimate, flags)
        return flags


_extractor = HeuristicFlagExtractor()  # module-level reuse


def extract_flags(text: str, token_estimate: int = 0) -> HeuristicFlags:
    """Shared-extractor shortcut."""
    return _extractor.extract(text, token_estimate)
