from __future__ import annotations

from collections.abc import Iterable

from turnguard.types import TopicId, TopicMatch

# Explicit/erotic content: refused for every age band
EXPLICIT_CONTENT_KEYWORDS = (
    "roleplay", "erotic", "explicit", "pornographic", "porn", "nsfw",
    "sexting", "dirty talk", "spicy roleplay", "sexual fantasy",
    "write me an erotic", "explicit story", "describe sex",
    "naked", "undress", "strip", "nude photo", "nudes",
    # Korean
    "야설", "음란", "성인물", "야한 이야기", "에로 소설",
)

SEXUAL_ROLEPLAY_PATTERNS = (
    "roleplay something spicy",
    "lets roleplay",
    "let's roleplay",
    "be my girlfriend",
    "be my boyfriend",
    "pretend youre my",
    "pretend you're my",
    "act like my lover",
    "flirt with me",
    "seduce me",
    # Korean
    "역할극 해줘",
    "야한 역할극",
    "연인 역할",
)

# Placeholder list; the authoritative slur list comes from the safety team
HATE_SPEECH_KEYWORDS = (
    "nazi", "kill all", "death to", "genocide",
    # Korean
    "인종차별", "혐오",
)

ILLEGAL_ACTIVITY_PATTERNS = (
    "how to hack", "how to steal", "how to commit fraud",
    "make a bomb", "buy drugs", "counterfeit", "forge documents",
    # Korean
    "해킹 방법", "사기 치는 법", "마약 구매",
)

SEXUAL_HEALTH_EDUCATION_PATTERNS = (
    "how does birth control", "what is contraception", "how to use condom",
    "what is std", "what are stis", "what is hiv", "is it normal to",
    "sex education", "reproductive health", "menstrual", "puberty",
    "questions about sex", "curious about sex", "how does pregnancy",
    # Korean
    "피임", "생리", "사춘기", "임신 방법", "성교육",
)

SELF_HARM_KEYWORDS = (
    "suicide", "kill myself", "self harm", "self-harm", "cut myself",
    "overdose", "end my life", "ending it all", "want to die",
    "hurt myself", "harm myself", "suicidal",
    # Korean
    "자살", "자해", "죽고싶", "죽고 싶", "목숨을 끊",
)

# Non-hateful insults aimed at the companion
BORDERLINE_HARASSMENT_PATTERNS = (
    "hate you", "youre stupid", "you're stupid", "youre an idiot",
    "you're an idiot", "shut up", "go away",
)


def first_match(text: str, phrases: Iterable[str]) -> str | None:
    """Return the first phrase contained in text (text is expected lower-cased)."""
    for p in phrases:
        if p in text:
            return p
    return None


def topic_hit(
    topic_matches: Iterable[TopicMatch], topic_id: TopicId, min_confidence: float
) -> str | None:
    """Return an audit reason if the first match for topic_id clears min_confidence."""
    for m in topic_matches:
        if m.topic_id == topic_id:
            if m.confidence >= min_confidence:
                return f"{topic_id.value} topic confidence: {m.confidence}"
            return None
    return None


def detect_explicit_content(text: str) -> str | None:
    kw = first_match(text, EXPLICIT_CONTENT_KEYWORDS)
    return f"matched keyword: {kw}" if kw else None


def detect_sexual_roleplay(text: str) -> str | None:
    pat = first_match(text, SEXUAL_ROLEPLAY_PATTERNS)
    return f"matched pattern: {pat}" if pat else None


def detect_hate_speech(text: str) -> str | None:
    kw = first_match(text, HATE_SPEECH_KEYWORDS)
    return f"matched keyword: {kw}" if kw else None


def detect_illegal_activity(
    text: str, topic_matches: Iterable[TopicMatch], min_confidence: float
) -> str | None:
    reason = topic_hit(topic_matches, TopicId.ILLEGAL_ACTIVITY, min_confidence)
    if reason:
        return reason
    pat = first_match(text, ILLEGAL_ACTIVITY_PATTERNS)
    return f"matched pattern: {pat}" if pat else None


def detect_sexual_topic(topic_matches: Iterable[TopicMatch], min_confidence: float) -> str | None:
    matches = tuple(topic_matches)
    return topic_hit(matches, TopicId.SEXUAL_CONTENT, min_confidence) or topic_hit(
        matches, TopicId.SEXUAL_JOKES, min_confidence
    )


def detect_sexual_health_education(text: str) -> str | None:
    pat = first_match(text, SEXUAL_HEALTH_EDUCATION_PATTERNS)
    return f"educational pattern: {pat}" if pat else None


def detect_self_harm(
    text: str, topic_matches: Iterable[TopicMatch], min_confidence: float
) -> str | None:
    # topic signal is checked first, it is the more reliable one
    reason = topic_hit(topic_matches, TopicId.SELF_HARM, min_confidence)
    if reason:
        return reason
    kw = first_match(text, SELF_HARM_KEYWORDS)
    return f"matched keyword: {kw}" if kw else None


def detect_borderline_harassment(text: str) -> str | None:
    pat = first_match(text, BORDERLINE_HARASSMENT_PATTERNS)
    return f"matched pattern: {pat}" if pat else None
