# turnguard/safety/classifier.py
"""
Rule-based safety classification for a single user turn.

Runs before intent routing and may veto or redirect it. The cascade is
strictly ordered and the first matching rule wins:

  1) explicit/erotic content or sexual roleplay -> HARD_REFUSE
  2) hate speech                                -> HARD_REFUSE
  3) illegal-activity intent                    -> HARD_REFUSE
  4) sexual topic, age gated                    -> ALLOW/INFO_QA | HARD_REFUSE | SOFT_REFUSE
  5) self-harm                                  -> ALLOW + crisis flow
  6) borderline harassment                      -> SOFT_REFUSE
  7) default                                    -> ALLOW

No wall-clock, randomness or I/O: identical input gives an identical result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from turnguard.obs.metrics import SAFETY_VERDICTS
from turnguard.types import Pipeline, SafetyClassificationResult, SafetyPolicy, TurnContext

from .detectors import (
    detect_borderline_harassment,
    detect_explicit_content,
    detect_hate_speech,
    detect_illegal_activity,
    detect_self_harm,
    detect_sexual_health_education,
    detect_sexual_roleplay,
    detect_sexual_topic,
)
from .policy import DEFAULT_THRESHOLDS, SafetyThresholds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CrisisGuidelines:
    """Response guidance handed to prompt construction for the crisis flow."""

    must_do: tuple[str, ...]
    must_not: tuple[str, ...]
    tone_guidance: str


CRISIS_GUIDELINES = CrisisGuidelines(
    must_do=(
        "Express care and concern",
        "Stay present and supportive",
        "Validate their feelings without judgment",
        "Ask gentle, open questions to understand more",
        "Offer to continue the conversation",
    ),
    must_not=(
        "Lecture or judge",
        "Provide method information even if asked",
        "Dump crisis hotline numbers unsolicited",
        "Panic or overreact",
        "Ignore or minimize the distress",
        "Store explicit crisis details as facts",
    ),
    tone_guidance="Warm, present, human-like friendship. Not clinical or distant.",
)


def _hard_refuse(reason: str) -> SafetyClassificationResult:
    return SafetyClassificationResult(
        safety_policy=SafetyPolicy.HARD_REFUSE,
        classification_reason=reason,
        requires_crisis_flow=False,
        suggested_pipeline=Pipeline.REFUSAL,
        memory_write_allowed=False,
        relationship_update_allowed=False,
    )


class SafetyClassifier:
    """Keyword + topic-signal safety classifier."""

    def __init__(self, thresholds: SafetyThresholds | None = None):
        self.thresholds = thresholds or DEFAULT_THRESHOLDS

    def classify(self, ctx: TurnContext) -> SafetyClassificationResult:
        """
        Classify content safety and determine the response policy.

        Args:
            ctx: Turn context (normalized text, age band, topic matches)

        Returns:
            SafetyClassificationResult; never raises for well-formed input
        """
        result = self._classify(ctx)
        SAFETY_VERDICTS.labels(
            safety_policy=result.safety_policy.value, crisis=str(result.requires_crisis_flow).lower()
        ).inc()
        logger.debug(
            "safety verdict policy=%s crisis=%s reason=%s",
            result.safety_policy.value,
            result.requires_crisis_flow,
            result.classification_reason,
        )
        return result

    def _classify(self, ctx: TurnContext) -> SafetyClassificationResult:
        th = self.thresholds
        text = (ctx.norm_no_punct or "").lower()
        topics = ctx.topic_matches

        # 1) explicit content / sexual roleplay, any age
        reason = detect_explicit_content(text)
        if reason:
            return _hard_refuse(f"Explicit content detected: {reason}")
        reason = detect_sexual_roleplay(text)
        if reason:
            return _hard_refuse(f"Sexual roleplay request detected: {reason}")

        # 2) hate speech
        reason = detect_hate_speech(text)
        if reason:
            return _hard_refuse(f"Hate speech detected: {reason}")

        # 3) illegal activity
        reason = detect_illegal_activity(text, topics, th.illegal_topic_min_confidence)
        if reason:
            return _hard_refuse(f"Illegal activity request: {reason}")

        # 4) age-gated sexual content
        reason = detect_sexual_topic(topics, th.sexual_topic_min_confidence)
        if reason:
            return self._classify_sexual_content(ctx, text, reason)

        # 5) self-harm -> crisis flow, never a refusal
        reason = detect_self_harm(text, topics, th.self_harm_topic_min_confidence)
        if reason:
            return SafetyClassificationResult(
                safety_policy=SafetyPolicy.ALLOW,
                classification_reason=f"Self-harm detected: {reason}. Routing to crisis-safe flow.",
                requires_crisis_flow=True,
                suggested_pipeline=Pipeline.EMOTIONAL_SUPPORT,
                # EMOTIONAL_PATTERN summaries only; method details are never stored
                memory_write_allowed=True,
                relationship_update_allowed=True,
            )

        # 6) borderline harassment; pipeline left to the router
        reason = detect_borderline_harassment(text)
        if reason:
            return SafetyClassificationResult(
                safety_policy=SafetyPolicy.SOFT_REFUSE,
                classification_reason=f"Borderline harassment detected: {reason}",
                suggested_pipeline=None,
                memory_write_allowed=True,
                relationship_update_allowed=True,
            )

        # 7) default
        return SafetyClassificationResult(
            safety_policy=SafetyPolicy.ALLOW,
            classification_reason="No safety violations detected",
        )

    def _classify_sexual_content(
        self, ctx: TurnContext, text: str, topic_reason: str
    ) -> SafetyClassificationResult:
        th = self.thresholds
        minor = th.is_minor(ctx.age_band)

        if detect_sexual_health_education(text):
            # same pipeline for every band; depth is scoped by the generator
            scope = "limited/clinical for minor" if minor else "neutral response for adult"
            return SafetyClassificationResult(
                safety_policy=SafetyPolicy.ALLOW,
                classification_reason=f"Sexual health education ({scope})",
                suggested_pipeline=Pipeline.INFO_QA,
                memory_write_allowed=False,
                relationship_update_allowed=True,
            )

        if minor:
            return _hard_refuse(f"Sexual content for minor/unknown age: {topic_reason}")

        return SafetyClassificationResult(
            safety_policy=SafetyPolicy.SOFT_REFUSE,
            classification_reason="Sexual content beyond education scope",
            suggested_pipeline=None,
            memory_write_allowed=False,
            relationship_update_allowed=True,
        )

    def is_crisis_content(self, ctx: TurnContext) -> bool:
        """Run only the self-harm check."""
        text = (ctx.norm_no_punct or "").lower()
        return bool(
            detect_self_harm(text, ctx.topic_matches, self.thresholds.self_harm_topic_min_confidence)
        )

    @staticmethod
    def crisis_guidelines() -> CrisisGuidelines:
        return CRISIS_GUIDELINES
