# turnguard/routing/router.py
"""
Turn routing: user-state gate, then safety gate, then intent routing.

Routing priority for ACTIVE users:
  1) safety hard rules (HARD_REFUSE -> REFUSAL, crisis -> EMOTIONAL_SUPPORT)
  2) a pipeline suggested by the safety verdict
  3) has_distress OR asks_for_comfort -> EMOTIONAL_SUPPORT
  4) pure fact question -> INFO_QA (FRIEND_CHAT when first-person)
  5) default -> FRIEND_CHAT

Pure and deterministic; safe to call concurrently.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from opentelemetry import trace

from turnguard.config import Settings, get_settings
from turnguard.obs.metrics import CRISIS_ROUTES, ROUTE_DECISIONS
from turnguard.safety.classifier import SafetyClassifier
from turnguard.types import (
    HeuristicFlags,
    Pipeline,
    RouterDecision,
    RoutingDebug,
    SafetyClassificationResult,
    SafetyPolicy,
    TopicMatch,
    TurnContext,
    UserState,
)

from .intent import HeuristicFlagExtractor
from .policy import narrow, policies_for

log = logging.getLogger(__name__)
_tracer = trace.get_tracer(__name__)


def best_topic(topic_matches: Iterable[TopicMatch]) -> TopicMatch | None:
    """Highest-confidence match; ties keep the first seen; zero confidence is no match."""
    best: TopicMatch | None = None
    for m in topic_matches:
        if best is None or m.confidence > best.confidence:
            best = m
    if best is None or best.confidence <= 0:
        return None
    return best


class RouterService:
    def __init__(
        self,
        safety_classifier: SafetyClassifier | None = None,
        extractor: HeuristicFlagExtractor | None = None,
        settings: Settings | None = None,
    ):
        self.safety_classifier = safety_classifier or SafetyClassifier()
        self.extractor = extractor or HeuristicFlagExtractor()
        self.settings = settings or get_settings()

    def route(self, ctx: TurnContext) -> RouterDecision:
        with _tracer.start_as_current_span("turnguard.route") as span:
            decision = self._route(ctx)
            span.set_attribute("turnguard.pipeline", decision.pipeline.value)
            span.set_attribute("turnguard.safety_policy", decision.safety_policy.value)

        ROUTE_DECISIONS.labels(
            pipeline=decision.pipeline.value, safety_policy=decision.safety_policy.value
        ).inc()
        if decision.requires_crisis_flow:
            CRISIS_ROUTES.inc()
        log.debug("route decision pipeline=%s reason=%s", decision.pipeline.value, decision.debug.routing_reason)
        return decision

    # ---------------- stages ----------------
    def _route(self, ctx: TurnContext) -> RouterDecision:
        age_band = self.safety_classifier.thresholds.effective_age_band(ctx.age_band)
        flags = self.extractor.extract(ctx.norm or ctx.norm_no_punct, ctx.token_estimate)

        # 1) user-state gate
        if ctx.user_state is UserState.CREATED:
            return RouterDecision(
                pipeline=Pipeline.REFUSAL,
                safety_policy=SafetyPolicy.ALLOW,
                policies=policies_for(Pipeline.REFUSAL),
                heuristic_flags=flags,
                notes="User state is CREATED - onboarding required",
                debug=RoutingDebug(age_band, "CREATED user state → REFUSAL"),
            )

        # 2) safety gate, for onboarding and active users alike
        verdict = self.safety_classifier.classify(ctx)
        if verdict.safety_policy is SafetyPolicy.HARD_REFUSE:
            log.info("hard refusal: %s", verdict.classification_reason)
            return self._safety_refusal(ctx, flags, age_band, verdict)
        if verdict.requires_crisis_flow:
            log.info("crisis flow: %s", verdict.classification_reason)
            return self._crisis_flow(ctx, flags, age_band, verdict)

        if ctx.user_state is UserState.ONBOARDING:
            return self._decision(
                ctx, flags, age_band, verdict,
                Pipeline.ONBOARDING_CHAT,
                "ONBOARDING user state → ONBOARDING_CHAT",
                notes="User state is ONBOARDING",
            )

        # 3) intent routing
        pipeline, reason = self._intent_pipeline(flags, ctx.token_estimate, verdict)
        return self._decision(ctx, flags, age_band, verdict, pipeline, reason, notes=reason)

    def _intent_pipeline(
        self, flags: HeuristicFlags, token_estimate: int, verdict: SafetyClassificationResult
    ) -> tuple[Pipeline, str]:
        if verdict.suggested_pipeline is not None:
            return verdict.suggested_pipeline, f"safety suggested → {verdict.suggested_pipeline.value}"
        if flags.has_distress:
            return Pipeline.EMOTIONAL_SUPPORT, "has_distress → EMOTIONAL_SUPPORT"
        if flags.asks_for_comfort:
            return Pipeline.EMOTIONAL_SUPPORT, "asks_for_comfort → EMOTIONAL_SUPPORT"
        if self.is_pure_fact_question(flags, token_estimate):
            # a first-person question is conversational, not informational
            if flags.has_personal_pronoun:
                return Pipeline.FRIEND_CHAT, "is_question + has_personal_pronoun (tie-breaker) → FRIEND_CHAT"
            return Pipeline.INFO_QA, "is_pure_fact_q → INFO_QA"
        return Pipeline.FRIEND_CHAT, "default → FRIEND_CHAT"

    def is_pure_fact_question(self, flags: HeuristicFlags, token_estimate: int) -> bool:
        return (
            flags.is_question
            and not flags.has_distress
            and not flags.asks_for_comfort
            and token_estimate <= self.settings.pure_fact_max_tokens
        )

    # ---------------- decision builders ----------------
    def _decision(
        self,
        ctx: TurnContext,
        flags: HeuristicFlags,
        age_band,
        verdict: SafetyClassificationResult,
        pipeline: Pipeline,
        reason: str,
        notes: str | None = None,
    ) -> RouterDecision:
        topic = best_topic(ctx.topic_matches)
        return RouterDecision(
            pipeline=pipeline,
            safety_policy=verdict.safety_policy,
            policies=narrow(policies_for(pipeline), verdict),
            heuristic_flags=flags,
            topic_id=topic.topic_id if topic else None,
            confidence=topic.confidence if topic else 0.0,
            notes=notes,
            safety_classification=verdict,
            requires_crisis_flow=False,
            debug=RoutingDebug(age_band, reason, verdict.classification_reason),
        )

    def _safety_refusal(self, ctx, flags, age_band, verdict) -> RouterDecision:
        topic = best_topic(ctx.topic_matches)
        return RouterDecision(
            pipeline=Pipeline.REFUSAL,
            safety_policy=SafetyPolicy.HARD_REFUSE,
            # REFUSAL row is already NONE/OFF; narrowing keeps it that way
            policies=narrow(policies_for(Pipeline.REFUSAL), verdict),
            heuristic_flags=flags,
            topic_id=topic.topic_id if topic else None,
            confidence=topic.confidence if topic else 0.0,
            notes=f"Safety violation: {verdict.classification_reason}",
            safety_classification=verdict,
            requires_crisis_flow=False,
            debug=RoutingDebug(age_band, "Safety HARD_REFUSE → REFUSAL", verdict.classification_reason),
        )

    def _crisis_flow(self, ctx, flags, age_band, verdict) -> RouterDecision:
        topic = best_topic(ctx.topic_matches)
        return RouterDecision(
            pipeline=Pipeline.EMOTIONAL_SUPPORT,
            safety_policy=SafetyPolicy.ALLOW,
            policies=narrow(policies_for(Pipeline.EMOTIONAL_SUPPORT), verdict),
            heuristic_flags=flags,
            topic_id=topic.topic_id if topic else None,
            confidence=topic.confidence if topic else 0.0,
            notes=f"Crisis flow: {verdict.classification_reason}",
            safety_classification=verdict,
            requires_crisis_flow=True,
            debug=RoutingDebug(
                age_band,
                "Self-harm intent → EMOTIONAL_SUPPORT (crisis-safe flow)",
                verdict.classification_reason,
            ),
        )


_router: RouterService | None = None


def route_turn(ctx: TurnContext) -> RouterDecision:
    """Route with a lazily built module-level router."""
    global _router
    if _router is None:
        _router = RouterService()
    return _router.route(ctx)
