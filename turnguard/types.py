# turnguard/types.py
"""
Type definitions for the turn decision pipeline.

This module provides:
- Closed enums for user state, age band, topics, pipelines and policies
- Immutable per-turn inputs (TurnContext, TopicMatch)
- Classifier, router and post-processor result structures
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class UserState(str, Enum):
    CREATED = "CREATED"
    ONBOARDING = "ONBOARDING"
    ACTIVE = "ACTIVE"


class AgeBand(str, Enum):
    AGE_13_17 = "13-17"
    AGE_18_24 = "18-24"
    AGE_25_34 = "25-34"
    AGE_35_44 = "35-44"
    AGE_45_PLUS = "45+"

    @classmethod
    def parse(cls, value: AgeBand | str | None) -> AgeBand | None:
        """Return the matching band, or None when missing or unrecognized."""
        if value is None or isinstance(value, AgeBand):
            return value
        try:
            return cls(str(value).strip())
        except ValueError:
            return None


class TopicId(str, Enum):
    POLITICS = "POLITICS"
    RELIGION = "RELIGION"
    SEXUAL_CONTENT = "SEXUAL_CONTENT"
    SEXUAL_JOKES = "SEXUAL_JOKES"
    MENTAL_HEALTH = "MENTAL_HEALTH"
    SELF_HARM = "SELF_HARM"
    SUBSTANCES = "SUBSTANCES"
    GAMBLING = "GAMBLING"
    VIOLENCE = "VIOLENCE"
    ILLEGAL_ACTIVITY = "ILLEGAL_ACTIVITY"
    HATE_HARASSMENT = "HATE_HARASSMENT"
    MEDICAL_HEALTH = "MEDICAL_HEALTH"
    PERSONAL_FINANCE = "PERSONAL_FINANCE"


class Pipeline(str, Enum):
    ONBOARDING_CHAT = "ONBOARDING_CHAT"
    FRIEND_CHAT = "FRIEND_CHAT"
    EMOTIONAL_SUPPORT = "EMOTIONAL_SUPPORT"
    INFO_QA = "INFO_QA"
    REFUSAL = "REFUSAL"


class SafetyPolicy(str, Enum):
    ALLOW = "ALLOW"
    SOFT_REFUSE = "SOFT_REFUSE"
    HARD_REFUSE = "HARD_REFUSE"


class MemoryReadPolicy(str, Enum):
    NONE = "NONE"
    LIGHT = "LIGHT"
    FULL = "FULL"


class MemoryWritePolicy(str, Enum):
    NONE = "NONE"
    SELECTIVE = "SELECTIVE"


class VectorSearchPolicy(str, Enum):
    OFF = "OFF"
    ON_DEMAND = "ON_DEMAND"


class RelationshipUpdatePolicy(str, Enum):
    ON = "ON"
    OFF = "OFF"


class RelationshipStage(str, Enum):
    STRANGER = "STRANGER"
    ACQUAINTANCE = "ACQUAINTANCE"
    FRIEND = "FRIEND"
    CLOSE_FRIEND = "CLOSE_FRIEND"


class Violation(str, Enum):
    OPENER_REPETITION = "OPENER_REPETITION"
    MESSAGE_SIMILARITY = "MESSAGE_SIMILARITY"
    PERSONAL_FACT_VIOLATION = "PERSONAL_FACT_VIOLATION"
    INTIMACY_CAP_VIOLATION = "INTIMACY_CAP_VIOLATION"


# ----------------------------
# Turn inputs
# ----------------------------
@dataclass(frozen=True)
class TopicMatch:
    """One ranked hit from the upstream topic tagger."""

    topic_id: TopicId
    confidence: float
    hit_count: int = 0
    is_user_initiated: bool = False

    def __post_init__(self):
        # tagger ids may arrive as plain strings; unknown ids raise ValueError
        object.__setattr__(self, "topic_id", TopicId(self.topic_id))


@dataclass(frozen=True)
class TurnContext:
    """
    Everything the classifier and router know about one user turn.
    `norm` keeps punctuation; `norm_no_punct` is the stripped variant.
    """

    norm_no_punct: str
    token_estimate: int
    user_state: UserState = UserState.ACTIVE
    topic_matches: tuple[TopicMatch, ...] = ()
    age_band: AgeBand | None = None
    norm: str | None = None

    def __post_init__(self):
        # accept lists and raw band strings from callers
        object.__setattr__(self, "topic_matches", tuple(self.topic_matches or ()))
        object.__setattr__(self, "age_band", AgeBand.parse(self.age_band))


@dataclass(frozen=True)
class HeuristicFlags:
    is_question: bool = False
    has_personal_pronoun: bool = False
    has_distress: bool = False
    asks_for_comfort: bool = False
    has_preference_trigger: bool = False
    has_fact_trigger: bool = False
    has_event_trigger: bool = False
    has_correction_trigger: bool = False


# ----------------------------
# Safety + routing outputs
# ----------------------------
@dataclass(frozen=True)
class SafetyClassificationResult:
    safety_policy: SafetyPolicy
    classification_reason: str
    requires_crisis_flow: bool = False
    suggested_pipeline: Pipeline | None = None
    memory_write_allowed: bool = True
    relationship_update_allowed: bool = True

    def __post_init__(self):
        if self.requires_crisis_flow and self.safety_policy is SafetyPolicy.HARD_REFUSE:
            raise ValueError("crisis flow cannot be hard-refused")

    def to_dict(self) -> dict[str, Any]:
        return {
            "safety_policy": self.safety_policy.value,
            "classification_reason": self.classification_reason,
            "requires_crisis_flow": self.requires_crisis_flow,
            "suggested_pipeline": self.suggested_pipeline.value if self.suggested_pipeline else None,
            "memory_write_allowed": self.memory_write_allowed,
            "relationship_update_allowed": self.relationship_update_allowed,
        }


@dataclass(frozen=True)
class PolicyBundle:
    memory_read_policy: MemoryReadPolicy
    memory_write_policy: MemoryWritePolicy
    vector_search_policy: VectorSearchPolicy
    relationship_update_policy: RelationshipUpdatePolicy


@dataclass(frozen=True)
class RoutingDebug:
    """Internal-only trace of why a decision was made."""

    age_band_effective: AgeBand
    routing_reason: str
    safety_reason: str | None = None


@dataclass(frozen=True)
class RouterDecision:
    pipeline: Pipeline
    safety_policy: SafetyPolicy
    policies: PolicyBundle
    heuristic_flags: HeuristicFlags
    debug: RoutingDebug
    topic_id: TopicId | None = None
    confidence: float = 0.0
    notes: str | None = None
    safety_classification: SafetyClassificationResult | None = None
    requires_crisis_flow: bool = False
    retrieval_query_text: str | None = None

    @property
    def route(self) -> str:
        """Handler key for the pipeline."""
        return self.pipeline.value.lower()

    @property
    def memory_read_policy(self) -> MemoryReadPolicy:
        return self.policies.memory_read_policy

    @property
    def memory_write_policy(self) -> MemoryWritePolicy:
        return self.policies.memory_write_policy

    @property
    def vector_search_policy(self) -> VectorSearchPolicy:
        return self.policies.vector_search_policy

    @property
    def relationship_update_policy(self) -> RelationshipUpdatePolicy:
        return self.policies.relationship_update_policy

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary format for audit logs."""
        return {
            "topic_id": self.topic_id.value if self.topic_id else None,
            "confidence": self.confidence,
            "route": self.route,
            "pipeline": self.pipeline.value,
            "safety_policy": self.safety_policy.value,
            "memory_read_policy": self.memory_read_policy.value,
            "memory_write_policy": self.memory_write_policy.value,
            "vector_search_policy": self.vector_search_policy.value,
            "relationship_update_policy": self.relationship_update_policy.value,
            "retrieval_query_text": self.retrieval_query_text,
            "notes": self.notes,
            "heuristic_flags": self.heuristic_flags.__dict__.copy(),
            "safety_classification": (
                self.safety_classification.to_dict() if self.safety_classification else None
            ),
            "requires_crisis_flow": self.requires_crisis_flow,
            "debug": {
                "age_band_effective": self.debug.age_band_effective.value,
                "routing_reason": self.debug.routing_reason,
                "safety_reason": self.debug.safety_reason,
            },
        }


# ----------------------------
# Post-processing
# ----------------------------
@dataclass(frozen=True)
class RecentMessage:
    content: str
    opener_norm: str | None = None


@dataclass(frozen=True)
class SentenceMetrics:
    sentence_count: int
    total_words: int
    avg_words_per_sentence: float


@dataclass(frozen=True)
class PostProcessInput:
    draft_content: str
    conversation_id: str
    surfaced_memory_ids: tuple[str, ...] = ()
    user_message: str = ""
    is_retention: bool = False
    pipeline: Pipeline = Pipeline.FRIEND_CHAT
    relationship_stage: RelationshipStage | None = None

    def __post_init__(self):
        object.__setattr__(self, "surfaced_memory_ids", tuple(self.surfaced_memory_ids or ()))


@dataclass(frozen=True)
class PostProcessResult:
    content: str
    opener_norm: str
    violations: tuple[Violation, ...] = field(default_factory=tuple)
    rewrite_attempts: int = 0
    surfaced_memory_ids: tuple[str, ...] = field(default_factory=tuple)
    sentence_metrics: SentenceMetrics | None = None

    def to_dict(self) -> dict[str, Any]:
        """Storage-ready form: content and opener_norm land on the assistant row."""
        metrics = self.sentence_metrics
        return {
            "content": self.content,
            "opener_norm": self.opener_norm,
            "violations": [v.value for v in self.violations],
            "rewrite_attempts": self.rewrite_attempts,
            "surfaced_memory_ids": list(self.surfaced_memory_ids),
            "sentence_metrics": metrics.__dict__.copy() if metrics else None,
        }
