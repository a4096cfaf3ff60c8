# turnguard/routing/policy.py
from __future__ import annotations

from dataclasses import replace

from turnguard.errors import ConfigError
from turnguard.types import (
    MemoryReadPolicy,
    MemoryWritePolicy,
    Pipeline,
    PolicyBundle,
    RelationshipUpdatePolicy,
    SafetyClassificationResult,
    VectorSearchPolicy,
)

PIPELINE_POLICIES: dict[Pipeline, PolicyBundle] = {
    Pipeline.ONBOARDING_CHAT: PolicyBundle(
        memory_read_policy=MemoryReadPolicy.LIGHT,
        memory_write_policy=MemoryWritePolicy.SELECTIVE,
        vector_search_policy=VectorSearchPolicy.OFF,
        relationship_update_policy=RelationshipUpdatePolicy.ON,
    ),
    Pipeline.FRIEND_CHAT: PolicyBundle(
        memory_read_policy=MemoryReadPolicy.FULL,
        memory_write_policy=MemoryWritePolicy.SELECTIVE,
        vector_search_policy=VectorSearchPolicy.ON_DEMAND,
        relationship_update_policy=RelationshipUpdatePolicy.ON,
    ),
    Pipeline.EMOTIONAL_SUPPORT: PolicyBundle(
        memory_read_policy=MemoryReadPolicy.LIGHT,
        memory_write_policy=MemoryWritePolicy.SELECTIVE,
        vector_search_policy=VectorSearchPolicy.OFF,
        relationship_update_policy=RelationshipUpdatePolicy.ON,
    ),
    Pipeline.INFO_QA: PolicyBundle(
        memory_read_policy=MemoryReadPolicy.NONE,
        memory_write_policy=MemoryWritePolicy.NONE,
        vector_search_policy=VectorSearchPolicy.OFF,
        relationship_update_policy=RelationshipUpdatePolicy.ON,
    ),
    Pipeline.REFUSAL: PolicyBundle(
        memory_read_policy=MemoryReadPolicy.NONE,
        memory_write_policy=MemoryWritePolicy.NONE,
        vector_search_policy=VectorSearchPolicy.OFF,
        relationship_update_policy=RelationshipUpdatePolicy.OFF,
    ),
}


def check_policy_table(table: dict[Pipeline, PolicyBundle]) -> None:
    missing = [p.value for p in Pipeline if p not in table]
    if missing:
        raise ConfigError(f"policy table missing pipelines: {', '.join(missing)}")


check_policy_table(PIPELINE_POLICIES)


def policies_for(pipeline: Pipeline) -> PolicyBundle:
    return PIPELINE_POLICIES[pipeline]


def narrow(bundle: PolicyBundle, verdict: SafetyClassificationResult | None) -> PolicyBundle:
    """Apply the safety verdict. Only ever moves writes toward NONE/OFF."""
    if verdict is None:
        return bundle
    if not verdict.memory_write_allowed:
        bundle = replace(bundle, memory_write_policy=MemoryWritePolicy.NONE)
    if not verdict.relationship_update_allowed:
        bundle = replace(bundle, relationship_update_policy=RelationshipUpdatePolicy.OFF)
    return bundle
