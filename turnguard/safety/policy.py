# turnguard/safety/policy.py
from __future__ import annotations

from dataclasses import dataclass

from turnguard.types import AgeBand


@dataclass(frozen=True)
class SafetyThresholds:
    # topic-tagger confidence floors for each safety signal
    sexual_topic_min_confidence: float = 0.5
    self_harm_topic_min_confidence: float = 0.5
    illegal_topic_min_confidence: float = 0.7
    # unknown age is gated as this band
    unknown_age_band: AgeBand = AgeBand.AGE_13_17
    minor_bands: frozenset[AgeBand] = frozenset({AgeBand.AGE_13_17})

    def effective_age_band(self, age_band: AgeBand | None) -> AgeBand:
        return age_band if age_band is not None else self.unknown_age_band

    def is_minor(self, age_band: AgeBand | None) -> bool:
        return self.effective_age_band(age_band) in self.minor_bands


DEFAULT_THRESHOLDS = SafetyThresholds()
