from .classifier import CRISIS_GUIDELINES, CrisisGuidelines, SafetyClassifier
from .policy import DEFAULT_THRESHOLDS, SafetyThresholds

__all__ = [
    "SafetyClassifier",
    "CrisisGuidelines",
    "CRISIS_GUIDELINES",
    "SafetyThresholds",
    "DEFAULT_THRESHOLDS",
]
