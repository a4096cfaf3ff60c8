"""
Turn decision pipeline for a companion chat product.

Classifies each user turn for safety and intent, routes it to a pipeline
with a policy bundle, and enforces deterministic quality gates on the
generated reply.
"""

from .postprocess import PostProcessor
from .routing import HeuristicFlagExtractor, RouterService
from .safety import SafetyClassifier

__all__ = [
    "HeuristicFlagExtractor",
    "SafetyClassifier",
    "RouterService",
    "PostProcessor",
]
