"""
Routing of a user turn to a pipeline and policy bundle.

Main components:
- HeuristicFlagExtractor: keyword flags over normalized text
- RouterService: user-state gate, safety gate, intent routing
- PIPELINE_POLICIES: total pipeline -> policy lookup
"""

from .intent import HeuristicFlagExtractor, extract_flags
from .policy import PIPELINE_POLICIES, narrow, policies_for
from .router import RouterService, best_topic, route_turn

__all__ = [
    "HeuristicFlagExtractor",
    "extract_flags",
    "RouterService",
    "route_turn",
    "best_topic",
    "PIPELINE_POLICIES",
    "policies_for",
    "narrow",
]
