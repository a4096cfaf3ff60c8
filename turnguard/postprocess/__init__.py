"""
Post-generation quality gates.

Main components:
- PostProcessor: bounded rewrite loop plus personal-fact cap
- MessageHistory: read-only source of recent assistant messages
- text helpers: opener_norm, 3-gram Jaccard, sentence metrics
"""

from .history import MessageHistory, SqliteMessageHistory, StaticHistory
from .processor import PostProcessor
from .text import jaccard_similarity, normalize_no_punct, opener_norm, sentence_metrics

__all__ = [
    "PostProcessor",
    "MessageHistory",
    "StaticHistory",
    "SqliteMessageHistory",
    "opener_norm",
    "normalize_no_punct",
    "jaccard_similarity",
    "sentence_metrics",
]
