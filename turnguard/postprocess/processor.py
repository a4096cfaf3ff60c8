# turnguard/postprocess/processor.py
"""
Post-generation quality gates for an assistant draft.

Checks, per rewrite pass:
- opener repetition against recent opener_norms (exact match)
- 3-gram Jaccard similarity against recent assistant messages
- relationship intimacy cap (when a stage is supplied)

Then, once: the personal-fact cap on surfaced memory ids, and sentence
metrics for style tuning (diagnostic only).

The only external input is the recent-message snapshot read from the
history; there is no LLM call, randomness or clock in the decision logic.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from opentelemetry import trace

from turnguard.config import Settings, get_settings
from turnguard.obs.metrics import POSTPROCESS_VIOLATIONS, REWRITE_PASSES
from turnguard.types import PostProcessInput, PostProcessResult, RecentMessage, Violation

from .history import MessageHistory
from .rewrite import enforce_intimacy_cap, rewrite_opener, rewrite_shorter, violates_intimacy_cap
from .text import jaccard_similarity, normalize_no_punct, opener_norm, sentence_metrics

logger = logging.getLogger(__name__)
_tracer = trace.get_tracer(__name__)


class PostProcessor:
    def __init__(self, history: MessageHistory, settings: Settings | None = None):
        self.history = history
        self.settings = settings or get_settings()
        phrases = self.settings.recall_phrases
        self._recall_re = (
            re.compile("|".join(re.escape(p) for p in phrases), re.I) if phrases else None
        )

    def process(self, inp: PostProcessInput) -> PostProcessResult:
        """
        Run the quality gates on a draft.

        Must run before the assistant message is persisted: the stored
        content and opener_norm are the ones returned here.
        """
        with _tracer.start_as_current_span("turnguard.postprocess") as span:
            recent = self.history.recent_assistant_messages(
                inp.conversation_id, self.settings.recent_messages_limit
            )
            result = self.enforce(inp, recent)
            span.set_attribute("turnguard.rewrite_attempts", result.rewrite_attempts)

        REWRITE_PASSES.observe(result.rewrite_attempts)
        for v in result.violations:
            POSTPROCESS_VIOLATIONS.labels(violation=v.value).inc()
        if result.violations:
            logger.info(
                "postprocess conversation=%s pipeline=%s violations=%s attempts=%d",
                inp.conversation_id,
                inp.pipeline.value,
                ",".join(v.value for v in result.violations),
                result.rewrite_attempts,
            )
        return result

    def enforce(self, inp: PostProcessInput, recent: Sequence[RecentMessage]) -> PostProcessResult:
        """Pure part of `process`: apply the gates against a given snapshot."""
        s = self.settings
        recent = recent[: s.recent_messages_limit]
        recent_openers = {m.opener_norm for m in recent if m.opener_norm}
        recent_norms = [normalize_no_punct(m.content) for m in recent]

        content = inp.draft_content
        violations: list[Violation] = []
        attempts = 0

        for _ in range(s.max_rewrite_passes):
            before = content
            detected: list[Violation] = []

            if opener_norm(content, s.opener_max_tokens) in recent_openers:
                detected.append(Violation.OPENER_REPETITION)
                content = rewrite_opener(content, recent_openers, s.opener_max_tokens)

            if self._too_similar(content, recent_norms):
                detected.append(Violation.MESSAGE_SIMILARITY)
                content = rewrite_shorter(content)

            stage = inp.relationship_stage
            if stage is not None and violates_intimacy_cap(content, stage):
                detected.append(Violation.INTIMACY_CAP_VIOLATION)
                content = enforce_intimacy_cap(content, stage)

            if not detected:
                break
            attempts += 1
            for v in detected:
                if v not in violations:
                    violations.append(v)
            if content == before:
                # no rewrite made progress; return best effort with violations listed
                break
        else:
            # bound reached: report what is still wrong without rewriting again
            for v in self._detect(content, recent_openers, recent_norms, inp):
                if v not in violations:
                    violations.append(v)

        surfaced = inp.surfaced_memory_ids
        cap = s.retention_personal_fact_cap if inp.is_retention else s.personal_fact_cap
        if len(surfaced) > cap and not self.user_requested_recall(inp.user_message):
            violations.append(Violation.PERSONAL_FACT_VIOLATION)
            surfaced = surfaced[:cap]

        return PostProcessResult(
            content=content,
            opener_norm=opener_norm(content, s.opener_max_tokens),
            violations=tuple(violations),
            rewrite_attempts=attempts,
            surfaced_memory_ids=tuple(surfaced),
            sentence_metrics=sentence_metrics(content),
        )

    def _detect(self, content, recent_openers, recent_norms, inp: PostProcessInput) -> list[Violation]:
        found = []
        if opener_norm(content, self.settings.opener_max_tokens) in recent_openers:
            found.append(Violation.OPENER_REPETITION)
        if self._too_similar(content, recent_norms):
            found.append(Violation.MESSAGE_SIMILARITY)
        stage = inp.relationship_stage
        if stage is not None and violates_intimacy_cap(content, stage):
            found.append(Violation.INTIMACY_CAP_VIOLATION)
        return found

    def _too_similar(self, content: str, recent_norms: Sequence[str]) -> bool:
        norm = normalize_no_punct(content)
        return any(
            jaccard_similarity(norm, other) >= self.settings.similarity_threshold
            for other in recent_norms
        )

    def user_requested_recall(self, user_message: str) -> bool:
        if self._recall_re is None or not user_message:
            return False
        return bool(self._recall_re.search(user_message))
