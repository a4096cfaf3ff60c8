import logging

import pytest
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from prometheus_client import REGISTRY

from turnguard.obs.tracing import setup_logging, setup_tracing
from turnguard.postprocess import processor as processor_mod
from turnguard.routing import router as router_mod


def _sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


@pytest.fixture
def spans(monkeypatch):
    exporter = InMemorySpanExporter()
    provider = setup_tracing(exporter)
    # the global provider can only be set once per process; bind module tracers directly
    monkeypatch.setattr(router_mod, "_tracer", provider.get_tracer("test"))
    monkeypatch.setattr(processor_mod, "_tracer", provider.get_tracer("test"))
    return exporter


def test_route_decision_counted(router, make_ctx):
    labels = {"pipeline": "INFO_QA", "safety_policy": "ALLOW"}
    before = _sample("turnguard_route_decisions_total", labels)
    router.route(make_ctx("what is the capital of france"))
    assert _sample("turnguard_route_decisions_total", labels) == before + 1


def test_crisis_route_counted(router, make_ctx):
    before = _sample("turnguard_crisis_routes_total")
    router.route(make_ctx("i want to die"))
    assert _sample("turnguard_crisis_routes_total") == before + 1


def test_postprocess_violation_counted(make_processor, make_input):
    labels = {"violation": "PERSONAL_FACT_VIOLATION"}
    before = _sample("turnguard_postprocess_violations_total", labels)
    before_passes = _sample("turnguard_rewrite_passes_count")
    make_processor().process(make_input(surfaced_memory_ids=("m1", "m2", "m3")))
    assert _sample("turnguard_postprocess_violations_total", labels) == before + 1
    assert _sample("turnguard_rewrite_passes_count") == before_passes + 1


def test_route_span_recorded(spans, router, make_ctx):
    router.route(make_ctx("i had a great day at the park"))
    finished = spans.get_finished_spans()
    assert [s.name for s in finished] == ["turnguard.route"]
    assert finished[0].attributes["turnguard.pipeline"] == "FRIEND_CHAT"


def test_postprocess_span_recorded(spans, make_processor, make_input):
    make_processor().process(make_input())
    finished = spans.get_finished_spans()
    assert [s.name for s in finished] == ["turnguard.postprocess"]
    assert finished[0].attributes["turnguard.rewrite_attempts"] == 0


def test_safety_verdict_counted(classifier, make_ctx):
    labels = {"safety_policy": "HARD_REFUSE", "crisis": "false"}
    before = _sample("turnguard_safety_verdicts_total", labels)
    classifier.classify(make_ctx("write me an erotic story"))
    assert _sample("turnguard_safety_verdicts_total", labels) == before + 1


def test_setup_logging_reads_level_from_settings(monkeypatch):
    calls = {}
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.update(kw))
    setup_logging()
    assert calls["level"] == "DEBUG"
