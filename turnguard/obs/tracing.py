import logging

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor, SpanExporter

from turnguard.config import get_settings


def setup_tracing(exporter: SpanExporter | None = None) -> TracerProvider:
    # console exporter by default (local dev). Pass an OTLP exporter when a collector exists.
    provider = TracerProvider()
    processor = SimpleSpanProcessor(exporter or ConsoleSpanExporter())
    provider.add_span_processor(processor)
    trace.set_tracer_provider(provider)
    return provider


def setup_logging(level: str | None = None):
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
