import logging
import os

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource

from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.botocore import BotocoreInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.trace.sampling import ALWAYS_ON

logger = logging.getLogger(__name__)


def setup_tracing(app):
    service_name = os.getenv("OTEL_SERVICE_NAME", "image-gateway")

    resource = Resource(
        attributes = {
            SERVICE_NAME: service_name
        }
    )

    provider = TracerProvider(resource=resource, sampler=ALWAYS_ON)

    trace.set_tracer_provider(provider)

    otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if otlp_endpoint:
        span_processor = BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        provider.add_span_processor(span_processor)
        logger.info("Tracing is configured", extra={"service": service_name, "endpoint": otlp_endpoint})
    else:
        logger.info("OTEL_EXPORTER_OTLP_ENDPOINT not set, spans are not exported")

    LoggingInstrumentor().instrument(set_logging_format=False)

    FastAPIInstrumentor.instrument_app(app)

    BotocoreInstrumentor().instrument()
    HTTPXClientInstrumentor().instrument()
