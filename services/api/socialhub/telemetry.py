"""
Observability setup:
  - OpenTelemetry distributed tracing to Jaeger (via OTLP gRPC)
  - Prometheus metrics for relationship mutations and realtime fan-out

Both are initialised once at startup and injected into FastAPI via middleware.
"""
import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from prometheus_client import Counter, Gauge

from socialhub.config import settings

logger = logging.getLogger(__name__)

# ─────────────────────────── Prometheus Metrics ───────────────────────────
MUTATIONS_TOTAL = Counter(
    "relationship_mutations_total",
    "Relationship store operations by outcome ('ok' or an error code)",
    ["operation", "outcome"],
)

BROADCASTS_TOTAL = Counter(
    "realtime_broadcasts_total",
    "Events handed to the broadcaster",
    ["event"],
)

CONNECTED_OBSERVERS = Gauge(
    "realtime_connected_observers",
    "Observers currently connected to this instance",
)

DROPPED_DELIVERIES_TOTAL = Counter(
    "realtime_dropped_deliveries_total",
    "Deliveries abandoned because the observer failed or fell behind",
    ["reason"],  # 'send_failed' or 'backlog_full'
)

RELAY_ERRORS_TOTAL = Counter(
    "realtime_relay_errors_total",
    "Failures publishing to or reading from the cross-instance relay",
)


# ─────────────────────────── OpenTelemetry Setup ──────────────────────────
def setup_tracing() -> None:
    """Configure the global OTel TracerProvider with OTLP/Jaeger export."""
    if not settings.tracing_enabled:
        logger.info("OTel tracing disabled")
        return

    resource = Resource.create(
        {
            "service.name": settings.service_name,
            "deployment.environment": settings.environment,
        }
    )

    provider = TracerProvider(resource=resource)

    try:
        otlp_exporter = OTLPSpanExporter(
            endpoint=settings.otel_exporter_otlp_endpoint,
            insecure=True,
        )
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
        logger.info(
            "OTel tracing configured, exporting to %s", settings.otel_exporter_otlp_endpoint
        )
    except Exception as exc:
        logger.warning("Could not connect to OTLP exporter: %s (traces disabled)", exc)

    trace.set_tracer_provider(provider)

    RedisInstrumentor().instrument()
    SQLAlchemyInstrumentor().instrument()


def instrument_app(app) -> None:  # noqa: ANN001
    """Call after app is created to add FastAPI request spans."""
    if settings.tracing_enabled:
        FastAPIInstrumentor.instrument_app(app)
