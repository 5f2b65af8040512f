"""Observability setup for OpenTelemetry, metrics, and structured logging."""

import logging

import structlog
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

from .config import settings

SERVICE_NAME = "tourism-portal-api"

# Prometheus metrics
REGISTRY = CollectorRegistry()

# Request metrics
REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=REGISTRY
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=REGISTRY
)

# Business metrics
BOOKINGS_CREATED = Counter(
    'bookings_created_total',
    'Total bookings created',
    ['source'],
    registry=REGISTRY
)

BOOKING_STATUS_CHANGES = Counter(
    'booking_status_changes_total',
    'Total booking status changes',
    ['status'],
    registry=REGISTRY
)

LOGIN_ATTEMPTS = Counter(
    'login_attempts_total',
    'Total login attempts',
    ['outcome'],
    registry=REGISTRY
)

NOTIFICATIONS = Counter(
    'notifications_total',
    'Total notification delivery attempts',
    ['template', 'outcome'],
    registry=REGISTRY
)

NOTIFICATION_QUEUE_SIZE = Gauge(
    'notification_queue_size',
    'Notifications waiting for delivery',
    registry=REGISTRY
)


def add_trace_context(logger, method_name, event_dict):
    """Add trace context to log events."""
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict['trace_id'] = format(ctx.trace_id, '032x')
        event_dict['span_id'] = format(ctx.span_id, '016x')
    return event_dict


def setup_structured_logging():
    """
    Route stdlib logging through structlog.

    Modules log with ``logging.getLogger(__name__)`` and ``extra={...}``;
    the formatter lifts the extras into the event, merges bound context
    variables (request id) and renders console output in development and
    JSON elsewhere.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        add_trace_context,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer = structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, settings.log_level))

    # uvicorn's own access log duplicates LoggingMiddleware
    logging.getLogger("uvicorn.access").handlers = []
    logging.getLogger("uvicorn.access").propagate = False


def _resource() -> Resource:
    return Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": "1.0.0",
        "environment": settings.environment,
    })


def setup_tracing():
    """Setup OpenTelemetry tracing."""
    provider = TracerProvider(resource=_resource())

    # Export only when a collector is configured
    if settings.otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint)))

    trace.set_tracer_provider(provider)
    return trace.get_tracer(__name__)


def setup_metrics():
    """Setup OpenTelemetry metrics."""
    if settings.otlp_endpoint:
        otlp_exporter = OTLPMetricExporter(endpoint=settings.otlp_endpoint)
        reader = PeriodicExportingMetricReader(exporter=otlp_exporter, export_interval_millis=60000)
        metrics.set_meter_provider(MeterProvider(resource=_resource(), metric_readers=[reader]))

    return metrics.get_meter(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app, excluded_urls="health,metrics")


def instrument_sqlalchemy(engine):
    """Instrument the application's SQLAlchemy engine with OpenTelemetry."""
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


class MetricsCollector:
    """Collector for business metrics."""

    @staticmethod
    def record_request(method: str, endpoint: str, status_code: int, duration: float):
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)

    @staticmethod
    def record_booking_created(source: str):
        """Record a booking creation."""
        BOOKINGS_CREATED.labels(source=source).inc()

    @staticmethod
    def record_status_change(status: str):
        """Record a booking status change."""
        BOOKING_STATUS_CHANGES.labels(status=status).inc()

    @staticmethod
    def record_login(outcome: str):
        """Record a login attempt outcome (success, invalid, inactive)."""
        LOGIN_ATTEMPTS.labels(outcome=outcome).inc()

    @staticmethod
    def record_notification(template: str, outcome: str):
        """Record a notification delivery outcome (sent, retry, failed, skipped)."""
        NOTIFICATIONS.labels(template=template, outcome=outcome).inc()

    @staticmethod
    def set_notification_queue_size(size: int):
        NOTIFICATION_QUEUE_SIZE.set(size)


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()
