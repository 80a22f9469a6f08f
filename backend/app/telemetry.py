"""
Shelfmark Backend: OpenTelemetry Export
=========================================

What:  Traces, metrics and logs exported over OTLP gRPC.
How:   One TracerProvider / MeterProvider / LoggerProvider sharing a Resource
       (service.name, service.version), each with a batch processor around
       an OTLP exporter. Stdlib logging is bridged into the LoggerProvider so
       every logger.info() call also reaches the collector.
Who:   create_app() calls configure_telemetry() and instrument_app();
       the lifespan calls shutdown_telemetry().
When:  Only when OTLP_ENDPOINT is set. Otherwise every function is a no-op.

Local collector example:
    OTLP_ENDPOINT=http://localhost:4317   (plain http → insecure channel)
"""

import logging
from typing import Any, List, Optional

from app import __version__

logger = logging.getLogger(__name__)

# Providers created by configure_telemetry(), flushed on shutdown
_providers: List[Any] = []
_log_handler: Optional[logging.Handler] = None


def is_telemetry_enabled() -> bool:
    """Return whether OTel providers are active."""
    return bool(_providers)


def configure_telemetry(endpoint: str, service_name: str) -> bool:
    """
    Create and register the OTel providers.

    Returns:
        True if telemetry was configured by this call.
    """
    global _log_handler

    if not endpoint or is_telemetry_enabled():
        return False

    from opentelemetry import metrics, trace
    from opentelemetry._logs import set_logger_provider
    from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
    from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
    from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
    from opentelemetry.sdk.metrics import MeterProvider
    from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
    from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    insecure = endpoint.startswith("http://")
    resource = Resource.create({SERVICE_NAME: service_name, SERVICE_VERSION: __version__})

    # ── Traces ────────────────────────────────────────────────────────────
    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=insecure))
    )
    trace.set_tracer_provider(tracer_provider)

    # ── Metrics ───────────────────────────────────────────────────────────
    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=endpoint, insecure=insecure),
        export_interval_millis=15_000,
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)

    # ── Logs ──────────────────────────────────────────────────────────────
    logger_provider = LoggerProvider(resource=resource)
    logger_provider.add_log_record_processor(
        BatchLogRecordProcessor(OTLPLogExporter(endpoint=endpoint, insecure=insecure))
    )
    set_logger_provider(logger_provider)

    _log_handler = LoggingHandler(level=logging.NOTSET, logger_provider=logger_provider)
    logging.getLogger().addHandler(_log_handler)

    _providers.extend([tracer_provider, meter_provider, logger_provider])
    logger.info("OTLP telemetry configured (endpoint=%s, service=%s)", endpoint, service_name)
    return True


def instrument_app(app: Any) -> None:
    """Add HTTP server spans and metrics to a FastAPI app."""
    if not is_telemetry_enabled():
        return

    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

    FastAPIInstrumentor.instrument_app(app, excluded_urls="health")
    logger.info("FastAPI instrumented for OpenTelemetry")


def shutdown_telemetry() -> None:
    """Flush pending spans, metrics and logs, then drop the providers."""
    global _log_handler

    if _log_handler is not None:
        logging.getLogger().removeHandler(_log_handler)
        _log_handler = None

    while _providers:
        provider = _providers.pop()
        try:
            provider.shutdown()
        except Exception as e:
            logger.warning("Telemetry provider shutdown failed: %s", str(e))
