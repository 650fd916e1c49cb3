"""OpenTelemetry wiring for the API process.

Spans and metrics go to an OTLP collector over gRPC. The price cache records
``series.reseed`` / ``series.daily_update`` spans and counters; HTTP, outbound
httpx calls and SQL statements are instrumented automatically.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from sqlalchemy.ext.asyncio import AsyncEngine

from metal_advisor.config import AppSettings

logger = logging.getLogger(__name__)

METRIC_EXPORT_INTERVAL_MS = 30_000

_instrumented: set[int] = set()


def setup_telemetry(app: FastAPI, settings: AppSettings, engine: AsyncEngine | None = None) -> bool:
    """Install tracer/meter providers and instrument ``app`` once.

    Returns ``True`` when instrumentation is active for ``app``.
    """

    if not settings.telemetry_enabled:
        logger.info("Telemetry disabled via configuration")
        return False
    if id(app) in _instrumented:
        return True

    resource = Resource.create({SERVICE_NAME: settings.telemetry_service_name or settings.app_name})
    endpoint = settings.telemetry_otlp_endpoint

    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    trace.set_tracer_provider(tracer_provider)

    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=endpoint),
        export_interval_millis=METRIC_EXPORT_INTERVAL_MS,
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[reader])
    metrics.set_meter_provider(meter_provider)

    FastAPIInstrumentor.instrument_app(app, tracer_provider=tracer_provider, meter_provider=meter_provider)
    HTTPXClientInstrumentor().instrument(tracer_provider=tracer_provider)
    if engine is not None:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine, tracer_provider=tracer_provider)

    _instrumented.add(id(app))
    logger.info("Telemetry exporting to %s", endpoint or "default OTLP endpoint")
    return True


__all__ = ["METRIC_EXPORT_INTERVAL_MS", "setup_telemetry"]
