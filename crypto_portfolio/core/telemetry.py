"""Trace export for price fetches, storage queries and portfolio runs."""

from __future__ import annotations

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.semconv.resource import ResourceAttributes
from sqlalchemy.ext.asyncio import AsyncEngine

from crypto_portfolio.config import AppSettings

logger = logging.getLogger(__name__)

_provider: TracerProvider | None = None


def setup_telemetry(settings: AppSettings, engine: AsyncEngine | None = None) -> bool:
    """Install an OTLP tracer provider and instrument outbound HTTP and SQL.

    Only the first enabled call installs anything; later calls report the
    existing state. Returns ``True`` when spans are being exported.
    """

    global _provider  # noqa: PLW0603

    if _provider is not None:
        return True
    if not settings.telemetry_enabled:
        logger.info("Telemetry disabled via configuration")
        return False

    provider = _tracer_provider(settings)
    trace.set_tracer_provider(provider)

    HTTPXClientInstrumentor().instrument(tracer_provider=provider)
    if engine is not None:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine, tracer_provider=provider)

    _provider = provider
    logger.info(
        "Exporting traces for %s (sample ratio %.2f, sql=%s)",
        settings.telemetry_service_name or settings.app_name,
        settings.telemetry_sample_ratio,
        engine is not None,
    )
    return True


def shutdown_telemetry() -> None:
    """Flush pending spans. Safe to call when telemetry was never enabled."""

    if _provider is not None:
        _provider.shutdown()


def _tracer_provider(settings: AppSettings) -> TracerProvider:
    resource = Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: settings.telemetry_service_name or settings.app_name,
            ResourceAttributes.SERVICE_NAMESPACE: "crypto-portfolio",
        }
    )
    exporter = OTLPSpanExporter(
        endpoint=settings.telemetry_otlp_endpoint or None,
        insecure=settings.telemetry_otlp_insecure,
    )
    provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(settings.telemetry_sample_ratio)),
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


__all__ = ["setup_telemetry", "shutdown_telemetry"]
