# SPDX-FileCopyrightText: 2026 The fncounters Authors
# SPDX-License-Identifier: Apache-2.0

"""Metrics bootstrap — exporter, periodic reader, provider, counters.

:func:`start_telemetry` runs the whole startup chain::

    identity resolution -> bootstrap_metrics() -> background task

Usage::

    telemetry = await start_telemetry(CountersConfig())
    telemetry.request_hook()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, NoReturn, Optional

from opentelemetry.metrics import Counter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

from fncounters.resources.detector import EnvironmentResourceDetector
from fncounters.sdk.config import CountersConfig
from fncounters.sdk.identity import resolve_identity
from fncounters.sdk.tasks import BackgroundTaskDriver, RequestCounterHook

logger = logging.getLogger(__name__)

REQUEST_COUNTER = "request-counter"
BACKGROUND_COUNTER = "background-counter"


@dataclass(frozen=True)
class CounterHandles:
    """The two counters plus the provider that owns them."""

    background: Counter
    request: Counter
    meter_provider: MeterProvider


def create_exporter(config: CountersConfig) -> MetricExporter:
    """Build the metric exporter named by ``config.exporter``.

    Raises:
        ValueError: If the exporter name is unknown.
    """
    if config.exporter == "gcp":
        from opentelemetry.exporter.cloud_monitoring import CloudMonitoringMetricsExporter

        return CloudMonitoringMetricsExporter(
            project_id=config.project_id,
            prefix=config.metric_prefix,
        )

    if config.exporter == "otlp":
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter

        return OTLPMetricExporter(
            endpoint=config.otlp_endpoint,
            headers=config.otlp_headers or {},
        )

    if config.exporter == "console":
        from opentelemetry.sdk.metrics.export import ConsoleMetricExporter

        return ConsoleMetricExporter()

    raise ValueError(f"Unknown metrics exporter: {config.exporter!r}")


def bootstrap_metrics(
    resource: Resource,
    config: CountersConfig,
    exporter: Optional[MetricExporter] = None,
) -> CounterHandles:
    """Create the metrics pipeline bound to *resource* and register both counters.

    *resource* must be fully resolved; the provider copies it and never sees
    later changes.  Exceptions propagate to the caller, which treats them as
    fatal.
    """
    logger.debug("Initializing metrics: exporter=%s", config.exporter)

    if exporter is None:
        exporter = create_exporter(config)

    reader = PeriodicExportingMetricReader(
        exporter,
        export_interval_millis=config.export_interval_millis,
        export_timeout_millis=config.export_timeout_millis,
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[reader])

    prefix = config.counters_prefix
    meter = meter_provider.get_meter(prefix)
    request_counter = meter.create_counter(
        name=prefix + REQUEST_COUNTER,
        description="Number of HTTP requests handled",
        unit="1",
    )
    background_counter = meter.create_counter(
        name=prefix + BACKGROUND_COUNTER,
        description="Number of background task ticks",
        unit="1",
    )

    logger.info("Metrics initialized, counters ready")
    return CounterHandles(
        background=background_counter,
        request=request_counter,
        meter_provider=meter_provider,
    )


@dataclass
class Telemetry:
    """Live telemetry: counter handles and the two writers bound to them."""

    config: CountersConfig
    resource: Resource
    handles: CounterHandles
    request_hook: RequestCounterHook
    background: BackgroundTaskDriver


def terminate(exc: BaseException) -> NoReturn:
    """Default fatal handler: exit the process with status 1."""
    raise SystemExit(1) from exc


async def start_telemetry(
    config: Optional[CountersConfig] = None,
    detector: Optional[EnvironmentResourceDetector] = None,
    exporter: Optional[MetricExporter] = None,
    on_fatal: Callable[[BaseException], Any] = terminate,
) -> Optional[Telemetry]:
    """Resolve identity, build the metrics pipeline and start the background task.

    Any failure is logged at ``ERROR`` and handed to *on_fatal* exactly once;
    no counter exists afterwards.  Returns ``None`` only when *on_fatal*
    returns instead of raising.
    """
    cfg = config or CountersConfig.from_file_or_env()
    logger.debug("initializing metrics")

    try:
        result = await resolve_identity(cfg, detector)
        if not result.ok:
            raise result.error or RuntimeError(f"Identity resolution ended in state {result.state.value}")
        handles = bootstrap_metrics(result.resource, cfg, exporter=exporter)
    except Exception as exc:
        logger.error("Failed to initialize metrics: %s", exc, exc_info=exc)
        on_fatal(exc)
        return None

    background = BackgroundTaskDriver(handles.background, cfg.background_interval_seconds)
    background.start()

    return Telemetry(
        config=cfg,
        resource=result.resource,
        handles=handles,
        request_hook=RequestCounterHook(handles.request),
        background=background,
    )
