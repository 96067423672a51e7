# SPDX-FileCopyrightText: 2026 The fncounters Authors
# SPDX-License-Identifier: Apache-2.0

"""Shared test fixtures for fncounters tests."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import pytest
from opentelemetry.sdk.metrics.export import MetricExporter, MetricExportResult, MetricsData
from opentelemetry.sdk.resources import Resource, ResourceDetector

from fncounters.resources.detector import EnvironmentResourceDetector
from fncounters.sdk.config import CountersConfig


class InMemoryMetricExporter(MetricExporter):
    """Keeps every exported batch in memory."""

    def __init__(self) -> None:
        super().__init__()
        self.batches: List[MetricsData] = []

    def export(self, metrics_data: MetricsData, timeout_millis: float = 10_000, **kwargs: Any) -> MetricExportResult:
        self.batches.append(metrics_data)
        return MetricExportResult.SUCCESS

    def force_flush(self, timeout_millis: float = 10_000) -> bool:
        return True

    def shutdown(self, timeout_millis: float = 30_000, **kwargs: Any) -> None:
        pass

    def counter_values(self) -> Dict[str, int]:
        """Sum of data points per metric name in the most recent batch."""
        values: Dict[str, int] = {}
        if not self.batches:
            return values
        for resource_metrics in self.batches[-1].resource_metrics:
            for scope_metrics in resource_metrics.scope_metrics:
                for metric in scope_metrics.metrics:
                    values[metric.name] = sum(p.value for p in metric.data.data_points)
        return values

    def resource_attributes(self) -> Dict[str, Any]:
        return dict(self.batches[-1].resource_metrics[0].resource.attributes)


class StaticDetector(ResourceDetector):
    """OTel detector returning fixed attributes, or raising *error*."""

    def __init__(self, attributes: Optional[Mapping[str, Any]] = None, error: Optional[Exception] = None) -> None:
        super().__init__(raise_on_error=True)
        self._attributes = dict(attributes or {})
        self._error = error

    def detect(self) -> Resource:
        if self._error is not None:
            raise self._error
        return Resource(self._attributes)


class FailingDetector(EnvironmentResourceDetector):
    """Environment detector whose ``detect()`` raises."""

    def __init__(self, error: Optional[Exception] = None) -> None:
        super().__init__(detectors=[])
        self.error = error or RuntimeError("metadata server exploded")

    def detect(self):
        raise self.error


def make_detector(attributes: Optional[Mapping[str, Any]] = None) -> EnvironmentResourceDetector:
    """Environment detector whose async part yields *attributes*."""
    return EnvironmentResourceDetector(detectors=[StaticDetector(attributes)])


@pytest.fixture
def metric_exporter():
    """A fresh in-memory metric exporter."""
    return InMemoryMetricExporter()


@pytest.fixture
def console_config():
    """Config that never touches a real backend."""
    return CountersConfig(exporter="console", log_level="DEBUG", project_id="test-project")
