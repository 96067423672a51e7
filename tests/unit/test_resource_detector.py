# SPDX-FileCopyrightText: 2026 The fncounters Authors
# SPDX-License-Identifier: Apache-2.0

"""Tests for resource detection."""

from __future__ import annotations

import os
from unittest import mock

import pytest
from opentelemetry.sdk.resources import ProcessResourceDetector

from fncounters.resources import collect_detectors
from fncounters.resources.detector import (
    DetectedResource,
    EnvironmentResourceDetector,
    UnresolvedResourceError,
    detect_environment_attrs,
    detect_gcp_project,
    detect_kubernetes,
    detect_serverless,
)
from tests.conftest import StaticDetector


class TestDetectKubernetes:
    """Tests for Kubernetes detection."""

    def test_no_k8s_when_not_in_cluster(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            assert detect_kubernetes() == {}

    def test_detects_k8s_from_env_vars(self):
        with mock.patch.dict(
            os.environ,
            {
                "KUBERNETES_SERVICE_HOST": "10.0.0.1",
                "K8S_NAMESPACE": "default",
                "K8S_CLUSTER_NAME": "prod-cluster",
            },
            clear=True,
        ):
            attrs = detect_kubernetes()
            assert attrs["k8s.namespace.name"] == "default"
            assert attrs["k8s.cluster.name"] == "prod-cluster"

    def test_pod_name_left_to_resolver(self):
        with mock.patch.dict(os.environ, {"KUBERNETES_SERVICE_HOST": "10.0.0.1", "K8S_POD_NAME": "p"}, clear=True):
            assert "k8s.pod.name" not in detect_kubernetes()


class TestDetectGcp:
    """Tests for GCP project and serverless detection."""

    def test_no_gcp_when_not_in_cloud(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            assert detect_gcp_project() == {}

    def test_detects_project(self):
        with mock.patch.dict(os.environ, {"GOOGLE_CLOUD_PROJECT": "my-project"}, clear=True):
            attrs = detect_gcp_project()
            assert attrs["cloud.provider"] == "gcp"
            assert attrs["cloud.account.id"] == "my-project"

    def test_detects_cloud_run(self):
        with mock.patch.dict(os.environ, {"K_SERVICE": "counters", "K_REVISION": "counters-00002"}, clear=True):
            attrs = detect_serverless()
            assert attrs["faas.name"] == "counters"
            assert attrs["faas.version"] == "counters-00002"

    def test_detects_cloud_function_target(self):
        with mock.patch.dict(os.environ, {"FUNCTION_TARGET": "handleHttpReq"}, clear=True):
            assert detect_serverless()["faas.name"] == "handleHttpReq"

    def test_environment_attrs_combined(self):
        with mock.patch.dict(os.environ, {"GCP_PROJECT": "p", "K_SERVICE": "svc"}, clear=True):
            attrs = detect_environment_attrs()
            assert attrs["cloud.account.id"] == "p"
            assert attrs["faas.name"] == "svc"


class TestDetectedResource:
    """Pending attribute handling."""

    @pytest.mark.asyncio
    async def test_wait_without_pending_is_noop(self):
        detected = DetectedResource({"a": "1"})
        assert not detected.has_pending
        await detected.wait_for_async_attributes()
        assert detected.attributes == {"a": "1"}

    @pytest.mark.asyncio
    async def test_detector_output_is_pending_until_awaited(self):
        detector = EnvironmentResourceDetector(detectors=[StaticDetector({"faas.instance": "abc123"})])
        with mock.patch.dict(os.environ, {}, clear=True):
            detected = detector.detect()
        assert detected.has_pending
        assert "faas.instance" not in detected.attributes

        await detected.wait_for_async_attributes()
        assert not detected.has_pending
        assert detected.attributes["faas.instance"] == "abc123"

    @pytest.mark.asyncio
    async def test_detector_output_overrides_env_guess(self):
        detector = EnvironmentResourceDetector(detectors=[StaticDetector({"faas.name": "from-metadata"})])
        with mock.patch.dict(os.environ, {"K_SERVICE": "from-env"}, clear=True):
            detected = detector.detect()
        await detected.wait_for_async_attributes()
        assert detected.attributes["faas.name"] == "from-metadata"

    @pytest.mark.asyncio
    async def test_disabled_detector_returns_empty(self):
        with mock.patch.dict(os.environ, {"K_SERVICE": "svc"}, clear=True):
            detected = EnvironmentResourceDetector(enabled=False).detect()
        assert detected.attributes == {}
        assert not detected.has_pending


class TestMergedResource:
    """Merge precedence and the resolution guard."""

    @pytest.mark.asyncio
    async def test_resource_unavailable_before_resolution(self):
        detector = EnvironmentResourceDetector(detectors=[StaticDetector({"x": "1"})])
        with mock.patch.dict(os.environ, {}, clear=True):
            merged = detector.detect().merge({"service.name": "svc"})
        assert not merged.resolved
        with pytest.raises(UnresolvedResourceError):
            merged.resource
        await merged.wait_for_async_attributes()
        assert merged.resolved
        assert merged.resource.attributes["x"] == "1"

    @pytest.mark.asyncio
    async def test_explicit_keys_win(self):
        merged = DetectedResource({"cloud.platform": "gcp_cloud_functions", "host.id": "h"}).merge(
            {"cloud.platform": "generic_task"}
        )
        resource = await merged.wait_for_async_attributes()
        assert resource.attributes["cloud.platform"] == "generic_task"
        assert resource.attributes["host.id"] == "h"


class TestCollectDetectors:
    """Registry of OpenTelemetry detectors."""

    def test_includes_sdk_detectors(self):
        detectors = collect_detectors()
        assert any(isinstance(d, ProcessResourceDetector) for d in detectors)

    def test_includes_gcp_detector(self):
        names = [type(d).__name__ for d in collect_detectors()]
        assert "GoogleCloudResourceDetector" in names
