# SPDX-FileCopyrightText: 2026 The fncounters Authors
# SPDX-License-Identifier: Apache-2.0

"""Resource Detector — infer deployment identity from the environment.

Detection happens in two parts:

- environment variables (Kubernetes, Cloud Run, Cloud Functions, GCP
  project), read synchronously;
- the OpenTelemetry resource detectors (see :mod:`fncounters.resources`),
  which may call the GCP metadata server and therefore run in the default
  thread pool.  Their result is pending until
  :meth:`DetectedResource.wait_for_async_attributes` is awaited.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Dict, Mapping, Optional, Sequence

from opentelemetry.sdk.resources import Resource, ResourceDetector, get_aggregated_resources

logger = logging.getLogger(__name__)


class UnresolvedResourceError(RuntimeError):
    """Raised when a resource is read before its pending attributes settled."""


# =========================================================================
# Environment Variable Mappings
# =========================================================================

K8S_ENV_MAPPINGS: Dict[str, str] = {
    "K8S_NAMESPACE": "k8s.namespace.name",
    "K8S_NODE_NAME": "k8s.node.name",
    "K8S_CLUSTER_NAME": "k8s.cluster.name",
    "K8S_CONTAINER_NAME": "k8s.container.name",
}

GCP_ENV_MAPPINGS: Dict[str, str] = {
    "GOOGLE_CLOUD_PROJECT": "cloud.account.id",
    "GCLOUD_PROJECT": "cloud.account.id",
    "GCP_PROJECT": "cloud.account.id",
    "GOOGLE_CLOUD_REGION": "cloud.region",
}


def detect_kubernetes() -> Dict[str, Any]:
    attrs: Dict[str, Any] = {}
    if not os.environ.get("KUBERNETES_SERVICE_HOST"):
        return attrs

    for env_var, attr_name in K8S_ENV_MAPPINGS.items():
        value = os.environ.get(env_var)
        if value:
            attrs[attr_name] = value

    namespace_file = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"
    if "k8s.namespace.name" not in attrs and os.path.exists(namespace_file):
        try:
            with open(namespace_file) as fh:
                attrs["k8s.namespace.name"] = fh.read().strip()
        except OSError:
            pass

    return attrs


def detect_gcp_project() -> Dict[str, Any]:
    attrs: Dict[str, Any] = {}
    for env_var, attr_name in GCP_ENV_MAPPINGS.items():
        value = os.environ.get(env_var)
        if value and attr_name not in attrs:
            attrs[attr_name] = value
    if attrs:
        attrs["cloud.provider"] = "gcp"
    return attrs


def detect_serverless() -> Dict[str, Any]:
    attrs: Dict[str, Any] = {}

    if os.environ.get("K_SERVICE"):
        attrs["faas.name"] = os.environ["K_SERVICE"]
        revision = os.environ.get("K_REVISION")
        if revision:
            attrs["faas.version"] = revision

    elif os.environ.get("FUNCTION_NAME") or os.environ.get("FUNCTION_TARGET"):
        attrs["faas.name"] = os.environ.get("FUNCTION_NAME") or os.environ["FUNCTION_TARGET"]

    return attrs


def detect_environment_attrs() -> Dict[str, Any]:
    """Attributes that can be read from environment variables alone."""
    attrs: Dict[str, Any] = {}
    attrs.update(detect_gcp_project())
    attrs.update(detect_kubernetes())
    attrs.update(detect_serverless())
    return attrs


# =========================================================================
# Detected / merged resources
# =========================================================================


class DetectedResource:
    """Environment attributes plus detector output that may still be pending."""

    def __init__(
        self,
        attributes: Optional[Mapping[str, Any]] = None,
        pending: Optional[asyncio.Future] = None,
    ) -> None:
        self._attributes: Dict[str, Any] = dict(attributes or {})
        self._pending = pending

    @property
    def attributes(self) -> Dict[str, Any]:
        return dict(self._attributes)

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    async def wait_for_async_attributes(self) -> None:
        """Await detector output and fold it in.  No-op if nothing is pending."""
        if self._pending is None:
            return
        pending, self._pending = self._pending, None
        resource: Resource = await pending
        # Detector output overrides env-derived values.
        self._attributes.update(dict(resource.attributes))

    def merge(self, explicit: Mapping[str, Any]) -> MergedResource:
        return MergedResource(self, explicit)


class MergedResource:
    """Detected attributes overlaid with explicit ones; explicit keys win."""

    def __init__(self, detected: DetectedResource, explicit: Mapping[str, Any]) -> None:
        self._detected = detected
        self._explicit = dict(explicit)
        self._resource: Optional[Resource] = None

    @property
    def resolved(self) -> bool:
        return self._resource is not None

    async def wait_for_async_attributes(self) -> Resource:
        if self._resource is None:
            await self._detected.wait_for_async_attributes()
            self._resource = Resource(self._detected.attributes).merge(Resource(self._explicit))
        return self._resource

    @property
    def resource(self) -> Resource:
        if self._resource is None:
            raise UnresolvedResourceError("Resource attributes are still pending; await wait_for_async_attributes()")
        return self._resource


# =========================================================================
# Detector
# =========================================================================


class EnvironmentResourceDetector:
    """Builds a :class:`DetectedResource` from the ambient environment.

    Args:
        detectors: OpenTelemetry ``ResourceDetector`` instances to run off the
            event loop.  Defaults to :func:`fncounters.resources.collect_detectors`.
        enabled: When ``False`` only an empty, already-resolved resource is
            returned.
        timeout: Per-detector timeout in seconds passed to
            ``get_aggregated_resources``.
    """

    def __init__(
        self,
        detectors: Optional[Sequence[ResourceDetector]] = None,
        enabled: bool = True,
        timeout: int = 5,
    ) -> None:
        self._detectors = detectors
        self._enabled = enabled
        self._timeout = timeout

    def detect(self) -> DetectedResource:
        if not self._enabled:
            logger.debug("Resource auto-detection disabled")
            return DetectedResource()

        attrs = detect_environment_attrs()

        detectors = self._detectors
        if detectors is None:
            from fncounters.resources import collect_detectors

            detectors = collect_detectors()
        if not detectors:
            return DetectedResource(attrs)

        loop = asyncio.get_running_loop()
        pending = loop.run_in_executor(None, self._run_detectors, list(detectors))
        return DetectedResource(attrs, pending)

    def _run_detectors(self, detectors: Sequence[ResourceDetector]) -> Resource:
        return get_aggregated_resources(
            list(detectors),
            initial_resource=Resource.get_empty(),
            timeout=self._timeout,
        )
