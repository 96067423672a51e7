# SPDX-FileCopyrightText: 2026 The fncounters Authors
# SPDX-License-Identifier: Apache-2.0

"""Resource identity resolution.

Builds the resource every exported time series is tagged with.  Two
platform rules keep instances from writing into the same series:

- **Kubernetes**: every pod must carry ``k8s.pod.name``.
- **Cloud Functions**: with ``USE_OTEL_GCF_WORKAROUND`` the platform is
  reported as ``generic_task`` and the function instance id becomes
  ``service.instance.id``, otherwise the exporter maps every instance onto
  one ``cloud_function`` monitored resource.

Missing attributes are logged as warnings and resolution continues.  Only
exceptions end in :attr:`ResolverState.FAILED`.
"""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional

from opentelemetry.sdk.resources import Resource

from fncounters.resources.detector import DetectedResource, EnvironmentResourceDetector
from fncounters.sdk.config import CountersConfig

logger = logging.getLogger(__name__)

K8S_POD_NAME = "k8s.pod.name"
CLOUD_PLATFORM = "cloud.platform"
SERVICE_INSTANCE_ID = "service.instance.id"
FAAS_INSTANCE = "faas.instance"
FAAS_ID = "faas.id"

GENERIC_TASK_PLATFORM = "generic_task"


class ResolverState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    DETECTING = "detecting"
    MERGING = "merging"
    ORCHESTRATION_CHECK = "orchestration_check"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass(frozen=True)
class IdentityResult:
    """Either a fully resolved resource or the error that stopped resolution."""

    state: ResolverState
    resource: Optional[Resource] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.state is ResolverState.RESOLVED and self.resource is not None


class IdentityResolver:
    """One-shot resolver for the process's metrics identity."""

    def __init__(
        self,
        config: CountersConfig,
        detector: Optional[EnvironmentResourceDetector] = None,
    ) -> None:
        self.config = config
        self.detector = detector or EnvironmentResourceDetector(enabled=config.auto_detect_resources)
        self.state = ResolverState.UNINITIALIZED
        self.attributes: Dict[str, str] = dict(config.static_attributes)

    async def resolve(self) -> IdentityResult:
        if self.state is not ResolverState.UNINITIALIZED:
            raise RuntimeError(f"IdentityResolver already used (state={self.state.value})")

        try:
            self.state = ResolverState.DETECTING
            detected = self.detector.detect()
            await detected.wait_for_async_attributes()

            self.state = ResolverState.MERGING
            self._apply_kubernetes_rules()

            self.state = ResolverState.ORCHESTRATION_CHECK
            self._apply_cloud_functions_rules(detected)

            merged = detected.merge(self.attributes)
            resource = await merged.wait_for_async_attributes()
        except Exception as exc:
            self.state = ResolverState.FAILED
            return IdentityResult(state=self.state, error=exc)

        self.state = ResolverState.RESOLVED
        logger.info("Got Resource Attributes: %s", resource.to_json(indent=None))
        return IdentityResult(state=self.state, resource=resource)

    def _apply_kubernetes_rules(self) -> None:
        if not os.environ.get("KUBERNETES_SERVICE_HOST"):
            return

        pod_name = os.environ.get("K8S_POD_NAME")
        if pod_name:
            self.attributes[K8S_POD_NAME] = pod_name
        else:
            logger.warning(
                "Running under Kubernetes, but K8S_POD_NAME environment variable is not set. "
                "This may lead to Send TimeSeries errors"
            )

    def _apply_cloud_functions_rules(self, detected: DetectedResource) -> None:
        if not (os.environ.get("FUNCTION_TARGET") and self.config.use_gcf_workaround):
            logger.warning("Using Default Cloud Functions Behavior")
            return

        self.attributes[CLOUD_PLATFORM] = GENERIC_TASK_PLATFORM

        detected_attrs = detected.attributes
        instance_id = detected_attrs.get(FAAS_INSTANCE) or detected_attrs.get(FAAS_ID)
        instance_id = str(instance_id) if instance_id is not None else ""
        if instance_id:
            self.attributes[SERVICE_INSTANCE_ID] = instance_id
        else:
            logger.warning(
                "Running under Cloud Functions, but faas.instance resource attribute is not set. "
                "This may lead to Send TimeSeries errors"
            )


async def resolve_identity(
    config: CountersConfig,
    detector: Optional[EnvironmentResourceDetector] = None,
) -> IdentityResult:
    """Detect, apply platform rules, merge and wait for the final resource."""
    logger.debug("Resolving metrics resource identity")
    return await IdentityResolver(config, detector).resolve()
