# SPDX-FileCopyrightText: 2026 The fncounters Authors
# SPDX-License-Identifier: Apache-2.0

"""Resource detection using the official OpenTelemetry detectors.

The GCP detector (``opentelemetry-resourcedetector-gcp``) reads the
metadata server on GCE, GKE, Cloud Run and Cloud Functions and reports
``cloud.platform``, ``faas.instance`` and friends.  The SDK's own
detectors add ``OTEL_RESOURCE_ATTRIBUTES`` and process information.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Dict, List, Tuple

from fncounters.resources.detector import (
    DetectedResource,
    EnvironmentResourceDetector,
    MergedResource,
    UnresolvedResourceError,
)

logger = logging.getLogger(__name__)

# (module_path, class_name, kwargs) — tried in order.
_DETECTOR_REGISTRY: List[Tuple[str, str, Dict[str, Any]]] = [
    # Built-in (opentelemetry-sdk)
    ("opentelemetry.sdk.resources", "OTELResourceDetector", {}),
    ("opentelemetry.sdk.resources", "ProcessResourceDetector", {}),
    # opentelemetry-resourcedetector-gcp
    ("opentelemetry.resourcedetector.gcp_resource_detector", "GoogleCloudResourceDetector", {"raise_on_error": False}),
]


def collect_detectors() -> list:
    """Return instances of all importable OTel resource detectors.

    Each detector implements ``opentelemetry.sdk.resources.ResourceDetector``.
    Missing packages are skipped.
    """
    detectors: list = []
    for module_path, class_name, kwargs in _DETECTOR_REGISTRY:
        try:
            mod = importlib.import_module(module_path)
            cls = getattr(mod, class_name)
            detectors.append(cls(**kwargs))
        except (ImportError, AttributeError):
            logger.debug("Resource detector %s.%s not available", module_path, class_name)

    if detectors:
        names = [type(d).__name__ for d in detectors]
        logger.debug("Available resource detectors: %s", names)

    return detectors


__all__ = [
    "DetectedResource",
    "EnvironmentResourceDetector",
    "MergedResource",
    "UnresolvedResourceError",
    "collect_detectors",
]
