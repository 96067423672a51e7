# SPDX-FileCopyrightText: 2026 The fncounters Authors
# SPDX-License-Identifier: Apache-2.0

"""fncounters - OpenTelemetry request and background counters for serverless handlers.

Quick Start::

    uvicorn --factory fncounters.app:create_app

or, from your own event loop::

    from fncounters import CountersConfig, start_telemetry

    telemetry = await start_telemetry(CountersConfig(exporter="console"))
    telemetry.request_hook()
"""

from __future__ import annotations

from fncounters._version import __version__

# Bootstrap
from fncounters.sdk.bootstrap import (
    CounterHandles,
    Telemetry,
    bootstrap_metrics,
    start_telemetry,
)

# Configuration
from fncounters.sdk.config import CountersConfig

# Identity
from fncounters.sdk.identity import IdentityResult, ResolverState, resolve_identity

# Logging
from fncounters.sdk.logging import DiagnosticLogBridge, configure_logging, install_diagnostic_bridge

# Counter writers
from fncounters.sdk.tasks import BackgroundTaskDriver, RequestCounterHook

__all__ = [
    "__version__",
    # Bootstrap
    "start_telemetry",
    "bootstrap_metrics",
    "CounterHandles",
    "Telemetry",
    # Configuration
    "CountersConfig",
    # Identity
    "resolve_identity",
    "IdentityResult",
    "ResolverState",
    # Logging
    "configure_logging",
    "install_diagnostic_bridge",
    "DiagnosticLogBridge",
    # Counter writers
    "BackgroundTaskDriver",
    "RequestCounterHook",
]
