# SPDX-FileCopyrightText: 2026 The fncounters Authors
# SPDX-License-Identifier: Apache-2.0

"""fncounters core components."""

from __future__ import annotations

from fncounters.sdk.bootstrap import CounterHandles, Telemetry, bootstrap_metrics, start_telemetry, terminate
from fncounters.sdk.config import CountersConfig
from fncounters.sdk.identity import IdentityResolver, IdentityResult, ResolverState, resolve_identity
from fncounters.sdk.logging import DiagnosticLogBridge, configure_logging, install_diagnostic_bridge
from fncounters.sdk.tasks import BackgroundTaskDriver, RequestCounterHook

__all__ = [
    "BackgroundTaskDriver",
    "CounterHandles",
    "CountersConfig",
    "DiagnosticLogBridge",
    "IdentityResolver",
    "IdentityResult",
    "RequestCounterHook",
    "ResolverState",
    "Telemetry",
    "bootstrap_metrics",
    "configure_logging",
    "install_diagnostic_bridge",
    "resolve_identity",
    "start_telemetry",
    "terminate",
]
