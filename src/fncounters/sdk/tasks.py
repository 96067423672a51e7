# SPDX-FileCopyrightText: 2026 The fncounters Authors
# SPDX-License-Identifier: Apache-2.0

"""Counter writers: the periodic background task and the per-request hook.

Both receive their counter explicitly.  ``Counter.add`` in the
OpenTelemetry SDK is thread-safe, so the two writers need no locking.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from opentelemetry.metrics import Counter

from fncounters.sdk.config import DEFAULT_BACKGROUND_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


class BackgroundTaskDriver:
    """Adds 1 to *counter* every *interval_seconds*, for the life of the loop."""

    def __init__(self, counter: Counter, interval_seconds: float = DEFAULT_BACKGROUND_INTERVAL_SECONDS) -> None:
        self.counter = counter
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> None:
        self.counter.add(1)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="fncounters-background")
        logger.info("Background task started - increments counter every %s seconds", self.interval_seconds)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            self.tick()

    async def stop(self) -> None:
        """Cancel the timer task; used when the event loop is shutting down."""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


class RequestCounterHook:
    """Callback for the HTTP layer: one call, one increment, always succeeds."""

    def __init__(self, counter: Counter) -> None:
        self.counter = counter

    def __call__(self) -> bool:
        self.counter.add(1)
        return True
