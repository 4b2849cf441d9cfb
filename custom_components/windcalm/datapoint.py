# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 homeassistant-windcalm contributors, all rights reserved.
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#   http://www.apache.org/licenses/LICENSE-2.0
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Timeout-and-retry access to device data points."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any, Protocol

from .const import GET_TIMEOUT_SEC, SET_TIMEOUT_SEC, SLOW_RESPONSE_WARNING_MS
from .metrics import ConnectionMetrics

_LOGGER = logging.getLogger(__name__)


class DataPointDevice(Protocol):
    async def async_get(self, index: int) -> Any: ...

    async def async_set(self, index: int, value: Any) -> None: ...


class DataPointAccess:
    """Read and write data points while tolerating silently dropped responses.

    The Tuya protocol can lose a request/response pair without reporting an
    error. Each attempt is therefore raced against a short timer; when the
    timer wins, a fresh attempt for the same data point is issued and the
    abandoned one is left to finish on its own. A late success from an
    abandoned attempt is dropped, but a late failure still ends the call:
    tinytuya only reports an unreachable device after its own socket timeout.
    A call delivers exactly one outcome. A device may receive the same write
    more than once.

    Retries continue until an attempt settles. An error raised by any
    outstanding attempt is propagated unchanged and ends the call. Attempts
    still running after that are discarded when they finish.
    """

    def __init__(
        self,
        device: DataPointDevice,
        *,
        get_timeout: float = GET_TIMEOUT_SEC,
        set_timeout: float = SET_TIMEOUT_SEC,
        metrics: ConnectionMetrics | None = None,
    ):
        self._device = device
        self.get_timeout = get_timeout
        self.set_timeout = set_timeout
        self.metrics = metrics if metrics is not None else ConnectionMetrics()

    async def get(self, index: int) -> Any:
        """Read a data point, retrying every get_timeout seconds."""
        _LOGGER.debug("get start dp=%s", index)
        value = await self._request(
            f"get dp={index}", self.get_timeout, lambda: self._device.async_get(index)
        )
        _LOGGER.debug("get done dp=%s value=%s", index, value)
        return value

    async def set(self, index: int, value: Any) -> None:
        """Write a data point, retrying every set_timeout seconds."""
        _LOGGER.debug("set start dp=%s value=%s", index, value)
        await self._request(
            f"set dp={index}", self.set_timeout, lambda: self._device.async_set(index, value)
        )
        _LOGGER.debug("set done dp=%s value=%s", index, value)

    async def _request(
        self, label: str, timeout: float, start: Callable[[], Awaitable[Any]]
    ) -> Any:
        loop = asyncio.get_running_loop()
        t0 = time.monotonic()
        # In-flight attempts, abandoned ones included, mapped to attempt number
        outstanding: dict[asyncio.Future, int] = {}
        attempt = 0
        settled: asyncio.Future | None = None
        try:
            while settled is None:
                attempt += 1
                current = asyncio.ensure_future(start())
                outstanding[current] = attempt
                deadline = loop.time() + timeout
                while settled is None:
                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        break
                    done, _ = await asyncio.wait(
                        list(outstanding), timeout=remaining, return_when=asyncio.FIRST_COMPLETED
                    )
                    if not done:
                        break
                    settled = self._pick_settled(label, done, current, outstanding)
                if settled is None:
                    self.metrics.record_timeout()
                    if _LOGGER.isEnabledFor(logging.DEBUG):
                        _LOGGER.debug(
                            "%s attempt=%d timed out after %.0f ms, retrying",
                            label,
                            attempt,
                            timeout * 1000,
                        )
        finally:
            for fut, number in outstanding.items():
                fut.add_done_callback(partial(self._discard_late, label, number))

        try:
            result = settled.result()
        except Exception as exc:
            self.metrics.record_request(success=False)
            if _LOGGER.isEnabledFor(logging.DEBUG):
                _LOGGER.debug("%s attempt=%d failed: %s", label, attempt, type(exc).__name__)
            raise

        latency_ms = (time.monotonic() - t0) * 1000
        self.metrics.record_request(success=True, latency_ms=latency_ms)
        if _LOGGER.isEnabledFor(logging.DEBUG):
            _LOGGER.debug("%s rtt ms=%.0f attempts=%d", label, latency_ms, attempt)
        if latency_ms > SLOW_RESPONSE_WARNING_MS:
            _LOGGER.warning(
                "Slow response from Windcalm device: %.1f seconds for %s after %d attempts. "
                "Check the Wi-Fi signal of the fan",
                latency_ms / 1000,
                label,
                attempt,
            )
        return result

    def _pick_settled(
        self,
        label: str,
        done: set[asyncio.Future],
        current: asyncio.Future,
        outstanding: dict[asyncio.Future, int],
    ) -> asyncio.Future | None:
        """Return the attempt that ends the call, if any finished attempt does.

        The current attempt ends the call whatever its outcome. An abandoned
        attempt ends it only by failing; its late success is dropped.
        """
        failures: list[tuple[int, asyncio.Future]] = []
        for fut in done:
            number = outstanding.pop(fut)
            if fut is current or fut.cancelled():
                continue
            if fut.exception() is None:
                self.metrics.record_late_result()
                if _LOGGER.isEnabledFor(logging.DEBUG):
                    _LOGGER.debug("%s attempt=%d late result ignored", label, number)
            else:
                failures.append((number, fut))
        if current in done:
            return current
        if failures:
            number, fut = min(failures, key=lambda item: item[0])
            if _LOGGER.isEnabledFor(logging.DEBUG):
                _LOGGER.debug("%s attempt=%d failed after its timeout", label, number)
            return fut
        return None

    def _discard_late(self, label: str, attempt: int, future: asyncio.Future) -> None:
        """Consume the outcome of an attempt still running after the call ended."""
        if future.cancelled():
            return
        exc = future.exception()
        self.metrics.record_late_result()
        if _LOGGER.isEnabledFor(logging.DEBUG):
            if exc is not None:
                _LOGGER.debug(
                    "%s attempt=%d late failure ignored: %s", label, attempt, type(exc).__name__
                )
            else:
                _LOGGER.debug("%s attempt=%d late result ignored", label, attempt)
