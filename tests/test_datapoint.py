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

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Any

import pytest

from custom_components.windcalm.datapoint import DataPointAccess
from custom_components.windcalm.exceptions import DeviceError


class ScriptedDevice:
    """Device whose every attempt is a future the test settles by hand."""

    def __init__(self, responder: Callable[[int, asyncio.Future], None] | None = None):
        self.responder = responder
        self.calls: list[tuple[Any, ...]] = []
        self.attempts: list[asyncio.Future] = []

    async def _attempt(self) -> Any:
        fut = asyncio.get_running_loop().create_future()
        self.attempts.append(fut)
        if self.responder is not None:
            self.responder(len(self.attempts), fut)
        return await fut

    async def async_get(self, index: int) -> Any:
        self.calls.append(("get", index))
        return await self._attempt()

    async def async_set(self, index: int, value: Any) -> None:
        self.calls.append(("set", index, value))
        await self._attempt()

    def release(self) -> None:
        for fut in self.attempts:
            if not fut.done():
                fut.set_result(None)


async def _drain() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def test_default_timeouts() -> None:
    access = DataPointAccess(ScriptedDevice())
    assert access.get_timeout == 0.5
    assert access.set_timeout == 0.25


async def test_get_retries_once_after_silent_attempt() -> None:
    """First attempt never answers; the second answers 200 ms after it starts."""

    def responder(n: int, fut: asyncio.Future) -> None:
        if n == 2:
            asyncio.get_running_loop().call_later(0.2, fut.set_result, 3)

    device = ScriptedDevice(responder)
    access = DataPointAccess(device)

    t0 = time.monotonic()
    value = await access.get(62)
    elapsed = time.monotonic() - t0

    assert value == 3
    assert device.calls == [("get", 62), ("get", 62)]
    assert 0.65 <= elapsed < 1.5
    assert access.metrics.timed_out_attempts == 1
    assert access.metrics.total_requests == 1

    device.release()
    await _drain()
    assert access.metrics.late_results_discarded == 1


async def test_set_within_timeout_is_not_retried() -> None:
    def responder(n: int, fut: asyncio.Future) -> None:
        asyncio.get_running_loop().call_later(0.2, fut.set_result, None)

    device = ScriptedDevice(responder)
    access = DataPointAccess(device)

    assert await access.set(60, True) is None
    assert device.calls == [("set", 60, True)]
    assert access.metrics.timed_out_attempts == 0


async def test_set_retries_after_quarter_second() -> None:
    def responder(n: int, fut: asyncio.Future) -> None:
        if n == 2:
            fut.set_result(None)

    device = ScriptedDevice(responder)
    access = DataPointAccess(device)

    t0 = time.monotonic()
    await access.set(62, 4)
    elapsed = time.monotonic() - t0

    assert device.calls == [("set", 62, 4), ("set", 62, 4)]
    assert 0.2 <= elapsed < 0.5

    device.release()
    await _drain()


async def test_retries_until_an_attempt_settles() -> None:
    def responder(n: int, fut: asyncio.Future) -> None:
        if n == 4:
            fut.set_result("forward")

    device = ScriptedDevice(responder)
    access = DataPointAccess(device, get_timeout=0.02, set_timeout=0.02)

    assert await access.get(63) == "forward"
    assert len(device.calls) == 4
    assert access.metrics.timed_out_attempts == 3

    device.release()
    await _drain()
    assert access.metrics.late_results_discarded == 3


async def test_error_propagates_unchanged_without_retry() -> None:
    boom = DeviceError("device said no", "914")

    def responder(n: int, fut: asyncio.Future) -> None:
        fut.set_exception(boom)

    device = ScriptedDevice(responder)
    access = DataPointAccess(device)

    with pytest.raises(DeviceError) as exc_info:
        await access.set(20, False)

    assert exc_info.value is boom
    assert len(device.calls) == 1
    assert access.metrics.failed_requests == 1


async def test_error_from_retry_ends_the_call() -> None:
    def responder(n: int, fut: asyncio.Future) -> None:
        if n == 2:
            fut.set_exception(DeviceError("lost"))

    device = ScriptedDevice(responder)
    access = DataPointAccess(device, get_timeout=0.02)

    with pytest.raises(DeviceError, match="lost"):
        await access.get(23)
    assert len(device.calls) == 2

    device.release()
    await _drain()


async def test_late_result_of_abandoned_attempt_is_ignored() -> None:
    loop = asyncio.get_running_loop()

    def responder(n: int, fut: asyncio.Future) -> None:
        if n == 2:
            # The abandoned attempt settles first, then the current one
            device.attempts[0].set_result("stale")
            loop.call_later(0.05, fut.set_result, "fresh")

    device = ScriptedDevice(responder)
    access = DataPointAccess(device, get_timeout=0.05)

    assert await access.get(62) == "fresh"
    await _drain()
    assert access.metrics.late_results_discarded == 1
    assert access.metrics.total_requests == 1


async def test_late_failure_of_abandoned_attempt_ends_the_call() -> None:
    """A failure arriving after the timer still fails the call while the retry is pending."""
    boom = DeviceError("Network Error: Device Unreachable", "905")

    def responder(n: int, fut: asyncio.Future) -> None:
        if n == 2:
            device.attempts[0].set_exception(boom)

    device = ScriptedDevice(responder)
    access = DataPointAccess(device, get_timeout=0.05)

    with pytest.raises(DeviceError) as exc_info:
        await access.get(62)

    assert exc_info.value is boom
    assert len(device.calls) == 2
    assert access.metrics.failed_requests == 1

    # The retry still in flight is discarded once it settles
    device.release()
    await _drain()
    assert access.metrics.late_results_discarded == 1


async def test_unreachable_device_fails_instead_of_retrying_forever() -> None:
    """Each attempt reports the device unreachable only after several timer periods."""
    loop = asyncio.get_running_loop()

    def responder(n: int, fut: asyncio.Future) -> None:
        loop.call_later(0.15, fut.set_exception, DeviceError("Network Error", "901"))

    device = ScriptedDevice(responder)
    access = DataPointAccess(device, get_timeout=0.05)

    t0 = time.monotonic()
    with pytest.raises(DeviceError, match="Network Error"):
        await asyncio.wait_for(access.get(60), 2)
    elapsed = time.monotonic() - t0

    assert elapsed < 1
    assert 2 <= len(device.calls) <= 4
    assert access.metrics.failed_requests == 1
    assert access.metrics.total_requests == 1

    # Let the remaining attempts fail; their errors are consumed
    await asyncio.sleep(0.3)
    assert all(fut.done() for fut in device.attempts)
    assert access.metrics.late_results_discarded == len(device.calls) - 1


async def test_cancelled_call_leaves_attempt_to_finish() -> None:
    device = ScriptedDevice()
    access = DataPointAccess(device, get_timeout=10)

    task = asyncio.ensure_future(access.get(60))
    await _drain()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert not device.attempts[0].done()
    device.attempts[0].set_result(True)
    await _drain()
    assert access.metrics.late_results_discarded == 1
