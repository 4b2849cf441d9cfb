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

"""Shared pytest fixtures for the Windcalm custom component tests.

Provides an in-memory device connection and automatic enabling of custom
integrations so the tests can exercise setup and service calls without a
fan on the network.
"""

import pathlib
import sys
from typing import Any
from unittest.mock import patch

import pytest
from pytest_homeassistant_custom_component.common import MockConfigEntry

# Ensure project root is on sys.path for direct module imports in tests
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from custom_components.windcalm.device import ConnectionState  # noqa: E402
from custom_components.windcalm.metrics import ConnectionMetrics  # noqa: E402

DEVICE_ID = "test-device"
ENTRY_DATA = {"id": DEVICE_ID, "key": "0123456789abcdef", "name": "Windcalm DC"}


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations):
    yield


class FakeDevice:
    """Stand-in for WindcalmDevice holding data points in memory."""

    def __init__(self):
        self.device_id = DEVICE_ID
        self.name = "Windcalm DC"
        self.host = "192.168.1.50"
        self.protocol_version = 3.3
        self.dps: dict[str, Any] = {
            "60": True,
            "62": 3,
            "63": "forward",
            "20": True,
            "23": 515,
        }
        self.metrics = ConnectionMetrics()
        self.state = ConnectionState.DISCONNECTED
        self.start_error: Exception | None = None
        self.get_error: Exception | None = None
        self.set_error: Exception | None = None
        self.get_calls: list[int] = []
        self.set_calls: list[tuple[int, Any]] = []
        self.started = 0
        self.connects = 0
        self.disconnected = False
        self._state_listeners: list = []
        self._error_listeners: list = []

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    def add_state_listener(self, listener):
        self._state_listeners.append(listener)
        return lambda: self._state_listeners.remove(listener) if listener in self._state_listeners else None

    def add_error_listener(self, listener):
        self._error_listeners.append(listener)
        return lambda: self._error_listeners.remove(listener) if listener in self._error_listeners else None

    def set_state(self, state: ConnectionState) -> None:
        self.state = state
        self.metrics.is_connected = state is ConnectionState.CONNECTED
        for listener in list(self._state_listeners):
            listener(state)

    def fire_error(self, err: Exception) -> None:
        for listener in list(self._error_listeners):
            listener(err)

    async def async_start(self) -> None:
        self.started += 1
        if self.start_error is not None:
            raise self.start_error
        self.set_state(ConnectionState.CONNECTED)

    async def async_connect(self) -> None:
        self.connects += 1
        if self.start_error is not None:
            raise self.start_error
        self.set_state(ConnectionState.CONNECTED)

    async def async_disconnect(self) -> None:
        self.disconnected = True
        self.set_state(ConnectionState.DISCONNECTED)

    async def async_get(self, index: int) -> Any:
        self.get_calls.append(index)
        if self.get_error is not None:
            raise self.get_error
        return self.dps[str(index)]

    async def async_set(self, index: int, value: Any) -> None:
        self.set_calls.append((index, value))
        if self.set_error is not None:
            raise self.set_error
        self.dps[str(index)] = value


async def setup_integration(hass, options: dict[str, Any] | None = None):
    """Add a Windcalm config entry to hass and set it up."""
    entry = MockConfigEntry(
        domain="windcalm",
        title="Windcalm DC",
        data=dict(ENTRY_DATA),
        options=options or {},
        unique_id=DEVICE_ID,
    )
    entry.add_to_hass(hass)
    await hass.config_entries.async_setup(entry.entry_id)
    await hass.async_block_till_done()
    return entry


@pytest.fixture
def mock_device():
    return FakeDevice()


@pytest.fixture
def patch_device(mock_device):
    # Patch where the class is referenced so no tinytuya session is opened
    with patch("custom_components.windcalm.accessory.WindcalmDevice", return_value=mock_device):
        yield mock_device
