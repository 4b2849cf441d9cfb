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

import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

import tinytuya
from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback

from .const import (
    CONNECTION_ERROR_CODES,
    DEFAULT_PROTOCOL_VERSION,
    TUYA_CONNECTION_RETRY_DELAY_SEC,
    TUYA_CONNECTION_RETRY_LIMIT,
    TUYA_CONNECTION_TIMEOUT_SEC,
)
from .exceptions import DeviceError
from .metrics import ConnectionMetrics

_LOGGER = logging.getLogger(__name__)


class ConnectionState(Enum):
    """States of the local device connection."""

    DISCOVERING = "discovering"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class WindcalmDevice:
    """Local Tuya connection to a single Windcalm fan.

    tinytuya is blocking, so every request runs in the Home Assistant executor
    on its own short-lived session. Overlapping requests therefore never share
    a socket.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        device_id: str,
        local_key: str,
        *,
        host: str | None = None,
        protocol_version: str | float = DEFAULT_PROTOCOL_VERSION,
        name: str | None = None,
    ):
        self.hass = hass
        self.device_id = device_id
        self._local_key = local_key
        self._host = host or None
        self._version = float(protocol_version)
        self.name = name or device_id
        self._state = ConnectionState.DISCONNECTED
        self._has_connected = False
        self._state_listeners: list[Callable[[ConnectionState], None]] = []
        self._error_listeners: list[Callable[[Exception], None]] = []
        self.metrics = ConnectionMetrics()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def host(self) -> str | None:
        return self._host

    @property
    def protocol_version(self) -> float:
        return self._version

    @callback
    def add_state_listener(self, listener: Callable[[ConnectionState], None]) -> CALLBACK_TYPE:
        """Subscribe to connection state transitions."""
        self._state_listeners.append(listener)

        @callback
        def _remove() -> None:
            if listener in self._state_listeners:
                self._state_listeners.remove(listener)

        return _remove

    @callback
    def add_error_listener(self, listener: Callable[[Exception], None]) -> CALLBACK_TYPE:
        """Subscribe to connection-level errors."""
        self._error_listeners.append(listener)

        @callback
        def _remove() -> None:
            if listener in self._error_listeners:
                self._error_listeners.remove(listener)

        return _remove

    @callback
    def _transition(self, new_state: ConnectionState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        self.metrics.is_connected = new_state is ConnectionState.CONNECTED
        if _LOGGER.isEnabledFor(logging.DEBUG):
            _LOGGER.debug(
                "state d=%s %s -> %s", self.device_id, old_state.value, new_state.value
            )
        for listener in list(self._state_listeners):
            listener(new_state)

    @callback
    def _notify_error(self, err: Exception) -> None:
        self.metrics.record_device_error()
        for listener in list(self._error_listeners):
            listener(err)

    async def async_start(self) -> None:
        """Discover the device on the LAN (unless a host is configured) and connect."""
        if self._host is None:
            await self.async_discover()
        await self.async_connect()

    async def async_discover(self) -> None:
        self._transition(ConnectionState.DISCOVERING)
        t0 = time.monotonic()
        try:
            found = await self.hass.async_add_executor_job(self._find)
        except Exception as exc:
            self._transition(ConnectionState.DISCONNECTED)
            err = DeviceError(f"Discovery of {self.device_id} failed: {exc}")
            self._notify_error(err)
            raise err from exc
        ip = found.get("ip") if isinstance(found, dict) else None
        if not ip:
            self._transition(ConnectionState.DISCONNECTED)
            err = DeviceError(f"Device {self.device_id} not found on the local network")
            self._notify_error(err)
            raise err
        self._host = ip
        version = found.get("version")
        if version:
            try:
                self._version = float(version)
            except (TypeError, ValueError):
                pass
        _LOGGER.debug(
            "Found '%s' at %s (v%s) in %.0f ms",
            self.name,
            ip,
            self._version,
            (time.monotonic() - t0) * 1000,
        )

    async def async_connect(self) -> None:
        """Open a session and read the device status to confirm it is reachable."""
        self._transition(ConnectionState.CONNECTING)
        try:
            payload = await self.hass.async_add_executor_job(self._status)
            self._raise_for_error(payload)
        except DeviceError as err:
            self._transition(ConnectionState.DISCONNECTED)
            if err.code not in CONNECTION_ERROR_CODES:
                self._notify_error(err)
            raise
        except Exception as exc:
            self._transition(ConnectionState.DISCONNECTED)
            err = DeviceError(f"Connection to {self.device_id} failed: {exc}")
            self._notify_error(err)
            raise err from exc
        self._transition(ConnectionState.CONNECTED)
        if self._has_connected:
            self.metrics.record_reconnect()
        self._has_connected = True
        _LOGGER.info("Connected to '%s'", self.name)

    async def async_disconnect(self) -> None:
        if self._state is not ConnectionState.DISCONNECTED:
            self._transition(ConnectionState.DISCONNECTED)
            _LOGGER.debug("Disconnected from '%s'", self.name)

    async def async_get(self, index: int) -> Any:
        """Read a single data point."""
        payload = await self.hass.async_add_executor_job(self._status)
        payload = self._raise_for_error(payload)
        dps = payload.get("dps") if isinstance(payload, dict) else None
        key = str(index)
        if not isinstance(dps, dict) or key not in dps:
            raise DeviceError(f"Data point {index} missing from device status")
        return dps[key]

    async def async_set(self, index: int, value: Any) -> None:
        """Write a single data point."""
        payload = await self.hass.async_add_executor_job(self._set_value, index, value)
        self._raise_for_error(payload)

    @callback
    def _raise_for_error(self, payload: Any) -> Any:
        """Convert a tinytuya error payload into DeviceError."""
        if not (isinstance(payload, dict) and "Error" in payload):
            return payload
        code = payload.get("Err")
        code = str(code) if code is not None else None
        err = DeviceError(str(payload["Error"]), code)
        if code in CONNECTION_ERROR_CODES:
            # Device dropped off the network
            if self._state is not ConnectionState.DISCONNECTED:
                self._transition(ConnectionState.DISCONNECTED)
                _LOGGER.debug("Disconnected from '%s'", self.name)
            self._notify_error(err)
        raise err

    def _session(self) -> tinytuya.Device:
        return tinytuya.Device(
            self.device_id,
            address=self._host,
            local_key=self._local_key,
            version=self._version,
            connection_timeout=TUYA_CONNECTION_TIMEOUT_SEC,
            connection_retry_limit=TUYA_CONNECTION_RETRY_LIMIT,
            connection_retry_delay=TUYA_CONNECTION_RETRY_DELAY_SEC,
        )

    def _find(self) -> dict[str, Any]:
        """Scan the LAN for the device; runs in the executor."""
        return tinytuya.find_device(dev_id=self.device_id)

    def _status(self) -> Any:
        """Fetch the full data point status; runs in the executor."""
        session = self._session()
        try:
            return session.status()
        finally:
            self._close(session)

    def _set_value(self, index: int, value: Any) -> Any:
        """Write a data point; runs in the executor."""
        session = self._session()
        try:
            return session.set_value(index, value)
        finally:
            self._close(session)

    def _close(self, session: tinytuya.Device) -> None:
        try:
            session.close()
        except Exception as exc:
            if _LOGGER.isEnabledFor(logging.DEBUG):
                _LOGGER.debug("session close failed: %s: %s", type(exc).__name__, exc)
