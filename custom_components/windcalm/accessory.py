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
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from homeassistant.const import CONF_NAME
from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback

from .const import (
    CONF_DEVICE_ID,
    CONF_HOST,
    CONF_LOCAL_KEY,
    CONF_PROTOCOL_VERSION,
    DEFAULT_NAME,
    DEFAULT_PROTOCOL_VERSION,
    DP_FAN_DIRECTION,
    DP_FAN_ON,
    DP_FAN_SPEED,
    DP_LIGHT_COLOR_TEMP,
    DP_LIGHT_ON,
    MANUFACTURER,
    MODEL,
    RotationDirection,
    device_temp_to_mired,
    direction_from_device,
    direction_to_device,
    mired_to_device_temp,
    percentage_to_speed_level,
    speed_level_to_percentage,
)
from .datapoint import DataPointAccess
from .device import ConnectionState, WindcalmDevice
from .exceptions import NotConnectedError, WindcalmConfigError

_LOGGER = logging.getLogger(__name__)


class Characteristic(StrEnum):
    """Properties of the accessory exposed to Home Assistant."""

    FAN_ON = "fan_on"
    FAN_SPEED = "fan_speed"
    FAN_DIRECTION = "fan_direction"
    LIGHT_ON = "light_on"
    LIGHT_COLOR_TEMPERATURE = "light_color_temperature"


@dataclass(frozen=True, slots=True)
class CharacteristicMapping:
    """Data point backing a characteristic and its value transforms."""

    dp: int
    read: Callable[[Any], Any]
    write: Callable[[Any], Any]


def _identity_bool(value: Any) -> bool:
    return bool(value)


CHARACTERISTICS: dict[Characteristic, CharacteristicMapping] = {
    Characteristic.FAN_ON: CharacteristicMapping(DP_FAN_ON, _identity_bool, _identity_bool),
    Characteristic.FAN_SPEED: CharacteristicMapping(
        DP_FAN_SPEED, speed_level_to_percentage, percentage_to_speed_level
    ),
    Characteristic.FAN_DIRECTION: CharacteristicMapping(
        DP_FAN_DIRECTION, direction_from_device, direction_to_device
    ),
    Characteristic.LIGHT_ON: CharacteristicMapping(DP_LIGHT_ON, _identity_bool, _identity_bool),
    Characteristic.LIGHT_COLOR_TEMPERATURE: CharacteristicMapping(
        DP_LIGHT_COLOR_TEMP, device_temp_to_mired, mired_to_device_temp
    ),
}

# Services exposed by the accessory and the characteristics each one carries
SERVICES: dict[str, tuple[Characteristic, ...]] = {
    "fan": (Characteristic.FAN_ON, Characteristic.FAN_SPEED, Characteristic.FAN_DIRECTION),
    "light": (Characteristic.LIGHT_ON, Characteristic.LIGHT_COLOR_TEMPERATURE),
    "information": (),
}


class WindcalmAccessory:
    """Maps fan and light characteristics onto Windcalm data points."""

    def __init__(self, hass: HomeAssistant, config: Mapping[str, Any]):
        device_id = config.get(CONF_DEVICE_ID)
        local_key = config.get(CONF_LOCAL_KEY)
        if not device_id or not local_key:
            raise WindcalmConfigError("Please provide a Tuya device ID and Tuya device key")

        self.hass = hass
        self.device_id: str = device_id
        self.name: str = config.get(CONF_NAME) or DEFAULT_NAME
        self.device = WindcalmDevice(
            hass,
            device_id,
            local_key,
            host=config.get(CONF_HOST),
            protocol_version=config.get(CONF_PROTOCOL_VERSION) or DEFAULT_PROTOCOL_VERSION,
            name=self.name,
        )
        self.datapoints = DataPointAccess(self.device, metrics=self.device.metrics)
        self._unsubscribers: list[CALLBACK_TYPE] = [
            self.device.add_error_listener(self._on_device_error),
        ]

    @property
    def connected(self) -> bool:
        return self.device.connected

    @property
    def information(self) -> dict[str, str]:
        return {
            "manufacturer": MANUFACTURER,
            "model": MODEL,
            "name": self.name,
            "serial_number": self.device_id,
        }

    def services(self) -> dict[str, tuple[Characteristic, ...]]:
        return dict(SERVICES)

    @callback
    def add_state_listener(self, listener: Callable[[ConnectionState], None]) -> CALLBACK_TYPE:
        return self.device.add_state_listener(listener)

    @callback
    def _on_device_error(self, err: Exception) -> None:
        _LOGGER.error("Error from '%s': %s", self.name, err)

    async def async_start(self) -> None:
        """Discover and connect to the device."""
        await self.device.async_start()

    async def async_reconnect(self) -> None:
        await self.device.async_connect()

    async def async_stop(self) -> None:
        for unsub in self._unsubscribers:
            unsub()
        self._unsubscribers.clear()
        await self.device.async_disconnect()

    def _ensure_connected(self) -> None:
        if not self.device.connected:
            raise NotConnectedError()

    async def async_fetch(self, characteristic: Characteristic) -> Any:
        """Read a characteristic from the device."""
        self._ensure_connected()
        mapping = CHARACTERISTICS[characteristic]
        return mapping.read(await self.datapoints.get(mapping.dp))

    async def async_handle(self, characteristic: Characteristic, value: Any) -> None:
        """Write a characteristic to the device."""
        self._ensure_connected()
        mapping = CHARACTERISTICS[characteristic]
        await self.datapoints.set(mapping.dp, mapping.write(value))

    async def async_fetch_all(self, *, sequential: bool = False) -> dict[str, Any]:
        """Read every characteristic.

        Requests run concurrently unless sequential is set. Each read opens
        its own tinytuya session, so concurrent reads mean concurrent
        connections to a device that often accepts only one.
        """
        self._ensure_connected()
        keys = list(CHARACTERISTICS)
        if sequential:
            values = [await self.async_fetch(k) for k in keys]
        else:
            values = await asyncio.gather(*(self.async_fetch(k) for k in keys))
        return {str(k): v for k, v in zip(keys, values, strict=True)}

    async def async_fetch_fan_on(self) -> bool:
        return await self.async_fetch(Characteristic.FAN_ON)

    async def async_handle_fan_on(self, value: bool) -> None:
        await self.async_handle(Characteristic.FAN_ON, value)

    async def async_fetch_fan_speed(self) -> float:
        return await self.async_fetch(Characteristic.FAN_SPEED)

    async def async_handle_fan_speed(self, value: int | float) -> None:
        await self.async_handle(Characteristic.FAN_SPEED, value)

    async def async_fetch_fan_direction(self) -> RotationDirection:
        return await self.async_fetch(Characteristic.FAN_DIRECTION)

    async def async_handle_fan_direction(self, value: RotationDirection | int) -> None:
        await self.async_handle(Characteristic.FAN_DIRECTION, value)

    async def async_fetch_light_on(self) -> bool:
        return await self.async_fetch(Characteristic.LIGHT_ON)

    async def async_handle_light_on(self, value: bool) -> None:
        await self.async_handle(Characteristic.LIGHT_ON, value)

    async def async_fetch_light_color_temperature(self) -> float:
        return await self.async_fetch(Characteristic.LIGHT_COLOR_TEMPERATURE)

    async def async_handle_light_color_temperature(self, value: int | float) -> None:
        await self.async_handle(Characteristic.LIGHT_COLOR_TEMPERATURE, value)
