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

import math

from homeassistant.components.fan import (
    DIRECTION_FORWARD,
    DIRECTION_REVERSE,
    FanEntity,
    FanEntityFeature,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.util.percentage import (
    percentage_to_ranged_value,
    ranged_value_to_percentage,
)

from .accessory import Characteristic, WindcalmAccessory
from .const import (
    SPEED_LEVELS,
    RotationDirection,
    speed_level_to_percentage,
)
from .coordinator import WindcalmCoordinator
from .entity import WindcalmEntity

SPEED_RANGE = (1, SPEED_LEVELS)

# HomeKit convention: forward spins clockwise
_DIRECTION_TO_ROTATION = {
    DIRECTION_FORWARD: RotationDirection.CLOCKWISE,
    DIRECTION_REVERSE: RotationDirection.COUNTER_CLOCKWISE,
}


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
):
    shared = entry.runtime_data
    coordinator: WindcalmCoordinator = shared["coordinator"]
    accessory: WindcalmAccessory = shared["accessory"]
    async_add_entities([WindcalmFan(coordinator, accessory)])


def _level_from_speed(value: float) -> int:
    return round(value * SPEED_LEVELS / 100)


def _speed_from_ha_percentage(percentage: int) -> float:
    """Map an HA percentage to the speed characteristic of the level it selects."""
    level = max(1, math.ceil(percentage_to_ranged_value(SPEED_RANGE, percentage)))
    return speed_level_to_percentage(level)


class WindcalmFan(WindcalmEntity, FanEntity):
    _attr_name = None
    _attr_speed_count = SPEED_LEVELS
    _attr_supported_features = (
        FanEntityFeature.SET_SPEED
        | FanEntityFeature.DIRECTION
        | FanEntityFeature.TURN_OFF
        | FanEntityFeature.TURN_ON
    )

    def __init__(self, coordinator: WindcalmCoordinator, accessory: WindcalmAccessory):
        super().__init__(coordinator, accessory, "fan")

    @property
    def is_on(self) -> bool | None:
        value = self._value(Characteristic.FAN_ON)
        return None if value is None else bool(value)

    @property
    def percentage(self) -> int | None:
        value = self._value(Characteristic.FAN_SPEED)
        if value is None:
            return None
        return ranged_value_to_percentage(SPEED_RANGE, _level_from_speed(value))

    @property
    def current_direction(self) -> str | None:
        value = self._value(Characteristic.FAN_DIRECTION)
        if value is None:
            return None
        return DIRECTION_FORWARD if value == RotationDirection.CLOCKWISE else DIRECTION_REVERSE

    async def async_turn_on(
        self,
        percentage: int | None = None,
        preset_mode: str | None = None,
        **kwargs,
    ) -> None:
        writes = [lambda: self.accessory.async_handle_fan_on(True)]
        optimistic: dict[Characteristic, object] = {Characteristic.FAN_ON: True}
        if percentage:
            speed = _speed_from_ha_percentage(percentage)
            writes.append(lambda: self.accessory.async_handle_fan_speed(speed))
            optimistic[Characteristic.FAN_SPEED] = speed
        await self._async_write(writes, optimistic)

    async def async_turn_off(self, **kwargs) -> None:
        # Power off keeps the speed level on the device
        await self._async_write(
            [lambda: self.accessory.async_handle_fan_on(False)],
            {Characteristic.FAN_ON: False},
        )

    async def async_set_percentage(self, percentage: int) -> None:
        if percentage == 0:
            await self.async_turn_off()
            return
        speed = _speed_from_ha_percentage(percentage)
        await self._async_write(
            [lambda: self.accessory.async_handle_fan_speed(speed)],
            {Characteristic.FAN_SPEED: speed},
        )

    async def async_set_direction(self, direction: str) -> None:
        rotation = _DIRECTION_TO_ROTATION.get(direction, RotationDirection.CLOCKWISE)
        await self._async_write(
            [lambda: self.accessory.async_handle_fan_direction(rotation)],
            {Characteristic.FAN_DIRECTION: rotation},
        )

    @property
    def icon(self) -> str | None:
        return "mdi:ceiling-fan"
