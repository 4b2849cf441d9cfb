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

from homeassistant.components.light import ATTR_COLOR_TEMP_KELVIN, ColorMode, LightEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.util import color as color_util

from .accessory import Characteristic, WindcalmAccessory
from .const import MIRED_RANGE, clamp_mired
from .coordinator import WindcalmCoordinator
from .entity import WindcalmEntity

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
):
    shared = entry.runtime_data
    coordinator: WindcalmCoordinator = shared["coordinator"]
    accessory: WindcalmAccessory = shared["accessory"]
    async_add_entities([WindcalmLight(coordinator, accessory)])


class WindcalmLight(WindcalmEntity, LightEntity):
    _attr_name = "Light"
    _attr_supported_color_modes = {ColorMode.COLOR_TEMP}
    _attr_color_mode = ColorMode.COLOR_TEMP
    # Warmest light is the highest mired value
    _attr_min_color_temp_kelvin = color_util.color_temperature_mired_to_kelvin(MIRED_RANGE[1])
    _attr_max_color_temp_kelvin = color_util.color_temperature_mired_to_kelvin(MIRED_RANGE[0])

    def __init__(self, coordinator: WindcalmCoordinator, accessory: WindcalmAccessory):
        super().__init__(coordinator, accessory, "light")

    @property
    def is_on(self) -> bool | None:
        value = self._value(Characteristic.LIGHT_ON)
        return None if value is None else bool(value)

    @property
    def color_temp_kelvin(self) -> int | None:
        mired = self._value(Characteristic.LIGHT_COLOR_TEMPERATURE)
        if mired is None:
            return None
        kelvin = color_util.color_temperature_mired_to_kelvin(mired)
        return max(self.min_color_temp_kelvin, min(self.max_color_temp_kelvin, kelvin))

    async def async_turn_on(self, **kwargs) -> None:
        writes = [lambda: self.accessory.async_handle_light_on(True)]
        optimistic: dict[Characteristic, object] = {Characteristic.LIGHT_ON: True}
        kelvin = kwargs.get(ATTR_COLOR_TEMP_KELVIN)
        if kelvin is not None:
            mired = clamp_mired(color_util.color_temperature_kelvin_to_mired(kelvin))
            if _LOGGER.isEnabledFor(logging.DEBUG):
                _LOGGER.debug(
                    "color temp d=%s kelvin=%s mired=%s", self.accessory.device_id, kelvin, mired
                )
            writes.append(lambda: self.accessory.async_handle_light_color_temperature(mired))
            optimistic[Characteristic.LIGHT_COLOR_TEMPERATURE] = mired
        await self._async_write(writes, optimistic)

    async def async_turn_off(self, **kwargs) -> None:
        await self._async_write(
            [lambda: self.accessory.async_handle_light_on(False)],
            {Characteristic.LIGHT_ON: False},
        )

    @property
    def icon(self) -> str | None:
        return "mdi:ceiling-light"
