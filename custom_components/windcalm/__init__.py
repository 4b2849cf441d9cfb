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
from datetime import timedelta

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import ConfigEntryError, ConfigEntryNotReady
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.typing import ConfigType

from .accessory import WindcalmAccessory
from .const import DEFAULT_POLL_SECS, DOMAIN, OPTION_POLL_SECS, PLATFORMS
from .coordinator import WindcalmCoordinator
from .device import ConnectionState
from .exceptions import WindcalmConfigError, WindcalmError

_LOGGER = logging.getLogger(__name__)

# Integration is config-entry only (no YAML config)
CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)


async def async_setup(hass: HomeAssistant, config: ConfigType) -> bool:
    return True


def _poll_interval(secs: int) -> timedelta | None:
    return None if secs == 0 else timedelta(seconds=int(secs))


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    try:
        accessory = WindcalmAccessory(hass, entry.data)
    except WindcalmConfigError as err:
        raise ConfigEntryError(str(err)) from err

    try:
        await accessory.async_start()
    except WindcalmError as err:
        await accessory.async_stop()
        raise ConfigEntryNotReady(f"Unable to reach {accessory.name}: {err}") from err

    coordinator = WindcalmCoordinator(hass, accessory)
    secs = entry.options.get(OPTION_POLL_SECS, DEFAULT_POLL_SECS)
    coordinator.update_interval = _poll_interval(secs)
    if _LOGGER.isEnabledFor(logging.DEBUG):
        _LOGGER.debug(
            "setup interval=%s host=%s", coordinator.update_interval, accessory.device.host
        )

    @callback
    def _on_state(state: ConnectionState) -> None:
        # Availability follows the connection state
        coordinator.async_update_listeners()

    unsub_state = accessory.add_state_listener(_on_state)

    try:
        await coordinator.async_config_entry_first_refresh()
    except ConfigEntryNotReady:
        unsub_state()
        await accessory.async_stop()
        raise

    entry.runtime_data = {
        "accessory": accessory,
        "coordinator": coordinator,
    }
    entry.async_on_unload(unsub_state)

    async def _async_options_updated(hass: HomeAssistant, updated_entry: ConfigEntry) -> None:
        new_secs = updated_entry.options.get(OPTION_POLL_SECS, DEFAULT_POLL_SECS)
        old = coordinator.update_interval
        coordinator.update_interval = _poll_interval(new_secs)
        if _LOGGER.isEnabledFor(logging.DEBUG):
            _LOGGER.debug("interval changed old=%s new=%s", old, coordinator.update_interval)

    entry.async_on_unload(entry.add_update_listener(_async_options_updated))

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    unloaded = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unloaded:
        accessory: WindcalmAccessory = entry.runtime_data["accessory"]
        await accessory.async_stop()
    return unloaded
