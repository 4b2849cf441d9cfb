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
from typing import Any

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.const import CONF_NAME

from .accessory import WindcalmAccessory
from .const import (
    CONF_DEVICE_ID,
    CONF_HOST,
    CONF_LOCAL_KEY,
    CONF_PROTOCOL_VERSION,
    DEFAULT_NAME,
    DEFAULT_POLL_SECS,
    DEFAULT_PROTOCOL_VERSION,
    DOMAIN,
    MAX_POLL_SECS,
    OPTION_POLL_SECS,
    PROTOCOL_VERSIONS,
    clamp_poll_seconds,
)
from .exceptions import DeviceError, WindcalmConfigError

DATA_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_NAME, default=DEFAULT_NAME): str,
        vol.Required(CONF_DEVICE_ID): str,
        vol.Required(CONF_LOCAL_KEY): str,
        vol.Optional(CONF_HOST): str,
        vol.Optional(CONF_PROTOCOL_VERSION, default=DEFAULT_PROTOCOL_VERSION): vol.In(
            PROTOCOL_VERSIONS
        ),
    }
)

_LOGGER = logging.getLogger(__name__)


class WindcalmConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    VERSION = 1

    async def async_step_user(self, user_input: dict[str, Any] | None = None):
        if user_input is None:
            return self.async_show_form(step_id="user", data_schema=DATA_SCHEMA)

        data = {k: v.strip() if isinstance(v, str) else v for k, v in user_input.items()}
        if not data.get(CONF_HOST):
            data.pop(CONF_HOST, None)

        errors: dict[str, str] = {}
        if data.get(CONF_DEVICE_ID):
            # Abort duplicates before contacting the device
            await self.async_set_unique_id(data[CONF_DEVICE_ID])
            self._abort_if_unique_id_configured()

        accessory: WindcalmAccessory | None = None
        try:
            accessory = WindcalmAccessory(self.hass, data)
            await accessory.async_start()
        except WindcalmConfigError:
            errors["base"] = "missing_credentials"
        except DeviceError as exc:
            _LOGGER.error("Unable to reach Windcalm device: %s", exc)
            if _LOGGER.isEnabledFor(logging.DEBUG):
                _LOGGER.debug("Device error details: code=%s", exc.code)
            errors["base"] = "cannot_connect"
        except Exception as exc:
            _LOGGER.error(
                "Unexpected error during setup: %s: %s",
                type(exc).__name__,
                str(exc),
            )
            if _LOGGER.isEnabledFor(logging.DEBUG):
                _LOGGER.debug("Full exception:", exc_info=True)
            errors["base"] = "unknown"
        finally:
            # Always release the validation connection
            if accessory is not None:
                try:
                    await accessory.async_stop()
                except Exception as exc:
                    if _LOGGER.isEnabledFor(logging.DEBUG):
                        _LOGGER.debug(
                            "Exception during accessory stop: %s: %s",
                            type(exc).__name__,
                            str(exc),
                        )

        if errors:
            return self.async_show_form(
                step_id="user",
                data_schema=self.add_suggested_values_to_schema(DATA_SCHEMA, user_input),
                errors=errors,
            )

        return self.async_create_entry(title=data.get(CONF_NAME) or DEFAULT_NAME, data=data)

    @staticmethod
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> config_entries.OptionsFlow:
        return WindcalmOptionsFlowHandler(config_entry)


class WindcalmOptionsFlowHandler(config_entries.OptionsFlow):
    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        # self.config_entry is set by Home Assistant on newer cores
        self._entry = config_entry

    async def async_step_init(self, user_input: dict[str, Any] | None = None):
        if user_input is not None:
            raw_secs = user_input.get(OPTION_POLL_SECS, DEFAULT_POLL_SECS)
            secs = clamp_poll_seconds(raw_secs)
            if _LOGGER.isEnabledFor(logging.DEBUG):
                if raw_secs != secs:
                    _LOGGER.debug("options poll interval clamped: %s -> %s", raw_secs, secs)
                else:
                    _LOGGER.debug("options poll interval set: %s", secs)
            return self.async_create_entry(
                title="Windcalm Options",
                data={OPTION_POLL_SECS: secs},
            )

        current = self._entry.options.get(OPTION_POLL_SECS, DEFAULT_POLL_SECS)
        schema = vol.Schema(
            {
                vol.Optional(
                    OPTION_POLL_SECS,
                    default=current,
                ): vol.All(vol.Coerce(int), vol.Range(min=0, max=MAX_POLL_SECS)),
            }
        )
        return self.async_show_form(step_id="init", data_schema=schema)
