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
from typing import Any

from homeassistant.core import HomeAssistant
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from .accessory import WindcalmAccessory
from .const import DEFAULT_POLL_SECS
from .exceptions import WindcalmError

SCAN_INTERVAL = timedelta(seconds=DEFAULT_POLL_SECS)


class WindcalmCoordinator(DataUpdateCoordinator[dict[str, Any]]):
    def __init__(self, hass: HomeAssistant, accessory: WindcalmAccessory):
        super().__init__(
            hass,
            logger=logging.getLogger(__name__),
            name="windcalm",
            update_interval=SCAN_INTERVAL,
        )
        self.accessory = accessory

    async def _async_update_data(self) -> dict[str, Any]:
        if self.logger.isEnabledFor(logging.DEBUG):
            trigger = "timer" if self.update_interval else "manual"
            self.logger.debug(
                "poll sync start trigger=%s interval=%s state=%s",
                trigger,
                self.update_interval,
                self.accessory.device.state.value,
            )
        if not self.accessory.connected:
            try:
                await self.accessory.async_reconnect()
            except WindcalmError as err:
                raise UpdateFailed(f"Reconnect to {self.accessory.name} failed: {err}") from err

        try:
            # One tinytuya session at a time while polling
            snapshot = await self.accessory.async_fetch_all(sequential=True)
        except WindcalmError as err:
            raise UpdateFailed(f"Status fetch from {self.accessory.name} failed: {err}") from err

        current = self.data or {}
        if current and current != snapshot and self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug("poll mismatch changed_keys=%s", _changed_keys(current, snapshot))
        return snapshot


def _changed_keys(prev: dict[str, Any], new: dict[str, Any]) -> list[str]:
    changed = {k for k in set(prev) | set(new) if prev.get(k) != new.get(k)}
    return sorted(changed)
