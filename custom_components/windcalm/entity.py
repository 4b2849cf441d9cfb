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
from collections.abc import Awaitable, Callable
from typing import Any

from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .accessory import Characteristic, WindcalmAccessory
from .const import DOMAIN
from .coordinator import WindcalmCoordinator
from .device_utils import connection_attrs, create_device_info

_LOGGER = logging.getLogger(__name__)


class WindcalmEntity(CoordinatorEntity[WindcalmCoordinator]):
    """Shared behavior for the fan and light entities."""

    _attr_has_entity_name = True

    def __init__(self, coordinator: WindcalmCoordinator, accessory: WindcalmAccessory, suffix: str):
        super().__init__(coordinator)
        self.accessory = accessory
        self._attr_unique_id = f"{DOMAIN}_{accessory.device_id}_{suffix}"

    @property
    def available(self) -> bool:
        return super().available and self.accessory.connected

    @property
    def device_info(self) -> DeviceInfo:
        return create_device_info(self.accessory)

    @property
    def extra_state_attributes(self) -> dict[str, object] | None:
        return connection_attrs(self.accessory)

    def _value(self, characteristic: Characteristic, default: Any = None) -> Any:
        data = self.coordinator.data or {}
        return data.get(characteristic, default)

    async def _async_write(
        self,
        writes: list[Callable[[], Awaitable[None]]],
        optimistic: dict[Characteristic, Any],
    ) -> None:
        """Run writes in order, then publish the written values.

        If a write fails, the previous snapshot is republished and the error
        is raised to the caller.
        """
        previous = dict(self.coordinator.data or {})
        try:
            for write in writes:
                await write()
        except Exception as exc:
            if _LOGGER.isEnabledFor(logging.DEBUG):
                _LOGGER.debug(
                    "write failed d=%s keys=%s error=%s",
                    self.accessory.device_id,
                    [str(k) for k in optimistic],
                    type(exc).__name__,
                )
            self.coordinator.async_set_updated_data(previous)
            raise
        merged = {**previous, **{str(k): v for k, v in optimistic.items()}}
        if _LOGGER.isEnabledFor(logging.DEBUG):
            _LOGGER.debug(
                "optimistic apply d=%s values=%s",
                self.accessory.device_id,
                {str(k): v for k, v in optimistic.items()},
            )
        self.coordinator.async_set_updated_data(merged)
