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

from homeassistant.helpers.device_registry import DeviceInfo

from .accessory import WindcalmAccessory
from .const import DOMAIN


def create_device_info(accessory: WindcalmAccessory) -> DeviceInfo:
    """Build DeviceInfo from the accessory information service."""
    info = accessory.information
    return DeviceInfo(
        identifiers={(DOMAIN, accessory.device_id)},
        manufacturer=info["manufacturer"],
        model=info["model"],
        name=info["name"],
        serial_number=info["serial_number"],
    )


def connection_attrs(accessory: WindcalmAccessory) -> dict[str, object] | None:
    """Return selected connection attributes (host, protocol_version)."""
    device = accessory.device
    attrs: dict[str, object] = {}
    host = device.host
    if isinstance(host, str) and host:
        attrs["host"] = host
        attrs["protocol_version"] = str(device.protocol_version)
    return attrs or None
