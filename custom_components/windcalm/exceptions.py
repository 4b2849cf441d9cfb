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

"""Exceptions raised by the Windcalm integration."""

from __future__ import annotations

from homeassistant.exceptions import HomeAssistantError


class WindcalmError(HomeAssistantError):
    """Base class for Windcalm errors."""


class WindcalmConfigError(WindcalmError):
    """Raised when the device id or local key is missing."""


class NotConnectedError(WindcalmError):
    """Raised when a data point is accessed while the device is not connected."""

    def __init__(self, message: str = "Not connected") -> None:
        super().__init__(message)


class DeviceError(WindcalmError):
    """Raised when tinytuya reports a failure for a device request."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code
