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
from enum import IntEnum

DOMAIN = "windcalm"
PLATFORMS = ["fan", "light"]

CONF_DEVICE_ID = "id"
CONF_LOCAL_KEY = "key"
CONF_HOST = "host"
CONF_PROTOCOL_VERSION = "protocol_version"

DEFAULT_NAME = "Windcalm DC"
DEFAULT_PROTOCOL_VERSION = "3.3"
PROTOCOL_VERSIONS = ["3.1", "3.3", "3.4", "3.5"]

MANUFACTURER = "CREATE"
MODEL = "Windcalm DC"

# Data point indices
DP_FAN_ON = 60
DP_FAN_SPEED = 62
DP_FAN_DIRECTION = 63
DP_LIGHT_ON = 20
DP_LIGHT_COLOR_TEMP = 23

# Per-attempt timeouts of the data point access wrapper
GET_TIMEOUT_SEC = 0.5
SET_TIMEOUT_SEC = 0.25

# tinytuya session settings; retries are handled by the data point wrapper
TUYA_CONNECTION_TIMEOUT_SEC = 5
TUYA_CONNECTION_RETRY_LIMIT = 1
TUYA_CONNECTION_RETRY_DELAY_SEC = 0

# tinytuya error codes that mean the device is unreachable
TUYA_ERR_CONNECT = "901"
TUYA_ERR_OFFLINE = "905"
CONNECTION_ERROR_CODES = {TUYA_ERR_CONNECT, TUYA_ERR_OFFLINE}

SLOW_RESPONSE_WARNING_MS = 5000

# Polling interval (seconds); 0 disables polling
OPTION_POLL_SECS = "poll_seconds"
DEFAULT_POLL_SECS = 30
MIN_POLL_SECS = 5
MAX_POLL_SECS = 600

# Fan speed levels reported by the device (1..6)
SPEED_LEVELS = 6

# Device color temperature range and the mired range exposed to the host
DEVICE_TEMP_RANGE = (30, 1000)
MIRED_RANGE = (140, 500)

DEVICE_DIRECTION_FORWARD = "forward"
DEVICE_DIRECTION_REVERSE = "reverse"


class RotationDirection(IntEnum):
    """Rotation direction as numbered by HomeKit."""

    CLOCKWISE = 0
    COUNTER_CLOCKWISE = 1


def convert_range(
    value: float, source: tuple[float, float], target: tuple[float, float]
) -> float:
    """Linearly remap value from the source range onto the target range."""
    return (value - source[0]) * (target[1] - target[0]) / (source[1] - source[0]) + target[0]


def speed_level_to_percentage(level: int | float) -> float:
    """Map a device speed level (1-6) to a 0-100 percentage."""
    return level * 100 / SPEED_LEVELS


def percentage_to_speed_level(percentage: int | float) -> int:
    """Map a 0-100 percentage to a device speed level (1-6).

    The device rejects speed 0; the fan is stopped through its power data point.
    """
    level = math.floor(percentage * SPEED_LEVELS / 100)
    if level == 0:
        level = 1
    return level


def direction_from_device(value: object) -> RotationDirection:
    if value == DEVICE_DIRECTION_FORWARD:
        return RotationDirection.CLOCKWISE
    return RotationDirection.COUNTER_CLOCKWISE


def direction_to_device(direction: int) -> str:
    # Not the inverse of direction_from_device; kept as the device has always
    # been driven this way.
    if direction == RotationDirection.COUNTER_CLOCKWISE:
        return DEVICE_DIRECTION_FORWARD
    return DEVICE_DIRECTION_REVERSE


def device_temp_to_mired(value: int | float) -> float:
    """Map the device color temperature value onto the mired range."""
    # Firmware reports its lowest setting (30) as 0, but 0 is also accepted on write
    value = max(value, DEVICE_TEMP_RANGE[0])
    return convert_range(value, DEVICE_TEMP_RANGE, MIRED_RANGE)


def mired_to_device_temp(mired: int | float) -> float:
    """Map a mired value onto the device color temperature range."""
    return convert_range(mired, MIRED_RANGE, DEVICE_TEMP_RANGE)


def clamp_mired(value: int | float) -> int:
    """Clamp mired to the range supported by the light."""
    return max(MIRED_RANGE[0], min(MIRED_RANGE[1], int(value)))


def clamp_poll_seconds(value: int | float | str) -> int:
    """Clamp poll interval seconds; 0 keeps polling disabled."""
    secs = int(value)
    if secs == 0:
        return 0
    return max(MIN_POLL_SECS, min(MAX_POLL_SECS, secs))
