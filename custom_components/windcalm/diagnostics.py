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

"""Diagnostics support for Windcalm."""

from __future__ import annotations

from typing import Any

from homeassistant.components.diagnostics import async_redact_data
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import CONF_LOCAL_KEY
from .metrics import ConnectionMetrics

TO_REDACT = {CONF_LOCAL_KEY}


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    runtime_data = entry.runtime_data
    accessory = runtime_data.get("accessory")
    coordinator = runtime_data.get("coordinator")

    diagnostics: dict[str, Any] = {
        "config_entry": {
            "entry_id": entry.entry_id,
            "title": entry.title,
            "version": entry.version,
            "data": async_redact_data(dict(entry.data), TO_REDACT),
            "options": dict(entry.options),
        },
        "home_assistant_version": getattr(hass.config, "version", "unknown"),
        "coordinator": {},
        "device": {},
        "connection_analysis": {},
    }

    if coordinator:
        diagnostics["coordinator"] = {
            "update_interval": (
                str(coordinator.update_interval) if coordinator.update_interval else None
            ),
            "last_update_success": coordinator.last_update_success,
            "snapshot": dict(coordinator.data) if coordinator.data else {},
        }

    if accessory:
        device = accessory.device
        diagnostics["device"] = {
            "state": device.state.value,
            "host": device.host,
            "protocol_version": device.protocol_version,
            "information": accessory.information,
        }
        diagnostics["connection_metrics"] = device.metrics.to_dict()
        diagnostics["connection_analysis"] = _analyze_connection_quality(device.metrics)

    return diagnostics


def _analyze_connection_quality(metrics: ConnectionMetrics) -> dict[str, Any]:
    """Analyze connection metrics and provide recommendations."""
    analysis: dict[str, Any] = {
        "quality": "unknown",
        "issues": [],
        "recommendations": [],
    }

    if not metrics.is_connected:
        analysis["quality"] = "disconnected"
        analysis["issues"].append("Not currently connected to the fan")
        analysis["recommendations"].append("Check that the fan is powered and on the same network")
        return analysis

    if metrics.total_requests == 0:
        analysis["quality"] = "no_data"
        analysis["issues"].append("No data point requests have been made yet")
        return analysis

    success_rate = 1.0 - metrics.failure_rate
    retry_rate = metrics.retry_rate

    if success_rate >= 0.95 and retry_rate < 0.1:
        analysis["quality"] = "excellent"
    elif success_rate >= 0.90 and retry_rate < 0.5:
        analysis["quality"] = "good"
    elif success_rate >= 0.75 and retry_rate < 1.0:
        analysis["quality"] = "fair"
    else:
        analysis["quality"] = "poor"

    if success_rate < 0.90:
        analysis["issues"].append(
            f"Low success rate: {success_rate:.1%} "
            f"({metrics.failed_requests}/{metrics.total_requests} failures)"
        )

    if retry_rate >= 0.5:
        analysis["issues"].append(
            f"Frequent retries: {metrics.timed_out_attempts} timed out attempts "
            f"for {metrics.total_requests} requests"
        )
        analysis["recommendations"].append(
            "Responses are often dropped - check the Wi-Fi signal strength near the fan"
        )

    if metrics.reconnects > 5:
        analysis["issues"].append(f"Frequent reconnections: {metrics.reconnects} reconnects")
        analysis["recommendations"].append(
            "Unstable connection - consider a static IP address for the fan"
        )

    return analysis
