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

from unittest.mock import patch

import pytest
from homeassistant import config_entries, data_entry_flow
from homeassistant.core import HomeAssistant
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.windcalm.const import DOMAIN, OPTION_POLL_SECS
from custom_components.windcalm.exceptions import DeviceError

USER_INPUT = {"name": "Living Room", "id": "test-device", "key": "0123456789abcdef"}


@pytest.fixture
def bypass_setup():
    with patch("custom_components.windcalm.async_setup_entry", return_value=True):
        yield


async def test_user_flow_creates_entry(hass: HomeAssistant, patch_device, bypass_setup) -> None:
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )
    assert result["type"] == data_entry_flow.FlowResultType.FORM
    assert result["step_id"] == "user"

    result = await hass.config_entries.flow.async_configure(
        result["flow_id"], {**USER_INPUT, "id": " test-device ", "host": ""}
    )

    assert result["type"] == data_entry_flow.FlowResultType.CREATE_ENTRY
    assert result["title"] == "Living Room"
    assert result["data"] == {
        "name": "Living Room",
        "id": "test-device",
        "key": "0123456789abcdef",
        "protocol_version": "3.3",
    }
    assert result["result"].unique_id == "test-device"
    # Validation connection is released
    assert patch_device.started == 1
    assert patch_device.disconnected


async def test_user_flow_keeps_host(hass: HomeAssistant, patch_device, bypass_setup) -> None:
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )
    result = await hass.config_entries.flow.async_configure(
        result["flow_id"], {**USER_INPUT, "host": "10.0.0.5", "protocol_version": "3.4"}
    )

    assert result["type"] == data_entry_flow.FlowResultType.CREATE_ENTRY
    assert result["data"]["host"] == "10.0.0.5"
    assert result["data"]["protocol_version"] == "3.4"


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (DeviceError("Network Error: Device Unreachable", "905"), "cannot_connect"),
        (RuntimeError("boom"), "unknown"),
    ],
)
async def test_user_flow_connection_errors(
    hass: HomeAssistant, patch_device, bypass_setup, error, expected
) -> None:
    patch_device.start_error = error
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )
    result = await hass.config_entries.flow.async_configure(result["flow_id"], USER_INPUT)

    assert result["type"] == data_entry_flow.FlowResultType.FORM
    assert result["errors"] == {"base": expected}
    assert patch_device.disconnected

    # Recover once the device is reachable
    patch_device.start_error = None
    result = await hass.config_entries.flow.async_configure(result["flow_id"], USER_INPUT)
    assert result["type"] == data_entry_flow.FlowResultType.CREATE_ENTRY


async def test_user_flow_blank_credentials(hass: HomeAssistant, patch_device, bypass_setup) -> None:
    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )
    result = await hass.config_entries.flow.async_configure(
        result["flow_id"], {**USER_INPUT, "id": "   "}
    )

    assert result["type"] == data_entry_flow.FlowResultType.FORM
    assert result["errors"] == {"base": "missing_credentials"}
    assert patch_device.started == 0


async def test_user_flow_duplicate_aborts(hass: HomeAssistant, patch_device, bypass_setup) -> None:
    MockConfigEntry(domain=DOMAIN, data=dict(USER_INPUT), unique_id="test-device").add_to_hass(
        hass
    )

    result = await hass.config_entries.flow.async_init(
        DOMAIN, context={"source": config_entries.SOURCE_USER}
    )
    result = await hass.config_entries.flow.async_configure(result["flow_id"], USER_INPUT)

    assert result["type"] == data_entry_flow.FlowResultType.ABORT
    assert result["reason"] == "already_configured"
    # Duplicate is caught before the device is contacted
    assert patch_device.started == 0


@pytest.mark.parametrize(("submitted", "stored"), [(60, 60), (3, 5), (0, 0), (600, 600)])
async def test_options_flow_poll_interval(
    hass: HomeAssistant, bypass_setup, submitted: int, stored: int
) -> None:
    entry = MockConfigEntry(domain=DOMAIN, data=dict(USER_INPUT), unique_id="test-device")
    entry.add_to_hass(hass)

    result = await hass.config_entries.options.async_init(entry.entry_id)
    assert result["type"] == data_entry_flow.FlowResultType.FORM
    assert result["step_id"] == "init"

    result = await hass.config_entries.options.async_configure(
        result["flow_id"], {OPTION_POLL_SECS: submitted}
    )

    assert result["type"] == data_entry_flow.FlowResultType.CREATE_ENTRY
    assert entry.options[OPTION_POLL_SECS] == stored
