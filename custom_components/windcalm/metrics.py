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

"""Connection metrics for data point access."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(slots=True)
class ConnectionMetrics:
    """Track data point request health and latency."""

    # Logical requests (one per get/set call)
    total_requests: int = 0
    failed_requests: int = 0

    # Attempts abandoned after the per-attempt timeout
    timed_out_attempts: int = 0
    late_results_discarded: int = 0

    # Latency tracking (milliseconds)
    recent_latencies: list[float] = field(default_factory=list)
    max_latency_samples: int = 20

    # Connection statistics
    reconnects: int = 0
    device_errors: int = 0

    is_connected: bool = False
    consecutive_failures: int = 0

    def record_request(self, success: bool, latency_ms: float | None = None) -> None:
        """Record the outcome of a logical request."""
        self.total_requests += 1
        if not success:
            self.failed_requests += 1
            self.consecutive_failures += 1
        else:
            self.consecutive_failures = 0

        if latency_ms is not None:
            self.recent_latencies.append(latency_ms)
            if len(self.recent_latencies) > self.max_latency_samples:
                self.recent_latencies.pop(0)

    def record_timeout(self) -> None:
        """Record an attempt that timed out and was retried."""
        self.timed_out_attempts += 1

    def record_late_result(self) -> None:
        self.late_results_discarded += 1

    def record_reconnect(self) -> None:
        self.reconnects += 1

    def record_device_error(self) -> None:
        self.device_errors += 1

    @property
    def avg_latency_ms(self) -> float:
        """Calculate average latency from recent samples."""
        if not self.recent_latencies:
            return 0.0
        return sum(self.recent_latencies) / len(self.recent_latencies)

    @property
    def max_latency_ms(self) -> float:
        """Get maximum latency from recent samples."""
        if not self.recent_latencies:
            return 0.0
        return max(self.recent_latencies)

    @property
    def failure_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.failed_requests / self.total_requests

    @property
    def retry_rate(self) -> float:
        """Average number of timed out attempts per logical request."""
        if self.total_requests == 0:
            return 0.0
        return self.timed_out_attempts / self.total_requests

    def to_dict(self) -> dict[str, Any]:
        """Export metrics as dictionary for diagnostics."""
        data = asdict(self)
        data["avg_latency_ms"] = round(self.avg_latency_ms, 2)
        data["max_latency_ms"] = round(self.max_latency_ms, 2)
        data["failure_rate"] = round(self.failure_rate, 3)
        data["retry_rate"] = round(self.retry_rate, 3)
        return data
