"""Health tracking of one connection to a remote endpoint."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional


@dataclass(frozen=True)
class HealthPolicy:
    """Thresholds deciding when an endpoint is blocked and when it is retried.

    Intervals are in whole seconds.
    """

    fail_interval: int = 5
    fail_n: int = 5
    check_time: int = 60
    over_n: int = 2
    fail_ratio: float = 0.5
    try_time_interval: int = 30


def _now_seconds() -> int:
    return int(time.time())


@dataclass
class AdapterHealth:
    """Counts sends, successes and failures and decides whether the endpoint is usable.

    ``reconnect`` is called when a blocked endpoint is due for another try;
    an exception from it keeps the endpoint blocked.
    """

    policy: HealthPolicy = field(default_factory=HealthPolicy)
    reconnect: Optional[Callable[[], None]] = None
    clock: Callable[[], int] = _now_seconds
    send_count: int = 0
    success_count: int = 0
    fail_count: int = 0
    last_fail_count: int = 0
    status: bool = True
    last_success_time: int = 0
    last_block_time: int = 0
    last_check_time: int = 0
    last_keep_alive_time: int = 0
    closed: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def send_add(self) -> None:
        """Count a request sent."""
        with self._lock:
            self.send_count += 1

    def success_add(self) -> None:
        """Count a successful request and clear the run of consecutive failures."""
        now = int(self.clock())
        with self._lock:
            self.last_success_time = now
            self.success_count += 1
            self.last_fail_count = 0

    def fail_add(self) -> None:
        """Count a failed request."""
        with self._lock:
            self.last_fail_count += 1
            self.fail_count += 1

    def reset(self) -> None:
        """Clear all counters and mark the endpoint healthy again."""
        now = int(self.clock())
        with self._lock:
            self.send_count = 0
            self.success_count = 0
            self.fail_count = 0
            self.last_fail_count = 0
            self.last_block_time = now
            self.last_check_time = now
            self.last_keep_alive_time = now
            self.status = True

    def close(self) -> None:
        """Stop tracking; a closed endpoint is never checked again."""
        with self._lock:
            self.closed = True

    def _fail_ratio(self) -> float:
        if self.send_count == 0:
            return float("inf")
        return self.fail_count / self.send_count

    def _block(self, now: int) -> tuple[bool, bool]:
        self.status = False
        self.last_block_time = now
        return True, False

    def check_active(self) -> tuple[bool, bool]:
        """Re-evaluate health and return (just_blocked, needs_probe).

        ``just_blocked`` is true the moment a healthy endpoint is blocked;
        ``needs_probe`` is true when a blocked endpoint reconnected and
        should be tried with a request.
        """
        with self._lock:
            if self.closed:
                return False, False
            now = int(self.clock())
            policy = self.policy
            if self.status:
                if (
                    now - self.last_success_time >= policy.fail_interval
                    and self.last_fail_count >= policy.fail_n
                ):
                    return self._block(now)
                if now - self.last_check_time >= policy.check_time:
                    if (
                        self.fail_count >= policy.over_n
                        and self._fail_ratio() >= policy.fail_ratio
                    ):
                        return self._block(now)
                    self.last_check_time = now
                return False, False

            if now - self.last_block_time < policy.try_time_interval:
                return False, False
            self.last_block_time = now

        if self.reconnect is not None:
            try:
                self.reconnect()
            except Exception:
                return False, False
        return False, True