# Copyright 2026 Pramod Kumar Voola
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# -----------------------------------------------------------------------------
# RUN CONTEXT - CANCELLATION & DEADLINES
# -----------------------------------------------------------------------------
# Every network operation of a publish run receives a RunContext. It carries
# an optional absolute deadline and a cancellation flag. Cancelling stops the
# run before its next call and aborts a download in progress (see interrupt);
# remote state already created is left as-is.
# -----------------------------------------------------------------------------

import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator

from winget_publisher.domain.errors import PublishCancelled


class RunContext:
    """
    Cancellation signal and deadline for one publish run.

    Usage:
        ctx = RunContext(timeout=900)
        ctx.check()                  # raises PublishCancelled when done
        requests.get(url, timeout=ctx.timeout(60))
    """

    def __init__(self, timeout: float | None = None) -> None:
        """
        Args:
            timeout: Seconds from now until the run is abandoned (None = no deadline).
        """
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._aborts: list[Callable[[], None]] = []

    def cancel(self) -> None:
        """Request cancellation. Safe to call from any thread."""
        self._cancelled.set()
        with self._lock:
            aborts = list(self._aborts)
        for abort in aborts:
            abort()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self) -> None:
        """Raise PublishCancelled if the run was cancelled or is past its deadline."""
        if self._cancelled.is_set():
            raise PublishCancelled("publish run cancelled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise PublishCancelled("publish run deadline exceeded")

    def timeout(self, default: float) -> float:
        """The per-call timeout: default, capped by what is left of the deadline."""
        remaining = self.remaining()
        if remaining is None:
            return default
        return min(default, remaining)

    def sleep(self, seconds: float) -> None:
        """
        Wait without blocking cancellation.

        Raises:
            PublishCancelled: If cancelled (or the deadline passes) while waiting.
        """
        self.check()
        self._cancelled.wait(self.timeout(seconds))
        self.check()

    @contextmanager
    def interrupt(self, abort: Callable[[], None]) -> Iterator[None]:
        """
        Call abort() if the run is cancelled while the block executes.

        Used to unblock a network read in progress; abort runs on the
        thread that calls cancel().
        """
        with self._lock:
            self._aborts.append(abort)
        try:
            if self.cancelled:
                abort()
            yield
        finally:
            with self._lock:
                self._aborts.remove(abort)
