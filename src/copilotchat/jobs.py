"""Single-slot job identity.

Every ask call mints a job token and installs it as current.  Starting a
new call or calling ``stop`` replaces it, and the older call notices on its
next stream chunk that it has been superseded.  Nothing is cancelled
preemptively; the stale call just stops reading and discards its result.
"""

from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from typing import Iterator


class JobSlot:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: str | None = None

    @property
    def running(self) -> bool:
        with self._lock:
            return self._current is not None

    def start(self) -> str:
        job = uuid.uuid4().hex
        with self._lock:
            self._current = job
        return job

    def stop(self) -> bool:
        """Clear the current job; True if one was running."""
        with self._lock:
            if self._current is None:
                return False
            self._current = None
            return True

    def is_current(self, job: str) -> bool:
        with self._lock:
            return self._current == job

    def release(self, job: str) -> bool:
        """Clear the slot only if *job* still owns it."""
        with self._lock:
            if self._current != job:
                return False
            self._current = None
            return True

    @contextmanager
    def guard(self, job: str) -> Iterator[bool]:
        """Hold the slot while the body runs, yielding whether *job* is current.

        No other job can start until the body finishes, so a check-then-write
        on shared state cannot interleave with a newer call.
        """
        with self._lock:
            yield self._current == job
