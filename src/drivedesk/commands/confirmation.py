"""Two-step confirmation for destructive commands.

    Idle ──DELETE x──▶ AwaitingConfirm ──DELETE x CONFIRM──▶ Executed | Error

Stateless mode (window == 0, the default) keeps no server-side record: the
confirmation token travels in the second message, and any message matching
``DELETE <path> CONFIRM`` executes, whether or not a request came first.

Keyed mode (window > 0) remembers each requested path until it expires; a
confirm is only honored while a live record for the same path exists, and
consumes it.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal


@dataclass(frozen=True)
class PendingConfirmation:
    target_path: str
    operation: Literal["delete"] = "delete"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def confirmation_text(self) -> str:
        return confirmation_text(self.target_path)


def confirmation_text(path: str) -> str:
    """The exact message that confirms deleting `path`."""
    return f"DELETE {path} CONFIRM"


class ConfirmationGate:
    """Decides whether a DELETE ... CONFIRM may run now."""

    def __init__(self, window: float = 0, clock: Callable[[], float] = time.monotonic) -> None:
        self.window = window
        self._clock = clock
        self._pending: dict[str, float] = {}  # casefolded path → expiry
        self._lock = threading.Lock()

    @property
    def stateless(self) -> bool:
        return self.window <= 0

    def request(self, path: str) -> PendingConfirmation:
        """Register a delete request. No store mutation happens here."""
        pending = PendingConfirmation(target_path=path)
        if not self.stateless:
            now = self._clock()
            with self._lock:
                self._prune(now)
                self._pending[path.casefold()] = now + self.window
        return pending

    def allow(self, path: str) -> bool:
        """True when a confirm for `path` should execute."""
        if self.stateless:
            return True
        now = self._clock()
        with self._lock:
            self._prune(now)
            return self._pending.pop(path.casefold(), None) is not None

    def pending_count(self) -> int:
        with self._lock:
            self._prune(self._clock())
            return len(self._pending)

    def _prune(self, now: float) -> None:
        for key in [k for k, expiry in self._pending.items() if expiry <= now]:
            del self._pending[key]
