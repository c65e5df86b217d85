"""Exactly-once completion tracking for asynchronous agent calls."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from rebasecat.core.log import logger

CompletionCallback = Callable[[bool, "str | None"], None]


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one dispatched agent call.

    ``value`` holds the awaited result when ``ok`` is true; ``error``
    describes the failure otherwise.
    """

    ok: bool
    value: Any = None
    error: str | None = None


class OperationTracker:
    """Counts in-flight operations and fires a terminal callback once.

    The counter never goes negative: a completion without a matching
    track() is clamped and logged. The callback fires the first time
    the counter drops to zero and never again, even if more
    operations are tracked afterwards.
    """

    def __init__(self, on_complete: CompletionCallback | None = None):
        self._lock = threading.Lock()
        self._pending = 0
        self._completed = False
        self._on_complete = on_complete

    @property
    def pending_ops(self) -> int:
        with self._lock:
            return self._pending

    @property
    def completed(self) -> bool:
        with self._lock:
            return self._completed

    def track(self) -> None:
        with self._lock:
            self._pending += 1

    def complete(self, success: bool, error: str | None = None) -> None:
        fire = False
        with self._lock:
            if self._pending == 0:
                logger.warn("Operation completed with none pending (clamped)")
            else:
                self._pending -= 1
            if self._pending == 0 and not self._completed:
                self._completed = True
                fire = True

        # Outside the lock so the callback may use the tracker
        if fire and self._on_complete is not None:
            self._on_complete(success, error)

    async def dispatch(
        self, operation: Awaitable[Any], timeout: float | None = None
    ) -> DispatchResult:
        """Track operation, await it and report how it ended.

        Exceptions and timeouts become a failed DispatchResult.
        Cancellation of the awaiting task still propagates.
        """
        self.track()
        try:
            if timeout:
                value = await asyncio.wait_for(operation, timeout)
            else:
                value = await operation
        except TimeoutError as e:
            error = f"timed out after {timeout} seconds" if timeout else str(e)
            result = DispatchResult(ok=False, error=error or "timed out")
        except asyncio.CancelledError:
            self.complete(False, "cancelled")
            raise
        except Exception as e:
            logger.debug(f"Dispatched operation raised {type(e).__name__}: {e}")
            result = DispatchResult(ok=False, error=str(e) or type(e).__name__)
        else:
            result = DispatchResult(ok=True, value=value)

        self.complete(result.ok, result.error)
        return result


__all__ = ["DispatchResult", "OperationTracker"]
