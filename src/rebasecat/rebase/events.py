"""Append-only progress log of a rebase run."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from rebasecat.core.log import logger
from rebasecat.rebase.context import Stage


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    stage: Stage
    details: str
    progress: int
    files: tuple[str, ...] = field(default_factory=tuple)
    errors: tuple[str, ...] = field(default_factory=tuple)


LogSubscriber = Callable[[LogEntry], None]


class EventLog:
    """Ordered record of every transition and significant step.

    Entries are mirrored to the application logger and forwarded to
    an optional subscriber. Nothing in the workflow reads them back.
    """

    def __init__(self, on_log: LogSubscriber | None = None):
        self._entries: tuple[LogEntry, ...] = ()
        self._on_log = on_log

    @property
    def entries(self) -> tuple[LogEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def append(
        self,
        stage: Stage,
        details: str,
        progress: int,
        files: list[str] | tuple[str, ...] = (),
        errors: list[str] | tuple[str, ...] = (),
    ) -> LogEntry:
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc),
            stage=stage,
            details=details,
            progress=max(0, min(100, progress)),
            files=tuple(files),
            errors=tuple(errors),
        )
        self._entries = self._entries + (entry,)

        if entry.errors:
            logger.error(
                details,
                stage=str(stage),
                progress=entry.progress,
                files=list(entry.files),
                errors=list(entry.errors),
            )
        else:
            logger.info(
                details,
                stage=str(stage),
                progress=entry.progress,
                files=list(entry.files),
            )

        if self._on_log is not None:
            try:
                self._on_log(entry)
            except Exception as e:
                logger.error(f"Log subscriber failed: {e}")

        return entry


__all__ = ["LogEntry", "EventLog", "LogSubscriber"]
