# wishmatch/storage/parser_log.py

"""Bounded in-memory log of recent parser activity.

The buffer keeps the newest ``Settings.LOG_BUFFER_SIZE`` entries and
evicts the oldest first.  One instance exists per process: obtain it
with :meth:`ParserLog.instance` and drop it with :meth:`ParserLog.reset`
(tests do this between cases).  :class:`ParserLogHandler` feeds it from
the standard ``logging`` tree so modules never touch the buffer directly.
"""

import json
import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from wishmatch.config.settings import Settings

_LEVEL_NAMES: dict[int, str] = {
    logging.DEBUG: "info",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}

VALID_LEVELS = frozenset({"info", "success", "warning", "error"})


@dataclass
class LogEntry:
    """A single parser log line."""

    timestamp: str
    level: str
    message: str
    data: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialise for JSON output."""
        return {
            "timestamp": self.timestamp,
            "level": self.level,
            "message": self.message,
            "data": self.data,
        }


class ParserLog:
    """Thread-safe ring buffer of :class:`LogEntry` objects."""

    _instance: "ParserLog | None" = None
    _instance_lock = threading.Lock()

    def __init__(self, capacity: int | None = None) -> None:
        size = capacity if capacity is not None else Settings.LOG_BUFFER_SIZE
        if size < 1:
            msg = f"capacity must be positive, got {size}"
            raise ValueError(msg)
        self.capacity = size
        self._entries: deque[LogEntry] = deque(maxlen=size)
        self._lock = threading.Lock()

    @classmethod
    def instance(cls) -> "ParserLog":
        """Return the process-wide buffer, creating it on first use."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Discard the process-wide buffer."""
        with cls._instance_lock:
            cls._instance = None

    def append(
        self,
        message: str,
        level: str = "info",
        data: Any = None,
    ) -> LogEntry:
        """Record a message, evicting the oldest entry when full."""
        if level not in VALID_LEVELS:
            level = "info"
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            message=message,
            data=(
                json.dumps(data, ensure_ascii=False, default=str)
                if data is not None
                else None
            ),
        )
        with self._lock:
            self._entries.append(entry)
        return entry

    def entries(self) -> list[LogEntry]:
        """All buffered entries, oldest first."""
        with self._lock:
            return list(self._entries)

    def last(self, n: int) -> list[LogEntry]:
        """The newest *n* entries, oldest first."""
        if n <= 0:
            return []
        with self._lock:
            return list(self._entries)[-n:]

    def clear(self) -> int:
        """Empty the buffer and return how many entries were dropped."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class ParserLogHandler(logging.Handler):
    """Route ``logging`` records into the process-wide :class:`ParserLog`.

    Records may carry ``parser_level`` (e.g. ``"success"``) and
    ``parser_data`` through ``extra=`` to refine the entry.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = getattr(record, "parser_level", None) or (
                _LEVEL_NAMES.get(record.levelno, "info")
            )
            ParserLog.instance().append(
                record.getMessage(),
                level=level,
                data=getattr(record, "parser_data", None),
            )
        except Exception:
            self.handleError(record)
