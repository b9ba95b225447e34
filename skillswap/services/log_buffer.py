"""
skillswap.services.log_buffer — Recent Activity Log for Moderators
===================================================================

A bounded, thread-safe buffer of recent log records, attached to the
root logger when the API starts.  ``GET /api/admin/logs`` reads from it.
The buffer is per-process and is lost on restart; the durable record of
moderator actions is the ``admin_log`` table.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

DEFAULT_CAPACITY = 1000

_buffer: LogBuffer | None = None
_lock = threading.Lock()


@dataclass(frozen=True, slots=True)
class LogEntry:
    timestamp: str
    level: str
    logger: str
    message: str


class LogBuffer:
    """Ring buffer of :class:`LogEntry`; the oldest entries fall off."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(self, entry: LogEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def entries(
        self,
        *,
        tail: int = 100,
        level: str | None = None,
        logger_prefix: str | None = None,
    ) -> list[dict[str, str]]:
        """Newest-last list of at most *tail* entries at or above *level*."""
        threshold = logging.getLevelName(level.upper()) if level else 0
        if not isinstance(threshold, int):
            raise ValueError(f"Unknown log level: {level}")

        with self._lock:
            snapshot = list(self._entries)

        selected = [
            asdict(e) for e in snapshot
            if logging.getLevelName(e.level) >= threshold
            and (not logger_prefix or e.logger.startswith(logger_prefix))
        ]
        return selected[-tail:] if tail else selected

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class BufferHandler(logging.Handler):
    """Logging handler that copies each record into a :class:`LogBuffer`."""

    def __init__(self, buffer: LogBuffer, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.buffer = buffer

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.buffer.append(LogEntry(
                timestamp=datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                level=record.levelname,
                logger=record.name,
                message=self.format(record),
            ))
        except Exception:
            self.handleError(record)


def get_buffer() -> LogBuffer:
    """Return the process-wide buffer, creating it on first use."""
    global _buffer
    with _lock:
        if _buffer is None:
            _buffer = LogBuffer()
        return _buffer


def install_handler(level: int = logging.INFO) -> BufferHandler:
    """Attach a :class:`BufferHandler` to the root logger (once)."""
    root = logging.getLogger()
    for handler in root.handlers:
        if isinstance(handler, BufferHandler):
            return handler

    handler = BufferHandler(get_buffer(), level=level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    if root.level > level:
        root.setLevel(level)
    return handler


def get_logs(
    tail: int = 100,
    level: str | None = None,
    logger_prefix: str | None = None,
) -> list[dict[str, str]]:
    return get_buffer().entries(tail=tail, level=level, logger_prefix=logger_prefix)
