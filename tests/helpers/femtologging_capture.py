"""Capture femtologging output for assertions on structured log lines."""

from __future__ import annotations

import contextlib
import dataclasses
import threading
import time
import typing as typ

from femtologging import get_logger


@dataclasses.dataclass(slots=True)
class CapturedRecord:
    """One log line as delivered to the capture handler."""

    logger: str
    level: str
    message: str


class LogCapture:
    """Handler collecting records from the femtologging worker thread."""

    def __init__(self) -> None:
        self.records: list[CapturedRecord] = []
        self._condition = threading.Condition()

    def handle(self, logger: str, level: str, message: str) -> None:
        """Store a record and wake any waiting assertion."""
        with self._condition:
            self.records.append(CapturedRecord(str(logger), str(level), message))
            self._condition.notify_all()

    def wait_for_count(self, count: int, timeout: float = 1.0) -> None:
        """Block until ``count`` records arrived or ``timeout`` elapsed."""
        deadline = time.monotonic() + timeout
        with self._condition:
            while len(self.records) < count:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._condition.wait(timeout=remaining)

        assert len(self.records) >= count, (
            f"Expected {count} records, got {len(self.records)}"
        )


@contextlib.contextmanager
def capture_logs(logger_name: str, *, level: str = "TRACE") -> typ.Iterator[LogCapture]:
    """Attach a capture handler to ``logger_name`` for the block's duration."""
    logger = get_logger(logger_name)
    previous_level = logger.level
    previous_propagate = logger.propagate
    logger.set_level(level)
    logger.set_propagate(False)

    capture = LogCapture()
    logger.add_handler(capture)
    try:
        yield capture
    finally:
        logger.remove_handler(capture)
        logger.set_level(previous_level)
        logger.set_propagate(previous_propagate)
