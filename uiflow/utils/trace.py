# uiflow/utils/trace.py
"""
Trace sinks receive one line per step about to run and one line per
failure created. The chain core only ever calls `log`, `error` and
`info` on them.

Conventions:
- `log(line)`: a step is about to execute.
- `error(line)`: a failure was recorded (called exactly once per failure).
- `info(line)`: informational probe results, e.g. an `exists` miss.
"""

from __future__ import annotations

import threading
from typing import List, Protocol, runtime_checkable

from uiflow.utils.logger import setup_logger

logger = setup_logger(__name__)


@runtime_checkable
class TraceSink(Protocol):
    def log(self, line: str) -> None: ...

    def error(self, line: str) -> None: ...

    def info(self, line: str) -> None: ...


class LoggerTraceSink:
    """Default sink writing through the structured uiflow logger."""

    def __init__(self, name: str = "uiflow.trace", enabled: bool = True):
        self._logger = setup_logger(name)
        self.enabled = enabled

    def log(self, line: str) -> None:
        if self.enabled:
            self._logger.info(line, extra={"event_type": "StepStart"})

    def error(self, line: str) -> None:
        self._logger.error(line, extra={"event_type": "StepFailure"})

    def info(self, line: str) -> None:
        if self.enabled:
            self._logger.info(line, extra={"event_type": "Probe"})


class RecordingTraceSink:
    """Keeps every trace line in memory; used by tests and debugging tools."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.steps: List[str] = []
        self.errors: List[str] = []
        self.infos: List[str] = []

    def log(self, line: str) -> None:
        with self._lock:
            self.steps.append(line)

    def error(self, line: str) -> None:
        with self._lock:
            self.errors.append(line)

    def info(self, line: str) -> None:
        with self._lock:
            self.infos.append(line)

    @property
    def lines(self) -> List[str]:
        with self._lock:
            return [*self.steps, *self.errors, *self.infos]


class HeldErrorSink:
    """Forwards step and probe lines to `inner` but holds failure lines back.

    Used where intermediate failures may still be recovered from; the
    owner decides which held line, if any, is emitted.
    """

    def __init__(self, inner: TraceSink) -> None:
        self.inner = inner
        self.held: List[str] = []

    def log(self, line: str) -> None:
        self.inner.log(line)

    def error(self, line: str) -> None:
        self.held.append(line)

    def info(self, line: str) -> None:
        self.inner.info(line)
