"""Process-wide error channel.

Runtime data conditions (unsupported formulas, rejected writes, failed
evaluations) are broadcast here as human-readable strings instead of
being raised, so a bad binding never crashes the host application.
Programmer errors (``None`` member names, non-callable callbacks) are
raised as ordinary exceptions and never pass through the channel.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    UNSUPPORTED_FORMULA = "UnsupportedFormula"
    WRITE_REJECTED = "WriteRejected"
    EVALUATION_FAILED = "EvaluationFailed"


ErrorListener = Callable[[str], None]


class ErrorChannel:
    """Broadcast of error messages to attached listeners.

    The default sink logs every message at WARNING level; listeners are
    called after it, in the order they subscribed.
    """

    def __init__(self) -> None:
        self._listeners: list[ErrorListener] = []

    def subscribe(self, listener: ErrorListener) -> None:
        if not callable(listener):
            raise TypeError(
                f"error listener must be callable, got {type(listener).__name__}"
            )
        self._listeners.append(listener)

    def unsubscribe(self, listener: ErrorListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def clear(self) -> None:
        self._listeners.clear()

    def report(self, message: str, kind: ErrorKind | None = None) -> None:
        if kind is not None:
            message = f"{kind.value}: {message}"
        logger.warning(message)
        for listener in list(self._listeners):
            listener(message)


errors = ErrorChannel()


def report_error(kind: ErrorKind, message: str) -> None:
    errors.report(message, kind)
