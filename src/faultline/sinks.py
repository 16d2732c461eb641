"""Sink protocol and the stock sink adapters.

A sink is any object exposing ``error(payload)`` and ``emergency(payload)``.
The handler calls one of them on every registered sink for every dispatched
failure; a sink that raises is isolated from the others.
"""

from __future__ import annotations

import logging
from typing import Protocol, Union, runtime_checkable

from .logging import JsonlEventLogger
from .types import describe

Payload = Union[str, BaseException]


def _as_text(payload: Payload) -> str:
    if isinstance(payload, BaseException):
        return describe(payload)
    return payload


@runtime_checkable
class Sink(Protocol):
    """Protocol every notification sink must implement."""

    def error(self, payload: Payload) -> None:
        """Receive a failure that was caught and reported explicitly."""
        ...

    def emergency(self, payload: Payload) -> None:
        """Receive a failure that nothing else handled."""
        ...


class LoggerSink:
    """
    Forwards notifications to a stdlib logger.

    ``error`` maps to ``logger.error`` and ``emergency`` to ``logger.critical``.

    Usage example
    -------------
        handler.add_sink(LoggerSink(logging.getLogger("myapp.alerts")))
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def error(self, payload: Payload) -> None:
        self._logger.error("%s", _as_text(payload))

    def emergency(self, payload: Payload) -> None:
        self._logger.critical("%s", _as_text(payload))

    def __repr__(self) -> str:
        return f"LoggerSink({self._logger.name!r})"


class JsonlSink:
    """Writes one JSON line per notification through a JsonlEventLogger."""

    def __init__(self, event_logger: JsonlEventLogger) -> None:
        self._events = event_logger

    def error(self, payload: Payload) -> None:
        self._events.write(event="error", level="ERROR", message=_as_text(payload))

    def emergency(self, payload: Payload) -> None:
        self._events.write(event="emergency", level="CRITICAL", message=_as_text(payload))

    def __repr__(self) -> str:
        return f"JsonlSink({str(self._events.path)!r})"
