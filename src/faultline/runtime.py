"""Process-level entry points: ``init``, ``add_sink`` and ``log``.

These operate on the handler installed by ``init()``. Code that prefers
explicit wiring can construct an ExceptionHandler and call its methods
directly; both routes share the same single installed handler.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional, TextIO

from .config import HandlerConfig
from .handler import ExceptionHandler
from .hooks import HandlerNotInstalledError, active_handler
from .sinks import Sink


def init(
    display_errors: Optional[bool] = None,
    notify_sinks: Optional[bool] = None,
    notify_process_log: Optional[bool] = None,
    *,
    config: Optional[HandlerConfig] = None,
    logger: Optional[logging.Logger] = None,
    output: Optional[TextIO] = None,
) -> ExceptionHandler:
    """
    Create and install the process handler.

    Flags left as None keep the value from `config` (defaults: display_errors
    False, notify_sinks False, notify_process_log True). Calling init again
    replaces the installed handler: the last registration wins and sinks of
    the previous handler are not carried over.

    Usage example
    -------------
        handler = init(notify_sinks=True)
        add_sink(LoggerSink(logging.getLogger("alerts")))
    """
    cfg = config if config is not None else HandlerConfig()
    overrides = {
        key: value
        for key, value in (
            ("display_errors", display_errors),
            ("notify_sinks", notify_sinks),
            ("notify_process_log", notify_process_log),
        )
        if value is not None
    }
    if overrides:
        cfg = replace(cfg, **overrides)

    handler = ExceptionHandler(cfg=cfg, logger=logger, output=output)
    handler.install(replace=True)
    return handler


def _require_handler() -> ExceptionHandler:
    handler = active_handler()
    if handler is None:
        raise HandlerNotInstalledError("faultline.init() must be called first.")
    return handler


def add_sink(sink: Sink) -> None:
    """Append a sink to the installed handler."""
    _require_handler().add_sink(sink)


def log(exc: BaseException, is_emergency: bool = False) -> None:
    """Report a caught exception through the installed handler."""
    _require_handler().log(exc, is_emergency=is_emergency)
