"""
faultline: process-wide error interception and log dispatch.

Key primitives
--------------
- init() / add_sink() / log(): install the process handler and report through it
- ExceptionHandler: sink list + policy flags; log, handle_uncaught, handle_shutdown
- HandlerConfig: policy and logging configuration (env / YAML overrides)
- configure_logging(): the baseline process log (console, file, optional JSONL)
- convert_signal(): warnings-style signals into catchable SignalError
- LoggerSink / JsonlSink: stock sinks
- request_context(): attach request details to notifications
- reported() / guard(): report-and-continue wrappers for caught failures
"""

from .config import ConfigError, HandlerConfig, load_config
from .context import RequestContext, current_request, request_context
from .converter import Converter, convert_signal
from .guards import guard, reported
from .handler import ExceptionHandler
from .hooks import HandlerAlreadyInstalledError, HandlerNotInstalledError, active_handler
from .logging import JsonlEventLogger, configure_logging
from .runtime import add_sink, init, log
from .sinks import JsonlSink, LoggerSink, Sink
from .types import (
    ALL_SEVERITIES,
    ErrorRecord,
    FatalError,
    HandledError,
    Outcome,
    Severity,
    SignalError,
    SinkError,
    describe,
)

__all__ = [
    "ALL_SEVERITIES",
    "ConfigError",
    "Converter",
    "ErrorRecord",
    "ExceptionHandler",
    "FatalError",
    "HandledError",
    "HandlerAlreadyInstalledError",
    "HandlerConfig",
    "HandlerNotInstalledError",
    "JsonlEventLogger",
    "JsonlSink",
    "LoggerSink",
    "Outcome",
    "RequestContext",
    "Severity",
    "SignalError",
    "Sink",
    "SinkError",
    "active_handler",
    "add_sink",
    "configure_logging",
    "convert_signal",
    "current_request",
    "describe",
    "guard",
    "init",
    "load_config",
    "log",
    "reported",
    "request_context",
]
