"""Installation of an ExceptionHandler into the interpreter's runtime hooks.

Installing routes:
- ``warnings.showwarning`` to the handler's Converter (warnings become SignalError)
- ``sys.excepthook`` and ``threading.excepthook`` to ``handle_uncaught``
- an ``atexit`` callback to ``handle_shutdown``
- optionally SIGTERM / SIGXCPU to a fatal record followed by ``sys.exit``

Only one handler is installed at a time. Replacing it is explicit.
"""

from __future__ import annotations

import atexit
import logging
import signal
import sys
import threading
import warnings
from dataclasses import dataclass, field
from functools import partial
from types import FrameType, TracebackType
from typing import TYPE_CHECKING, Any, Callable, Optional, Type

from .types import Severity

if TYPE_CHECKING:
    from .handler import ExceptionHandler

logger = logging.getLogger(__name__)

ExceptHook = Callable[[Type[BaseException], BaseException, Optional[TracebackType]], Any]
ThreadExceptHook = Callable[[threading.ExceptHookArgs], Any]


class HandlerAlreadyInstalledError(RuntimeError):
    """Raised when installing over another handler without ``replace=True``."""


class HandlerNotInstalledError(RuntimeError):
    """Raised when the module-level API is used before ``init()``."""


@dataclass
class _Installation:
    handler: "ExceptionHandler"
    warnings_state: warnings.catch_warnings
    previous_excepthook: ExceptHook
    previous_thread_excepthook: ThreadExceptHook
    atexit_callback: Callable[[], Any]
    previous_signal_handlers: dict[int, Any] = field(default_factory=dict)


_active: Optional[_Installation] = None


def active_handler() -> Optional["ExceptionHandler"]:
    """Return the installed handler, or None."""
    return _active.handler if _active is not None else None


def _trapped_signals() -> list[int]:
    signums = [signal.SIGTERM]
    if hasattr(signal, "SIGXCPU"):
        signums.append(signal.SIGXCPU)
    return signums


def _on_fatal_signal(handler: "ExceptionHandler", signum: int, frame: Optional[FrameType]) -> None:
    name = signal.Signals(signum).name
    handler.record_fatal(
        Severity.ERROR,
        f"Process terminated by {name}",
        frame.f_code.co_filename if frame is not None else None,
        frame.f_lineno if frame is not None else None,
    )
    sys.exit(128 + signum)


def _make_excepthook(handler: "ExceptionHandler", previous: ExceptHook) -> ExceptHook:
    def _excepthook(
        exc_type: Type[BaseException],
        exc_value: BaseException,
        exc_tb: Optional[TracebackType],
    ) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            previous(exc_type, exc_value, exc_tb)
            return
        try:
            handler.handle_uncaught(exc_value)
        except BaseException as raised:
            if raised is not exc_value:
                raise
            previous(exc_type, exc_value, exc_tb)

    return _excepthook


def _make_thread_excepthook(handler: "ExceptionHandler", previous: ThreadExceptHook) -> ThreadExceptHook:
    def _thread_excepthook(args: threading.ExceptHookArgs) -> None:
        if args.exc_value is None or issubclass(args.exc_type, (KeyboardInterrupt, SystemExit)):
            previous(args)
            return
        try:
            handler.handle_uncaught(args.exc_value)
        except BaseException as raised:
            if raised is not args.exc_value:
                raise
            previous(args)

    return _thread_excepthook


def install(handler: "ExceptionHandler", *, replace: bool = False) -> None:
    """
    Make `handler` the process-wide funnel for warnings, uncaught exceptions
    and fatal shutdowns.

    Every warning occurrence is reported (filters are set to "always") and the
    interpreter's own printing of warnings is replaced by the handler.

    Raises
    ------
    HandlerAlreadyInstalledError
        If a different handler is installed and `replace` is False.

    Usage example
    -------------
        install(ExceptionHandler(cfg=cfg))
        install(ExceptionHandler(cfg=other_cfg), replace=True)
    """
    global _active
    if _active is not None:
        if _active.handler is handler:
            return
        if not replace:
            raise HandlerAlreadyInstalledError(
                "An ExceptionHandler is already installed; pass replace=True to swap it."
            )
        uninstall()

    warnings_state = warnings.catch_warnings()
    warnings_state.__enter__()
    warnings.simplefilter("always")
    warnings.showwarning = handler.converter.showwarning

    previous_excepthook = sys.excepthook
    sys.excepthook = _make_excepthook(handler, previous_excepthook)

    previous_thread_excepthook = threading.excepthook
    threading.excepthook = _make_thread_excepthook(handler, previous_thread_excepthook)

    atexit_callback = handler.handle_shutdown
    atexit.register(atexit_callback)

    installation = _Installation(
        handler=handler,
        warnings_state=warnings_state,
        previous_excepthook=previous_excepthook,
        previous_thread_excepthook=previous_thread_excepthook,
        atexit_callback=atexit_callback,
    )

    if handler.cfg.trap_signals:
        if threading.current_thread() is threading.main_thread():
            for signum in _trapped_signals():
                installation.previous_signal_handlers[signum] = signal.signal(
                    signum, partial(_on_fatal_signal, handler)
                )
        else:
            logger.warning("Not on the main thread; fatal signals will not be trapped.")

    _active = installation
    logger.debug("Installed %s (sinks=%d)", type(handler).__name__, len(handler.sinks))


def uninstall() -> None:
    """Restore the hooks that were active before `install()`. No-op if none."""
    global _active
    installation = _active
    if installation is None:
        return
    _active = None

    for signum, previous in installation.previous_signal_handlers.items():
        # None means the previous handler was not installed from Python
        signal.signal(signum, previous if previous is not None else signal.SIG_DFL)

    atexit.unregister(installation.atexit_callback)
    threading.excepthook = installation.previous_thread_excepthook
    sys.excepthook = installation.previous_excepthook
    installation.warnings_state.__exit__(None, None, None)
    logger.debug("Uninstalled %s", type(installation.handler).__name__)
