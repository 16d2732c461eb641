from __future__ import annotations

import html
import logging
import sys
from dataclasses import dataclass, field
from typing import Optional, TextIO, cast

from rich.console import Console

from . import hooks
from .config import HandlerConfig
from .context import current_request, render_prefix
from .converter import Converter, convert_signal
from .logging import JsonlEventLogger, configure_logging
from .sinks import Sink
from .types import ErrorRecord, FatalError, Outcome, Severity, SinkError, describe


@dataclass(eq=False)
class ExceptionHandler:
    """
    Owns the sink list and policy flags, and routes every failure to them.

    Design notes
    ------------
    - One handler per process is a convention enforced by `install()`, not by
      hidden module state; the handler itself is an ordinary object.
    - Every path (explicit `log`, uncaught exceptions, shutdown-detected fatal
      conditions) passes through `log` before any terminal action.
    - A failing sink is contained in its own try block; it cannot keep other
      sinks from being notified, and it cannot re-enter dispatch.

    Usage example
    -------------
        handler = ExceptionHandler(cfg=HandlerConfig(notify_sinks=True))
        handler.add_sink(LoggerSink(logging.getLogger("alerts")))
        handler.install()
        try:
            risky()
        except Exception as exc:
            handler.log(exc)
    """

    cfg: HandlerConfig = field(default_factory=HandlerConfig)
    logger: Optional[logging.Logger] = None
    event_logger: Optional[JsonlEventLogger] = None
    output: Optional[TextIO] = None

    def __post_init__(self) -> None:
        """Configure the process log when none was injected."""
        if self.logger is None:
            self.logger, event_logger = configure_logging(cfg=self.cfg)
            if self.event_logger is None:
                self.event_logger = event_logger
        self.converter = Converter(self.cfg.reporting_mask)
        self._sinks: list[Sink] = []
        self._last_fatal: Optional[ErrorRecord] = None

    @property
    def display_errors(self) -> bool:
        return self.cfg.display_errors

    @property
    def notify_sinks(self) -> bool:
        return self.cfg.notify_sinks

    @property
    def notify_process_log(self) -> bool:
        return self.cfg.notify_process_log

    @property
    def sinks(self) -> list[Sink]:
        """Return a copy of the registered sinks, in notification order."""
        return list(self._sinks)

    def add_sink(self, sink: Sink) -> None:
        """Append a sink. The same sink may be added more than once."""
        self._sinks.append(sink)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def log(self, exc: BaseException, is_emergency: bool = False) -> None:
        """
        Record a failure in the process log and notify every sink.

        Use this for exceptions that were caught but should still be reported.
        Sink failures are written to the process log and never propagate.
        """
        text = describe(exc)
        if self.cfg.notify_process_log:
            self._write_process_log(
                text,
                level=logging.CRITICAL if is_emergency else logging.ERROR,
                event="emergency" if is_emergency else "error",
                exc=exc,
            )

        if not self.cfg.notify_sinks:
            return

        ctx = current_request()
        payload = text if ctx is None else f"{render_prefix(ctx)}\n{text}"

        for sink in self._sinks:
            try:
                if is_emergency:
                    sink.emergency(payload)
                else:
                    sink.error(payload)
            except Exception as sink_exc:  # noqa: BLE001
                self._report_sink_failure(sink, sink_exc)

    dispatch = log

    def _report_sink_failure(self, sink: Sink, sink_exc: Exception) -> None:
        try:
            text = describe(SinkError(sink, sink_exc))
        except Exception:  # noqa: BLE001
            text = f"Sink {type(sink).__name__} failed: <exception str() failed>"
        self._write_process_log(text, level=logging.ERROR, event="sink_failed", exc=sink_exc)

    def _write_process_log(self, text: str, *, level: int, event: str, exc: BaseException) -> None:
        logger = cast(logging.Logger, self.logger)
        try:
            logger.log(level, "%s", text, extra={"event": event})
            if self.event_logger is not None:
                self.event_logger.write(
                    event=event,
                    level=logging.getLevelName(level),
                    exc=exc,
                    message=text,
                )
        except Exception:  # noqa: BLE001
            # process log is fire-and-forget
            pass

    # ------------------------------------------------------------------
    # Terminal handling
    # ------------------------------------------------------------------

    def handle_uncaught(self, exc: BaseException) -> Outcome:
        """
        Handle an exception nothing else caught.

        Always logs it as an emergency first. With `display_errors` the failure
        is rendered to the operator and Outcome.DISPLAYED is returned; otherwise
        the same exception instance is re-raised for the default behavior.
        """
        self.log(exc, is_emergency=True)
        if self.cfg.display_errors:
            self._display(exc)
            return Outcome.DISPLAYED
        raise exc

    def _display(self, exc: BaseException) -> None:
        text = describe(exc)
        ctx = current_request()
        if ctx is not None:
            body = "<pre>" + html.escape(text) + "</pre>"
            if ctx.respond is not None:
                ctx.respond(500, body)
                return
            text = body
        console = Console(
            file=self.output if self.output is not None else sys.stdout,
            highlight=False,
            soft_wrap=True,
            emoji=False,
        )
        console.print(text, markup=False)

    def record_fatal(
        self,
        severity: Severity,
        message: str,
        filename: Optional[str] = None,
        lineno: Optional[int] = None,
    ) -> None:
        """Remember a fatal condition for the shutdown path to report."""
        self._last_fatal = ErrorRecord(severity=severity, message=message, filename=filename, lineno=lineno)

    def last_error(self) -> Optional[ErrorRecord]:
        """Return the recorded fatal condition, if any."""
        return self._last_fatal

    def handle_shutdown(self) -> Optional[Outcome]:
        """
        Report a fatal condition recorded before the process exits.

        No-op when nothing was recorded or the record's severity is outside the
        reporting mask. The record is cleared so it is reported once.
        """
        record = self._last_fatal
        if record is None:
            return None
        self._last_fatal = None
        try:
            convert_signal(
                record.severity,
                record.message,
                record.filename,
                record.lineno,
                mask=self.cfg.reporting_mask,
                error_class=FatalError,
            )
        except Exception as exc:  # noqa: BLE001
            return self.handle_uncaught(exc)
        return None

    # ------------------------------------------------------------------
    # Runtime hooks
    # ------------------------------------------------------------------

    def install(self, *, replace: bool = False) -> None:
        """Install this handler's runtime hooks. See `faultline.hooks.install`."""
        hooks.install(self, replace=replace)

    def uninstall(self) -> None:
        """Remove this handler's runtime hooks if it is the installed one."""
        if hooks.active_handler() is self:
            hooks.uninstall()
