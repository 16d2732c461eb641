from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntFlag
from typing import Optional, Type
import traceback as _traceback


class Severity(IntFlag):
    """Severity of an intercepted condition, usable as a reporting mask."""
    ERROR = 1
    WARNING = 2
    NOTICE = 4
    USER_WARNING = 8
    DEPRECATED = 16

    @classmethod
    def parse(cls, text: str) -> "Severity":
        """
        Parse a comma/pipe separated list of severity names into a mask.

        Usage example
        -------------
            mask = Severity.parse("warning,deprecated")
            mask = Severity.parse("all")
        """
        mask = cls(0)
        for raw in text.replace("|", ",").split(","):
            name = raw.strip().upper()
            if not name:
                continue
            if name == "ALL":
                mask |= ALL_SEVERITIES
                continue
            try:
                mask |= cls[name]
            except KeyError:
                raise ValueError(f"Unknown severity: {raw.strip()!r}") from None
        return mask


ALL_SEVERITIES = (
    Severity.ERROR | Severity.WARNING | Severity.NOTICE | Severity.USER_WARNING | Severity.DEPRECATED
)

_SEVERITY_BITS = frozenset(int(s) for s in (
    Severity.ERROR,
    Severity.WARNING,
    Severity.NOTICE,
    Severity.USER_WARNING,
    Severity.DEPRECATED,
))

# Checked in order; the first matching base wins.
_CATEGORY_SEVERITY: tuple[tuple[Type[Warning], Severity], ...] = (
    (DeprecationWarning, Severity.DEPRECATED),
    (PendingDeprecationWarning, Severity.DEPRECATED),
    (FutureWarning, Severity.DEPRECATED),
    (UserWarning, Severity.USER_WARNING),
    (RuntimeWarning, Severity.WARNING),
    (ResourceWarning, Severity.WARNING),
    (BytesWarning, Severity.WARNING),
    (UnicodeWarning, Severity.WARNING),
)


def as_severity(value: object) -> Optional[Severity]:
    """Return `value` as a single recognized Severity, or None."""
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if int(value) not in _SEVERITY_BITS:
        return None
    return Severity(int(value))


def severity_for_category(category: Type[Warning]) -> Severity:
    """Map a `warnings` category to the severity it is reported under."""
    for base, severity in _CATEGORY_SEVERITY:
        if issubclass(category, base):
            return severity
    return Severity.NOTICE


class Outcome(str, Enum):
    """Terminal state of an uncaught failure."""
    DISPLAYED = "displayed"
    RERAISED = "reraised"


@dataclass(frozen=True)
class ErrorRecord:
    """
    The last fatal condition recorded for the shutdown path.

    Usage example
    -------------
        rec = ErrorRecord(severity=Severity.ERROR, message="Received SIGTERM", filename="app.py", lineno=12)
    """
    severity: Severity
    message: str
    filename: Optional[str] = None
    lineno: Optional[int] = None


def _location(filename: Optional[str], lineno: Optional[int]) -> str:
    if filename is None:
        return "<unknown>"
    if lineno is None:
        return filename
    return f"{filename}:{lineno}"


def _format_traceback(exc: BaseException) -> str:
    if exc.__traceback__ is None:
        return ""
    try:
        return "".join(_traceback.format_tb(exc.__traceback__)).rstrip()
    except Exception:  # noqa: BLE001
        return "<traceback unavailable>"


# Longest cause chain rendered before it is cut off.
MAX_CAUSE_DEPTH = 32


def safe_str(value: object) -> str:
    """
    `str(value)` that never raises.

    Mirrors the `traceback` module: an object whose `__str__` fails is shown as
    ``<exception str() failed>``.
    """
    try:
        return str(value)
    except Exception:  # noqa: BLE001
        return "<exception str() failed>"


class HandledError(Exception):
    """
    Normalized failure carried through the dispatcher.

    Attributes are read-only once constructed. Use `describe()` for the
    single-string rendering sent to sinks and shown to operators.
    """

    def __init__(
        self,
        message: str,
        severity: Severity = Severity.ERROR,
        filename: Optional[str] = None,
        lineno: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self._message = message
        self._severity = Severity(severity)
        self._filename = filename
        self._lineno = lineno
        self._cause = cause
        if cause is not None:
            self.__cause__ = cause

    @property
    def message(self) -> str:
        return self._message

    @property
    def severity(self) -> Severity:
        return self._severity

    @property
    def filename(self) -> Optional[str]:
        return self._filename

    @property
    def lineno(self) -> Optional[int]:
        return self._lineno

    @property
    def cause(self) -> Optional[BaseException]:
        return self._cause

    @property
    def kind(self) -> str:
        name = self._severity.name if self._severity.name else str(int(self._severity))
        return f"{type(self).__name__}[{name}]"

    def describe(self) -> str:
        """Render message, kind, location, traceback and cause chain."""
        return _describe(self, set())

    def _headline(self) -> str:
        return f"{self.kind}: {safe_str(self._message)} in {_location(self._filename, self._lineno)}"


class SignalError(HandledError):
    """A recoverable runtime signal (a warning) converted into an exception."""

    def __init__(
        self,
        message: str,
        severity: Severity,
        filename: Optional[str] = None,
        lineno: Optional[int] = None,
        category: Optional[Type[Warning]] = None,
    ) -> None:
        super().__init__(message, severity, filename, lineno)
        self._category = category

    @property
    def category(self) -> Optional[Type[Warning]]:
        return self._category

    @property
    def kind(self) -> str:
        base = super().kind
        if self._category is None:
            return base
        return f"{base}({self._category.__name__})"


class FatalError(SignalError):
    """A fatal condition only detected while the process shuts down."""


class SinkError(HandledError):
    """A sink raised while being notified; `cause` holds its exception."""

    def __init__(self, sink: object, cause: BaseException) -> None:
        super().__init__(
            f"Sink {type(sink).__name__} failed: {safe_str(cause)}",
            Severity.ERROR,
            cause=cause,
        )
        self._sink = sink

    @property
    def sink(self) -> object:
        return self._sink


def describe(exc: BaseException) -> str:
    """
    Render any exception as one descriptive string.

    `HandledError` instances use their own `describe()`; any other exception is
    rendered as ``<Type>: <message> in <file>:<line>`` from its innermost frame,
    followed by the stack trace when one is attached.

    Usage example
    -------------
        try:
            risky()
        except Exception as exc:
            text = describe(exc)
    """
    return _describe(exc, set())


def _headline(exc: BaseException) -> str:
    if isinstance(exc, HandledError):
        return exc._headline()

    filename: Optional[str] = None
    lineno: Optional[int] = None
    if exc.__traceback__ is not None:
        frames = _traceback.extract_tb(exc.__traceback__)
        if frames:
            filename, lineno = frames[-1].filename, frames[-1].lineno
    return f"{type(exc).__name__}: {safe_str(exc)} in {_location(filename, lineno)}"


def _describe(exc: BaseException, seen: set[int]) -> str:
    seen.add(id(exc))
    lines = [_headline(exc)]
    tb = _format_traceback(exc)
    if tb:
        lines.append("Stack trace:")
        lines.append(tb)

    cause = exc.cause if isinstance(exc, HandledError) else exc.__cause__
    if cause is None:
        return "\n".join(lines)
    if id(cause) in seen:
        lines.append(f"Caused by: <cycle back to {type(cause).__name__}>")
    elif len(seen) >= MAX_CAUSE_DEPTH:
        lines.append("Caused by: <cause chain truncated>")
    else:
        lines.append("Caused by: " + _describe(cause, seen))
    return "\n".join(lines)
