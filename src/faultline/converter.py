"""Conversion of recoverable runtime signals (warnings) into exceptions."""

from __future__ import annotations

from typing import Optional, TextIO, Type

from .types import ALL_SEVERITIES, Severity, SignalError, as_severity, severity_for_category


def convert_signal(
    severity: object,
    message: str,
    filename: Optional[str] = None,
    lineno: Optional[int] = None,
    *,
    mask: Severity = ALL_SEVERITIES,
    category: Optional[Type[Warning]] = None,
    error_class: Type[SignalError] = SignalError,
) -> None:
    """
    Raise a SignalError for a signal whose severity is enabled in `mask`.

    Severities outside `mask`, and values that are not a single known
    Severity, are dropped without any side effect.

    Raises
    ------
    SignalError
        Carrying exactly the given severity, message and location
        (an instance of `error_class`).

    Usage example
    -------------
        try:
            convert_signal(Severity.WARNING, "disk almost full", "app.py", 42)
        except SignalError as exc:
            ...
    """
    sev = as_severity(severity)
    if sev is None or not (mask & sev):
        return
    raise error_class(message, sev, filename, lineno, category)


class Converter:
    """
    Replacement for ``warnings.showwarning`` bound to a reporting mask.

    Every warning that reaches it is turned into a SignalError raised from the
    ``warnings.warn`` call site, so ordinary ``except`` blocks can handle it.
    """

    def __init__(self, mask: Severity = ALL_SEVERITIES) -> None:
        self.mask = mask

    def convert(
        self,
        severity: object,
        message: str,
        filename: Optional[str] = None,
        lineno: Optional[int] = None,
        *,
        category: Optional[Type[Warning]] = None,
    ) -> None:
        convert_signal(severity, message, filename, lineno, mask=self.mask, category=category)

    def showwarning(
        self,
        message: Warning | str,
        category: Type[Warning],
        filename: str,
        lineno: int,
        file: Optional[TextIO] = None,
        line: Optional[str] = None,
    ) -> None:
        self.convert(
            severity_for_category(category),
            str(message),
            filename,
            lineno,
            category=category,
        )
