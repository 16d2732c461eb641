from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterator, Optional, TypeVar

from .handler import ExceptionHandler

T = TypeVar("T")


@contextmanager
def reported(
    handler: ExceptionHandler,
    *,
    reraise: bool = False,
    is_emergency: bool = False,
) -> Iterator[None]:
    """
    Context manager that reports an exception raised in the block.

    Behavior
    --------
    - reraise=False: exception is logged and suppressed; caller continues after the block.
    - reraise=True: exception is logged, then re-raised.

    Usage example
    -------------
        with reported(handler):
            send_newsletter(...)
    """
    try:
        yield
    except Exception as exc:
        handler.log(exc, is_emergency=is_emergency)
        if reraise:
            raise


def guard(
    handler: ExceptionHandler,
    fn: Callable[[], T],
    *,
    default: Optional[T] = None,
    reraise: bool = False,
) -> Optional[T]:
    """
    Execute a callable, reporting any exception it raises.

    Returns
    -------
    value
        The callable result on success; otherwise `default`.

    Usage example
    -------------
        rows = guard(handler, lambda: fetch_rows(db), default=[])
    """
    try:
        return fn()
    except Exception as exc:
        handler.log(exc)
        if reraise:
            raise
        return default
