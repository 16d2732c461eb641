"""Request context attached to notifications while serving a request."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

Responder = Callable[[int, str], None]

_current: ContextVar[Optional["RequestContext"]] = ContextVar("faultline_request", default=None)


@dataclass(frozen=True)
class RequestContext:
    """
    Environment of the request being served.

    `respond` is called with ``(status, body)`` when a failure is displayed
    while this context is active.
    """
    method: str
    url: str
    user_agent: Optional[str] = None
    respond: Optional[Responder] = None


def current_request() -> Optional[RequestContext]:
    """Return the active request context, or None outside a request."""
    return _current.get()


@contextmanager
def request_context(
    method: str,
    url: str,
    user_agent: Optional[str] = None,
    *,
    respond: Optional[Responder] = None,
) -> Iterator[RequestContext]:
    """
    Mark the enclosed block as serving one request.

    Usage example
    -------------
        with request_context("GET", "https://example.org/", "curl/8.0", respond=send):
            handle(request)
    """
    ctx = RequestContext(method=method, url=url, user_agent=user_agent, respond=respond)
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)


def render_prefix(ctx: RequestContext) -> str:
    lines = [f"Method: {ctx.method}", f"URL: {ctx.url}"]
    if ctx.user_agent:
        lines.append(f"User-Agent: {ctx.user_agent}")
    return "\n".join(lines)
