"""Request-scoped context propagated through asyncio call chains.

The ambient value lives in a ``ContextVar``. asyncio copies the current
context into every task it creates, so a request identifier installed at the
top of a request is visible to everything that request awaits or spawns,
while concurrently running requests each see only their own.
"""

import asyncio
import contextvars
import inspect
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional


@dataclass(frozen=True)
class RequestContext:
    """Per-request values available to logging and data access."""

    request_id: Optional[str] = None


_EMPTY = RequestContext()

_current: contextvars.ContextVar[Optional[RequestContext]] = contextvars.ContextVar(
    "svckit_request_context", default=None
)


def run(context: RequestContext, callback: Callable[..., Any], *args: Any) -> Any:
    """
    Run ``callback`` with ``context`` as the ambient request context.

    The callback runs in a copy of the caller's context, so the caller never
    observes ``context`` and an outer context is shadowed only for the
    callback's extent. If the callback returns an awaitable, it is wrapped in
    a task bound to the copied context and the task is returned; awaiting it
    keeps every continuation (and any task it creates) inside ``context``.

    Args:
        context: Context to install
        callback: Sync or async callable
        *args: Positional arguments for the callback

    Returns:
        The callback's result, or an ``asyncio.Task`` for async callbacks
    """
    scoped = contextvars.copy_context()
    scoped.run(_current.set, context)
    result = scoped.run(callback, *args)
    if inspect.isawaitable(result):
        return asyncio.get_running_loop().create_task(
            _await(result), context=scoped
        )
    return result


async def _await(awaitable):
    return await awaitable


@contextmanager
def scope(context: RequestContext) -> Iterator[RequestContext]:
    """Install ``context`` until the ``with`` block exits."""
    token = _current.set(context)
    try:
        yield context
    finally:
        _current.reset(token)


def get() -> RequestContext:
    """Return the ambient context, or an empty one outside any request."""
    return _current.get() or _EMPTY


def get_request_id() -> Optional[str]:
    """Return the ambient request identifier, if any."""
    ctx = _current.get()
    return ctx.request_id if ctx is not None else None


def new_request_id() -> str:
    """Generate an identifier for an inbound request."""
    return uuid.uuid4().hex
