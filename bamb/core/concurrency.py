"""Deadline propagation for blocking work.

The SQLAlchemy session is synchronous, so blocking calls are moved to the
threadpool and never hold up the event loop. With a deadline,
``asyncio.wait_for`` gives up on the call once it elapses.
"""

import asyncio
from functools import partial
from typing import Any, Callable, Optional, TypeVar

from starlette.concurrency import run_in_threadpool

from bamb.core.exceptions import DeadlineExceededError

T = TypeVar("T")


async def run_with_deadline(
    func: Callable[..., T],
    *args: Any,
    timeout: Optional[float] = None,
    operation: Optional[str] = None,
    **kwargs: Any,
) -> T:
    call = run_in_threadpool(partial(func, *args, **kwargs))
    if timeout is None:
        return await call
    try:
        return await asyncio.wait_for(call, timeout)
    except asyncio.TimeoutError as exc:
        raise DeadlineExceededError(operation or getattr(func, "__name__", "operation"), timeout) from exc


async def await_with_deadline(awaitable, timeout: Optional[float], operation: str):
    """Await ``awaitable``, raising ``DeadlineExceededError`` after ``timeout`` seconds."""
    if timeout is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as exc:
        raise DeadlineExceededError(operation, timeout) from exc
