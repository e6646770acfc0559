"""Helpers for running blocking native-client calls from async code."""

import functools
from collections.abc import Awaitable
from typing import Callable, Optional, TypeVar

from anyio import CapacityLimiter, to_thread
from typing_extensions import ParamSpec

__all__ = ("async_",)

ParamSpecT = ParamSpec("ParamSpecT")
ReturnT = TypeVar("ReturnT")


def async_(
    function: "Callable[ParamSpecT, ReturnT]", *, limiter: "Optional[CapacityLimiter]" = None
) -> "Callable[ParamSpecT, Awaitable[ReturnT]]":
    """Convert a blocking function into an awaitable that runs in a worker thread.

    Args:
        function: The blocking callable to wrap.
        limiter: Optional capacity limiter bounding concurrent worker threads.

    Returns:
        An async callable with the same signature.
    """

    @functools.wraps(function)
    async def wrapper(*args: "ParamSpecT.args", **kwargs: "ParamSpecT.kwargs") -> "ReturnT":
        partial_f = functools.partial(function, *args, **kwargs)
        return await to_thread.run_sync(partial_f, limiter=limiter)

    return wrapper
