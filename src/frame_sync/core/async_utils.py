"""Async utilities for calling blocking git work from async handlers."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a synchronous function in a worker thread.

    Git subprocesses can take as long as the configured timeout, so MCP
    tool handlers never call them on the event loop directly.

    Example:
        result = await run_sync(service.full, trigger="manual")
    """
    return await asyncio.to_thread(func, *args, **kwargs)
