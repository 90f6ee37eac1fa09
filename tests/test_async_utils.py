"""Tests for the async_utils module."""

import threading

from frame_sync.core.async_utils import run_sync


def _sync_add(a: int, b: int) -> int:
    return a + b


async def test_run_sync_calls_function():
    assert await run_sync(_sync_add, 3, 4) == 7


async def test_run_sync_passes_kwargs():
    def _kw_func(*, name: str) -> str:
        return f"hello {name}"

    assert await run_sync(_kw_func, name="world") == "hello world"


async def test_run_sync_uses_worker_thread():
    main_thread = threading.get_ident()
    assert await run_sync(threading.get_ident) != main_thread
