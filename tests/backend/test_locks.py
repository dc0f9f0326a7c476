"""Tests for the per-thread lock registry."""

import asyncio

import pytest

from todo_assistant.core.locks import ThreadLockRegistry


@pytest.mark.asyncio
async def test_same_thread_is_exclusive():
    locks = ThreadLockRegistry()
    order = []

    async def worker(name: str):
        async with locks.hold("thread-1"):
            order.append(f"{name}-start")
            await asyncio.sleep(0.01)
            order.append(f"{name}-end")

    await asyncio.gather(worker("a"), worker("b"))

    assert order in (
        ["a-start", "a-end", "b-start", "b-end"],
        ["b-start", "b-end", "a-start", "a-end"],
    )


@pytest.mark.asyncio
async def test_different_threads_do_not_block():
    locks = ThreadLockRegistry()
    inside = asyncio.Event()

    async def holder():
        async with locks.hold("thread-1"):
            await inside.wait()

    task = asyncio.create_task(holder())
    await asyncio.sleep(0)
    assert locks.is_locked("thread-1")

    async with locks.hold("thread-2"):
        assert locks.is_locked("thread-2")
        inside.set()

    await task
    assert not locks.is_locked("thread-1")


@pytest.mark.asyncio
async def test_locks_are_released_after_use():
    locks = ThreadLockRegistry()

    async with locks.hold("thread-1"):
        assert len(locks) == 1

    assert len(locks) == 0


@pytest.mark.asyncio
async def test_lock_released_on_error():
    locks = ThreadLockRegistry()

    with pytest.raises(RuntimeError):
        async with locks.hold("thread-1"):
            raise RuntimeError("boom")

    assert not locks.is_locked("thread-1")
    assert len(locks) == 0
