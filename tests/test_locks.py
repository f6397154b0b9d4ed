"""Tests for per-key locks."""

import asyncio

from asset_approvals.services.locks import KeyedLocks


def test_same_key_shares_lock() -> None:
    locks = KeyedLocks()

    first = locks.get("wamid.item-1")

    assert locks.get("wamid.item-1") is first
    assert locks.get("wamid.item-2") is not first
    assert len(locks) >= 1


def test_lock_serializes_critical_sections() -> None:
    locks = KeyedLocks()
    events: list[str] = []

    async def worker(name: str) -> None:
        async with locks.get("submitter"):
            events.append(f"{name}-start")
            await asyncio.sleep(0)
            events.append(f"{name}-end")

    async def run() -> None:
        await asyncio.gather(worker("a"), worker("b"))

    asyncio.run(run())

    assert events == ["a-start", "a-end", "b-start", "b-end"]
