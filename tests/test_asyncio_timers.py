from __future__ import annotations

import asyncio

from ad_draft_sync.engine.asyncio_timers import AsyncioTimerFactory
from ad_draft_sync.engine.fork import ForkController
from ad_draft_sync.engine.instrumented import CountingStore
from ad_draft_sync.model import CommitPolicy


def test_asyncio_timers_fire_and_cancel_on_the_running_loop() -> None:
    fired: list[str] = []

    async def scenario() -> bool:
        timers = AsyncioTimerFactory()
        keep = timers.call_later(0.01, lambda: fired.append("keep"))
        drop = timers.call_later(0.01, lambda: fired.append("drop"))
        drop.cancel()
        await asyncio.sleep(0.05)
        return keep.cancelled or not drop.cancelled

    assert asyncio.run(scenario()) is False
    assert fired == ["keep"]


def test_debounced_controller_commits_once_on_a_real_loop() -> None:
    store = CountingStore()

    async def scenario() -> None:
        controller = ForkController(
            store,
            view_id="gallery",
            policy=CommitPolicy.debounced(20),
            timers=AsyncioTimerFactory(),
        )
        for text in ("a", "ab", "abc"):
            controller.apply_user_edit("headline", text)
            await asyncio.sleep(0.001)
        await asyncio.sleep(0.1)
        controller.close()

    asyncio.run(scenario())

    assert store.counters.writes == [("headline", "abc")]
