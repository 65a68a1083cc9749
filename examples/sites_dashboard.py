"""
sites_dashboard.py — Cache-first loading plus batched updates.

Demonstrates one shared store feeding two orchestrators, a debounced
refresh, and a batch processor that groups small status updates.

Usage:
    python examples/sites_dashboard.py
"""

import asyncio
import logging

from fetchcache import (
    BatchOptions,
    BatchProcessor,
    FetchCacheSettings,
    FetchOrchestrator,
    current_cancellation_token,
)


async def load_sites() -> list[str]:
    token = current_cancellation_token()
    await asyncio.sleep(0.2)
    if token is not None:
        token.raise_if_cancelled()
    return ["north-yard", "harbour", "depot-7"]


async def save_statuses(batch: list[tuple[str, str]]) -> list[str]:
    await asyncio.sleep(0.05)
    return [f"{site}={status}" for site, status in batch]


async def main() -> None:
    logging.basicConfig(level=logging.DEBUG)
    settings = FetchCacheSettings.from_env()
    store = settings.create_store()

    async with FetchOrchestrator(
        load_sites, store=store, options=settings.fetch_options("sites")
    ) as sites:
        await sites.fetch()
        print("sites:", sites.data, "from cache:", sites.is_from_cache)

        async with FetchOrchestrator(
            load_sites, store=store, options=settings.fetch_options("sites")
        ) as other_view:
            await other_view.fetch()
            print("second view served from cache:", other_view.state.from_cache)

        for _ in range(3):
            sites.refresh()
        await asyncio.sleep(0.6)
        print("after refresh:", sites.data)

    updates = BatchProcessor(save_statuses, options=BatchOptions(batch_size=2, delay_s=0.1))
    updates.add_to_queue([("north-yard", "open"), ("harbour", "closed")])
    updates.add_to_queue(("depot-7", "open"))
    await updates.join()
    print("saved:", updates.results)


if __name__ == "__main__":
    asyncio.run(main())
