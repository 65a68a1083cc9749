from __future__ import annotations

import asyncio
import math

import pytest

from fetchcache import BatchHandlerError, BatchOptions, BatchProcessor


def run_async(coro):
    return asyncio.run(coro)


class _RecordingMetrics:
    def __init__(self) -> None:
        self.calls: list[tuple[str, int, dict[str, str]]] = []

    def incr(self, name, value=1, *, tags=None):
        self.calls.append((name, value, dict(tags or {})))


def test_drains_fixed_size_chunks_in_fifo_order():
    async def scenario() -> None:
        loop = asyncio.get_running_loop()
        chunks: list[list[int]] = []
        drained_at: list[float] = []

        async def handler(batch):
            chunks.append(batch)
            drained_at.append(loop.time())
            return [item * 10 for item in batch]

        processor = BatchProcessor(
            handler, options=BatchOptions(batch_size=2, delay_s=0.03)
        )
        started = loop.time()
        processor.add_to_queue([1, 2, 3])
        assert processor.queue_size == 3
        assert chunks == []

        await processor.join()

        assert chunks == [[1, 2], [3]]
        assert processor.results == [10, 20, 30]
        assert processor.queue_size == 0
        assert drained_at[0] - started >= 0.025
        assert drained_at[1] - drained_at[0] >= 0.025

    run_async(scenario())


@pytest.mark.parametrize("count,batch_size", [(7, 3), (9, 3), (1, 4)])
def test_number_of_drains_matches_ceil(count, batch_size):
    async def scenario() -> None:
        sizes: list[int] = []

        async def handler(batch):
            sizes.append(len(batch))
            return batch

        processor = BatchProcessor(
            handler, options=BatchOptions(batch_size=batch_size, delay_s=0.0)
        )
        processor.add_to_queue(list(range(count)))
        await processor.join()

        assert len(sizes) == math.ceil(count / batch_size)
        assert all(size == batch_size for size in sizes[:-1])
        assert processor.results == list(range(count))

    run_async(scenario())


def test_single_items_and_sync_handlers_are_accepted():
    async def scenario() -> None:
        processor = BatchProcessor(
            lambda batch: [f"done:{item}" for item in batch],
            options=BatchOptions(batch_size=5, delay_s=0.01),
        )
        processor.enqueue("a")
        processor.add_to_queue(("b", "c"))
        await processor.join()

        assert processor.results == ["done:a", "done:b", "done:c"]

    run_async(scenario())


def test_items_enqueued_during_drain_are_picked_up():
    async def scenario() -> None:
        seen: list[list[int]] = []

        async def handler(batch):
            seen.append(batch)
            if batch == [1]:
                processor.add_to_queue(2)
            return batch

        processor = BatchProcessor(handler, options=BatchOptions(batch_size=4, delay_s=0.01))
        processor.add_to_queue(1)
        await processor.join()

        assert seen == [[1], [2]]

    run_async(scenario())


def test_only_one_chunk_processed_at_a_time():
    async def scenario() -> None:
        active = 0
        peak = 0

        async def handler(batch):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            assert processor.processing is True
            await asyncio.sleep(0.01)
            active -= 1
            return batch

        processor = BatchProcessor(handler, options=BatchOptions(batch_size=1, delay_s=0.0))
        processor.add_to_queue([1, 2, 3, 4])
        processor.add_to_queue([5, 6])
        await processor.join()

        assert peak == 1
        assert processor.processing is False
        assert processor.results == [1, 2, 3, 4, 5, 6]

    run_async(scenario())


def test_drop_policy_discards_failed_chunk_and_continues():
    async def scenario() -> None:
        failures: list[tuple[list[int], str]] = []
        metrics = _RecordingMetrics()

        async def handler(batch):
            if 3 in batch:
                raise RuntimeError("write rejected")
            return batch

        processor = BatchProcessor(
            handler,
            options=BatchOptions(batch_size=2, delay_s=0.0),
            metrics=metrics,
            on_failure=lambda chunk, exc: failures.append((chunk, str(exc))),
        )
        processor.add_to_queue([1, 2, 3, 4, 5])
        await processor.join()

        assert processor.results == [1, 2, 5]
        assert failures == [([3, 4], "write rejected")]
        assert ("batch_failed_total", 1, {"policy": "drop"}) in metrics.calls
        assert processor.error is None

    run_async(scenario())


def test_requeue_policy_retries_chunk_then_gives_up():
    async def scenario() -> None:
        attempts: list[list[int]] = []

        async def handler(batch):
            attempts.append(batch)
            if batch == [1, 2] and len(attempts) < 3:
                raise RuntimeError("transient")
            if batch == [3]:
                raise RuntimeError("permanent")
            return batch

        processor = BatchProcessor(
            handler,
            options=BatchOptions(
                batch_size=2, delay_s=0.0, failure_policy="requeue", max_requeues=2
            ),
        )
        processor.add_to_queue([1, 2, 3])
        await processor.join()

        assert attempts[:3] == [[1, 2], [1, 2], [1, 2]]
        assert attempts[3:] == [[3], [3], [3]]
        assert processor.results == [1, 2]
        assert processor.queue_size == 0

    run_async(scenario())


def test_propagate_policy_stops_draining_and_raises_from_join():
    async def scenario() -> None:
        async def handler(batch):
            if batch == [3, 4]:
                raise ValueError("bad batch")
            return batch

        processor = BatchProcessor(
            handler,
            options=BatchOptions(batch_size=2, delay_s=0.0, failure_policy="propagate"),
        )
        processor.add_to_queue([1, 2, 3, 4, 5, 6])

        with pytest.raises(BatchHandlerError) as excinfo:
            await processor.join()

        assert excinfo.value.items == [3, 4]
        assert isinstance(excinfo.value.__cause__, ValueError)
        assert processor.results == [1, 2]
        assert processor.queue_size == 2

        processor.clear_queue()
        assert processor.error is None
        processor.add_to_queue([7])
        await processor.join()
        assert processor.results == [7]

    run_async(scenario())


def test_clear_queue_empties_pending_and_results():
    async def scenario() -> None:
        async def handler(batch):
            return batch

        processor = BatchProcessor(handler, options=BatchOptions(batch_size=2, delay_s=0.0))
        processor.add_to_queue([1, 2])
        await processor.join()
        assert processor.results == [1, 2]

        processor.add_to_queue([3, 4])
        processor.clear_queue()
        await processor.join()

        assert processor.results == []
        assert processor.queue_size == 0

    run_async(scenario())


def test_clear_queue_does_not_cancel_inflight_chunk():
    async def scenario() -> None:
        release = asyncio.Event()

        async def handler(batch):
            await release.wait()
            return batch

        processor = BatchProcessor(handler, options=BatchOptions(batch_size=1, delay_s=0.0))
        processor.add_to_queue([1, 2])
        await asyncio.sleep(0.01)
        assert processor.processing is True

        processor.clear_queue()
        release.set()
        await processor.join()

        assert processor.results == [1]
        assert processor.queue_size == 0

    run_async(scenario())


def test_close_stops_future_drains():
    async def scenario() -> None:
        handled: list[list[int]] = []

        async def handler(batch):
            handled.append(batch)
            return batch

        processor = BatchProcessor(handler, options=BatchOptions(batch_size=1, delay_s=0.05))
        processor.add_to_queue([1, 2])
        await processor.aclose()
        await asyncio.sleep(0.1)

        assert handled == []
        assert processor.closed is True
        with pytest.raises(RuntimeError, match="closed"):
            processor.add_to_queue(3)

    run_async(scenario())


def test_batch_options_validation():
    with pytest.raises(ValueError):
        BatchOptions(batch_size=0)
    with pytest.raises(ValueError):
        BatchOptions(delay_s=-1)
    with pytest.raises(ValueError):
        BatchOptions(failure_policy="retry-forever")
