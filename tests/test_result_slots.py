import asyncio
import logging

import pytest

from tests.helpers import make_state
from mobileqa_agent.data import AnalysisResult, TransitionItem
from mobileqa_agent.executor import ResultSlotArray, StrategyInvariantViolation


def items(n):
    return [TransitionItem(index=i, from_state=make_state(i), to_state=make_state(i + 1)) for i in range(n)]


def ok(item):
    return AnalysisResult(
        from_timestamp=item.from_state.timestamp, to_timestamp=item.to_state.timestamp, has_transition=True
    )


@pytest.mark.asyncio
async def test_out_of_order_fills_come_back_in_index_order():
    batch = items(4)
    slots = ResultSlotArray(4)
    for index in (2, 0, 3, 1):
        await slots.fill(index, ok(batch[index]))

    results = await slots.finalize(batch)
    assert [r.from_timestamp for r in results] == [item.from_state.timestamp for item in batch]


@pytest.mark.asyncio
async def test_second_write_to_a_slot_is_rejected():
    batch = items(2)
    slots = ResultSlotArray(2)
    await slots.fill(0, ok(batch[0]))
    with pytest.raises(StrategyInvariantViolation):
        await slots.fill(0, ok(batch[0]))


@pytest.mark.asyncio
async def test_finalize_fills_empty_slots_with_error_placeholders(caplog):
    batch = items(3)
    slots = ResultSlotArray(3)
    await slots.fill(1, ok(batch[1]))

    with caplog.at_level(logging.ERROR):
        results = await slots.finalize(batch)

    assert len(results) == 3
    assert results[0].is_error and results[2].is_error
    assert not results[1].is_error
    assert "left empty" in caplog.text


@pytest.mark.asyncio
async def test_progress_is_reported_per_fill():
    batch = items(5)
    progress = []
    slots = ResultSlotArray(5, on_progress=lambda completed, total: progress.append((completed, total)))

    await asyncio.gather(*(slots.fill(i, ok(batch[i])) for i in reversed(range(5))))

    assert progress == [(1, 5), (2, 5), (3, 5), (4, 5), (5, 5)]


@pytest.mark.asyncio
async def test_async_progress_callback_is_awaited():
    batch = items(2)
    progress = []

    async def on_progress(completed, total):
        await asyncio.sleep(0)
        progress.append(completed)

    slots = ResultSlotArray(2, on_progress=on_progress)
    await slots.fill(0, ok(batch[0]))
    await slots.fill(1, ok(batch[1]))
    assert progress == [1, 2]


@pytest.mark.asyncio
async def test_failing_progress_callback_does_not_break_fill(caplog):
    batch = items(1)

    def on_progress(completed, total):
        raise RuntimeError("ui gone")

    slots = ResultSlotArray(1, on_progress=on_progress)
    with caplog.at_level(logging.WARNING):
        await slots.fill(0, ok(batch[0]))

    assert slots.completed == 1
    assert "Progress callback failed" in caplog.text
