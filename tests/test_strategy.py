import pytest

from mobileqa_agent.data import StrategyType
from mobileqa_agent.executor import (
    BoundedParallelRunner,
    ChunkedRunner,
    SequentialRunner,
    TransitionAnalysisPipeline,
    get_runner,
    select_strategy,
    select_strategy_for_config,
)


def test_parallel_disabled_selects_sequential():
    strategy = select_strategy(5, enable_parallel_processing=False, batch_threshold=20)
    assert strategy.type == StrategyType.SEQUENTIAL


def test_small_batch_selects_bounded_parallel():
    strategy = select_strategy(10, enable_parallel_processing=True, batch_threshold=20, max_parallel_requests=4)
    assert strategy.type == StrategyType.BOUNDED_PARALLEL
    assert strategy.max_concurrency == 4


def test_large_batch_selects_chunked():
    strategy = select_strategy(
        50, enable_parallel_processing=True, batch_threshold=20, max_parallel_requests=3, chunk_size=10
    )
    assert strategy.type == StrategyType.CHUNKED
    assert strategy.chunk_size == 10
    assert strategy.max_concurrency == 3


def test_threshold_is_inclusive():
    assert select_strategy(20, True, 20).type == StrategyType.BOUNDED_PARALLEL
    assert select_strategy(21, True, 20).type == StrategyType.CHUNKED


def test_parallel_disabled_wins_over_size():
    assert select_strategy(500, False, 20).type == StrategyType.SEQUENTIAL


def test_selection_is_deterministic():
    first = select_strategy(50, True, 20, 3, 10)
    assert all(select_strategy(50, True, 20, 3, 10) == first for _ in range(10))


def test_selection_from_resolved_config():
    config = TransitionAnalysisPipeline.resolve_config({"batchThreshold": 5, "chunkSize": 2})
    strategy = select_strategy_for_config(6, config)
    assert strategy.type == StrategyType.CHUNKED
    assert strategy.chunk_size == 2


@pytest.mark.parametrize(
    "strategy, runner_cls",
    [
        (select_strategy(3, False, 20), SequentialRunner),
        (select_strategy(3, True, 20), BoundedParallelRunner),
        (select_strategy(30, True, 20), ChunkedRunner),
    ],
)
def test_runner_lookup(strategy, runner_cls):
    assert isinstance(get_runner(strategy), runner_cls)
