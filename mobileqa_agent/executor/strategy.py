from typing import Optional

from pydantic import BaseModel, ConfigDict

from mobileqa_agent.data import StrategyType, TransitionAnalysisConfig


class BatchStrategy(BaseModel):
    """Scheduling mode chosen once per pipeline run."""

    model_config = ConfigDict(frozen=True)

    type: StrategyType
    max_concurrency: int = 1
    chunk_size: Optional[int] = None

    @classmethod
    def sequential(cls) -> "BatchStrategy":
        return cls(type=StrategyType.SEQUENTIAL)

    @classmethod
    def bounded_parallel(cls, max_concurrency: int) -> "BatchStrategy":
        return cls(type=StrategyType.BOUNDED_PARALLEL, max_concurrency=max_concurrency)

    @classmethod
    def chunked(cls, chunk_size: int, max_concurrency: int) -> "BatchStrategy":
        return cls(type=StrategyType.CHUNKED, chunk_size=chunk_size, max_concurrency=max_concurrency)

    def describe(self) -> str:
        if self.type == StrategyType.SEQUENTIAL:
            return "sequential"
        if self.type == StrategyType.BOUNDED_PARALLEL:
            return f"bounded parallel (max {self.max_concurrency} in flight)"
        return f"chunked (chunks of {self.chunk_size}, max {self.max_concurrency} in flight)"


def select_strategy(
    item_count: int,
    enable_parallel_processing: bool,
    batch_threshold: int,
    max_parallel_requests: int = 1,
    chunk_size: int = 1,
) -> BatchStrategy:
    if not enable_parallel_processing:
        return BatchStrategy.sequential()
    if item_count <= batch_threshold:
        return BatchStrategy.bounded_parallel(max_parallel_requests)
    return BatchStrategy.chunked(chunk_size, max_parallel_requests)


def select_strategy_for_config(item_count: int, config: TransitionAnalysisConfig) -> BatchStrategy:
    return select_strategy(
        item_count,
        enable_parallel_processing=config.enable_parallel_processing,
        batch_threshold=config.batch_threshold,
        max_parallel_requests=config.max_parallel_requests,
        chunk_size=config.chunk_size,
    )
