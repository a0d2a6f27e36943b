from .artifact_sink import BaseArtifactSink, JsonFileArtifactSink, NullArtifactSink
from .concurrency import ConcurrencyLimiter, Permit
from .errors import InvalidInputError, PerItemAnalysisError, PersistenceError, StrategyInvariantViolation
from .history import HistoryWindow
from .result_slots import ResultSlotArray
from .strategy import BatchStrategy, select_strategy, select_strategy_for_config
from .strategy_runners import (
    BaseStrategyRunner,
    BatchRunContext,
    BoundedParallelRunner,
    ChunkedRunner,
    SequentialRunner,
    get_runner,
)
from .transition_analyzer import TransitionAnalyzer
from .transition_pipeline import TransitionAnalysisPipeline, analyze_transitions

__all__ = [
    "BaseArtifactSink",
    "JsonFileArtifactSink",
    "NullArtifactSink",
    "ConcurrencyLimiter",
    "Permit",
    "InvalidInputError",
    "PerItemAnalysisError",
    "PersistenceError",
    "StrategyInvariantViolation",
    "HistoryWindow",
    "ResultSlotArray",
    "BatchStrategy",
    "select_strategy",
    "select_strategy_for_config",
    "BaseStrategyRunner",
    "BatchRunContext",
    "BoundedParallelRunner",
    "ChunkedRunner",
    "SequentialRunner",
    "get_runner",
    "TransitionAnalyzer",
    "TransitionAnalysisPipeline",
    "analyze_transitions",
]
