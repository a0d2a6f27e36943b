from .transition_structures import (
    DEFAULT_ANALYSIS_CONFIG,
    AnalysisRequest,
    AnalysisResult,
    CondenseStats,
    HistoryEntry,
    RecordedState,
    StrategyType,
    TransitionAnalysisConfig,
    TransitionItem,
    TransitionResponse,
)

__all__ = [
    "DEFAULT_ANALYSIS_CONFIG",
    "AnalysisRequest",
    "AnalysisResult",
    "CondenseStats",
    "HistoryEntry",
    "RecordedState",
    "StrategyType",
    "TransitionAnalysisConfig",
    "TransitionItem",
    "TransitionResponse",
]
