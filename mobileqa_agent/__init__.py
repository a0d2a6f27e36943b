from mobileqa_agent.data import AnalysisResult, RecordedState
from mobileqa_agent.executor import InvalidInputError, TransitionAnalysisPipeline, analyze_transitions

__all__ = ["AnalysisResult", "RecordedState", "InvalidInputError", "TransitionAnalysisPipeline", "analyze_transitions"]
