from .analysis_service import BaseAnalysisService, LLMAnalysisService
from .llm_api import LLMAPI

__all__ = ["BaseAnalysisService", "LLMAnalysisService", "LLMAPI"]
