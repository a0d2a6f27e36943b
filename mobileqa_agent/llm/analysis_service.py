import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from mobileqa_agent.data import AnalysisRequest, RecordedState
from mobileqa_agent.llm.llm_api import LLMAPI
from mobileqa_agent.llm.prompt import LLMPrompt


class BaseAnalysisService(ABC):
    """Collaborator that analyses one transition.

    Returns either a dict already shaped like the transition response or
    text containing it. Raises on any service-level failure.
    """

    @abstractmethod
    async def analyze(self, request: AnalysisRequest) -> Union[Dict[str, Any], str]:
        pass

    async def close(self):
        pass


class LLMAnalysisService(BaseAnalysisService):
    """Analysis Service backed by an OpenAI-compatible chat model."""

    def __init__(self, llm_config: Optional[Dict[str, Any]] = None, llm: Optional[LLMAPI] = None):
        if llm is None and llm_config is None:
            raise ValueError("Either llm_config or llm must be provided")
        self.llm = llm or LLMAPI(llm_config)

    async def analyze(self, request: AnalysisRequest) -> str:
        system_prompt = LLMPrompt.transition_system_prompt + LLMPrompt.transition_output_prompt
        content = self.build_user_content(request)
        logging.debug(f"Requesting analysis for transition {request.index + 1}")
        return await self.llm.get_llm_response(system_prompt, content)

    async def close(self):
        await self.llm.close()

    @classmethod
    def build_user_content(cls, request: AnalysisRequest) -> List[Dict[str, Any]]:
        from_state, to_state = request.from_state, request.to_state
        intro = (
            "Please analyze this transition between two UI states.\n\n"
            f"Session info:\n{cls._session_info(from_state)}\n\n"
            f"Transition timestamps: From {_format_time(from_state.timestamp)} "
            f"to {_format_time(to_state.timestamp)}\n\n"
            f"{cls._action_info(to_state)}"
        )
        content = [{"type": "text", "text": intro}]

        if request.history_context:
            lines = "\n".join(entry.to_context_line() for entry in request.history_context)
            content.append({"type": "text", "text": f"PREVIOUS TRANSITIONS:\n{lines}"})

        content += cls._screenshot_parts("BEFORE", from_state)
        content += cls._screenshot_parts("AFTER", to_state)
        content.append({"type": "text", "text": f"BEFORE STATE XML SOURCE:\n\n{_truncate_xml(from_state.page_source)}"})
        content.append({"type": "text", "text": f"AFTER STATE XML SOURCE:\n\n{_truncate_xml(to_state.page_source)}"})
        content.append({"type": "text", "text": LLMPrompt.transition_final_instruction})
        return content

    @staticmethod
    def _session_info(state: RecordedState) -> str:
        details = state.session_details
        return (
            f"Device: {details.get('platformName', 'Unknown')} {details.get('platformVersion', 'Unknown')}\n"
            f"Device name: {details.get('deviceName', 'Unknown')}\n"
            f"Automation: {details.get('automationName', 'Unknown')}"
        )

    @staticmethod
    def _action_info(state: RecordedState) -> str:
        if not state.action:
            return "No explicit action recorded"
        return (
            f"User action: {state.action_type}\n"
            f"Target element: {state.action_target or 'Unknown'}\n"
            f"Args: {json.dumps(state.action_args or {}, ensure_ascii=False, default=str)}"
        )

    @staticmethod
    def _screenshot_parts(label: str, state: RecordedState) -> List[Dict[str, Any]]:
        if not state.screenshot_base64:
            return [{"type": "text", "text": f"{label} STATE SCREENSHOT: not available"}]
        url = state.screenshot_base64
        if not url.startswith("data:image"):
            url = f"data:image/png;base64,{url}"
        return [
            {"type": "text", "text": f"{label} STATE SCREENSHOT:"},
            {"type": "image_url", "image_url": {"url": url, "detail": "low"}},
        ]


def _format_time(timestamp) -> str:
    # Recordings store epoch milliseconds
    if isinstance(timestamp, (int, float)):
        try:
            return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).isoformat()
        except (OverflowError, OSError, ValueError):
            pass
    return str(timestamp)


def _truncate_xml(source: Optional[str]) -> str:
    if not source:
        return "XML source not available"
    if len(source) > LLMPrompt.MAX_XML_LENGTH:
        return source[: LLMPrompt.MAX_XML_LENGTH] + "... (truncated)"
    return source
