import json
import logging
import re
from typing import Any, Iterator, List

from pydantic import ValidationError

from mobileqa_agent.data import (
    AnalysisRequest,
    AnalysisResult,
    HistoryEntry,
    TransitionItem,
    TransitionResponse,
)
from mobileqa_agent.executor.errors import PerItemAnalysisError
from mobileqa_agent.llm.analysis_service import BaseAnalysisService

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


class TransitionAnalyzer:
    """Analyses one transition item.

    Never raises for a per-item problem: service failures and unusable
    responses come back as an error placeholder result. No retries here,
    retry policy belongs to the service.
    """

    def __init__(self, service: BaseAnalysisService):
        self.service = service

    async def analyze(self, item: TransitionItem, history_snapshot: List[HistoryEntry]) -> AnalysisResult:
        request = AnalysisRequest(
            index=item.index,
            from_state=item.from_state,
            to_state=item.to_state,
            history_context=list(history_snapshot),
        )

        try:
            raw_response = await self.service.analyze(request)
        except Exception as e:
            message = str(e) or type(e).__name__
            logging.error(f"Error analyzing transition {item.index + 1}: {message}")
            return AnalysisResult.failed(item, message)

        try:
            response = self.parse_response(item.index, raw_response)
        except PerItemAnalysisError as e:
            logging.error(f"Error parsing transition {item.index + 1} result: {e}")
            logging.debug(f"Raw response for transition {item.index + 1}: {raw_response!r}")
            return AnalysisResult.failed(item, str(e))

        return AnalysisResult.from_response(item, response)

    @classmethod
    def parse_response(cls, index: int, raw_response: Any) -> TransitionResponse:
        if isinstance(raw_response, TransitionResponse):
            return raw_response

        if isinstance(raw_response, dict):
            try:
                return TransitionResponse.model_validate(raw_response)
            except ValidationError as e:
                raise PerItemAnalysisError(index, f"Response does not match the transition shape: {_summarize(e)}")

        if not isinstance(raw_response, str):
            raise PerItemAnalysisError(index, f"Unsupported response type: {type(raw_response).__name__}")

        last_error = None
        for candidate in _json_candidates(raw_response):
            try:
                parsed = json.loads(candidate)
            except json.JSONDecodeError:
                continue
            if not isinstance(parsed, dict):
                continue
            try:
                return TransitionResponse.model_validate(parsed)
            except ValidationError as e:
                last_error = e

        if last_error is not None:
            raise PerItemAnalysisError(index, f"Response does not match the transition shape: {_summarize(last_error)}")
        raise PerItemAnalysisError(index, "Could not parse JSON from response")


def _json_candidates(text: str) -> Iterator[str]:
    """Yield substrings of ``text`` that may hold the JSON object: the whole
    text, fenced code blocks, then balanced ``{...}`` spans."""
    stripped = text.strip()
    if stripped:
        yield stripped
    for match in _FENCED_BLOCK.finditer(text):
        yield match.group(1).strip()
    yield from _balanced_objects(text)


def _balanced_objects(text: str) -> Iterator[str]:
    start = text.find("{")
    while start != -1:
        end = _matching_brace(text, start)
        if end == -1:
            return
        yield text[start:end + 1]
        start = text.find("{", start + 1)


def _matching_brace(text: str, start: int) -> int:
    depth = 0
    in_string = False
    escaped = False
    for pos in range(start, len(text)):
        ch = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return pos
    return -1


def _summarize(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{location}: {err.get('msg')}")
    return "; ".join(parts)
