import asyncio
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from mobileqa_agent.data import AnalysisRequest, RecordedState
from mobileqa_agent.executor import BaseArtifactSink
from mobileqa_agent.llm import BaseAnalysisService


def make_state(i: int, **overrides) -> RecordedState:
    fields = {
        "timestamp": 1_700_000_000_000 + i * 1000,
        "action": {"action": "click", "element": {"elementId": f"el-{i}"}, "args": []},
        "screenshot_base64": f"c2NyZWVuc2hvdA{i}",
        "page_source": f"<hierarchy><node index='{i}'/></hierarchy>",
        "session_details": {"platformName": "Android", "platformVersion": "14"},
    }
    fields.update(overrides)
    return RecordedState(**fields)


def default_response(request: AnalysisRequest) -> Dict[str, Any]:
    return {
        "hasTransition": True,
        "transitionDescription": f"Transition {request.index}",
        "technicalActionDescription": f"User tapped el-{request.index + 1}",
        "currentPageName": f"Page {request.index + 1}",
        "pageMainComponents": ["Header", "Continue button"],
    }


class MockAnalysisService(BaseAnalysisService):
    """Scriptable Analysis Service that records what it was asked and how
    many calls were open at once."""

    def __init__(
        self,
        response_factory: Callable[[AnalysisRequest], Any] = default_response,
        fail_indices: Iterable[int] = (),
        delay: Callable[[int], float] = lambda index: 0,
    ):
        self.response_factory = response_factory
        self.fail_indices = set(fail_indices)
        self.delay = delay
        self.requests: Dict[int, AnalysisRequest] = {}
        self.events: List[Tuple[str, int]] = []
        self.calls = 0
        self.open_calls = 0
        self.max_open_calls = 0
        self.closed = False

    async def analyze(self, request: AnalysisRequest):
        self.calls += 1
        self.open_calls += 1
        self.max_open_calls = max(self.max_open_calls, self.open_calls)
        self.requests[request.index] = request
        self.events.append(("start", request.index))
        try:
            await asyncio.sleep(self.delay(request.index))
            if request.index in self.fail_indices:
                raise ConnectionError(f"service unavailable for item {request.index}")
            return self.response_factory(request)
        finally:
            self.open_calls -= 1
            self.events.append(("end", request.index))

    async def close(self):
        self.closed = True


class RecordingArtifactSink(BaseArtifactSink):
    def __init__(self):
        self.artifacts: List[Tuple[str, Any]] = []

    async def write(self, artifact, label):
        self.artifacts.append((label, artifact))
        return label

    @property
    def labels(self) -> List[str]:
        return [label for label, _ in self.artifacts]

    def get(self, label) -> Optional[Any]:
        for stored_label, artifact in self.artifacts:
            if stored_label == label:
                return artifact
        return None


class FailingArtifactSink(BaseArtifactSink):
    async def write(self, artifact, label):
        raise OSError("disk full")


class BlockingArtifactSink(BaseArtifactSink):
    """Sink whose writes hang until ``release`` is set."""

    def __init__(self):
        self.release = asyncio.Event()
        self.written: List[str] = []

    async def write(self, artifact, label):
        await self.release.wait()
        self.written.append(label)
        return label
