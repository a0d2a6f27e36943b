from typing import List

import pytest

from mobileqa_agent.data import RecordedState
from tests.helpers import RecordingArtifactSink, make_state


@pytest.fixture
def states_factory():
    def _factory(n: int) -> List[RecordedState]:
        return [make_state(i) for i in range(n)]

    return _factory


@pytest.fixture
def artifact_sink():
    return RecordingArtifactSink()
