import json

import pytest

from tests.helpers import MockAnalysisService, make_state
from mobileqa_agent.data import AnalysisResult, HistoryEntry, TransitionItem
from mobileqa_agent.executor import PerItemAnalysisError, TransitionAnalyzer

ITEM = TransitionItem(index=0, from_state=make_state(0), to_state=make_state(1))

VALID = {
    "hasTransition": True,
    "transitionDescription": "Login form submitted",
    "technicalActionDescription": "User tapped the 'Sign in' button",
    "actionTarget": "Sign in button",
    "actionValue": None,
    "isPageChanged": True,
    "isSamePageDifferentState": False,
    "currentPageName": "Home - Dashboard",
    "currentPageDescription": "Landing page after login",
    "inferredUserActivity": "Logging in",
    "pageMainComponents": ["Header", "Balance card", "Navigation bar"],
}


async def analyze_with(response, history=()):
    service = MockAnalysisService(response_factory=lambda request: response)
    result = await TransitionAnalyzer(service).analyze(ITEM, list(history))
    return result, service


@pytest.mark.asyncio
async def test_structured_response_is_mapped():
    result, _ = await analyze_with(VALID)

    assert not result.is_error
    assert result.has_transition
    assert result.from_timestamp == ITEM.from_state.timestamp
    assert result.to_timestamp == ITEM.to_state.timestamp
    assert result.current_page_name == "Home - Dashboard"
    assert result.page_main_components == ["Header", "Balance card", "Navigation bar"]
    assert result.is_page_changed


@pytest.mark.asyncio
async def test_no_transition_is_not_an_error():
    result, _ = await analyze_with({"hasTransition": False})

    assert not result.is_error
    assert not result.has_transition
    assert result.error_message is None
    assert result.current_page_name == "Unknown page"


@pytest.mark.asyncio
async def test_plain_json_text_is_parsed():
    result, _ = await analyze_with(json.dumps(VALID))
    assert not result.is_error
    assert result.action_target == "Sign in button"


@pytest.mark.asyncio
async def test_json_wrapped_in_prose_and_code_fence_is_extracted():
    text = f"Here is my analysis:\n```json\n{json.dumps(VALID, indent=2)}\n```\nLet me know if you need more."
    result, _ = await analyze_with(text)
    assert not result.is_error
    assert result.transition_description == "Login form submitted"


@pytest.mark.asyncio
async def test_bare_object_inside_prose_is_extracted():
    payload = dict(VALID, transitionDescription="Dialog {confirm} appeared")
    text = f"The states differ. {json.dumps(payload)} That is all."
    result, _ = await analyze_with(text)
    assert not result.is_error
    assert result.transition_description == "Dialog {confirm} appeared"


@pytest.mark.asyncio
async def test_unparseable_text_becomes_error_placeholder():
    result, _ = await analyze_with("I could not compare these screens, sorry.")

    assert result.is_error
    assert not result.has_transition
    assert result.error_message == "Could not parse JSON from response"
    assert result.from_timestamp == ITEM.from_state.timestamp


@pytest.mark.asyncio
async def test_missing_required_flag_becomes_error_placeholder():
    result, _ = await analyze_with({"transitionDescription": "something"})
    assert result.is_error
    assert "does not match the transition shape" in result.error_message


@pytest.mark.asyncio
async def test_non_boolean_flag_is_rejected():
    result, _ = await analyze_with(dict(VALID, hasTransition="yes"))
    assert result.is_error


@pytest.mark.asyncio
async def test_empty_strings_fall_back_to_defaults():
    result, _ = await analyze_with({"hasTransition": True, "transitionDescription": "", "currentPageName": ""})
    assert result.transition_description == "No description available"
    assert result.current_page_name == "Unknown page"


@pytest.mark.asyncio
async def test_service_failure_is_isolated_and_not_retried():
    service = MockAnalysisService(fail_indices={0})
    result = await TransitionAnalyzer(service).analyze(ITEM, [])

    assert result.is_error
    assert "service unavailable" in result.error_message
    assert service.calls == 1


@pytest.mark.asyncio
async def test_timeout_without_message_uses_exception_name():
    class TimingOutService(MockAnalysisService):
        async def analyze(self, request):
            raise TimeoutError()

    result = await TransitionAnalyzer(TimingOutService()).analyze(ITEM, [])
    assert result.is_error
    assert result.error_message == "TimeoutError"


@pytest.mark.asyncio
async def test_history_snapshot_is_sent_with_the_request():
    previous = AnalysisResult(from_timestamp=1, to_timestamp=2, has_transition=True, current_page_name="Login")
    history = [HistoryEntry(index=0, result=previous)]
    _, service = await analyze_with(VALID, history=history)

    request = service.requests[0]
    assert request.from_state == ITEM.from_state
    assert request.to_state == ITEM.to_state
    assert request.history_context == history


def test_parse_response_rejects_unsupported_types():
    with pytest.raises(PerItemAnalysisError):
        TransitionAnalyzer.parse_response(0, 42)


def test_results_serialise_with_camel_case_keys():
    result = AnalysisResult.failed(ITEM, "boom")
    data = result.to_dict()
    assert data["fromTimestamp"] == ITEM.from_state.timestamp
    assert data["isError"] is True
    assert data["errorMessage"] == "boom"
    assert "pageMainComponents" in data
