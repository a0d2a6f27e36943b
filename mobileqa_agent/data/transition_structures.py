from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator
from pydantic.alias_generators import to_camel

Timestamp = Union[int, float, str]

# Fallback texts used when the model leaves a field out or the analysis failed
UNKNOWN_PAGE = "Unknown page"
NO_PAGE_DESCRIPTION = "No page description available"
UNKNOWN_ACTIVITY = "Unknown activity"
CANCELLED_MESSAGE = "Transition analysis was cancelled"


class StrategyType(str, Enum):
    SEQUENTIAL = "sequential"
    BOUNDED_PARALLEL = "bounded_parallel"
    CHUNKED = "chunked"


class _CamelModel(BaseModel):
    """Base for models exchanged as camelCase JSON (recordings, LLM
    responses, artifacts) while exposing snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# ============================================================================
# RECORDING
# ============================================================================

class RecordedState(_CamelModel):
    """One recorded UI state: what the device showed after an action."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    timestamp: Timestamp = Field(alias="actionTime")
    action: Optional[Dict[str, Any]] = None
    screenshot_base64: Optional[str] = None
    page_source: Optional[str] = None
    session_details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_recording_entry(cls, entry: Dict[str, Any]) -> "RecordedState":
        """Build a state from an inspector recording entry, where the device
        data is nested under ``deviceArtifacts``."""
        artifacts = entry.get("deviceArtifacts") or {}
        return cls(
            timestamp=entry.get("actionTime"),
            action=entry.get("action"),
            screenshot_base64=artifacts.get("screenshotBase64"),
            page_source=artifacts.get("pageSource"),
            session_details=artifacts.get("sessionDetails") or {},
        )

    def to_recording_entry(self) -> Dict[str, Any]:
        """Inverse of ``from_recording_entry``; missing artifacts are left out."""
        artifacts: Dict[str, Any] = {}
        if self.screenshot_base64 is not None:
            artifacts["screenshotBase64"] = self.screenshot_base64
        if self.page_source is not None:
            artifacts["pageSource"] = self.page_source
        if self.session_details:
            artifacts["sessionDetails"] = dict(self.session_details)
        return {"actionTime": self.timestamp, "action": self.action, "deviceArtifacts": artifacts}

    @property
    def action_type(self) -> str:
        return (self.action or {}).get("action") or "Unknown"

    @property
    def action_target(self) -> Optional[str]:
        element = (self.action or {}).get("element") or {}
        return element.get("elementId")

    @property
    def action_args(self) -> Any:
        return (self.action or {}).get("args")

    def metadata(self) -> Dict[str, Any]:
        """Lightweight description without screenshot or XML payloads."""
        return {
            "actionTime": self.timestamp,
            "actionType": self.action_type,
            "actionTarget": self.action_target,
            "actionArgs": self.action_args,
            "hasScreenshot": bool(self.screenshot_base64),
            "hasPageSource": bool(self.page_source),
            "deviceType": self.session_details.get("platformName", "Unknown"),
            "deviceVersion": self.session_details.get("platformVersion", "Unknown"),
        }


class TransitionItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    from_state: RecordedState
    to_state: RecordedState


# ============================================================================
# ANALYSIS
# ============================================================================

class TransitionResponse(_CamelModel):
    """Shape the Analysis Service is expected to answer with."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    has_transition: StrictBool
    transition_description: Optional[str] = None
    technical_action_description: Optional[str] = None
    action_target: Optional[str] = None
    action_value: Optional[str] = None
    is_page_changed: bool = False
    is_same_page_different_state: bool = False
    current_page_name: Optional[str] = None
    current_page_description: Optional[str] = None
    inferred_user_activity: Optional[str] = None
    page_main_components: List[str] = Field(default_factory=list)

    @field_validator("action_target", "action_value", mode="before")
    @classmethod
    def _stringify(cls, value):
        # Models sometimes answer numbers or booleans for action values
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("page_main_components", mode="before")
    @classmethod
    def _components_list(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


class AnalysisResult(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    from_timestamp: Timestamp
    to_timestamp: Timestamp
    has_transition: bool = False
    transition_description: str = "No description available"
    technical_action_description: str = "No action description available"
    action_target: Optional[str] = None
    action_value: Optional[str] = None
    is_page_changed: bool = False
    is_same_page_different_state: bool = False
    current_page_name: str = UNKNOWN_PAGE
    current_page_description: str = NO_PAGE_DESCRIPTION
    inferred_user_activity: str = UNKNOWN_ACTIVITY
    page_main_components: List[str] = Field(default_factory=list)
    is_error: bool = False
    error_message: Optional[str] = None

    @classmethod
    def from_response(cls, item: TransitionItem, response: TransitionResponse) -> "AnalysisResult":
        # Empty strings from the model count as missing
        fields = {k: v for k, v in response.model_dump().items() if v not in (None, "")}
        return cls(
            from_timestamp=item.from_state.timestamp,
            to_timestamp=item.to_state.timestamp,
            **fields,
        )

    @classmethod
    def failed(cls, item: TransitionItem, message: str) -> "AnalysisResult":
        """Error placeholder that takes the slot of an item whose analysis
        could not be completed."""
        return cls(
            from_timestamp=item.from_state.timestamp,
            to_timestamp=item.to_state.timestamp,
            transition_description=f"Failed to analyze transition: {message}",
            technical_action_description="Error analyzing transition",
            is_error=True,
            error_message=message,
        )

    @classmethod
    def cancelled(cls, item: TransitionItem) -> "AnalysisResult":
        return cls.failed(item, CANCELLED_MESSAGE)


class HistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    result: AnalysisResult

    def to_context_line(self) -> str:
        r = self.result
        if r.is_error:
            return f"Step {self.index + 1}: analysis failed"
        return (
            f"Step {self.index + 1}: page '{r.current_page_name}' - {r.transition_description} "
            f"(activity: {r.inferred_user_activity})"
        )


class AnalysisRequest(BaseModel):
    """Payload handed to the Analysis Service for one transition."""

    model_config = ConfigDict(frozen=True)

    index: int
    from_state: RecordedState
    to_state: RecordedState
    history_context: List[HistoryEntry] = Field(default_factory=list)


# ============================================================================
# CONFIGURATION
# ============================================================================

DEFAULT_ANALYSIS_CONFIG: Dict[str, Any] = {
    "max_parallel_requests": 3,
    "batch_threshold": 20,
    "chunk_size": 10,
    "enable_parallel_processing": True,
    "include_historical_context": True,
    "history_depth": 3,
    "dispatch_stagger_seconds": 0.05,
}


class TransitionAnalysisConfig(BaseModel):
    """Effective pipeline configuration after merging user options over
    DEFAULT_ANALYSIS_CONFIG. Accepts snake_case or camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore", frozen=True)

    max_parallel_requests: int = Field(ge=1)
    batch_threshold: int = Field(ge=0)
    chunk_size: int = Field(ge=1)
    enable_parallel_processing: bool
    include_historical_context: bool
    history_depth: int = Field(ge=0)
    dispatch_stagger_seconds: float = Field(ge=0)


class CondenseStats(BaseModel):
    initial_state_count: int = 0
    final_state_count: int = 0
    removed_state_count: int = 0
    xml_changes: int = 0
    screenshot_changes: int = 0
    unchanged_states: int = 0
