import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Set, Union

from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from mobileqa_agent.data import (
    DEFAULT_ANALYSIS_CONFIG,
    AnalysisResult,
    RecordedState,
    TransitionAnalysisConfig,
    TransitionItem,
)
from mobileqa_agent.executor.artifact_sink import BaseArtifactSink, NullArtifactSink
from mobileqa_agent.executor.errors import InvalidInputError, PersistenceError
from mobileqa_agent.executor.history import HistoryWindow
from mobileqa_agent.executor.result_slots import ResultSlotArray
from mobileqa_agent.executor.strategy import select_strategy_for_config
from mobileqa_agent.executor.strategy_runners import BatchRunContext, get_runner
from mobileqa_agent.executor.transition_analyzer import TransitionAnalyzer
from mobileqa_agent.llm.analysis_service import BaseAnalysisService

StateInput = Union[RecordedState, Dict[str, Any]]

# Upper bound the module-level entry point waits for artifact writes
DEFAULT_DRAIN_TIMEOUT_SECONDS = 1.0


class TransitionAnalysisPipeline:
    """Analyses every adjacent pair of recorded states.

    The result list always has ``len(states) - 1`` entries in input order.
    Per-item failures come back as results with ``is_error=True``; only
    invalid input raises.
    """

    def __init__(self, service: BaseAnalysisService, artifact_sink: Optional[BaseArtifactSink] = None):
        self.analyzer = TransitionAnalyzer(service)
        self.artifact_sink = artifact_sink or NullArtifactSink()
        self._pending_writes: Set[asyncio.Task] = set()

    async def analyze_transitions(
        self,
        states: Sequence[StateInput],
        options: Optional[Dict[str, Any]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[AnalysisResult]:
        """
        Args:
            states: Recorded states in capture order, as models or recording entries
            options: Overrides for DEFAULT_ANALYSIS_CONFIG plus an optional
                ``on_progress(completed, total)`` callback
            cancel_event: When set, items not yet dispatched get a cancelled placeholder

        Returns:
            One AnalysisResult per transition, in input order
        """
        if not isinstance(states, (list, tuple)) or len(states) < 2:
            raise InvalidInputError("At least two recorded states are required for transition analysis")

        options = dict(options or {})
        on_progress = options.pop("on_progress", None) or options.pop("onProgress", None)
        config = self.resolve_config(options)
        recorded_states = [self._coerce_state(i, state) for i, state in enumerate(states)]

        count = len(recorded_states) - 1
        items = [
            TransitionItem(index=i, from_state=recorded_states[i], to_state=recorded_states[i + 1])
            for i in range(count)
        ]
        strategy = select_strategy_for_config(count, config)
        logging.info(
            f"Starting transition analysis for {len(recorded_states)} states "
            f"({count} transitions), strategy: {strategy.describe()}"
        )

        self._persist(
            {
                "timestamp": datetime.now().isoformat(),
                "statesCount": len(recorded_states),
                "strategy": strategy.type.value,
                "options": config.model_dump(by_alias=True),
            },
            "transition_analysis_start",
        )
        self._persist([state.metadata() for state in recorded_states], "transition_states_metadata")

        slots = ResultSlotArray(count, on_progress=on_progress)
        ctx = BatchRunContext(
            analyzer=self.analyzer,
            config=config,
            strategy=strategy,
            slots=slots,
            history=HistoryWindow(config.history_depth),
            cancel_event=cancel_event,
            on_item_done=self._on_item_done,
        )

        try:
            await get_runner(strategy).run(ctx, items)
        except Exception as e:
            logging.error(f"Error in transition analysis pipeline: {e}")
            self._persist(
                {"error": repr(e), "timestamp": datetime.now().isoformat()},
                "transition_analysis_error_log",
            )
            raise

        results = await slots.finalize(items)
        self._persist([result.to_dict() for result in results], "transition_analysis_results")

        error_count = sum(1 for r in results if r.is_error)
        logging.info(
            f"Transition analysis completed with {len(results)} transitions analyzed "
            f"({error_count} failed, peak in flight: {ctx.limiter.peak_in_flight})"
        )
        return results

    @staticmethod
    def resolve_config(options: Optional[Dict[str, Any]] = None) -> TransitionAnalysisConfig:
        """Merge user options (snake_case or camelCase) over the defaults."""
        user_options = {to_snake(key): value for key, value in (options or {}).items()}
        merged = {**DEFAULT_ANALYSIS_CONFIG, **user_options}
        try:
            return TransitionAnalysisConfig.model_validate(merged)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid transition analysis options: {e}") from e

    @staticmethod
    def _coerce_state(position: int, state: StateInput) -> RecordedState:
        if isinstance(state, RecordedState):
            return state
        if not isinstance(state, dict):
            raise InvalidInputError(f"State {position} is not a recorded state: {type(state).__name__}")
        try:
            if "deviceArtifacts" in state:
                return RecordedState.from_recording_entry(state)
            return RecordedState.model_validate(state)
        except ValidationError as e:
            raise InvalidInputError(f"State {position} is invalid: {e}") from e

    async def _on_item_done(self, item: TransitionItem, result: AnalysisResult):
        self._persist(result.to_dict(), f"transition_{item.index + 1}_result")

    def _persist(self, artifact: Any, label: str):
        """Schedule an artifact write without waiting for it."""
        task = asyncio.create_task(self._write_artifact(artifact, label))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _write_artifact(self, artifact: Any, label: str):
        try:
            await self.artifact_sink.write(artifact, label)
        except Exception as e:
            logging.warning(str(PersistenceError(label, e)))

    async def drain(self, timeout: Optional[float] = None) -> int:
        """Wait for outstanding artifact writes, e.g. before the event loop closes.

        Args:
            timeout: Seconds to wait at most, None waits for every write

        Returns:
            Number of writes still running when the wait ended; they are left running
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while True:
            pending = [task for task in self._pending_writes if not task.done()]
            if not pending:
                return 0
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                logging.warning(f"{len(pending)} artifact writes still pending after {timeout}s, leaving them running")
                return len(pending)
            await asyncio.wait(pending, timeout=remaining)


async def analyze_transitions(
    states: Sequence[StateInput],
    options: Optional[Dict[str, Any]] = None,
    *,
    service: BaseAnalysisService,
    artifact_sink: Optional[BaseArtifactSink] = None,
    cancel_event: Optional[asyncio.Event] = None,
    drain_timeout: Optional[float] = DEFAULT_DRAIN_TIMEOUT_SECONDS,
) -> List[AnalysisResult]:
    """Run one pipeline and give its artifact writes up to ``drain_timeout``
    seconds to finish. A slow sink never holds back the results."""
    pipeline = TransitionAnalysisPipeline(service, artifact_sink=artifact_sink)
    try:
        return await pipeline.analyze_transitions(states, options, cancel_event=cancel_event)
    finally:
        await pipeline.drain(timeout=drain_timeout)
