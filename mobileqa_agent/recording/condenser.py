import logging
from typing import List, Optional, Tuple

from mobileqa_agent.data import CondenseStats, RecordedState
from mobileqa_agent.executor.errors import InvalidInputError

SIMILARITY_CHUNK_SIZE = 1000


def _has_changed(old: Optional[str], new: Optional[str]) -> bool:
    # A value that disappears is not treated as a change
    if not new:
        return False
    if not old:
        return True
    return old != new


def _screenshot_changed(old: Optional[str], new: Optional[str], threshold: float) -> bool:
    """Compare two base64 screenshots. Below a threshold of 1.0 the strings
    are compared chunk by chunk and count as changed when the share of
    identical chunks drops under the threshold."""
    if threshold >= 1.0 or not old or not new or old == new:
        return _has_changed(old, new)

    if abs(len(old) - len(new)) / max(len(old), len(new)) > (1 - threshold):
        return True

    min_length = min(len(old), len(new))
    matching = total = 0
    for start in range(0, min_length, SIMILARITY_CHUNK_SIZE):
        end = min(start + SIMILARITY_CHUNK_SIZE, min_length)
        if old[start:end] == new[start:end]:
            matching += 1
        total += 1

    similarity = matching / total
    logging.debug(f"Screenshot similarity: {similarity:.4f}")
    return similarity < threshold


def validate_threshold(threshold) -> float:
    """Screenshot similarity threshold as a float in [0.0, 1.0]."""
    try:
        value = float(threshold)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Invalid screenshot threshold: {threshold!r}") from e
    if not 0.0 <= value <= 1.0:
        raise InvalidInputError(f"Screenshot threshold must be between 0.0 and 1.0, got {threshold}")
    return value


def condense_recording(
    states: List[RecordedState],
    check_xml: bool = True,
    check_screenshot: bool = True,
    screenshot_threshold: float = 1.0,
) -> Tuple[List[RecordedState], CondenseStats]:
    """Drop states whose page source and screenshot did not change compared
    to the last kept state. The first state is always kept."""
    screenshot_threshold = validate_threshold(screenshot_threshold)
    stats = CondenseStats(initial_state_count=len(states))

    if len(states) < 2 or not (check_xml or check_screenshot):
        stats.final_state_count = len(states)
        return list(states), stats

    logging.info(
        f"Condensing recording of {len(states)} states "
        f"(check_xml={check_xml}, check_screenshot={check_screenshot}, threshold={screenshot_threshold})"
    )

    kept = [states[0]]
    for i, current in enumerate(states[1:], start=1):
        last = kept[-1]
        source_changed = check_xml and _has_changed(last.page_source, current.page_source)
        screenshot_changed = check_screenshot and _screenshot_changed(
            last.screenshot_base64, current.screenshot_base64, screenshot_threshold
        )

        if source_changed:
            stats.xml_changes += 1
        if screenshot_changed:
            stats.screenshot_changes += 1

        if source_changed or screenshot_changed:
            kept.append(current)
        else:
            stats.unchanged_states += 1
            logging.debug(f"Skipping redundant state {i}")

    stats.final_state_count = len(kept)
    stats.removed_state_count = len(states) - len(kept)
    logging.info(f"Condensed recording from {len(states)} to {len(kept)} states")
    return kept, stats
