import json
import logging
import os
from typing import List

from pydantic import ValidationError

from mobileqa_agent.data import RecordedState
from mobileqa_agent.executor.errors import InvalidInputError


def load_recording(path: str) -> List[RecordedState]:
    """Read an inspector recording (JSON array of entries) into states."""
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Recording file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            entries = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidInputError(f"Recording file is not valid JSON: {e}") from e

    if not isinstance(entries, list):
        raise InvalidInputError("Input file must contain an array of recorded states")

    states = []
    for position, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise InvalidInputError(f"Recording entry {position} is not an object")
        try:
            states.append(RecordedState.from_recording_entry(entry))
        except ValidationError as e:
            raise InvalidInputError(f"Recording entry {position} is invalid: {e}") from e

    logging.info(f"Loaded {len(states)} recorded states from {path}")
    return states
