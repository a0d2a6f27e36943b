from .condenser import condense_recording, validate_threshold
from .loader import load_recording

__all__ = ["condense_recording", "load_recording", "validate_threshold"]
