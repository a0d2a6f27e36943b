import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional


class BaseArtifactSink(ABC):
    """Destination for audit artifacts produced while analysing a recording."""

    @abstractmethod
    async def write(self, artifact: Any, label: str) -> Optional[str]:
        pass


class NullArtifactSink(BaseArtifactSink):
    async def write(self, artifact: Any, label: str) -> Optional[str]:
        return None


class JsonFileArtifactSink(BaseArtifactSink):
    """Writes each artifact to ``<output_dir>/<label>_<timestamp>.json``."""

    def __init__(self, output_dir: Optional[str] = None):
        if output_dir is None:
            timestamp = os.getenv("MOBILEQA_TIMESTAMP") or datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
            output_dir = os.path.join("./output", f"transitions_{timestamp}")
        self.output_dir = output_dir

    async def write(self, artifact: Any, label: str) -> str:
        file_name = f"{label}_{datetime.now().strftime('%Y-%m-%dT%H-%M-%S_%f')}.json"
        path = os.path.join(self.output_dir, file_name)
        await asyncio.to_thread(self._dump, artifact, path)
        logging.debug(f"Written {label} to {path}")
        return os.path.abspath(path)

    def _dump(self, artifact: Any, path: str):
        os.makedirs(self.output_dir, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(artifact, f, indent=2, ensure_ascii=False, default=str)
