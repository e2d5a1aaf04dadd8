"""
Named presets: a saved sample, field configuration and generator program.
"""

import json
import uuid
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

from dataforge.core.config import FieldConfig

logger = logging.getLogger(__name__)


class PresetConfig(BaseModel):
    """Everything needed to replay a configuration."""
    model_config = ConfigDict(populate_by_name=True)

    input_json: str = Field(..., alias="inputJson")
    fields: List[FieldConfig] = Field(default_factory=list)
    custom_instructions: str = Field(default="", alias="customInstructions")
    generate_count: int = Field(default=50, ge=0, alias="generateCount")
    generated_code: str = Field(default="", alias="generatedCode")


class Preset(BaseModel):
    """A named, saved configuration."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="createdAt")
    config: PresetConfig


class PresetStore:
    """Presets persisted as a JSON list in a single file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def list(self) -> List[Preset]:
        """Load all presets; a missing file means none."""
        if not self.path.exists():
            return []
        with open(self.path) as f:
            raw = json.load(f)
        return [Preset.model_validate(item) for item in raw]

    def _write(self, presets: List[Preset]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(
                [p.model_dump(mode="json", by_alias=True, exclude_none=True) for p in presets],
                f,
                indent=2
            )

    def save(self, preset: Preset) -> Preset:
        """Add a preset, replacing any existing one with the same id."""
        presets = [p for p in self.list() if p.id != preset.id]
        presets.append(preset)
        self._write(presets)
        logger.info(f"Saved preset '{preset.name}' to {self.path}")
        return preset

    def get(self, preset_id: str) -> Optional[Preset]:
        return next((p for p in self.list() if p.id == preset_id), None)

    def delete(self, preset_id: str) -> bool:
        """Remove a preset; returns False when it did not exist."""
        presets = self.list()
        remaining = [p for p in presets if p.id != preset_id]
        if len(remaining) == len(presets):
            return False
        self._write(remaining)
        return True
