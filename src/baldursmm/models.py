"""
models.py
Data types shared across the mod manager.

ModRecord is the persisted entity for one imported mod.  The record store
owns every instance; other modules work on the instances it hands out for
the duration of a single operation.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any


class ImportOutcome(str, Enum):
    ADDED = "added"
    UPDATED = "updated"


@dataclass
class ModRecord:
    uuid: str
    md5: str
    name: str
    folder: str
    order: int = 0
    enabled: bool = False
    author: str | None = None
    description: str | None = None
    created: str | None = None
    group: str | None = None
    version: str | None = None
    # Top-level entries of the payload directory at import time
    directory_contents: list[str] = field(default_factory=list)
    pak_file: str = ""
    directory_path: str = ""

    @property
    def directory(self) -> Path | None:
        return Path(self.directory_path) if self.directory_path else None

    @property
    def pak_path(self) -> Path | None:
        """Where the .pak lives while the mod is disabled."""
        directory = self.directory
        if directory is None or not self.pak_file:
            return None
        return directory / self.pak_file

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModRecord":
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        kwargs["directory_contents"] = list(kwargs.get("directory_contents") or [])
        return cls(**kwargs)

    def __str__(self) -> str:
        return f"{self.name} ({self.uuid})"


@dataclass(frozen=True)
class StagingProgress:
    """Coarse progress of one staging operation (one unit per folder)."""
    completed_units: int = 0
    total_units: int = 1

    @property
    def fraction_completed(self) -> float:
        if self.total_units <= 0:
            return 0.0
        return min(1.0, max(0.0, self.completed_units / self.total_units))
