"""
manifest.py
Read a mod folder's info.json and locate its .pak file.

info.json shape (only the first element of "Mods" is used):

    {
      "Mods": [
        {"Name": "...", "Folder": "...", "UUID": "...", "Author": "...", ...}
      ],
      "MD5": "..."
    }

Keys are matched case-insensitively.  Name, Folder, UUID and MD5 are
required (an empty string counts as present); Author, Description,
Created, Group and Version are optional.
Only the folder's top-level entries are searched — nested info.json or
.pak files are ignored.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from baldursmm.errors import (
    ManifestIncomplete,
    ManifestMalformed,
    ManifestNotFound,
    PakNotFound,
)

MANIFEST_NAME = "info.json"
PAK_EXTENSION = ".pak"

_REQUIRED_KEYS = ("name", "folder", "uuid", "md5")
_OPTIONAL_KEYS = ("author", "description", "created", "group", "version")


@dataclass(frozen=True)
class ManifestData:
    name: str
    folder: str
    uuid: str
    md5: str
    author: str | None = None
    description: str | None = None
    created: str | None = None
    group: str | None = None
    version: str | None = None


@dataclass
class ModFolderInfo:
    """Everything read from a mod folder before it is staged."""
    path: Path
    manifest: ManifestData
    pak_file: str
    entries: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Directory helpers
# ---------------------------------------------------------------------------

def list_directory(path: Path) -> list[str]:
    """Return the folder's top-level entry names, sorted for stable results."""
    try:
        return sorted(os.listdir(path))
    except OSError as exc:
        raise ManifestNotFound(f"Unable to list mod folder {path}: {exc}") from exc


def find_manifest(entries: list[str]) -> str:
    for entry in entries:
        if entry.lower() == MANIFEST_NAME:
            return entry
    raise ManifestNotFound(f"Unable to locate {MANIFEST_NAME} among {entries}")


def find_pak_file(entries: list[str]) -> str:
    """First entry ending in .pak (case-insensitive) wins."""
    for entry in entries:
        if entry.lower().endswith(PAK_EXTENSION):
            return entry
    raise PakNotFound(f"Unable to resolve a {PAK_EXTENSION} file from {entries}")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _string_fields(obj: dict) -> dict[str, str]:
    """Lower-cased keys → string values; non-string values are skipped."""
    return {
        str(k).lower(): v
        for k, v in obj.items()
        if isinstance(v, str)
    }


def parse_manifest_text(text: str) -> ManifestData:
    """Deserialize info.json content into ManifestData."""
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestMalformed(f"Invalid JSON in {MANIFEST_NAME}: {exc}") from exc

    if not isinstance(document, dict):
        raise ManifestMalformed(f"{MANIFEST_NAME} must contain a JSON object")
    mods = document.get("Mods")
    if not isinstance(mods, list) or not mods or not isinstance(mods[0], dict):
        raise ManifestMalformed(f'{MANIFEST_NAME} has no usable "Mods" list')

    values = _string_fields(mods[0])
    # The top-level checksum wins over any per-mod MD5
    top_level = _string_fields(document)
    if "md5" in top_level:
        values["md5"] = top_level["md5"]

    missing = [key for key in _REQUIRED_KEYS if key not in values]
    if missing:
        raise ManifestIncomplete(
            f"{MANIFEST_NAME} is missing required field(s): {', '.join(missing)}"
        )

    return ManifestData(
        **{key: values[key] for key in _REQUIRED_KEYS},
        **{key: values.get(key) for key in _OPTIONAL_KEYS},
    )


def parse_manifest(manifest_path: Path) -> ManifestData:
    try:
        text = manifest_path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestMalformed(f"Unable to read {manifest_path}: {exc}") from exc
    return parse_manifest_text(text)


def read_mod_folder(path: Path) -> ModFolderInfo:
    """Locate and parse info.json and the .pak file of a mod folder.

    Raises ManifestNotFound, ManifestMalformed (or its ManifestIncomplete
    subclass) and PakNotFound.
    """
    entries = list_directory(path)
    manifest = parse_manifest(path / find_manifest(entries))
    pak_file = find_pak_file(entries)
    return ModFolderInfo(path=path, manifest=manifest, pak_file=pak_file, entries=entries)
