"""
settings.py
User preferences for the mod manager, persisted as settings.json.

ManagerSettings is a plain value: the manager and the staging pipeline take
it (or the single field they need) as an argument instead of reading a
process-wide preferences object.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from baldursmm.app_log import app_log
from baldursmm.config_paths import get_user_mods_dir

# Where Baldur's Gate 3 keeps its per-user data (Mods/, PlayerProfiles/)
_DEFAULT_GAME_DOCUMENTS = Path.home() / "Documents" / "Larian Studios" / "Baldur's Gate 3"

_MODS_SUBPATH = Path("Mods")
_MODSETTINGS_SUBPATH = Path("PlayerProfiles") / "Public" / "modsettings.lsx"


@dataclass
class ManagerSettings:
    # True: copy the source folder into the managed store; False: move it
    copy_on_import: bool = True
    game_documents_path: Path = field(default_factory=lambda: _DEFAULT_GAME_DOCUMENTS)
    store_root: Path | None = None

    @property
    def game_mods_dir(self) -> Path:
        """Folder the game loads .pak files from."""
        return self.game_documents_path / _MODS_SUBPATH

    @property
    def modsettings_path(self) -> Path:
        """The live modsettings.lsx the game reads."""
        return self.game_documents_path / _MODSETTINGS_SUBPATH

    def get_store_root(self) -> Path:
        if self.store_root is not None:
            return self.store_root
        return get_user_mods_dir()

    # -----------------------------------------------------------------------
    # Persistence
    # -----------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path) -> "ManagerSettings":
        """Read settings.json; a missing or unreadable file yields defaults."""
        settings = cls()
        if not path.is_file():
            return settings
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            app_log(f"Ignoring unreadable settings file {path}: {exc}")
            return settings
        if not isinstance(data, dict):
            return settings
        settings.copy_on_import = bool(data.get("copy_on_import", True))
        raw_docs = data.get("game_documents_path", "")
        if raw_docs:
            settings.game_documents_path = Path(raw_docs)
        raw_store = data.get("store_root", "")
        if raw_store:
            settings.store_root = Path(raw_store)
        return settings

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "copy_on_import":      self.copy_on_import,
            "game_documents_path": str(self.game_documents_path),
            "store_root":          str(self.store_root) if self.store_root else "",
        }
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
