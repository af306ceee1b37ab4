"""
backups.py
Back up the game's modsettings.lsx and keep the sync template.

The first time the manager starts, the live modsettings.lsx (or the built-in
vanilla document when the game has not written one yet) is copied to
backups/modsettings.lsx.  That copy is the template every sync and restore
is built from, so it is never overwritten afterwards.

Every start also stores a timestamped copy of the live file under
backups/<timestamp>/modsettings.lsx.  At most _MAX_BACKUPS are kept.
"""

from __future__ import annotations

import re
import shutil
from datetime import datetime
from pathlib import Path

from baldursmm.app_log import app_log
from baldursmm.fsutil import write_text_atomic
from baldursmm.lsx import VANILLA_MODSETTINGS

_TIMESTAMP_FMT = "%Y%m%d_%H%M%S"
_MAX_BACKUPS = 10
_TIMESTAMP_PATTERN = re.compile(r"^\d{8}_\d{6}$")
_BACKUP_NAME = "modsettings.lsx"


def _timestamp_str() -> str:
    return datetime.now().strftime(_TIMESTAMP_FMT)


def _parse_timestamp_from_dirname(name: str) -> datetime | None:
    """Parse timestamp from a backup folder name like '20250225_143022'."""
    if not _TIMESTAMP_PATTERN.fullmatch(name):
        return None
    try:
        return datetime.strptime(name, _TIMESTAMP_FMT)
    except ValueError:
        return None


def ensure_template(modsettings_path: Path, template_path: Path) -> Path:
    """Create the sync template if it does not exist yet and return its path."""
    if template_path.is_file():
        return template_path
    if modsettings_path.is_file():
        template_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(modsettings_path, template_path)
        app_log(f"Saved default modsettings.lsx template from {modsettings_path}")
    else:
        write_text_atomic(template_path, VANILLA_MODSETTINGS)
        app_log("No modsettings.lsx found, using the vanilla template.")
    return template_path


def _backup_dirs(backups_dir: Path) -> list[Path]:
    subdirs = [
        p for p in backups_dir.iterdir()
        if p.is_dir() and _parse_timestamp_from_dirname(p.name) is not None
    ]
    subdirs.sort(key=lambda p: p.name)
    return subdirs


def create_backup(modsettings_path: Path, backups_dir: Path) -> Path | None:
    """Copy the live modsettings.lsx into backups/<timestamp>/.

    Returns the backup file, or None when there is no live file.  Oldest
    backups beyond _MAX_BACKUPS are removed.
    """
    if not modsettings_path.is_file():
        return None
    backup_folder = backups_dir / _timestamp_str()
    backup_folder.mkdir(parents=True, exist_ok=True)
    dst = backup_folder / _BACKUP_NAME
    shutil.copy2(modsettings_path, dst)

    subdirs = _backup_dirs(backups_dir)
    while len(subdirs) > _MAX_BACKUPS:
        oldest = subdirs.pop(0)
        try:
            shutil.rmtree(oldest)
            app_log(f"Backup: removed oldest {oldest.name}")
        except OSError as exc:
            app_log(f"Backup: unable to remove {oldest}: {exc}")
    return dst


def list_backups(backups_dir: Path) -> list[tuple[datetime, Path]]:
    """List (timestamp, modsettings.lsx path) pairs, newest first."""
    if not backups_dir.is_dir():
        return []
    result: list[tuple[datetime, Path]] = []
    for p in backups_dir.iterdir():
        if not p.is_dir():
            continue
        dt = _parse_timestamp_from_dirname(p.name)
        if dt is None:
            continue
        if (p / _BACKUP_NAME).is_file():
            result.append((dt, p / _BACKUP_NAME))
    result.sort(key=lambda x: x[0], reverse=True)
    return result
