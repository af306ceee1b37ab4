"""
config_paths.py
Central helpers for resolving user-writable config directories.

Follows the XDG Base Directory Specification:
  Config lives in $XDG_CONFIG_HOME/BaldursModManager  (default: ~/.config/BaldursModManager)

$BALDURSMM_CONFIG_DIR overrides the whole location (used by tests and by
portable installs).
"""

import os
from pathlib import Path

APP_NAME = "BaldursModManager"
USER_MODS_FOLDER_NAME = "UserMods"


def get_config_dir() -> Path:
    """Return the app config directory, creating it if it doesn't exist."""
    override = os.environ.get("BALDURSMM_CONFIG_DIR")
    if override:
        config_dir = Path(override)
    else:
        xdg = os.environ.get("XDG_CONFIG_HOME")
        base = Path(xdg) if xdg else Path.home() / ".config"
        config_dir = base / APP_NAME
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_settings_path() -> Path:
    """Result: <config dir>/settings.json"""
    return get_config_dir() / "settings.json"


def get_records_path() -> Path:
    """Result: <config dir>/mods.json"""
    return get_config_dir() / "mods.json"


def get_backups_dir() -> Path:
    """Return the modsettings.lsx backup directory, creating it if needed.

    Result: <config dir>/backups/
    """
    d = get_config_dir() / "backups"
    d.mkdir(parents=True, exist_ok=True)
    return d


def get_template_path() -> Path:
    """Return the path of the default modsettings.lsx used as the sync template.

    Result: <config dir>/backups/modsettings.lsx
    """
    return get_backups_dir() / "modsettings.lsx"


def get_user_mods_dir() -> Path:
    """Return the managed store root, creating it if needed.

    Result: <config dir>/UserMods/
    """
    d = get_config_dir() / USER_MODS_FOLDER_NAME
    d.mkdir(parents=True, exist_ok=True)
    return d
