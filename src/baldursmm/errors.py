"""
errors.py
Exception taxonomy for the mod manager.

Every failure the core can raise derives from ModManagerError so callers can
surface a single notification path.  Lower-level errors (OSError, JSON and
XML parse errors) are always chained with ``raise ... from exc``.
"""

from __future__ import annotations


class ModManagerError(Exception):
    """Base class for all mod manager errors."""


# ---------------------------------------------------------------------------
# Manifest / import
# ---------------------------------------------------------------------------

class ManifestError(ModManagerError):
    """Raised when a mod folder's info.json cannot be used."""


class ManifestNotFound(ManifestError):
    """No info.json among the folder's top-level entries."""


class ManifestMalformed(ManifestError):
    """info.json is not JSON or does not have the {"Mods": [...]} shape."""


class ManifestIncomplete(ManifestMalformed):
    """info.json is missing one of the required Name/Folder/UUID/MD5 fields."""


class PakNotFound(ModManagerError):
    """No .pak file among the folder's top-level entries."""


class ReplaceFailed(ModManagerError):
    """An existing mod with the same UUID could not be removed for replacement."""


# ---------------------------------------------------------------------------
# Synthesis
# ---------------------------------------------------------------------------

class TemplateUnreadable(ModManagerError):
    """The base modsettings.lsx is missing or is not a usable LSX document."""


# ---------------------------------------------------------------------------
# File staging
# ---------------------------------------------------------------------------

class StagingFailed(ModManagerError):
    """Copying/moving a mod payload into the managed store failed."""


class ReversalFailed(ModManagerError):
    """A deployed .pak could not be moved back out of the game's Mods folder."""


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class PersistFailed(ModManagerError):
    """The record store could not be written to disk."""
