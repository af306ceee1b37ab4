"""
baldursmm — import, order and enable Baldur's Gate 3 mods, and write the
game's modsettings.lsx from the enabled mods in load order.
"""

__version__ = "1.0.0"

from baldursmm.errors import (
    ManifestError,
    ManifestIncomplete,
    ManifestMalformed,
    ManifestNotFound,
    ModManagerError,
    PakNotFound,
    PersistFailed,
    ReplaceFailed,
    ReversalFailed,
    StagingFailed,
    TemplateUnreadable,
)
from baldursmm.lsx import SettingsTree, build_modsettings_xml, parse_template
from baldursmm.manager import ImportResult, ModManager
from baldursmm.manifest import ManifestData, read_mod_folder
from baldursmm.models import ImportOutcome, ModRecord, StagingProgress
from baldursmm.record_store import RecordStore
from baldursmm.settings import ManagerSettings
from baldursmm.staging import ModStager, StagingTask

__all__ = [
    "ImportOutcome", "ImportResult", "ManagerSettings", "ManifestData",
    "ManifestError", "ManifestIncomplete", "ManifestMalformed", "ManifestNotFound",
    "ModManager", "ModManagerError", "ModRecord", "ModStager", "PakNotFound",
    "PersistFailed", "RecordStore", "ReplaceFailed", "ReversalFailed",
    "SettingsTree", "StagingFailed", "StagingProgress", "StagingTask",
    "TemplateUnreadable", "build_modsettings_xml", "parse_template",
    "read_mod_folder",
]
