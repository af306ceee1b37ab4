"""
manager.py
User-level operations, wiring the manifest parser, identity resolver, order
manager, staging pipeline and modsettings synthesizer together.

Import flow:
  1. read_mod_folder() parses info.json and finds the .pak
  2. IdentityResolver.upsert() adds the record or replaces the installed one
     with the same UUID (keeping its order slot) and persists the store
  3. ModStager.import_folder() copies/moves the folder into the managed store
     on a worker thread; when the caller polls the returned task, the
     record's directory_path is updated to the new location

Sync flow: parse the template, take the enabled records in order, build the
XML and replace the live modsettings.lsx.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable

from baldursmm import config_paths
from baldursmm.app_log import app_log
from baldursmm.backups import create_backup, ensure_template, list_backups
from baldursmm.errors import ManifestIncomplete, PakNotFound
from baldursmm.identity import IdentityResolver
from baldursmm.lsx import build_modsettings_xml, parse_template, write_modsettings
from baldursmm.manifest import MANIFEST_NAME, ModFolderInfo, read_mod_folder
from baldursmm.models import ImportOutcome, ModRecord
from baldursmm.ordering import OrderManager
from baldursmm.record_store import RecordStore
from baldursmm.settings import ManagerSettings
from baldursmm.staging import ModStager, StagingTask, extract_archive


@dataclass
class ImportResult:
    outcome: ImportOutcome
    record: ModRecord
    task: StagingTask


def record_from_folder(info: ModFolderInfo) -> ModRecord:
    manifest = info.manifest
    return ModRecord(
        uuid=manifest.uuid,
        md5=manifest.md5,
        name=manifest.name,
        folder=manifest.folder,
        author=manifest.author,
        description=manifest.description,
        created=manifest.created,
        group=manifest.group,
        version=manifest.version,
        directory_contents=list(info.entries),
        pak_file=info.pak_file,
        directory_path=str(info.path),
    )


def _find_mod_root(extract_dir: Path) -> Path:
    """The extracted folder itself, or its single subfolder holding info.json."""
    entries = list(extract_dir.iterdir())
    if any(e.name.lower() == MANIFEST_NAME for e in entries):
        return extract_dir
    subdirs = [e for e in entries if e.is_dir()]
    if len(subdirs) == 1:
        return subdirs[0]
    return extract_dir


class ModManager:

    def __init__(self, settings: ManagerSettings, store: RecordStore,
                 stager: ModStager | None = None,
                 template_path: Path | None = None,
                 backups_dir: Path | None = None):
        self.settings = settings
        self.store = store
        self.stager = stager or ModStager(settings.get_store_root(),
                                          settings.game_mods_dir)
        self.template_path = template_path or config_paths.get_template_path()
        self.backups_dir = backups_dir or self.template_path.parent
        self.orders = OrderManager(store, self.stager)
        self.resolver = IdentityResolver(self.orders)

    @classmethod
    def open(cls, settings: ManagerSettings | None = None) -> "ModManager":
        """Build a manager from the files in the user's config directory."""
        if settings is None:
            settings = ManagerSettings.load(config_paths.get_settings_path())
        store = RecordStore.load(config_paths.get_records_path())
        return cls(settings, store)

    def startup(self) -> None:
        """Make sure the sync template exists and back up the live modsettings.lsx."""
        self.settings.get_store_root().mkdir(parents=True, exist_ok=True)
        ensure_template(self.settings.modsettings_path, self.template_path)
        backup = create_backup(self.settings.modsettings_path, self.backups_dir)
        if backup is not None:
            app_log(f"Successfully backed up modsettings.lsx at {backup}")

    def backups(self) -> list[tuple[datetime, Path]]:
        """Timestamped copies of the live modsettings.lsx, newest first."""
        return list_backups(self.backups_dir)

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def records(self) -> list[ModRecord]:
        return self.orders.ordered_records()

    def enabled_records(self) -> list[ModRecord]:
        return self.orders.enabled_records()

    # -----------------------------------------------------------------------
    # Import
    # -----------------------------------------------------------------------

    def import_mod_folder(
        self,
        path: Path,
        progress_fn: Callable[[float], None] | None = None,
        done_fn: Callable[[Path | None], None] | None = None,
        copy: bool | None = None,
    ) -> ImportResult | None:
        """Import a mod folder.

        Raises ManifestNotFound / ManifestMalformed (shown to the user) and
        ReplaceFailed.  Returns None when info.json lacks a required field
        or no .pak is present; both are only logged.
        """
        path = path.resolve()
        app_log(f"Selected directory: {path}")
        try:
            info = read_mod_folder(path)
        except (ManifestIncomplete, PakNotFound) as exc:
            app_log(f"Error: {exc}", logging.WARNING)
            return None

        record = record_from_folder(info)
        outcome = self.resolver.upsert(record)

        def _on_staged(new_path: Path | None) -> None:
            self._update_directory_path(record, new_path)
            if done_fn is not None:
                done_fn(new_path)

        if copy is None:
            copy = self.settings.copy_on_import
        task = self.stager.import_folder(path, copy=copy,
                                         progress_fn=progress_fn,
                                         done_fn=_on_staged)
        return ImportResult(outcome=outcome, record=record, task=task)

    def _update_directory_path(self, record: ModRecord, new_path: Path | None) -> None:
        if new_path is None:
            app_log(f"Error: Unable to resolve directory path for {record.name}; "
                    f"record still points at {record.directory_path}", logging.ERROR)
            return
        if record not in self.store:
            app_log(f"{record.name} was removed before its files finished staging",
                    logging.WARNING)
            return
        record.directory_path = str(new_path)
        self.store.save()

    def import_mod_archive(
        self,
        archive_path: Path,
        progress_fn: Callable[[float], None] | None = None,
        done_fn: Callable[[Path | None], None] | None = None,
    ) -> ImportResult | None:
        """Extract a .zip/.7z mod download and import the folder inside it.

        The extracted copy is always copied into the managed store and the
        temporary directory is removed once staging finishes.
        """
        stem = archive_path.name
        for suffix in (".zip", ".7z"):
            if stem.lower().endswith(suffix):
                stem = stem[: -len(suffix)]
        tmp_dir = Path(tempfile.mkdtemp(prefix="baldursmm_"))

        def _cleanup(new_path: Path | None) -> None:
            shutil.rmtree(tmp_dir, ignore_errors=True)
            if done_fn is not None:
                done_fn(new_path)

        try:
            extract_dir = tmp_dir / stem
            extract_archive(archive_path, extract_dir)
            result = self.import_mod_folder(_find_mod_root(extract_dir),
                                            progress_fn=progress_fn,
                                            done_fn=_cleanup, copy=True)
        except BaseException:
            shutil.rmtree(tmp_dir, ignore_errors=True)
            raise
        if result is None:
            shutil.rmtree(tmp_dir, ignore_errors=True)
        return result

    # -----------------------------------------------------------------------
    # Structural changes
    # -----------------------------------------------------------------------

    def delete(self, record: ModRecord) -> None:
        self.orders.delete(record)

    def delete_at(self, indices: Iterable[int]) -> int | None:
        return self.orders.delete_at(indices)

    def move(self, offsets: Iterable[int], destination: int) -> None:
        self.orders.move(offsets, destination)

    def move_to(self, source: int, target: int) -> None:
        self.orders.move_to(source, target)

    def set_enabled(self, record: ModRecord, enabled: bool) -> None:
        self.orders.set_enabled(record, enabled)

    # -----------------------------------------------------------------------
    # modsettings.lsx
    # -----------------------------------------------------------------------

    def build_xml(self, records: list[ModRecord]) -> str:
        tree = parse_template(self.template_path)
        return build_modsettings_xml(tree, records)

    def preview(self) -> str:
        """The modsettings.lsx a sync would write, without writing it."""
        return self.build_xml(self.enabled_records())

    def sync(self) -> str:
        """Write modsettings.lsx for the enabled mods in load order."""
        enabled = self.enabled_records()
        xml = self.build_xml(enabled)
        write_modsettings(self.settings.modsettings_path, xml)
        app_log(f"Wrote modsettings.lsx with {len(enabled)} mod(s).")
        return xml

    def restore(self) -> str:
        """Write the template defaults back (no mods)."""
        xml = self.build_xml([])
        write_modsettings(self.settings.modsettings_path, xml)
        app_log("Reset modsettings.lsx to the default template.")
        return xml
