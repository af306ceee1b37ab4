"""
staging.py
Move mod payloads between the user's source folder, the managed store and
the game's Mods folder.

Operations:
  import_folder()   — copy or move a whole mod folder into the managed store
                      (<store_root>/<folder name>) on a worker thread.
  deploy()          — move a record's .pak into the game's Mods folder.
  reverse()         — move a deployed .pak back into the record's folder.
  discard()         — send a payload folder from the managed store to the trash.
  extract_archive() — unpack a .zip / .7z mod download into a directory.

Threading: import_folder() returns a StagingTask.  The worker only touches
the filesystem and pushes progress onto the task's queue; the caller drains
it with poll() or wait(), which run the progress/done callbacks on the
caller's thread.  Progress is coarse: one unit per folder, reported as 0.0
at start and 1.0 on success.
"""

from __future__ import annotations

import logging
import os
import queue
import shutil
import zipfile
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from pathlib import Path
from typing import Callable

import py7zr
from send2trash import send2trash

from baldursmm.app_log import app_log
from baldursmm.errors import ReversalFailed, StagingFailed
from baldursmm.models import ModRecord, StagingProgress

# Reuse a small pool across imports rather than creating one per call
_POOL = ThreadPoolExecutor(max_workers=4, thread_name_prefix="staging")

ProgressFn = Callable[[float], None]
DoneFn = Callable[["Path | None"], None]


# ---------------------------------------------------------------------------
# Task handle
# ---------------------------------------------------------------------------

class StagingTask:
    """Handle for one running import: a future plus a progress stream."""

    def __init__(self, source: Path, destination: Path,
                 progress_fn: ProgressFn | None = None,
                 done_fn: DoneFn | None = None):
        self.source = source
        self.destination = destination
        self.progress: queue.Queue[StagingProgress] = queue.Queue()
        self.future: Future[Path] = Future()
        self._progress_fn = progress_fn
        self._done_fn = done_fn
        self._finished = False
        self.history: list[float] = []

    @property
    def done(self) -> bool:
        return self.future.done()

    def _report(self, progress: StagingProgress) -> None:
        """Called from the worker thread."""
        self.progress.put_nowait(progress)

    def poll(self) -> bool:
        """Deliver queued progress, and the completion callback once finished.

        Call from the main thread (e.g. a periodic after() callback).
        Returns True once the task has finished and its callbacks ran.
        """
        if self._finished:
            return True
        while True:
            try:
                item = self.progress.get_nowait()
            except queue.Empty:
                break
            fraction = item.fraction_completed
            self.history.append(fraction)
            if self._progress_fn is not None:
                self._progress_fn(fraction)
        if not self.future.done():
            return False
        self._finished = True
        path = None if self.future.exception() is not None else self.future.result()
        if self._done_fn is not None:
            self._done_fn(path)
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the worker finishes, then deliver callbacks."""
        try:
            self.future.exception(timeout=timeout)
        except FutureTimeout:
            return self.poll()
        return self.poll()

    def result(self, timeout: float | None = None) -> Path:
        """Wait and return the new folder path; raises StagingFailed on error."""
        self.wait(timeout)
        return self.future.result(timeout=0)


# ---------------------------------------------------------------------------
# Archive extraction
# ---------------------------------------------------------------------------

SUPPORTED_ARCHIVES = (".zip", ".7z")


def extract_archive(archive_path: Path, dest_dir: Path) -> None:
    """Unpack a .zip or .7z archive into dest_dir."""
    ext = archive_path.name.lower()
    dest_dir.mkdir(parents=True, exist_ok=True)
    try:
        if ext.endswith(".zip"):
            with zipfile.ZipFile(archive_path, "r") as z:
                z.extractall(dest_dir)
        elif ext.endswith(".7z"):
            with py7zr.SevenZipFile(archive_path, "r") as z:
                z.extractall(dest_dir)
        else:
            raise StagingFailed(
                f"Unsupported archive format: {archive_path.name} "
                f"(supported: {', '.join(SUPPORTED_ARCHIVES)})"
            )
    except (OSError, zipfile.BadZipFile, py7zr.Bad7zFile) as exc:
        raise StagingFailed(f"Unable to extract {archive_path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Stager
# ---------------------------------------------------------------------------

class ModStager:

    def __init__(self, store_root: Path, game_mods_dir: Path,
                 executor=None, trash_fn: Callable[[str], None] | None = None):
        self.store_root = store_root
        self.game_mods_dir = game_mods_dir
        self._executor = executor or _POOL
        self._trash = trash_fn or send2trash

    def is_managed(self, path: Path) -> bool:
        """True when path lies strictly inside the managed store."""
        try:
            resolved = path.resolve()
            root = self.store_root.resolve()
        except OSError:
            return False
        return resolved != root and root in resolved.parents

    # -----------------------------------------------------------------------
    # Import
    # -----------------------------------------------------------------------

    def import_folder(self, source: Path, copy: bool,
                      progress_fn: ProgressFn | None = None,
                      done_fn: DoneFn | None = None) -> StagingTask:
        """Start copying (copy=True) or moving source into the managed store."""
        destination = self.store_root / source.name
        task = StagingTask(source, destination, progress_fn, done_fn)
        task.future.set_running_or_notify_cancel()

        def _worker() -> None:
            try:
                path = self._transfer_folder(task, copy)
            except StagingFailed as exc:
                app_log(str(exc), logging.ERROR)
                task.future.set_exception(exc)
            except Exception as exc:
                app_log(f"Staging worker crashed: {exc!r}", logging.ERROR)
                task.future.set_exception(StagingFailed(f"Error handling mod folder {source}: {exc}"))
            else:
                task.future.set_result(path)

        self._executor.submit(_worker)
        return task

    def _transfer_folder(self, task: StagingTask, copy: bool) -> Path:
        source, destination = task.source, task.destination
        task._report(StagingProgress(completed_units=0))
        try:
            if destination.exists():
                raise FileExistsError(f"{destination} already exists")
            destination.parent.mkdir(parents=True, exist_ok=True)
            if copy:
                shutil.copytree(source, destination)
            else:
                shutil.move(str(source), str(destination))
        except (OSError, shutil.Error) as exc:
            raise StagingFailed(f"Error handling mod folder {source}: {exc}") from exc
        task._report(StagingProgress(completed_units=1))
        app_log(f"{'Copied' if copy else 'Moved'} {source} → {destination}")
        return destination

    # -----------------------------------------------------------------------
    # Game Mods folder
    # -----------------------------------------------------------------------

    def deployed_pak_path(self, record: ModRecord) -> Path:
        return self.game_mods_dir / record.pak_file

    def deploy(self, record: ModRecord) -> Path:
        """Move the record's .pak into the game's Mods folder."""
        src = record.pak_path
        dst = self.deployed_pak_path(record)
        if src is None:
            raise StagingFailed(f"{record} has no staged .pak file")
        if not src.is_file() and dst.is_file():
            return dst
        try:
            if dst.exists():
                raise FileExistsError(f"{dst} already exists")
            self.game_mods_dir.mkdir(parents=True, exist_ok=True)
            shutil.move(str(src), str(dst))
        except OSError as exc:
            raise StagingFailed(f"Unable to deploy {src} → {dst}: {exc}") from exc
        app_log(f"Deployed {record.pak_file} to {self.game_mods_dir}")
        return dst

    def reverse(self, record: ModRecord) -> Path:
        """Move a deployed .pak back into the record's own folder."""
        src = self.deployed_pak_path(record)
        dst = record.pak_path
        if dst is None:
            raise ReversalFailed(f"{record} has no folder to return its .pak to")
        if not src.is_file():
            if dst.is_file():
                return dst
            raise ReversalFailed(f"Deployed file {src} not found")
        try:
            if dst.exists():
                raise FileExistsError(f"{dst} already exists")
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(src), str(dst))
        except OSError as exc:
            raise ReversalFailed(f"Unable to move {src} → {dst}: {exc}") from exc
        app_log(f"Moved {record.pak_file} back to {dst.parent}")
        return dst

    # -----------------------------------------------------------------------
    # Trash
    # -----------------------------------------------------------------------

    def discard(self, path: Path | None) -> bool:
        """Send a managed payload folder to the trash.

        Returns False (and leaves the folder alone) when path is missing or
        not inside the managed store.  Trash errors raise StagingFailed.
        """
        if path is None or not os.path.lexists(path):
            return False
        if not self.is_managed(path):
            app_log(f"Not discarding {path}: outside the managed store", logging.WARNING)
            return False
        try:
            self._trash(str(path))
        except OSError as exc:
            raise StagingFailed(f"Unable to move {path} to the trash: {exc}") from exc
        app_log(f"Moved {path} to the trash")
        return True
