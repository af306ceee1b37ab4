from __future__ import annotations

import json
import shutil
from concurrent.futures import Future
from pathlib import Path

import pytest

from baldursmm.lsx import VANILLA_MODSETTINGS
from baldursmm.manager import ModManager
from baldursmm.models import ModRecord
from baldursmm.record_store import RecordStore
from baldursmm.settings import ManagerSettings
from baldursmm.staging import ModStager


class SyncExecutor:
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


class FakeTrash:
    """Moves 'trashed' paths into a folder so tests can inspect them."""

    def __init__(self, root: Path):
        self.root = root
        self.calls: list[str] = []

    def __call__(self, path: str) -> None:
        self.calls.append(path)
        self.root.mkdir(parents=True, exist_ok=True)
        shutil.move(path, str(self.root / Path(path).name))


def write_mod(parent: Path, dirname: str, uuid: str, name: str | None = None,
              pak: str | None = None, **extra) -> Path:
    """Create a mod folder with an info.json and a .pak file."""
    folder = parent / dirname
    folder.mkdir(parents=True)
    mod = {"Name": name or dirname, "Folder": dirname, "UUID": uuid}
    mod.update(extra)
    (folder / "info.json").write_text(
        json.dumps({"Mods": [mod], "MD5": f"md5-{uuid}"}), encoding="utf-8"
    )
    (folder / (pak or f"{dirname}.pak")).write_bytes(b"LSPK")
    return folder


def make_record(uuid: str, order: int, enabled: bool = False, **kwargs) -> ModRecord:
    kwargs.setdefault("name", f"Mod {uuid}")
    kwargs.setdefault("folder", f"Folder{uuid}")
    kwargs.setdefault("md5", f"md5-{uuid}")
    return ModRecord(uuid=uuid, order=order, enabled=enabled, **kwargs)


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv("BALDURSMM_CONFIG_DIR", str(tmp_path / "config"))


@pytest.fixture
def trash(tmp_path) -> FakeTrash:
    return FakeTrash(tmp_path / "Trash")


@pytest.fixture
def settings(tmp_path) -> ManagerSettings:
    return ManagerSettings(
        copy_on_import=True,
        game_documents_path=tmp_path / "game",
        store_root=tmp_path / "store",
    )


@pytest.fixture
def stager(settings, trash) -> ModStager:
    return ModStager(settings.get_store_root(), settings.game_mods_dir,
                     executor=SyncExecutor(), trash_fn=trash)


@pytest.fixture
def manager(tmp_path, settings, stager) -> ModManager:
    store = RecordStore(tmp_path / "config" / "mods.json")
    mgr = ModManager(settings, store, stager=stager,
                     template_path=tmp_path / "config" / "backups" / "modsettings.lsx")
    mgr.startup()
    return mgr


@pytest.fixture
def sources(tmp_path) -> Path:
    d = tmp_path / "downloads"
    d.mkdir()
    return d


@pytest.fixture
def vanilla_template(tmp_path) -> Path:
    path = tmp_path / "template.lsx"
    path.write_text(VANILLA_MODSETTINGS, encoding="utf-8")
    return path
