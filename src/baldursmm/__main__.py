"""
Command-line front end:
  python -m baldursmm list                  # show mods in load order
  python -m baldursmm add PATH              # import a mod folder or .zip/.7z
  python -m baldursmm remove INDEX          # move a mod to the trash
  python -m baldursmm move FROM TO          # change load order
  python -m baldursmm enable INDEX          # deploy a mod's .pak
  python -m baldursmm disable INDEX         # take a mod's .pak back out
  python -m baldursmm preview               # print the modsettings.lsx a sync would write
  python -m baldursmm sync                  # write modsettings.lsx
  python -m baldursmm restore               # write the default modsettings.lsx
  python -m baldursmm backups               # list saved copies of modsettings.lsx
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from baldursmm.errors import ManifestError, ModManagerError
from baldursmm.manager import ModManager


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="baldursmm",
        description="Manage Baldur's Gate 3 mods and their modsettings.lsx.",
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Show debug log output")
    sub = ap.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="List mods in load order")
    add = sub.add_parser("add", help="Import a mod folder or archive")
    add.add_argument("path", type=Path)
    add.add_argument("--move", action="store_true",
                     help="Move the folder into the managed store instead of copying it")
    remove = sub.add_parser("remove", help="Remove a mod (moves it to the trash)")
    remove.add_argument("index", type=int)
    move = sub.add_parser("move", help="Move a mod to another load-order position")
    move.add_argument("source", type=int)
    move.add_argument("target", type=int)
    for name in ("enable", "disable"):
        p = sub.add_parser(name, help=f"{name.capitalize()} a mod")
        p.add_argument("index", type=int)
    sub.add_parser("preview", help="Print the modsettings.lsx a sync would write")
    sub.add_parser("sync", help="Write modsettings.lsx for the enabled mods")
    sub.add_parser("restore", help="Write the default modsettings.lsx")
    sub.add_parser("backups", help="List saved copies of modsettings.lsx")
    return ap


def _print_records(manager: ModManager) -> None:
    records = manager.records()
    if not records:
        print("No mods installed.")
        return
    for record in records:
        mark = "+" if record.enabled else "-"
        print(f"{record.order:3d} {mark} {record.name}  [{record.uuid}]")


def _print_backups(manager: ModManager) -> None:
    backups = manager.backups()
    if not backups:
        print("No backups yet.")
        return
    for stamp, path in backups:
        print(f"{stamp:%Y-%m-%d %H:%M:%S}  {path}")


def _record_at(manager: ModManager, index: int):
    records = manager.records()
    if not (0 <= index < len(records)):
        raise IndexError(f"No mod at position {index}")
    return records[index]


def _add(manager: ModManager, path: Path, move: bool) -> None:
    if path.is_file():
        result = manager.import_mod_archive(path, progress_fn=_print_progress)
    else:
        result = manager.import_mod_folder(path, progress_fn=_print_progress,
                                           copy=False if move else None)
    if result is None:
        print(f"Skipped {path}: see log for details.")
        return
    new_path = result.task.result()
    print(f"Mod {result.outcome.value}: {result.record.name} → {new_path}")


def _print_progress(fraction: float) -> None:
    print(f"  {fraction:.0%}")


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    manager = ModManager.open()
    try:
        manager.startup()
        if args.command == "list":
            _print_records(manager)
        elif args.command == "add":
            _add(manager, args.path, args.move)
        elif args.command == "remove":
            manager.delete(_record_at(manager, args.index))
        elif args.command == "move":
            manager.move_to(args.source, args.target)
            _print_records(manager)
        elif args.command in ("enable", "disable"):
            manager.set_enabled(_record_at(manager, args.index), args.command == "enable")
        elif args.command == "preview":
            print(manager.preview(), end="")
        elif args.command == "sync":
            manager.sync()
            print("Saved!")
        elif args.command == "restore":
            manager.restore()
            print("Restored!")
        elif args.command == "backups":
            _print_backups(manager)
    except ManifestError as exc:
        print(f"Invalid mod folder: {exc}", file=sys.stderr)
        return 1
    except (ModManagerError, IndexError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
