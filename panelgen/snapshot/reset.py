"""
Strip every generated artifact from the project.

Removes generated resource directories, their import/mount lines in the server
bootstrap, non-system schema models and non-system collections. Runs as a dry
run unless ``apply`` is set.
"""
from __future__ import annotations

import argparse
import logging
import shutil
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from panelgen.bootstrap.patcher import deregister_routes
from panelgen.core.config import Settings, settings
from panelgen.core.logging import configure_logging
from panelgen.schema.merge import strip_models

log = logging.getLogger(__name__)


@dataclass
class ResetReport:
    applied: bool
    generated_dirs: List[str] = field(default_factory=list)
    server_changed: bool = False
    removed_models: List[str] = field(default_factory=list)
    collections: List[str] = field(default_factory=list)
    dropped_collections: List[str] = field(default_factory=list)
    collection_error: Optional[str] = None


def list_generated_dirs(root: Path, core_dirs: Iterable[str] = ()) -> List[str]:
    if not root.is_dir():
        return []
    core = set(core_dirs)
    return sorted(p.name for p in root.iterdir() if p.is_dir() and p.name not in core)


def _reset_files(cfg: Settings, report: ResetReport) -> None:
    root = cfg.generated_root
    report.generated_dirs = list_generated_dirs(root, cfg.core_dirs)
    if report.applied:
        for name in report.generated_dirs:
            shutil.rmtree(root / name, ignore_errors=True)

    server_file = cfg.server_file
    if server_file.exists():
        original = server_file.read_text(encoding="utf-8")
        updated = deregister_routes(original, report.generated_dirs, cfg.generated_package)
        report.server_changed = updated != original
        if report.server_changed and report.applied:
            server_file.write_text(updated, encoding="utf-8")

    schema_file = cfg.schema_file
    if schema_file.exists():
        original = schema_file.read_text(encoding="utf-8")
        updated, report.removed_models = strip_models(original, cfg.system_models)
        if report.removed_models and report.applied:
            schema_file.write_text(updated, encoding="utf-8")


def _reset_collections(database, cfg: Settings, report: ResetReport) -> None:
    keep = set(cfg.system_collections)
    try:
        report.collections = sorted(n for n in database.list_collection_names() if not n.startswith("system."))
        report.dropped_collections = [n for n in report.collections if n not in keep]
        if report.applied:
            for name in report.dropped_collections:
                database.drop_collection(name)
    except PyMongoError as e:
        report.collection_error = str(e)


def reset_generated(cfg: Settings = settings, apply: bool = False, database=None) -> ResetReport:
    report = ResetReport(applied=apply)
    _reset_files(cfg, report)

    client = None
    if database is None:
        client = MongoClient(cfg.mongo_url, serverSelectionTimeoutMS=5000)
        database = client[cfg.mongo_db]
    try:
        _reset_collections(database, cfg, report)
    finally:
        if client is not None:
            client.close()
    return report


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Remove generated resources, models and collections")
    parser.add_argument("--apply", action="store_true", help="Execute the cleanup instead of previewing it")
    args = parser.parse_args(argv)

    configure_logging(settings.log_level)
    print("Applying generated cleanup..." if args.apply else "Preview generated cleanup (dry-run)...")

    try:
        report = reset_generated(settings, apply=args.apply)
    except Exception as e:
        log.exception("Reset failed")
        print(f"reset failed: {e}")
        return 1

    print(f"Generated dirs: {', '.join(report.generated_dirs) or '(none)'}")
    print(f"Server bootstrap update: {'yes' if report.server_changed else 'no'}")
    print(f"Schema models to remove: {', '.join(report.removed_models) or '(none)'}")
    if report.collection_error:
        print(f"Collections scan failed: {report.collection_error}")
    else:
        print(f"Collections: {', '.join(report.collections) or '(none)'}")
        print(f"Collections to drop: {', '.join(report.dropped_collections) or '(none)'}")

    print("Cleanup completed." if args.apply else "Dry-run finished. Run with --apply to execute.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
