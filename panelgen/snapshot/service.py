"""
Whole-state export and import.

A snapshot carries the schema document, the server bootstrap source, every
generated resource directory and the documents of every collection. Documents
travel as relaxed Extended JSON so ObjectIds and dates come back as the same
BSON types.
"""
from __future__ import annotations

import json
import logging
import re
import shutil
import sys
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from bson import json_util
from fastapi.concurrency import run_in_threadpool
from pymongo.errors import OperationFailure

from panelgen.core.config import Settings
from panelgen.core.errors import CommandError, GenerationError, ValidationError
from panelgen.runtime.raw import CommandDatabase
from panelgen.schema.merge import has_model
from panelgen.snapshot.reset import list_generated_dirs
from panelgen.sync.process import run_command

log = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1
DIR_NAME_RE = re.compile(r"^[a-z0-9_-]+$", re.IGNORECASE)
# older exports used the names without the Text suffix
SCHEMA_KEYS = ("prismaSchemaText", "prismaSchema")
SERVER_KEYS = ("serverBootstrapText", "serverBootstrap")

Reset = Callable[[], Awaitable[None]]


class ResetScriptRunner:
    """Runs the reset script with ``--apply``. No timeout is enforced."""

    def __init__(self, cfg: Settings):
        self.cfg = cfg

    async def __call__(self) -> None:
        command = [sys.executable, str(self.cfg.reset_script_file), "--apply"]
        try:
            result = await run_in_threadpool(
                run_command, command, self.cfg.project_root, self.cfg.reset_output_limit
            )
        except CommandError as e:
            raise GenerationError.from_exception("Reset failed", e) from e
        log.info("Reset script finished\n%s", result.stdout)


def _file_text(files: Dict[str, Any], keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = files.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _valid_file_path(path: Any) -> bool:
    if not isinstance(path, str):
        return False
    rel = path.replace("\\", "/")
    return bool(rel) and not rel.startswith("/") and ".." not in rel


def read_tree(base: Path) -> List[Dict[str, str]]:
    """Every text file below ``base`` as ``{path, content}`` with posix-style relative paths."""
    files = []
    for path in sorted(base.rglob("*")):
        rel = path.relative_to(base)
        if not path.is_file() or "__pycache__" in rel.parts:
            continue
        files.append({"path": rel.as_posix(), "content": path.read_text(encoding="utf-8")})
    return files


def write_tree(base: Path, files: List[Dict[str, Any]]) -> None:
    for entry in files:
        rel = PurePosixPath(str(entry.get("path")).replace("\\", "/"))
        target = base.joinpath(*rel.parts)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(str(entry.get("content") or ""), encoding="utf-8")


class SnapshotService:
    def __init__(self, cfg: Settings, database: CommandDatabase, reset: Optional[Reset] = None):
        self.cfg = cfg
        self.database = database
        self.reset = reset or ResetScriptRunner(cfg)

    async def list_collections(self) -> List[str]:
        result = await self.database.command({"listCollections": 1, "nameOnly": True})
        batch = (result.get("cursor") or {}).get("firstBatch") or []
        names = [c.get("name") for c in batch]
        return [n for n in names if n and not n.startswith("system.")]

    async def collection_documents(self, name: str) -> List[Dict[str, Any]]:
        result = await self.database.command({"find": name, "filter": {}})
        cursor = result.get("cursor") or {}
        docs = list(cursor.get("firstBatch") or [])
        while cursor.get("id"):
            result = await self.database.command({"getMore": cursor["id"], "collection": name})
            cursor = result.get("cursor") or {}
            docs.extend(cursor.get("nextBatch") or [])
        return docs

    async def drop_collection_if_exists(self, name: str) -> None:
        try:
            await self.database.command({"drop": name})
        except OperationFailure as e:
            if "ns not found" not in str(e).lower():
                raise

    async def restore_collection(self, name: str, documents: List[Dict[str, Any]]) -> None:
        await self.drop_collection_if_exists(name)
        if documents:
            await self.database.command({"insert": name, "documents": documents})

    async def export(self) -> Dict[str, Any]:
        root = self.cfg.generated_root
        generated_dirs = [
            {"name": name, "files": read_tree(root / name)}
            for name in list_generated_dirs(root, self.cfg.core_dirs)
        ]

        collections = []
        for name in await self.list_collections():
            docs = await self.collection_documents(name)
            collections.append({
                "name": name,
                "documents": json.loads(json_util.dumps(docs, json_options=json_util.RELAXED_JSON_OPTIONS)),
            })

        return {
            "version": SNAPSHOT_VERSION,
            "exportedAt": datetime.now(timezone.utc).isoformat(),
            "snapshot": {
                "files": {
                    "prismaSchemaText": self.cfg.schema_file.read_text(encoding="utf-8"),
                    "serverBootstrapText": self.cfg.server_file.read_text(encoding="utf-8"),
                    "generatedDirs": generated_dirs,
                },
                "database": {"collections": collections},
            },
        }

    def validate(self, payload: Any) -> None:
        """Reject a malformed snapshot before anything is touched."""
        if not isinstance(payload, dict):
            raise ValidationError("snapshot is required")
        files = payload.get("files")
        database = payload.get("database")
        if (
            not isinstance(files, dict)
            or not _file_text(files, SCHEMA_KEYS)
            or not _file_text(files, SERVER_KEYS)
            or not isinstance(files.get("generatedDirs"), list)
        ):
            raise ValidationError("Invalid snapshot.files format")
        if not isinstance(database, dict) or not isinstance(database.get("collections"), list):
            raise ValidationError("Invalid snapshot.database.collections format")

        schema_text = _file_text(files, SCHEMA_KEYS)
        missing_models = [m for m in self.cfg.system_models if not has_model(schema_text, m)]
        if missing_models:
            raise ValidationError(f"Snapshot schema must contain {' and '.join(self.cfg.system_models)} models")

        names = {c.get("name") for c in database["collections"] if isinstance(c, dict)}
        violations = [
            f"Snapshot does not contain required system collection: {name}"
            for name in self.cfg.system_collections
            if name not in names
        ]
        for entry in files["generatedDirs"]:
            name = entry.get("name") if isinstance(entry, dict) else None
            if not isinstance(name, str) or not DIR_NAME_RE.match(name):
                violations.append(f"Invalid generated dir name: {name}")
                continue
            for file in entry.get("files") or []:
                path = file.get("path") if isinstance(file, dict) else None
                if not _valid_file_path(path):
                    violations.append(f"Invalid snapshot file path: {path}")
        if violations:
            raise ValidationError(violations)

    async def import_snapshot(self, payload: Dict[str, Any]) -> None:
        """
        Replace generated state with the snapshot's.

        System collections are backed up before the reset and restored last:
        from the snapshot when it carries documents for them, otherwise from
        the backup. Not atomic; a crash midway leaves a partial reset.
        """
        self.validate(payload)
        files = payload["files"]
        system = set(self.cfg.system_collections)

        existing = set(await self.list_collections())
        backup = {}
        for name in self.cfg.system_collections:
            if name in existing:
                backup[name] = await self.collection_documents(name)
        log.info("Backed up system collections: %s", ", ".join(backup) or "(none)")

        await self.reset()

        root = self.cfg.generated_root
        for name in list_generated_dirs(root, self.cfg.core_dirs):
            shutil.rmtree(root / name, ignore_errors=True)

        self.cfg.schema_file.write_text(_file_text(files, SCHEMA_KEYS), encoding="utf-8")
        self.cfg.server_file.write_text(_file_text(files, SERVER_KEYS), encoding="utf-8")
        for entry in files["generatedDirs"]:
            dir_path = root / entry["name"]
            dir_path.mkdir(parents=True, exist_ok=True)
            write_tree(dir_path, entry.get("files") or [])

        from_payload = {}
        for collection in payload["database"]["collections"]:
            name = collection.get("name") if isinstance(collection, dict) else None
            if not name:
                continue
            documents = json_util.loads(json.dumps(collection.get("documents") or []))
            if name in system:
                from_payload[name] = documents
                continue
            await self.restore_collection(name, documents)

        for name in self.cfg.system_collections:
            documents = from_payload.get(name) or backup.get(name)
            if documents is None:
                continue
            await self.restore_collection(name, documents)
        log.info("Snapshot imported: %d generated dirs, %d collections",
                 len(files["generatedDirs"]), len(payload["database"]["collections"]))
