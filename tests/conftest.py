import copy
import os
from datetime import datetime, timezone
from pathlib import Path

# Settings() is instantiated at import time and needs these
os.environ.setdefault("MONGO_URL", "mongodb://localhost:27017")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import OperationFailure

from panelgen.api.deps import get_sync_scheduler, protect, require_admin
from panelgen.api.routes import router as admin_routes
from panelgen.core.config import Settings
from panelgen.db.client import ModelClient
from panelgen.main import create_app

REPO_ROOT = Path(__file__).resolve().parents[1]

MISSING = object()


def _evaluate(expr, doc):
    """Aggregation-expression subset used by pipeline updates."""
    if isinstance(expr, str):
        if expr == "$$NOW":
            return datetime.now(timezone.utc)
        if expr.startswith("$"):
            return doc.get(expr[1:])
        return expr
    if isinstance(expr, dict) and len(expr) == 1:
        op, arg = next(iter(expr.items()))
        if op == "$literal":
            return copy.deepcopy(arg)
        if op == "$ifNull":
            value = _evaluate(arg[0], doc)
            return value if value is not None else _evaluate(arg[1], doc)
        if op == "$toDate":
            value = _evaluate(arg, doc)
            if isinstance(value, str):
                value = datetime.fromisoformat(value.replace("Z", "+00:00"))
                if value.tzinfo is None:
                    value = value.replace(tzinfo=timezone.utc)
            return value
    if isinstance(expr, dict):
        return {k: _evaluate(v, doc) for k, v in expr.items()}
    if isinstance(expr, list):
        return [_evaluate(v, doc) for v in expr]
    return expr


def _matches(doc, query):
    for key, cond in (query or {}).items():
        value = doc.get(key, MISSING)
        if isinstance(cond, dict) and cond and all(k.startswith("$") for k in cond):
            for op, arg in cond.items():
                if op == "$type" and not (arg == "string" and isinstance(value, str)):
                    return False
                if op == "$exists" and (value is not MISSING) != arg:
                    return False
        elif value is MISSING or value != cond:
            return False
    return True


def _sort_key(value):
    return (0, 0) if value is None else (1, value)


class FakeCommandDatabase:
    """In-memory stand-in answering the raw command protocol."""

    def __init__(self, collections=None):
        self.collections = {name: list(docs) for name, docs in (collections or {}).items()}
        self.commands = []

    async def ping(self):
        return None

    def collection(self, name):
        raise NotImplementedError("typed delegates are faked separately")

    def docs(self, name):
        return self.collections.get(name, [])

    async def command(self, command):
        self.commands.append(command)
        name = next(iter(command))
        handler = getattr(self, f"_cmd_{name}")
        return handler(command)

    def _cmd_find(self, command):
        docs = [d for d in self.docs(command["find"]) if _matches(d, command.get("filter"))]
        for key, direction in reversed(list((command.get("sort") or {}).items())):
            docs.sort(key=lambda d: _sort_key(d.get(key)), reverse=direction < 0)
        skip = command.get("skip") or 0
        limit = command.get("limit") or None
        docs = docs[skip:skip + limit] if limit else docs[skip:]
        return {"cursor": {"id": 0, "firstBatch": copy.deepcopy(docs)}, "ok": 1}

    def _cmd_insert(self, command):
        target = self.collections.setdefault(command["insert"], [])
        for doc in command["documents"]:
            doc = copy.deepcopy(doc)
            doc.setdefault("_id", ObjectId())
            target.append(doc)
        return {"n": len(command["documents"]), "ok": 1}

    def _apply(self, doc, update, inserting):
        if isinstance(update, list):
            for stage in update:
                for key, expr in stage["$set"].items():
                    doc[key] = _evaluate(expr, doc)
            return
        for key, value in update.get("$set", {}).items():
            doc[key] = copy.deepcopy(value)
        if inserting:
            for key, value in update.get("$setOnInsert", {}).items():
                doc[key] = copy.deepcopy(value)

    def _cmd_update(self, command):
        target = self.collections.setdefault(command["update"], [])
        n = 0
        for spec in command["updates"]:
            matched = [d for d in target if _matches(d, spec["q"])]
            if not spec.get("multi"):
                matched = matched[:1]
            if not matched and spec.get("upsert"):
                doc = {k: v for k, v in spec["q"].items() if not isinstance(v, dict)}
                self._apply(doc, spec["u"], inserting=True)
                doc.setdefault("_id", ObjectId())
                target.append(doc)
                n += 1
                continue
            for doc in matched:
                self._apply(doc, spec["u"], inserting=False)
            n += len(matched)
        return {"n": n, "ok": 1}

    def _cmd_delete(self, command):
        target = self.collections.get(command["delete"], [])
        n = 0
        for spec in command["deletes"]:
            matched = [d for d in target if _matches(d, spec["q"])]
            if spec.get("limit") == 1:
                matched = matched[:1]
            for doc in matched:
                target.remove(doc)
            n += len(matched)
        return {"n": n, "ok": 1}

    def _cmd_count(self, command):
        return {"n": len([d for d in self.docs(command["count"]) if _matches(d, command.get("query"))]), "ok": 1}

    def _cmd_listCollections(self, command):
        return {"cursor": {"id": 0, "firstBatch": [{"name": n} for n in self.collections]}, "ok": 1}

    def _cmd_drop(self, command):
        if command["drop"] not in self.collections:
            raise OperationFailure("ns not found", code=26)
        del self.collections[command["drop"]]
        return {"ok": 1}


@pytest.fixture
def fake_db():
    return FakeCommandDatabase()


@pytest.fixture
def project(tmp_path):
    """A scaffold project: schema, server bootstrap and an empty resources dir."""
    (tmp_path / "prisma").mkdir()
    (tmp_path / "prisma" / "schema.prisma").write_text(
        (REPO_ROOT / "prisma" / "schema.prisma").read_text(encoding="utf-8"), encoding="utf-8"
    )
    (tmp_path / "server.py").write_text((REPO_ROOT / "server.py").read_text(encoding="utf-8"), encoding="utf-8")
    (tmp_path / "resources").mkdir()
    return tmp_path


@pytest.fixture
def cfg(project):
    return Settings(project_root=project, mount_generated_routes=False)


@pytest.fixture
def scheduled():
    return []


@pytest.fixture
def app(fake_db, cfg, scheduled):
    application = create_app(database=fake_db, model_client=ModelClient({}), app_settings=cfg)
    application.include_router(admin_routes, prefix="/api/admin")
    application.dependency_overrides[require_admin] = lambda: {"id": "admin", "role": "SUPERADMIN"}
    application.dependency_overrides[protect] = lambda: {"id": "admin", "role": "SUPERADMIN"}
    application.dependency_overrides[get_sync_scheduler] = lambda: (lambda: scheduled.append("sync"))
    return application


@pytest.fixture
def client(app):
    return TestClient(app)
