"""Mount freshly generated routers into the running application without a restart."""
from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path
from typing import Iterable, List

from fastapi import FastAPI
from fastapi.routing import APIRoute

from panelgen.bootstrap.patcher import RouteMount

log = logging.getLogger(__name__)


def _evict(module: str) -> None:
    """Forget cached modules of the resource directory so regenerated code is re-imported."""
    package = module.rsplit(".", 1)[0]
    for name in list(sys.modules):
        if name == package or name.startswith(f"{package}."):
            del sys.modules[name]


def _drop_prefix(app: FastAPI, prefix: str) -> None:
    app.router.routes[:] = [
        r for r in app.router.routes
        if not (isinstance(r, APIRoute) and (r.path == prefix or r.path.startswith(f"{prefix}/")))
    ]


def mount_generated_routes(app: FastAPI, mounts: Iterable[RouteMount], project_root: Path) -> List[str]:
    """
    Import each generated route module and include its router under the mount prefix.

    Routes already served under the same prefix are replaced. Returns the
    mounted prefixes.
    """
    root = str(project_root)
    if root not in sys.path:
        sys.path.insert(0, root)
    importlib.invalidate_caches()

    mounted = []
    for mount in mounts:
        _evict(mount.module)
        module = importlib.import_module(mount.module)
        _drop_prefix(app, mount.prefix)
        app.include_router(module.router, prefix=mount.prefix)
        mounted.append(mount.prefix)
        log.info("Mounted %s at %s", mount.module, mount.prefix)

    app.openapi_schema = None
    return mounted
