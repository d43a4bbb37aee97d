"""
Line-level edits of the server bootstrap module.

``server.py`` keeps two runs of lines the generator appends to: router imports
(``from x import router as <name>_routes``) and mounts
(``app.include_router(<name>_routes, prefix="/api/...")``). New lines go right
after the last line of each run with the same indentation; lines already
present are left alone.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from panelgen.core.errors import BootstrapPatchError
from panelgen.generators.resource_gen.render_routes import (
    controller_module,
    structure_controller_module,
)
from panelgen.generators.resource_gen.utils import route_name

log = logging.getLogger(__name__)

IMPORT_ANCHOR_RE = re.compile(r"^from\s+\S+\s+import\s+router\s+as\s+\w+_routes[ \t]*$", re.MULTILINE)
MOUNT_ANCHOR_RE = re.compile(
    r"""^[ \t]*app\.include_router\(\w+_routes,\s*prefix=["']/api/[^"']*["']\)[ \t]*$""",
    re.MULTILINE,
)
RESTART_MARKER_RE = re.compile(r"^# schema client refreshed at .*$", re.MULTILINE)


@dataclass(frozen=True)
class RouteMount:
    module: str
    alias: str
    prefix: str

    @property
    def import_line(self) -> str:
        return f"from {self.module} import router as {self.alias}"

    def mount_line(self, indent: str = "") -> str:
        return f'{indent}app.include_router({self.alias}, prefix="{self.prefix}")'


def _routes_module(controller: str) -> str:
    return controller[: -len("_controller")] + "_routes"


def resource_mounts(resource_name: str, package: str = "resources") -> List[RouteMount]:
    """Resource mount at ``/api/<lower>`` and structure mount at ``/api/<lower>Structure``."""
    route = route_name(resource_name)
    return [
        RouteMount(
            module=_routes_module(controller_module(resource_name, package)),
            alias=f"{route}_routes",
            prefix=f"/api/{route}",
        ),
        RouteMount(
            module=_routes_module(structure_controller_module(resource_name, package)),
            alias=f"{route}_structure_routes",
            prefix=f"/api/{route}Structure",
        ),
    ]


def _insert_after(text: str, match: re.Match, line: str) -> str:
    end = match.end()
    if end < len(text) and text[end] == "\n":
        return f"{text[:end + 1]}{line}\n{text[end + 1:]}"
    return f"{text[:end]}\n{line}{text[end:]}"


def _last_match(pattern: re.Pattern, text: str) -> Optional[re.Match]:
    last = None
    for last in pattern.finditer(text):
        pass
    return last


def register_route(server_text: str, mount: RouteMount) -> str:
    """Add the import and mount lines for ``mount``. Raises BootstrapPatchError without anchors."""
    lines = server_text.splitlines()

    if mount.import_line not in (line.strip() for line in lines):
        anchor = _last_match(IMPORT_ANCHOR_RE, server_text)
        if anchor is None:
            raise BootstrapPatchError("Failed to register routes: no router import line found in server bootstrap")
        server_text = _insert_after(server_text, anchor, mount.import_line)

    mount_call = mount.mount_line().strip()
    if mount_call not in (line.strip() for line in server_text.splitlines()):
        anchor = _last_match(MOUNT_ANCHOR_RE, server_text)
        if anchor is None:
            raise BootstrapPatchError("Failed to register routes: no router mount line found in server bootstrap")
        indent = re.match(r"[ \t]*", anchor.group(0)).group(0)
        server_text = _insert_after(server_text, anchor, mount.mount_line(indent))

    return server_text


def register_routes_in_server(server_path: Path, mounts: Iterable[RouteMount]) -> bool:
    """Read-modify-write ``server_path``. Returns True if the file changed."""
    original = server_path.read_text(encoding="utf-8")
    text = original
    for mount in mounts:
        text = register_route(text, mount)
    if text == original:
        log.info("Routes already registered in %s", server_path.name)
        return False
    server_path.write_text(text, encoding="utf-8")
    return True


def deregister_routes(server_text: str, names: Iterable[str], package: str = "resources") -> str:
    """Drop import and mount lines of the given resource directories, structure mounts included."""
    kept = server_text.splitlines(keepends=True)
    for name in names:
        imports = re.compile(rf"^from\s+{re.escape(package)}\.{re.escape(name)}\.\S+\s+import\s+router\s+as\s+\w+\s*$")
        mounts = re.compile(rf"""^\s*app\.include_router\(\w+,\s*prefix=["']/api/{re.escape(name)}(Structure)?["']\)\s*$""")
        kept = [line for line in kept if not imports.match(line) and not mounts.match(line)]
    return re.sub(r"\n{3,}", "\n\n", "".join(kept))


def stamp_restart(server_text: str, now: Optional[datetime] = None) -> str:
    """Touch the bootstrap source so a reloading supervisor restarts the process."""
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    marker = f"# schema client refreshed at {stamp}"
    if RESTART_MARKER_RE.search(server_text):
        return RESTART_MARKER_RE.sub(marker, server_text, count=1)
    return f"{server_text.rstrip()}\n\n{marker}\n"
