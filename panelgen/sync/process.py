"""Bounded subprocess execution for the external schema/reset tooling."""
from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from panelgen.core.errors import CommandError

log = logging.getLogger(__name__)

Command = Union[str, Sequence[str]]


@dataclass(frozen=True)
class CommandResult:
    command: str
    returncode: int
    stdout: str
    stderr: str


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[-limit:]


def run_command(
    command: Command,
    cwd: Path,
    output_limit: int = 10 * 1024 * 1024,
    timeout: Optional[float] = None,
    env: Optional[Mapping[str, str]] = None,
) -> CommandResult:
    """
    Run an external command with the working directory pinned to ``cwd``.

    Output is captured and only the last ``output_limit`` characters of each
    stream are kept. ``env`` replaces the child environment when given.
    Raises CommandError on a non-zero exit.
    """
    args = shlex.split(command) if isinstance(command, str) else list(command)
    display = " ".join(args)
    log.info("Running command: %s (cwd=%s)", display, cwd)

    try:
        completed = subprocess.run(
            args,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=timeout,
            env=dict(env) if env is not None else None,
        )
    except FileNotFoundError as e:
        raise CommandError(display, 127, stderr=str(e)) from e

    stdout = _truncate(completed.stdout or "", output_limit)
    stderr = _truncate(completed.stderr or "", output_limit)
    if completed.returncode != 0:
        raise CommandError(display, completed.returncode, stdout=stdout, stderr=stderr)
    return CommandResult(command=display, returncode=completed.returncode, stdout=stdout, stderr=stderr)
