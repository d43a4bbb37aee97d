"""
Schema sync: push the schema to the database, then refresh the typed client.

The typed client is built from the schema file at boot, so by default the
refresh is a restart: the server bootstrap file is stamped and the reloading
supervisor restarts the process. A ``client_generate_command`` can be
configured to run first; when it fails the restart is forced the same way.
"""
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Callable, Dict

from panelgen.bootstrap.patcher import stamp_restart
from panelgen.core.config import Settings, settings
from panelgen.core.errors import CommandError, SyncError
from panelgen.core.workflow import GenerationStep, StepResult
from panelgen.sync.process import CommandResult, run_command

log = logging.getLogger(__name__)


class SchemaSyncInvoker:
    def __init__(self, cfg: Settings = settings, runner: Callable[..., CommandResult] = run_command):
        self.cfg = cfg
        self.runner = runner

    def command_env(self) -> Dict[str, str]:
        # the schema datasource reads env("DATABASE_URL")
        return {**os.environ, "DATABASE_URL": self.cfg.mongo_url}

    def _run(self, command: str) -> CommandResult:
        return self.runner(
            command,
            cwd=self.cfg.project_root,
            output_limit=self.cfg.command_output_limit,
            env=self.command_env(),
        )

    def push(self) -> StepResult:
        extra = {"step": GenerationStep.SCHEMA_PUSH.value}
        log.info("Pushing schema to the database", extra=extra)
        try:
            result = self._run(self.cfg.schema_push_command)
        except CommandError as e:
            log.error("Schema push failed: %s\n%s", e, e.stderr, extra=extra)
            raise SyncError(f"Schema push failed: {e}") from e
        return StepResult(step=GenerationStep.SCHEMA_PUSH, ok=True, message=result.stdout[-500:])

    def generate_client(self) -> StepResult:
        extra = {"step": GenerationStep.CLIENT_GENERATE.value}
        try:
            result = self._run(self.cfg.client_generate_command)
        except CommandError as e:
            log.warning("Client regeneration failed, forcing a restart instead: %s", e, extra=extra)
            return StepResult(step=GenerationStep.CLIENT_GENERATE, ok=False, message=e.stderr or str(e))
        log.info("Typed client regenerated", extra=extra)
        return StepResult(step=GenerationStep.CLIENT_GENERATE, ok=True, message=result.stdout[-500:])

    def force_restart(self) -> StepResult:
        extra = {"step": GenerationStep.RESTART.value}
        server_file = self.cfg.server_file
        try:
            text = server_file.read_text(encoding="utf-8")
            server_file.write_text(stamp_restart(text, datetime.now(timezone.utc)), encoding="utf-8")
        except OSError as e:
            log.error("Could not stamp %s: %s", server_file, e, extra=extra)
            return StepResult(step=GenerationStep.RESTART, ok=False, message=str(e))
        log.info("Stamped %s to trigger a restart", server_file.name, extra=extra)
        return StepResult(step=GenerationStep.RESTART, ok=True, message="stamped", artifacts=[str(server_file)])

    def sync(self) -> list[StepResult]:
        """Raises SyncError when the push fails; a failed regeneration only forces a restart."""
        steps = [self.push()]
        if not self.cfg.client_generate_command:
            log.info("Restarting so the typed client is rebuilt from the schema",
                     extra={"step": GenerationStep.RESTART.value})
            steps.append(self.force_restart())
            return steps

        generated = self.generate_client()
        steps.append(generated)
        if not generated.ok:
            steps.append(self.force_restart())
        return steps
