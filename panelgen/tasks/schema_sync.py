from __future__ import annotations
import logging

from kombu.exceptions import OperationalError

from panelgen.core.errors import SyncError
from panelgen.core.workflow import GenerationStep
from panelgen.sync.invoker import SchemaSyncInvoker
from panelgen.tasks.celery_app import celery_app

log = logging.getLogger(__name__)


@celery_app.task(name="sync_schema")
def sync_schema() -> None:
    try:
        steps = SchemaSyncInvoker().sync()
    except SyncError:
        log.exception("Schema sync failed, schema will be synced on the next restart",
                      extra={"step": GenerationStep.FAILED.value})
        return
    log.info("Schema sync finished: %s", ", ".join(f"{s.step.value}={'ok' if s.ok else 'failed'}" for s in steps),
             extra={"step": GenerationStep.DONE.value})


def schedule_schema_sync() -> None:
    """Publish the sync task. Broker outages are logged; the request that triggered it already succeeded."""
    try:
        sync_schema.delay()
    except OperationalError:
        log.exception("Could not enqueue schema sync", extra={"step": GenerationStep.SCHEMA_PUSH.value})
