from celery import Celery
from celery.signals import after_setup_logger, after_setup_task_logger

from panelgen.core.config import settings
from panelgen.core.logging import LOG_FORMAT, ContextFormatter

celery_app = Celery("panelgen", broker=settings.redis_url, include=["panelgen.tasks.schema_sync"])
# one sync at a time per worker; nobody reads the task result
celery_app.conf.update(
    task_ignore_result=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
)


@after_setup_logger.connect
@after_setup_task_logger.connect
def use_context_format(logger, *args, **kwargs):
    for handler in logger.handlers:
        handler.setFormatter(ContextFormatter(LOG_FORMAT))
