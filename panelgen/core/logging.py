import logging
import sys

CONTEXT_FIELDS = ("resource", "step")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [resource=%(resource)s step=%(step)s] - %(message)s"
QUIET_LOGGERS = ("pymongo", "motor", "multipart")


class ContextFormatter(logging.Formatter):
    """Fills the generation context (resource, step) with '-' on records that carry none."""
    def format(self, record):
        for name in CONTEXT_FIELDS:
            if not hasattr(record, name):
                setattr(record, name, "-")
        return super().format(record)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ContextFormatter(LOG_FORMAT))
    logging.basicConfig(
        level=level.upper(),
        handlers=[handler],
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
