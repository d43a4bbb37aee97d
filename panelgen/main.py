import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from panelgen.core.config import Settings, settings
from panelgen.core.errors import register_exception_handlers
from panelgen.core.logging import configure_logging
from panelgen.db.client import ModelClient
from panelgen.db.mongo import MongoDatabase, wait_for_database

configure_logging(settings.log_level)
log = logging.getLogger(__name__)


def create_app(database=None, model_client: Optional[ModelClient] = None, app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Without injected collaborators the lifespan connects to MongoDB and builds
    the typed client from the schema file as it is at boot.
    """
    cfg = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        log.info("Starting API server...")
        owned = None
        if app.state.database is None:
            owned = MongoDatabase.from_settings(cfg)
            try:
                await wait_for_database(owned)
            except Exception as e:
                log.error("API startup failed: %s", e, exc_info=True)
                owned.close()
                raise
            app.state.database = owned
        if app.state.model_client is None:
            app.state.model_client = ModelClient.from_schema_file(cfg.schema_file, app.state.database)
        log.info("API server startup complete")
        yield
        log.info("Shutting down API server...")
        if owned is not None:
            owned.close()

    app = FastAPI(title=cfg.app_name, version="0.1.0", lifespan=lifespan)
    app.state.settings = cfg
    app.state.database = database
    app.state.model_client = model_client
    register_exception_handlers(app)
    return app
