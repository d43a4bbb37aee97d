"""ASGI entrypoint: uvicorn server:app --reload --reload-include "*.prisma"."""
from panelgen.main import create_app
from panelgen.api.routes_health import router as health_routes
from panelgen.api.routes import router as admin_routes

app = create_app()

app.include_router(health_routes, prefix="/api")
app.include_router(admin_routes, prefix="/api/admin")
