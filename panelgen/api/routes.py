from fastapi import APIRouter, Depends
from panelgen.api.deps import require_admin
from panelgen.api.routes_data import router as data_router
from panelgen.api.routes_generate import router as generate_router
from panelgen.api.routes_pages import router as pages_router

router = APIRouter(dependencies=[Depends(require_admin)])
router.include_router(generate_router, tags=["generate"])
router.include_router(pages_router, tags=["dynamic-pages"])
router.include_router(data_router, tags=["data"])
