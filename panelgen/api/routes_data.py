from fastapi import APIRouter, Depends

from panelgen.api.deps import get_database, get_settings
from panelgen.core.config import Settings
from panelgen.schemas.snapshot import ImportRequest, ImportResponse
from panelgen.snapshot.service import SnapshotService

router = APIRouter(prefix="/data")


def get_snapshot_service(database=Depends(get_database), cfg: Settings = Depends(get_settings)) -> SnapshotService:
    return SnapshotService(cfg, database)


@router.get("/export")
async def export_snapshot(service: SnapshotService = Depends(get_snapshot_service)):
    return await service.export()


@router.post("/import", response_model=ImportResponse)
async def import_snapshot(req: ImportRequest, service: SnapshotService = Depends(get_snapshot_service)):
    await service.import_snapshot(req.snapshot)
    return ImportResponse(success=True, message="Import finished. All data and generated resources were replaced.")
