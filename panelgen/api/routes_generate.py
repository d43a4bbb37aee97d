import logging
from typing import Callable

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.concurrency import run_in_threadpool
from pymongo.errors import PyMongoError

from panelgen.api.deps import get_database, get_settings, get_sync_scheduler
from panelgen.bootstrap.mount import mount_generated_routes
from panelgen.core.config import Settings
from panelgen.core.errors import GenerationError
from panelgen.core.workflow import GenerationStep
from panelgen.generators.resource_gen.generator import generate_resource
from panelgen.generators.resource_gen.types import ResourceDescriptor
from panelgen.generators.resource_gen.utils import normalize_slug, resource_name_to_slug
from panelgen.generators.resource_gen.validation import build_descriptor
from panelgen.pages.registry import DynamicPageRegistry
from panelgen.schemas.resources import GenerateResourceRequest, GenerateResourceResponse

log = logging.getLogger(__name__)

router = APIRouter()


def page_slug(descriptor: ResourceDescriptor) -> str:
    """Menu url wins; the resource name is the fallback (``OurCases`` -> ``our-cases``)."""
    menu_url = descriptor.menu_item.url if descriptor.menu_item else None
    return normalize_slug(menu_url or "") or resource_name_to_slug(descriptor.name)


@router.post("/generate-resource", status_code=201, response_model=GenerateResourceResponse)
async def generate_resource_endpoint(
    req: GenerateResourceRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    database=Depends(get_database),
    cfg: Settings = Depends(get_settings),
    schedule_sync: Callable[[], None] = Depends(get_sync_scheduler),
):
    descriptor = build_descriptor(req.model_dump())
    extra = {"resource": descriptor.name, "step": GenerationStep.VALIDATE.value}
    log.info("Generating resource with %d fields", len(descriptor.fields), extra=extra)

    result = await run_in_threadpool(generate_resource, descriptor, cfg)

    slug = page_slug(descriptor)
    title = (descriptor.menu_item.label if descriptor.menu_item else None) or descriptor.name
    structure_fields = descriptor.structure.get("fields")
    try:
        await DynamicPageRegistry(database).upsert(
            slug,
            title=title,
            blocks=[],
            structure={"fields": structure_fields if isinstance(structure_fields, list) else []},
        )
    except PyMongoError as e:
        raise GenerationError.from_exception("Failed to generate resource", e) from e
    log.info("Dynamic page %s upserted", slug, extra={**extra, "step": GenerationStep.DYNAMIC_PAGE.value})

    if cfg.mount_generated_routes:
        try:
            mount_generated_routes(request.app, result.mounts, cfg.project_root)
        except Exception:
            log.warning("Could not mount generated routes, they load on the next restart",
                        exc_info=True, extra={**extra, "step": GenerationStep.MOUNT_ROUTES.value})

    # runs after the response is sent
    background_tasks.add_task(schedule_sync)

    return GenerateResourceResponse(
        success=True,
        message=f"Resource {descriptor.name} generated successfully",
        resourceName=descriptor.name,
        endpoints=result.endpoints,
    )
