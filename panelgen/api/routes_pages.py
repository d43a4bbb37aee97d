from fastapi import APIRouter, Depends, Response

from panelgen.api.deps import get_database
from panelgen.pages.registry import DynamicPageRegistry
from panelgen.schemas.pages import PageWrite

router = APIRouter(prefix="/dynamic-pages")


def get_page_registry(database=Depends(get_database)) -> DynamicPageRegistry:
    return DynamicPageRegistry(database)


@router.get("/{slug}")
async def get_dynamic_page(slug: str, pages: DynamicPageRegistry = Depends(get_page_registry)):
    return await pages.get_or_create(slug)


@router.post("/{slug}", status_code=201)
async def create_dynamic_page(slug: str, req: PageWrite, pages: DynamicPageRegistry = Depends(get_page_registry)):
    return await pages.create(slug, req.title, req.blocks, req.structure)


@router.put("/{slug}")
async def update_dynamic_page(
    slug: str,
    req: PageWrite,
    response: Response,
    pages: DynamicPageRegistry = Depends(get_page_registry),
):
    page, created = await pages.update(slug, req.model_dump(exclude_unset=True))
    if created:
        response.status_code = 201
    return page
