"""Handler-module rendering for generated resources."""
from typing import List, Optional

from panelgen.generators.resource_gen.types import FieldSpec, ResourceType
from panelgen.generators.resource_gen.render_model import resolve_resource_type
from panelgen.generators.resource_gen.utils import (
    camel_to_snake,
    collection_name,
    model_name,
    route_name,
    structure_collection_name,
    structure_model_key,
)


def singleton_field_name(fields: List[FieldSpec]) -> str:
    """Physical name of the Json field a singleton resource stores its value in."""
    json_field = next((f for f in fields if f.type == "Json"), None)
    return camel_to_snake(json_field.name) if json_field else "data"


def _header(resource_name: str, stdlib_imports: Optional[List[str]] = None) -> List[str]:
    route = route_name(resource_name)
    lines = list(stdlib_imports or [])
    lines.extend([
        "from typing import Any",
        "",
        "from fastapi import Body, Depends, Query",
        "",
        "from panelgen.core.errors import NotFoundError",
        "from panelgen.runtime.accessors import ResourceAccessor, resource_accessor",
        "from panelgen.runtime.sanitize import require_array",
        "",
        f'MODEL_KEY = "{route}"',
        f'COLLECTION_NAME = "{collection_name(resource_name)}"',
        "",
        "accessor_dependency = resource_accessor(MODEL_KEY, COLLECTION_NAME)",
        "",
        "",
    ])
    return lines


def _get_by_id(resource_name: str) -> List[str]:
    route = route_name(resource_name)
    model = model_name(resource_name)
    return [
        f"async def get_{route}_by_id(id: str, accessor: ResourceAccessor = Depends(accessor_dependency)):",
        "    item = await accessor.find_one(id)",
        "    if item is None:",
        f'        raise NotFoundError("{model} not found")',
        "    return item",
        "",
        "",
    ]


def _create(resource_name: str) -> List[str]:
    route = route_name(resource_name)
    return [
        f"async def create_{route}(",
        "    payload: Any = Body(None),",
        "    accessor: ResourceAccessor = Depends(accessor_dependency),",
        "):",
        "    return await accessor.insert(payload)",
        "",
        "",
    ]


def _delete(resource_name: str) -> List[str]:
    route = route_name(resource_name)
    model = model_name(resource_name)
    return [
        f"async def delete_{route}(id: str, accessor: ResourceAccessor = Depends(accessor_dependency)):",
        "    if await accessor.find_one(id) is None:",
        f'        raise NotFoundError("{model} not found")',
        "    await accessor.delete(id)",
        f'    return {{"message": "{model} deleted"}}',
    ]


def _collection_handlers(resource_name: str) -> List[str]:
    route = route_name(resource_name)
    model = model_name(resource_name)
    lines = _header(resource_name, ["import math"])
    lines.extend([
        f"async def get_{route}_list(",
        "    page: int = Query(1, ge=1),",
        "    limit: int = Query(10, ge=1),",
        "    accessor: ResourceAccessor = Depends(accessor_dependency),",
        "):",
        "    skip = (page - 1) * limit",
        "    items, total = await accessor.find_many(skip=skip, take=limit)",
        "    return {",
        f'        "{route}": items,',
        '        "total": total,',
        '        "page": page,',
        '        "limit": limit,',
        '        "totalPages": math.ceil(total / limit),',
        "    }",
        "",
        "",
    ])
    lines.extend(_get_by_id(resource_name))
    lines.extend(_create(resource_name))
    lines.extend([
        f"async def update_{route}(",
        "    id: str,",
        "    payload: Any = Body(None),",
        "    accessor: ResourceAccessor = Depends(accessor_dependency),",
        "):",
        "    if await accessor.find_one(id) is None:",
        f'        raise NotFoundError("{model} not found")',
        "    return await accessor.update(id, payload)",
        "",
        "",
    ])
    lines.extend(_delete(resource_name))
    return lines


def _bulk_handlers(resource_name: str) -> List[str]:
    route = route_name(resource_name)
    lines = _header(resource_name)
    lines.extend([
        f"async def get_{route}_list(accessor: ResourceAccessor = Depends(accessor_dependency)):",
        "    items, _ = await accessor.find_many()",
        '    return {"items": items}',
        "",
        "",
    ])
    lines.extend(_get_by_id(resource_name))
    lines.extend(_create(resource_name))
    lines.extend([
        f"async def update_{route}(",
        "    payload: Any = Body(None),",
        "    accessor: ResourceAccessor = Depends(accessor_dependency),",
        "):",
        '    items = require_array(payload, "items")',
        '    return {"items": await accessor.replace_all(items)}',
        "",
        "",
    ])
    lines.extend(_delete(resource_name))
    return lines


def _singleton_handlers(resource_name: str, field_name: str) -> List[str]:
    route = route_name(resource_name)
    lines = _header(resource_name)
    lines.extend([
        f'VALUE_FIELD = "{field_name}"',
        "",
        "",
        f"async def get_{route}_list(accessor: ResourceAccessor = Depends(accessor_dependency)):",
        "    doc = await accessor.get_singleton({VALUE_FIELD: []})",
        "    return {VALUE_FIELD: doc.get(VALUE_FIELD) or []}",
        "",
        "",
    ])
    lines.extend(_get_by_id(resource_name))
    lines.extend(_create(resource_name))
    lines.extend([
        f"async def update_{route}(",
        "    payload: Any = Body(None),",
        "    accessor: ResourceAccessor = Depends(accessor_dependency),",
        "):",
        "    value = require_array(payload, VALUE_FIELD)",
        "    doc = await accessor.put_singleton({VALUE_FIELD: value})",
        "    return {VALUE_FIELD: doc.get(VALUE_FIELD) or []}",
        "",
        "",
    ])
    lines.extend(_delete(resource_name))
    return lines


def render_controller(
    resource_name: str,
    fields: List[FieldSpec],
    resource_type: Optional[ResourceType] = None,
) -> str:
    """Generate the handler module for one of the three resource shapes."""
    kind = resolve_resource_type(fields, resource_type)
    if kind == ResourceType.COLLECTION_BULK:
        lines = _bulk_handlers(resource_name)
    elif kind == ResourceType.SINGLETON:
        lines = _singleton_handlers(resource_name, singleton_field_name(fields))
    else:
        lines = _collection_handlers(resource_name)
    return "\n".join(lines) + "\n"


def render_structure_controller(resource_name: str) -> str:
    """Generate the handler module backing the resource's field-layout document."""
    route = route_name(resource_name)
    lines = [
        "from typing import Any, Callable",
        "",
        "from fastapi import BackgroundTasks, Body, Depends",
        "from fastapi.concurrency import run_in_threadpool",
        "",
        "from panelgen.api.deps import get_settings, get_sync_scheduler",
        "from panelgen.core.config import Settings",
        "from panelgen.runtime.accessors import ResourceAccessor, resource_accessor",
        "from panelgen.runtime.sanitize import require_array",
        "from panelgen.structure.sync import sync_resource_model_from_structure",
        "",
        f'MODEL_KEY = "{structure_model_key(resource_name)}"',
        f'COLLECTION_NAME = "{structure_collection_name(resource_name)}"',
        f'RESOURCE_NAME = "{route}"',
        "",
        "accessor_dependency = resource_accessor(MODEL_KEY, COLLECTION_NAME)",
        "",
        "",
        f"async def get_{route}_structure(accessor: ResourceAccessor = Depends(accessor_dependency)):",
        '    structure = await accessor.get_singleton({"fields": []})',
        '    return {"fields": structure.get("fields") or []}',
        "",
        "",
        f"async def update_{route}_structure(",
        "    background_tasks: BackgroundTasks,",
        "    payload: Any = Body(None),",
        "    accessor: ResourceAccessor = Depends(accessor_dependency),",
        "    cfg: Settings = Depends(get_settings),",
        "    schedule_sync: Callable[[], None] = Depends(get_sync_scheduler),",
        "):",
        '    fields = require_array(payload, "fields")',
        '    structure = await accessor.put_singleton({"fields": fields})',
        "    sync = await run_in_threadpool(",
        "        sync_resource_model_from_structure, RESOURCE_NAME, fields, cfg.schema_file",
        "    )",
        "    if sync.changed:",
        "        background_tasks.add_task(schedule_sync)",
        '    return {"fields": structure.get("fields") or [], "modelSynced": sync.changed}',
    ]
    return "\n".join(lines) + "\n"
