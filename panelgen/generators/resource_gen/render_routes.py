"""Route-table rendering and the endpoint summary returned after generation."""
from typing import Dict, List, Optional

from panelgen.generators.resource_gen.types import FieldSpec, ResourceType
from panelgen.generators.resource_gen.render_model import resolve_resource_type
from panelgen.generators.resource_gen.utils import route_name


def controller_module(resource_name: str, package: str = "resources") -> str:
    route = route_name(resource_name)
    return f"{package}.{route}.{route}_controller"


def structure_controller_module(resource_name: str, package: str = "resources") -> str:
    route = route_name(resource_name)
    return f"{package}.{route}.{route}_structure_controller"


def _route(path: str, handler: str, method: str, protected: bool = True, status_code: Optional[int] = None) -> str:
    args = [f'"{path}"', handler, f'methods=["{method}"]']
    if status_code:
        args.append(f"status_code={status_code}")
    if protected:
        args.append("dependencies=[Depends(protect)]")
    return f"router.add_api_route({', '.join(args)})"


def render_routes(
    resource_name: str,
    fields: List[FieldSpec],
    resource_type: Optional[ResourceType] = None,
    package: str = "resources",
) -> str:
    """Generate the route table; every route is protected except the bulk list."""
    route = route_name(resource_name)
    kind = resolve_resource_type(fields, resource_type)
    handlers = [f"get_{route}_list", f"get_{route}_by_id", f"create_{route}", f"update_{route}", f"delete_{route}"]

    lines = [
        "from fastapi import APIRouter, Depends",
        "",
        "from panelgen.api.deps import protect",
        f"from {controller_module(resource_name, package)} import (",
    ]
    lines.extend(f"    {h}," for h in handlers)
    lines.extend([
        ")",
        "",
        "router = APIRouter()",
        "",
    ])

    if kind == ResourceType.COLLECTION:
        lines.extend([
            _route("", f"get_{route}_list", "GET"),
            _route("", f"create_{route}", "POST", status_code=201),
            _route("/{id}", f"get_{route}_by_id", "GET"),
            _route("/{id}", f"update_{route}", "PUT"),
            _route("/{id}", f"delete_{route}", "DELETE"),
        ])
    else:
        lines.extend([
            _route("", f"get_{route}_list", "GET", protected=kind != ResourceType.COLLECTION_BULK),
            _route("", f"update_{route}", "PUT"),
            _route("", f"create_{route}", "POST", status_code=201),
            _route("/{id}", f"get_{route}_by_id", "GET"),
            _route("/{id}", f"delete_{route}", "DELETE"),
        ])
    return "\n".join(lines) + "\n"


def render_structure_routes(resource_name: str, package: str = "resources") -> str:
    route = route_name(resource_name)
    lines = [
        "from fastapi import APIRouter, Depends",
        "",
        "from panelgen.api.deps import protect",
        f"from {structure_controller_module(resource_name, package)} import (",
        f"    get_{route}_structure,",
        f"    update_{route}_structure,",
        ")",
        "",
        "router = APIRouter()",
        "",
        _route("", f"get_{route}_structure", "GET"),
        _route("", f"update_{route}_structure", "PUT"),
    ]
    return "\n".join(lines) + "\n"


def render_endpoints(
    resource_name: str,
    fields: List[FieldSpec],
    resource_type: Optional[ResourceType] = None,
) -> Dict[str, str]:
    base = f"/api/{route_name(resource_name)}"
    kind = resolve_resource_type(fields, resource_type)
    update = f"PUT {base}/:id" if kind == ResourceType.COLLECTION else f"PUT {base}"
    return {
        "getAll": f"GET {base}",
        "getById": f"GET {base}/:id",
        "create": f"POST {base}",
        "update": update,
        "delete": f"DELETE {base}/:id",
    }
