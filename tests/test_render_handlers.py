"""Generated handler and route modules must be valid Python with the expected shape."""
import pytest

from panelgen.generators.resource_gen.render_controller import (
    render_controller,
    render_structure_controller,
    singleton_field_name,
)
from panelgen.generators.resource_gen.render_routes import (
    render_endpoints,
    render_routes,
    render_structure_routes,
)
from panelgen.generators.resource_gen.types import FieldSpec, ResourceType

TITLE = [FieldSpec(name="title", type="String", required=True)]
ITEMS = [FieldSpec(name="menuItems", type="Json")]


@pytest.mark.parametrize("fields,resource_type", [
    (TITLE, None),
    (TITLE, ResourceType.COLLECTION_BULK),
    (ITEMS, None),
])
def test_generated_modules_compile(fields, resource_type):
    sources = {
        "cases_controller.py": render_controller("Cases", fields, resource_type),
        "cases_routes.py": render_routes("Cases", fields, resource_type),
        "cases_structure_controller.py": render_structure_controller("Cases"),
        "cases_structure_routes.py": render_structure_routes("Cases"),
    }
    for filename, source in sources.items():
        compile(source, filename, "exec")


def test_collection_controller_shape():
    source = render_controller("Cases", TITLE)

    assert 'MODEL_KEY = "cases"' in source
    assert 'COLLECTION_NAME = "casess"' in source
    assert '"cases": items,' in source
    assert '"totalPages": math.ceil(total / limit),' in source
    assert 'raise NotFoundError("Cases not found")' in source


def test_singleton_controller_uses_snake_case_json_field():
    assert singleton_field_name(ITEMS) == "menu_items"
    source = render_controller("Menu", ITEMS)

    assert 'VALUE_FIELD = "menu_items"' in source
    assert "require_array(payload, VALUE_FIELD)" in source


def test_bulk_list_is_public():
    source = render_routes("Items", TITLE, ResourceType.COLLECTION_BULK)

    assert 'router.add_api_route("", get_items_list, methods=["GET"])\n' in source
    assert 'router.add_api_route("", update_items, methods=["PUT"], dependencies=[Depends(protect)])' in source
    assert "from resources.items.items_controller import (" in source


def test_collection_routes_are_protected():
    source = render_routes("Cases", TITLE)
    route_lines = [line for line in source.splitlines() if line.startswith("router.add_api_route")]

    assert len(route_lines) == 5
    assert all("dependencies=[Depends(protect)]" in line for line in route_lines)
    assert 'router.add_api_route("/{id}", update_cases, methods=["PUT"], dependencies=[Depends(protect)])' in route_lines


def test_endpoints():
    collection = render_endpoints("Cases", TITLE)
    singleton = render_endpoints("Menu", ITEMS)

    assert collection["update"] == "PUT /api/cases/:id"
    assert singleton["update"] == "PUT /api/menu"
    assert collection["getAll"] == "GET /api/cases"
