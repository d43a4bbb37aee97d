"""End-to-end tests for POST /api/admin/generate-resource."""
from panelgen.schema.document import SchemaDocument

CASES = {
    "resourceName": "Cases",
    "fields": [
        {"name": "title", "type": "String", "required": True},
        {"name": "coverImage", "type": "String"},
        {"name": "views", "type": "Int"},
    ],
}


def test_generate_cases(client, cfg, fake_db, scheduled):
    response = client.post("/api/admin/generate-resource", json=CASES)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["resourceName"] == "Cases"
    assert body["endpoints"] == {
        "getAll": "GET /api/cases",
        "getById": "GET /api/cases/:id",
        "create": "POST /api/cases",
        "update": "PUT /api/cases/:id",
        "delete": "DELETE /api/cases/:id",
    }

    resource_dir = cfg.generated_root / "cases"
    assert sorted(p.name for p in resource_dir.iterdir()) == [
        "cases_controller.py",
        "cases_routes.py",
        "cases_structure_controller.py",
        "cases_structure_routes.py",
    ]

    schema = SchemaDocument.parse(cfg.schema_file.read_text(encoding="utf-8"))
    assert schema.model("Cases") is not None
    assert schema.model("CasesStructure") is not None
    assert schema.model("User") is not None
    cases = schema.model("Cases")
    assert cases.collection_name == "casess"
    assert "cover_image" in [f.name for f in cases.fields()]

    server = cfg.server_file.read_text(encoding="utf-8")
    assert "from resources.cases.cases_routes import router as cases_routes" in server
    assert 'app.include_router(cases_routes, prefix="/api/cases")' in server
    assert 'app.include_router(cases_structure_routes, prefix="/api/casesStructure")' in server

    pages = fake_db.docs("dynamic_pages")
    assert [p["slug"] for p in pages] == ["cases"]
    assert pages[0]["title"] == "Cases"
    assert pages[0]["structure"] == {"fields": []}

    assert scheduled == ["sync"]


def test_generate_twice_is_idempotent(client, cfg):
    client.post("/api/admin/generate-resource", json=CASES)
    server_once = cfg.server_file.read_text(encoding="utf-8")
    schema_once = cfg.schema_file.read_text(encoding="utf-8")

    response = client.post("/api/admin/generate-resource", json=CASES)

    assert response.status_code == 201
    assert cfg.server_file.read_text(encoding="utf-8") == server_once
    assert cfg.schema_file.read_text(encoding="utf-8") == schema_once


def test_reserved_name_is_rejected_without_side_effects(client, cfg, fake_db, scheduled):
    schema_before = cfg.schema_file.read_text(encoding="utf-8")
    server_before = cfg.server_file.read_text(encoding="utf-8")

    response = client.post("/api/admin/generate-resource", json={
        "resourceName": "admin",
        "fields": [{"name": "title", "type": "String"}],
    })

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["message"] == 'Resource name "admin" is reserved'
    assert list(cfg.generated_root.iterdir()) == []
    assert cfg.schema_file.read_text(encoding="utf-8") == schema_before
    assert cfg.server_file.read_text(encoding="utf-8") == server_before
    assert fake_db.docs("dynamic_pages") == []
    assert scheduled == []


def test_keyword_name_is_rejected_without_side_effects(client, cfg, scheduled):
    server_before = cfg.server_file.read_text(encoding="utf-8")
    schema_before = cfg.schema_file.read_text(encoding="utf-8")

    response = client.post("/api/admin/generate-resource", json={
        "resourceName": "Global",
        "fields": [{"name": "title", "type": "String"}],
    })

    assert response.status_code == 400
    assert response.json()["message"] == 'Resource name "Global" is a Python keyword'
    assert list(cfg.generated_root.iterdir()) == []
    assert cfg.server_file.read_text(encoding="utf-8") == server_before
    assert cfg.schema_file.read_text(encoding="utf-8") == schema_before
    assert scheduled == []


def test_colliding_field_names_are_rejected(client, cfg):
    schema_before = cfg.schema_file.read_text(encoding="utf-8")

    response = client.post("/api/admin/generate-resource", json={
        "resourceName": "Posts",
        "fields": [{"name": "fooBar", "type": "String"}, {"name": "foo_bar", "type": "Int"}],
    })

    assert response.status_code == 400
    assert "Duplicate field name: foo_bar" in response.json()["message"]
    assert list(cfg.generated_root.iterdir()) == []
    assert cfg.schema_file.read_text(encoding="utf-8") == schema_before


def test_required_must_be_a_boolean(client, cfg):
    response = client.post("/api/admin/generate-resource", json={
        "resourceName": "Posts",
        "fields": [{"name": "title", "type": "String", "required": "false"}],
    })

    assert response.status_code == 400
    assert response.json()["message"] == "fields[0]: required must be a boolean"
    assert list(cfg.generated_root.iterdir()) == []


def test_wrongly_typed_body_reports_every_violation(client):
    response = client.post("/api/admin/generate-resource", json={
        "resourceName": 5,
        "fields": [],
        "menuItem": {"label": 3},
    })

    assert response.status_code == 400
    assert response.json()["message"] == "; ".join([
        "Resource name must be a string",
        "At least one field is required",
        "menuItem.label must be a string",
    ])


def test_every_violation_is_reported(client):
    response = client.post("/api/admin/generate-resource", json={
        "resourceName": "1bad",
        "fields": [{"name": "ok", "type": "Decimal"}, {"name": "x"}],
        "resourceType": "tree",
    })

    assert response.status_code == 400
    message = response.json()["message"]
    assert "Resource name must start with a letter" in message
    assert "Invalid field type: Decimal" in message
    assert "fields[1]: each field must have 'name' and 'type' properties" in message
    assert "Invalid resourceType: tree" in message


def test_missing_fields(client):
    response = client.post("/api/admin/generate-resource", json={"resourceName": "Cases", "fields": []})

    assert response.status_code == 400
    assert response.json()["error"] == "At least one field is required"


def test_menu_url_sets_page_slug(client, fake_db):
    payload = {
        **CASES,
        "menuItem": {"label": "Our cases", "url": "/admin/our-cases"},
        "structure": {"fields": [{"label": "Title", "type": "text"}]},
    }

    response = client.post("/api/admin/generate-resource", json=payload)

    assert response.status_code == 201
    page = fake_db.docs("dynamic_pages")[0]
    assert page["slug"] == "our-cases"
    assert page["title"] == "Our cases"
    assert page["structure"] == {"fields": [{"label": "Title", "type": "text"}]}


def test_singleton_endpoints(client):
    response = client.post("/api/admin/generate-resource", json={
        "resourceName": "Menu",
        "fields": [{"name": "menuItems", "type": "Json"}],
    })

    assert response.status_code == 201
    assert response.json()["endpoints"]["update"] == "PUT /api/menu"
