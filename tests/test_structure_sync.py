"""Tests for re-synthesizing resource models from admin field layouts."""
from panelgen.schema.document import SchemaDocument
from panelgen.structure.sync import (
    build_model_fields_from_structure,
    map_structure_type,
    normalize_field_key,
    sync_resource_model_from_structure,
    transliterate,
)


def test_transliterate_and_normalize():
    assert transliterate("Заголовок") == "zagolovok"
    assert normalize_field_key("Дата публикации") == "data_publikatsii"
    assert normalize_field_key("  Main Title!! ") == "main_title"
    assert normalize_field_key("123 items") == "field_123_items"
    assert normalize_field_key("", "text_0") == "text_0"


def test_type_mapping():
    assert map_structure_type("number") == "Int"
    assert map_structure_type("Boolean") == "Boolean"
    assert map_structure_type("date") == "DateTime"
    assert map_structure_type("json") == "Json"
    assert map_structure_type("richtext") == "String"
    assert map_structure_type(None) == "String"


def test_build_fields_unique_names_and_skips():
    fields = build_model_fields_from_structure([
        {"label": "Заголовок", "type": "text"},
        {"label": "Заголовок", "type": "number"},
        {"label": "Заголовок", "type": "text"},
        {"label": "", "type": "date", "order": 3},
        {"label": "Blocks", "type": "additionalBlocks"},
    ])

    assert [(f.name, f.type, f.required) for f in fields] == [
        ("zagolovok", "String", False),
        ("zagolovok_1", "Int", False),
        ("zagolovok_2", "String", False),
        ("date_3", "DateTime", False),
    ]
    assert build_model_fields_from_structure(None) == []


def test_sync_merges_model(tmp_path):
    schema = tmp_path / "schema.prisma"
    schema.write_text("", encoding="utf-8")
    structure = [{"label": "Title", "type": "text"}, {"label": "Views", "type": "number"}]

    first = sync_resource_model_from_structure("cases", structure, schema)
    second = sync_resource_model_from_structure("cases", structure, schema)

    assert first.changed is True
    assert second.changed is False
    block = SchemaDocument.parse(schema.read_text(encoding="utf-8")).model("Cases")
    assert [(f.name, f.type, f.required) for f in block.fields()] == [("title", "String", False), ("views", "Int", False)]


def test_sync_without_fields(tmp_path):
    schema = tmp_path / "schema.prisma"
    schema.write_text("", encoding="utf-8")

    result = sync_resource_model_from_structure("cases", [{"type": "additionalBlocks"}], schema)

    assert result.changed is False
    assert result.reason == "no_fields"
    assert schema.read_text(encoding="utf-8") == ""
