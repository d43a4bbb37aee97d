"""
Re-synthesize a resource's schema model from its admin field layout.

Structure entries look like ``{"label": "Заголовок", "type": "text", "order": 0}``.
Labels become snake_case field names (Cyrillic transliterated), types map onto
schema scalar types and every synthesized field is optional.
"""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

from panelgen.core.config import settings
from panelgen.core.workflow import GenerationStep
from panelgen.generators.resource_gen.render_model import render_prisma_model
from panelgen.generators.resource_gen.types import FieldSpec
from panelgen.schema.merge import add_model_to_schema

log = logging.getLogger(__name__)

CYRILLIC_MAP = {
    "а": "a", "б": "b", "в": "v", "г": "g", "д": "d", "е": "e", "ё": "yo", "ж": "zh",
    "з": "z", "и": "i", "й": "y", "к": "k", "л": "l", "м": "m", "н": "n", "о": "o",
    "п": "p", "р": "r", "с": "s", "т": "t", "у": "u", "ф": "f", "х": "h", "ц": "ts",
    "ч": "ch", "ш": "sh", "щ": "sch", "ъ": "", "ы": "y", "ь": "", "э": "e", "ю": "yu", "я": "ya",
}

STRUCTURE_TYPE_MAP = {
    "number": "Int",
    "boolean": "Boolean",
    "date": "DateTime",
    "json": "Json",
}


@dataclass
class StructureSyncResult:
    changed: bool
    reason: Optional[str] = None
    fields: List[FieldSpec] = field(default_factory=list)


def transliterate(value: Any) -> str:
    return "".join(CYRILLIC_MAP.get(char.lower(), char) for char in str(value or ""))


def normalize_field_key(raw: Any, fallback: str = "field") -> str:
    normalized = transliterate(raw).lower()
    normalized = re.sub(r"[^a-z0-9]+", "_", normalized)
    normalized = re.sub(r"_+", "_", normalized).strip("_")
    base = normalized or fallback
    if not re.match(r"^[a-z]", base):
        return f"field_{base}"
    return base


def map_structure_type(type_: Any) -> str:
    return STRUCTURE_TYPE_MAP.get(str(type_ or "").lower(), "String")


def _order(entry: dict, index: int) -> int:
    order = entry.get("order")
    if isinstance(order, (int, float)) and not isinstance(order, bool) and math.isfinite(order):
        return int(order)
    return index


def build_model_fields_from_structure(structure_fields: Any) -> List[FieldSpec]:
    entries = structure_fields if isinstance(structure_fields, list) else []
    entries = [e for e in entries if isinstance(e, dict) and e.get("type") != "additionalBlocks"]

    used = set()
    fields = []
    for index, entry in enumerate(entries):
        fallback = f"{str(entry.get('type') or 'field').lower()}_{_order(entry, index)}"
        base = normalize_field_key(entry.get("label") or "", fallback)

        name = base
        suffix = 1
        while name in used:
            name = f"{base}_{suffix}"
            suffix += 1
        used.add(name)

        fields.append(FieldSpec(name=name, type=map_structure_type(entry.get("type")), required=False))
    return fields


def sync_resource_model_from_structure(
    resource_name: str,
    structure_fields: Any,
    schema_path: Optional[Path] = None,
) -> StructureSyncResult:
    """Merge the synthesized model into the schema. The caller schedules the schema sync when changed."""
    fields = build_model_fields_from_structure(structure_fields)
    if not fields:
        return StructureSyncResult(changed=False, reason="no_fields", fields=fields)

    model = render_prisma_model(resource_name, fields)
    changed = add_model_to_schema(schema_path or settings.schema_file, model)
    log.info(
        "Structure sync %s",
        "changed the model" if changed else "left the model unchanged",
        extra={"resource": resource_name, "step": GenerationStep.PRISMA_MODEL.value},
    )
    return StructureSyncResult(changed=changed, fields=fields)
