"""Schema-model rendering for generated resources."""
from typing import List, Optional

from panelgen.generators.resource_gen.types import FieldSpec, ResourceType
from panelgen.generators.resource_gen.utils import (
    camel_to_snake,
    collection_name,
    model_name,
    structure_collection_name,
    structure_model_name,
)

STANDARD_FIELDS = [
    '  id        String   @id @default(auto()) @map("_id") @db.ObjectId',
    '  createdAt DateTime @default(now()) @map("created_at")',
    '  updatedAt DateTime @updatedAt @map("updated_at")',
    '  isPublished Boolean @default(false)',
]

ADDITIONAL_BLOCKS_FIELD = '  additionalBlocks Json?'


def resolve_resource_type(fields: List[FieldSpec], explicit: Optional[ResourceType] = None) -> ResourceType:
    """Explicit type wins; a lone Json field makes a singleton; anything else is a collection."""
    if explicit is not None:
        return ResourceType(explicit)
    json_fields = [f for f in fields if f.type == "Json"]
    if len(json_fields) == 1 and len(fields) == 1:
        return ResourceType.SINGLETON
    return ResourceType.COLLECTION


def model_fields(fields: List[FieldSpec]) -> List[FieldSpec]:
    """Physical (snake_case) fields; ``is_published`` is dropped in favour of the system field."""
    result = []
    for f in fields:
        physical = camel_to_snake(f.name)
        if physical == "is_published":
            continue
        result.append(FieldSpec(name=physical, type=f.type, required=f.required))
    return result


def render_prisma_model(resource_name: str, fields: List[FieldSpec]) -> str:
    """Generate the persistence model block for a resource."""
    lines = [f"model {model_name(resource_name)} {{"]
    lines.extend(STANDARD_FIELDS)
    for f in model_fields(fields):
        optional = "" if f.required else "?"
        lines.append(f"  {f.name} {f.type}{optional}")
    lines.append(ADDITIONAL_BLOCKS_FIELD)
    lines.append("  ")
    lines.append(f'  @@map("{collection_name(resource_name)}")')
    lines.append("}")
    return "\n".join(lines)


def render_structure_model(resource_name: str) -> str:
    """Generate the ``<Model>Structure`` block holding the admin field layout."""
    return "\n".join([
        f"model {structure_model_name(resource_name)} {{",
        STANDARD_FIELDS[0],
        STANDARD_FIELDS[1],
        STANDARD_FIELDS[2],
        "  fields    Json?",
        "  ",
        f'  @@map("{structure_collection_name(resource_name)}")',
        "}",
    ])
