"""Validation of generation requests. Every violation is collected before raising."""
from __future__ import annotations

import keyword
import re
from typing import Any, List, Mapping, Optional

from panelgen.core.errors import ValidationError
from panelgen.generators.resource_gen.types import (
    RESERVED_NAMES,
    VALID_FIELD_TYPES,
    FieldSpec,
    MenuItem,
    ResourceDescriptor,
    ResourceType,
)
from panelgen.generators.resource_gen.utils import camel_to_snake, route_name

IDENTIFIER_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


def resource_name_violations(name: Any) -> List[str]:
    if name is None or name == "":
        return ["Resource name is required"]
    if not isinstance(name, str):
        return ["Resource name must be a string"]
    if not IDENTIFIER_RE.match(name):
        return ["Resource name must start with a letter and contain only letters, numbers, and underscores"]
    if name.lower() in RESERVED_NAMES:
        return [f'Resource name "{name}" is reserved']
    # the route segment becomes a package name in generated imports
    if keyword.iskeyword(route_name(name)):
        return [f'Resource name "{name}" is a Python keyword']
    return []


def field_violations(fields: Any) -> List[str]:
    if fields is None or not isinstance(fields, list):
        return ["fields array is required"]
    if len(fields) == 0:
        return ["At least one field is required"]

    violations = []
    seen = {}
    for i, field in enumerate(fields):
        name = field.get("name") if isinstance(field, Mapping) else None
        type_ = field.get("type") if isinstance(field, Mapping) else None
        if not name or not type_:
            violations.append(f"fields[{i}]: each field must have 'name' and 'type' properties")
            continue
        if not isinstance(name, str) or not IDENTIFIER_RE.match(name):
            violations.append(f"Invalid field name: {name}")
        else:
            physical = camel_to_snake(name)
            if physical in seen:
                violations.append(f"Duplicate field name: {name} (stored as {physical}, same as {seen[physical]})")
            else:
                seen[physical] = name
        if type_ not in VALID_FIELD_TYPES:
            violations.append(f"Invalid field type: {type_}. Valid types: {', '.join(VALID_FIELD_TYPES)}")
        if "required" in field and not isinstance(field["required"], bool):
            violations.append(f"fields[{i}]: required must be a boolean")
    return violations


def menu_item_violations(menu: Any) -> List[str]:
    if menu is None:
        return []
    if not isinstance(menu, Mapping):
        return ["menuItem must be an object"]
    return [
        f"menuItem.{key} must be a string"
        for key in ("label", "url")
        if menu.get(key) is not None and not isinstance(menu.get(key), str)
    ]


def build_descriptor(payload: Mapping[str, Any]) -> ResourceDescriptor:
    """Turn a request body into a ResourceDescriptor, or raise ValidationError listing every problem."""
    name = payload.get("resourceName")
    fields = payload.get("fields")
    raw_type = payload.get("resourceType")
    menu = payload.get("menuItem")

    violations = resource_name_violations(name) + field_violations(fields) + menu_item_violations(menu)

    resource_type: Optional[ResourceType] = None
    if raw_type:
        try:
            resource_type = ResourceType(raw_type)
        except (ValueError, TypeError):
            valid = ", ".join(t.value for t in ResourceType)
            violations.append(f"Invalid resourceType: {raw_type}. Valid types: {valid}")

    if violations:
        raise ValidationError(violations)

    structure = payload.get("structure") or {}
    return ResourceDescriptor(
        name=name,
        fields=[
            FieldSpec(name=f["name"], type=f["type"], required=f.get("required", False))
            for f in fields
        ],
        resource_type=resource_type,
        menu_item=MenuItem(label=menu.get("label"), url=menu.get("url")) if menu else None,
        structure=structure if isinstance(structure, dict) else {},
    )
