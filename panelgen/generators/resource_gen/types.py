"""Dataclasses for resource generation."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


VALID_FIELD_TYPES = ("String", "Int", "Float", "Boolean", "DateTime", "Json")
RESERVED_NAMES = ("user", "auth", "config", "admin", "api", "public")


class ResourceType(str, Enum):
    COLLECTION = "collection"
    COLLECTION_BULK = "collectionBulk"
    SINGLETON = "singleton"


@dataclass(frozen=True)
class FieldSpec:
    """A declared resource field."""
    name: str
    type: str
    required: bool = False


@dataclass(frozen=True)
class MenuItem:
    label: Optional[str] = None
    url: Optional[str] = None


@dataclass
class ResourceDescriptor:
    """Validated generation request."""
    name: str
    fields: List[FieldSpec]
    resource_type: Optional[ResourceType] = None
    menu_item: Optional[MenuItem] = None
    structure: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GeneratedFile:
    """Represents a generated file."""
    path: str  # Relative path from the generated resources directory
    content: str  # File contents
