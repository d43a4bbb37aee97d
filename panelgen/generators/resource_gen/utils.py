"""Naming helpers shared by the resource templates."""
import re


def capitalize_first(name: str) -> str:
    """Model name: first letter upper-cased, the rest lower-cased (``cases`` -> ``Cases``)."""
    return name[:1].upper() + name[1:].lower()


def lower_first(name: str) -> str:
    return name[:1].lower() + name[1:]


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case (``iconType`` -> ``icon_type``)."""
    return re.sub(r"[A-Z]", lambda m: f"_{m.group(0).lower()}", name).lstrip("_")


def route_name(resource_name: str) -> str:
    """URL segment, module prefix and typed-client key of a resource."""
    return resource_name.lower()


def model_name(resource_name: str) -> str:
    return capitalize_first(resource_name)


def structure_model_name(resource_name: str) -> str:
    return f"{model_name(resource_name)}Structure"


def structure_model_key(resource_name: str) -> str:
    return f"{route_name(resource_name)}Structure"


def collection_name(resource_name: str) -> str:
    """Physical collection, also written as the model's @@map."""
    return f"{route_name(resource_name)}s"


def structure_collection_name(resource_name: str) -> str:
    return f"{route_name(resource_name)}_structures"


def resource_name_to_slug(resource_name: str) -> str:
    """``OurCases`` -> ``our-cases``."""
    slug = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", resource_name.strip())
    slug = re.sub(r"[\s_]+", "-", slug)
    return slug.lower()


def normalize_slug(raw: str) -> str:
    """Menu url -> page slug: drops surrounding slashes and a leading ``admin/``."""
    slug = str(raw or "").strip()
    slug = re.sub(r"^/+", "", slug)
    slug = re.sub(r"^admin/?", "", slug, flags=re.IGNORECASE)
    slug = re.sub(r"^/+", "", slug)
    slug = re.sub(r"/+$", "", slug)
    return slug
