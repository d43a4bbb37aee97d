"""Idempotent merge of generated model blocks into the shared schema file."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from panelgen.schema.document import Block, SchemaDocument, SchemaField, parse_block

log = logging.getLogger(__name__)

GENERATOR_BLOCK = """generator client {
  provider = "prisma-client-js"
}
"""

DATASOURCE_BLOCK = """datasource db {
  provider = "mongodb"
  url      = env("DATABASE_URL")
}
"""


def collapse_blank_lines(text: str) -> str:
    return re.sub(r"\n{3,}", "\n\n", text)


def ensure_preamble(schema_text: str) -> str:
    """Prepend whichever of the generator/datasource declarations is missing."""
    doc = SchemaDocument.parse(schema_text)
    missing = []
    if not doc.has_block("generator", "client"):
        missing.append(GENERATOR_BLOCK)
    if not doc.has_block("datasource", "db"):
        missing.append(DATASOURCE_BLOCK)
    if not missing:
        return schema_text

    preamble = "\n".join(missing)
    trimmed = schema_text.lstrip()
    if not trimmed:
        return f"{preamble}\n"
    return f"{preamble}\n{trimmed}"


def _field_signature(fields: List[SchemaField]) -> Dict[str, Tuple[str, bool]]:
    return {f.name: (f.type, f.required) for f in fields}


def fields_match(old: Optional[Block], new: Block) -> bool:
    """Compare declared fields as unordered sets keyed by name: (type, required) must match."""
    if old is None:
        return False
    return _field_signature(old.fields()) == _field_signature(new.fields())


def merge_model(schema_text: str, model_text: str) -> Tuple[str, bool]:
    """
    Merge ``model_text`` into ``schema_text``.

    Returns the new text and whether the model changed. A model whose declared
    fields already match is left untouched so repeated merges are no-ops.
    """
    schema_text = ensure_preamble(schema_text)
    new_block = parse_block(model_text)
    doc = SchemaDocument.parse(schema_text)
    existing = doc.model(new_block.name)

    if existing is None:
        log.info("Model %s not found, appending", new_block.name)
        doc.append(new_block.text)
        return doc.render(), True

    if fields_match(existing, new_block):
        log.info("Model %s unchanged, skipping", new_block.name)
        return schema_text, False

    log.info("Model %s changed, replacing", new_block.name)
    doc.replace(new_block.name, new_block.text)
    return doc.render(), True


def add_model_to_schema(schema_path: Path, model_text: str) -> bool:
    """Read-modify-write the schema file. Returns True when the model changed."""
    original = schema_path.read_text(encoding="utf-8") if schema_path.exists() else ""
    merged, changed = merge_model(original, model_text)
    if merged != original:
        schema_path.parent.mkdir(parents=True, exist_ok=True)
        schema_path.write_text(merged, encoding="utf-8")
    return changed


def strip_models(schema_text: str, keep: Iterable[str]) -> Tuple[str, List[str]]:
    """Remove every model block not named in ``keep``."""
    doc = SchemaDocument.parse(schema_text)
    removed = doc.remove_models(keep)
    if not removed:
        return schema_text, []
    return collapse_blank_lines(doc.render()).rstrip() + "\n", removed


def has_model(schema_text: str, name: str) -> bool:
    return SchemaDocument.parse(schema_text).model(name) is not None
