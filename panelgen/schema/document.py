"""
Structured view of a Prisma schema document.

The document is parsed once into an ordered list of segments: named blocks
(``model X { ... }``, ``generator client { ... }``, ``datasource db { ... }``,
``enum E { ... }``) and the free text between them. Callers mutate the
segment list and render it back; only the parser looks at raw offsets.

The brace scan assumes well-formed input. The document is written by the
merge engine and the initial seed, never hand-edited while the server runs.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

BLOCK_START_RE = re.compile(r"^[ \t]*(model|generator|datasource|enum|type|view)\s+(\w+)\s*\{", re.MULTILINE)
FIELD_RE = re.compile(r"^(\w+)\s+(\w+)(\[\])?(\?)?")
MAP_RE = re.compile(r'@map\(\s*"([^"]+)"\s*\)')
MODEL_MAP_RE = re.compile(r'@@map\(\s*"([^"]+)"\s*\)')
DEFAULT_RE = re.compile(r"@default\(([^()]*(?:\([^()]*\))?[^()]*)\)")

SYSTEM_FIELDS = {"id", "createdAt", "updatedAt", "isPublished", "additionalBlocks"}


@dataclass(frozen=True)
class SchemaField:
    name: str
    type: str
    required: bool
    is_list: bool = False
    attributes: str = ""

    @property
    def mapped_name(self) -> str:
        match = MAP_RE.search(self.attributes)
        return match.group(1) if match else self.name

    @property
    def default(self) -> Optional[str]:
        match = DEFAULT_RE.search(self.attributes)
        return match.group(1).strip() if match else None


@dataclass
class Block:
    kind: str
    name: str
    text: str
    start: int = 0
    end: int = 0

    @property
    def body(self) -> str:
        return self.text[self.text.index("{") + 1:self.text.rindex("}")]

    def all_fields(self) -> List[SchemaField]:
        """Every field line of the block, system fields included."""
        fields = []
        for raw_line in self.body.split("\n"):
            line = raw_line.strip()
            if not line or line.startswith("//") or line.startswith("@@"):
                continue
            match = FIELD_RE.match(line)
            if not match:
                continue
            name, type_, list_marker, optional = match.groups()
            attributes = line[match.end():].strip()
            fields.append(SchemaField(
                name=name,
                type=type_,
                required=optional is None,
                is_list=list_marker is not None,
                attributes=attributes,
            ))
        return fields

    def fields(self) -> List[SchemaField]:
        """Resource-declared fields only: system fields and directives are skipped."""
        return [f for f in self.all_fields() if f.name not in SYSTEM_FIELDS]

    @property
    def collection_name(self) -> str:
        match = MODEL_MAP_RE.search(self.body)
        return match.group(1) if match else self.name

    def field_map(self) -> Dict[str, str]:
        """Logical field name -> physical document key."""
        mapping = {}
        for f in self.all_fields():
            mapping[f.name] = "_id" if "@id" in f.attributes else f.mapped_name
        return mapping


Segment = Union[str, Block]


def find_block_end(text: str, open_brace: int) -> int:
    """Return the index just past the brace matching ``text[open_brace]``."""
    depth = 0
    for i in range(open_brace, len(text)):
        char = text[i]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return len(text)


def scan_blocks(text: str) -> List[Block]:
    blocks = []
    pos = 0
    while True:
        match = BLOCK_START_RE.search(text, pos)
        if not match:
            break
        start = match.start() + (len(match.group(0)) - len(match.group(0).lstrip()))
        end = find_block_end(text, match.end() - 1)
        blocks.append(Block(kind=match.group(1), name=match.group(2), text=text[start:end], start=start, end=end))
        pos = end
    return blocks


@dataclass
class SchemaDocument:
    segments: List[Segment] = field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> "SchemaDocument":
        segments: List[Segment] = []
        pos = 0
        for block in scan_blocks(text):
            if block.start > pos:
                segments.append(text[pos:block.start])
            segments.append(block)
            pos = block.end
        if pos < len(text):
            segments.append(text[pos:])
        return cls(segments=segments)

    def render(self) -> str:
        return "".join(s if isinstance(s, str) else s.text for s in self.segments)

    def blocks(self) -> List[Block]:
        return [s for s in self.segments if isinstance(s, Block)]

    def models(self) -> List[Block]:
        return [b for b in self.blocks() if b.kind == "model"]

    def model(self, name: str) -> Optional[Block]:
        for block in self.models():
            if block.name == name:
                return block
        return None

    def has_block(self, kind: str, name: str) -> bool:
        return any(b.kind == kind and b.name == name for b in self.blocks())

    def replace(self, name: str, block_text: str) -> None:
        for i, segment in enumerate(self.segments):
            if isinstance(segment, Block) and segment.kind == "model" and segment.name == name:
                self.segments[i] = parse_block(block_text)
                return
        raise KeyError(name)

    def append(self, block_text: str) -> None:
        """Append a block after exactly one blank line, keeping a trailing newline."""
        rendered = self.render().rstrip()
        new_block = parse_block(block_text)
        self.segments = SchemaDocument.parse(rendered).segments if rendered else []
        if rendered:
            self.segments.append("\n\n")
        self.segments.append(new_block)
        self.segments.append("\n")

    def remove_models(self, keep: Iterable[str]) -> List[str]:
        """Drop every model block whose name is not in ``keep``; returns removed names."""
        keep = set(keep)
        removed = []
        kept_segments: List[Segment] = []
        skip_newlines = False
        for segment in self.segments:
            if isinstance(segment, Block) and segment.kind == "model" and segment.name not in keep:
                removed.append(segment.name)
                skip_newlines = True
                continue
            if skip_newlines and isinstance(segment, str):
                segment = segment.lstrip("\r\n")
            skip_newlines = False
            kept_segments.append(segment)
        self.segments = kept_segments
        return removed


def parse_block(block_text: str) -> Block:
    blocks = scan_blocks(block_text)
    if not blocks:
        raise ValueError("Could not determine block name from definition")
    block = blocks[0]
    return Block(kind=block.kind, name=block.name, text=block.text.strip())
