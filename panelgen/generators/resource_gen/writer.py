"""File writer for resource generation."""
from pathlib import Path
from typing import List

from panelgen.generators.resource_gen.types import GeneratedFile


def write_files(files: List[GeneratedFile], out_dir: Path) -> List[Path]:
    """
    Write generated files below ``out_dir``, overwriting earlier versions.

    Args:
        files: List of GeneratedFile objects to write
        out_dir: Generated resources directory

    Returns:
        Absolute paths written, in input order
    """
    out_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for file in files:
        file_path = out_dir / file.path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(file.content, encoding="utf-8")
        written.append(file_path)
    return written
