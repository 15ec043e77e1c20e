from __future__ import annotations

from pathlib import Path

from rmbg.config import OUTPUT_SUFFIX


def output_file_name(input_path: str | Path, output_format: str) -> str:
    return f"{Path(input_path).stem}{OUTPUT_SUFFIX}.{output_format}"


def default_output_path(input_path: str | Path, output_format: str) -> Path:
    """`photos/cat.jpg` -> `photos/cat-rm.png`, next to the input."""
    return Path(input_path).parent / output_file_name(input_path, output_format)


def output_directory(input_dir: str | Path) -> Path:
    """`photos/` -> `photos-rm`, a sibling of the input directory."""
    raw = str(input_dir)
    trimmed = raw.rstrip("/\\") or raw
    return Path(trimmed + OUTPUT_SUFFIX)
