import json
from pathlib import Path
from typing import Any

from .fs import atomic_write_text


def atomic_write_json(path: Path, obj: Any, *, indent: int = 2) -> None:
    atomic_write_text(
        path, json.dumps(obj, ensure_ascii=False, indent=indent, default=str) + "\n"
    )
