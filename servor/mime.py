"""
Extension → content type table.

``types.json`` maps each content type to the extensions that carry it;
the table is inverted once at startup and only read afterwards.
"""

import json
from pathlib import Path
from typing import Dict, Optional

TYPES_FILE = Path(__file__).parent / "types.json"
DEFAULT_TYPE = "application/octet-stream"

MimeTable = Dict[str, str]


def load_mime_table(path: Optional[Path] = None) -> MimeTable:
    with open(path or TYPES_FILE, "r", encoding="utf-8") as fp:
        definitions = json.load(fp)

    table: MimeTable = {}
    for content_type, extensions in definitions.items():
        for ext in extensions:
            table[ext.lower().lstrip(".")] = content_type
    return table


def extension_of(resource: str) -> str:
    """Text after the last '.', '/' or '\\', lowercased ('' if it ends in one)."""
    tail = resource
    for sep in ("/", "\\", "."):
        tail = tail.rsplit(sep, 1)[-1]
    return tail.lower()


def content_type_for(table: MimeTable, resource: str) -> str:
    return table.get(extension_of(resource), DEFAULT_TYPE)
