from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Union

PathLike = Union[str, Path]

# "<id>: <name>", name optionally quoted; header lines such as "names:" never match
_ENTRY = re.compile(r"""^\s*(\d+)\s*:\s*['"]?([^'"#]+?)['"]?\s*$""")


def read_label_map(path: PathLike) -> Dict[int, str]:
    """
    Read an SSD label map (1-indexed, 1 = person for COCO) of `id: name` lines.
    """

    labels: Dict[int, str] = {}
    for line in Path(path).read_text(encoding="utf-8").splitlines():
        m = _ENTRY.match(line)
        if m:
            labels[int(m.group(1))] = m.group(2)
    return labels


def resolve_label_id(labels: Dict[int, str], class_name: str) -> int:
    """
    Return the id for `class_name` (case-insensitive); lowest id wins on duplicates.
    """

    wanted = class_name.strip().lower()
    matches = sorted(k for k, v in labels.items() if v.lower() == wanted)
    if not matches:
        raise ValueError(f"Class {class_name!r} not found in label map")
    return matches[0]
