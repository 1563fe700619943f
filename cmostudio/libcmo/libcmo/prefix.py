"""libcmo.prefix

Helpers that sit in front of the transcoder: finding the model files and
working out which build prefix the exporter baked into texture names.

The exporter names a texture after its absolute source path with the drive
dropped, '_' doubled and every separator turned into '_':

  C:\\Users\\me\\Game\\FBX\\wood.png  ->  _Users_me_Game_FBX_wood.png

So the prefix to strip is the mangled build directory plus the FBX folder.
"""

from __future__ import annotations

import os
from pathlib import PureWindowsPath
from typing import List, Sequence

MODEL_EXT = ".cmo"


def _mangle(parts: Sequence[str]) -> str:
    return "_".join(p.replace("_", "__") for p in parts)


def _components(path: str) -> List[str]:
    p = PureWindowsPath(path)
    parts = list(p.parts)
    if parts and parts[0] == p.anchor:
        parts = parts[1:]
    return parts


def derive_strip_prefix(cwd: str, fbx_folder: str) -> str:
    """Build the texture prefix for models exported from ``fbx_folder``.

    Each ``..`` in ``fbx_folder`` climbs one directory up from ``cwd``.
    """
    base = _components(cwd)
    rest = []
    ups = 0
    for part in _components(fbx_folder):
        if part == "..":
            ups += 1
        elif part != ".":
            rest.append(part)

    if ups:
        base = base[: max(len(base) - ups, 0)]

    return "_" + _mangle(base + rest) + "_"


def find_model_files(folder: str) -> List[str]:
    """Model files directly inside ``folder``, sorted by name."""
    if not os.path.isdir(folder):
        raise FileNotFoundError(f"Model folder not found: {folder}")

    found = []
    with os.scandir(folder) as it:
        for entry in it:
            if entry.is_file() and entry.name.lower().endswith(MODEL_EXT):
                found.append(entry.path)
    return sorted(found)
