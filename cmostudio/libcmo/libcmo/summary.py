from __future__ import annotations
import os
from dataclasses import replace
from typing import List, Optional

from .model import CmoMaterial, CmoMesh, CmoSummary, PassConfig
from .rewriter import AssetSync
from .walker import scan_model


class _Collector:
    def __init__(self):
        self.meshes: List[CmoMesh] = []

    def mesh(self, name: str) -> None:
        self.meshes.append(CmoMesh(name=name, materials=[]))

    def material(self, mat: CmoMaterial) -> None:
        self.meshes[-1].materials.append(mat)


def summarize_cmo(path: str, config: Optional[PassConfig] = None) -> CmoSummary:
    # Never touches the asset files, whatever the caller passed.
    config = replace(config or PassConfig(), dry_run=True)
    size = os.path.getsize(path)

    collector = _Collector()
    sync = AssetSync(os.path.dirname(os.path.abspath(path)), config)
    with open(path, "rb") as f:
        stats = scan_model(f, sync, config, listener=collector)

    return CmoSummary(
        path=path,
        file_size=size,
        meshes=collector.meshes,
        rewrites=sync.rewrites,
        stats=stats,
    )
