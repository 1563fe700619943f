from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


# -----------------------------
# CMO layout constants
#
# Sizes of the fixed blocks, taken from the DirectXTK structures the
# exporter writes (Material, SubMesh, VertexPositionNormalTangentColorTexture,
# SkinningVertex, MeshExtents, Bone). Everything is little-endian.
# -----------------------------

COUNT_SIZE = 4
WCHAR_SIZE = 2
MATERIAL_SIZE = 132      # 4 x float4 + float + float4x4
SUBMESH_SIZE = 20        # 5 x uint32
INDEX_SIZE = 2           # uint16
VERTEX_SIZE = 52
SKIN_VERTEX_SIZE = 32    # 4 x uint32 bone index + 4 x float weight
EXTENTS_SIZE = 40        # 10 x float
BONE_SIZE = 196          # int32 parent + 3 x float4x4
MAX_TEXTURE = 8

SHADER = "shader"
TEXTURE = "texture"

SUFFIXES = {
    SHADER: ".dgsl",
    TEXTURE: ".png",
}


# -----------------------------
# Errors
# -----------------------------

class CmoError(RuntimeError):
    pass


class TruncatedInput(CmoError):
    def __init__(self, offset: int, need: int, got: int):
        super().__init__(f"Unexpected EOF at {offset}, need {need}, got {got}")
        self.offset = offset
        self.need = need
        self.got = got


class AssetRenameFailed(CmoError):
    def __init__(self, kind: str, raw: str, shortened: str, src: str, dst: str, reason: str):
        super().__init__(
            f"Cannot rename {kind} asset {src!r} -> {dst!r} "
            f"(reference {raw!r} -> {shortened!r}): {reason}"
        )
        self.kind = kind
        self.raw = raw
        self.shortened = shortened
        self.src = src
        self.dst = dst


class ModelSwapFailed(CmoError):
    pass


# -----------------------------
# Pass configuration
# -----------------------------

def fold(s: str) -> str:
    """Lowercase ``s`` one character at a time so offsets stay valid."""
    out = []
    for c in s:
        low = c.lower()
        out.append(low if len(low) == 1 else c)
    return "".join(out)


@dataclass(frozen=True)
class PassConfig:
    """Options for one transcoding pass, fixed before the first file is opened.

    An empty ``strip_prefix`` selects the suffix-cut policy for textures;
    anything else selects the prefix-strip policy.
    """

    keep_bones: bool = False
    keep_animation: bool = False
    strip_prefix: str = ""
    dry_run: bool = False

    # Lowercased once here; the rewriter compares against this copy.
    strip_prefix_folded: str = field(init=False, repr=False, default="")

    def __post_init__(self) -> None:
        object.__setattr__(self, "strip_prefix_folded", fold(self.strip_prefix))

    @property
    def prefix_strip(self) -> bool:
        return bool(self.strip_prefix)


# -----------------------------
# Results
# -----------------------------

# Rewrite actions
UNCHANGED = "unchanged"
RENAMED = "renamed"
REPLACED = "replaced"   # destination existed and was deleted first
MISSING = "missing"     # no asset at the source path, nothing renamed
PLANNED = "planned"     # dry run


@dataclass
class Rewrite:
    kind: str
    raw: str
    shortened: str
    action: str
    src: Optional[str] = None
    dst: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.raw != self.shortened


@dataclass
class WalkStats:
    meshes: int = 0
    materials: int = 0
    bones: int = 0
    bytes_in: int = 0
    bytes_out: int = 0
    # Input bytes the walk never consumed (legacy skeleton/animation gating).
    trailing: int = 0
    skipped_skeletons: int = 0


@dataclass
class FileOutcome:
    path: str
    ok: bool
    error: Optional[CmoError] = None
    rewrites: List[Rewrite] = field(default_factory=list)
    stats: Optional[WalkStats] = None

    @property
    def renamed(self) -> List[Rewrite]:
        return [r for r in self.rewrites if r.action in (RENAMED, REPLACED)]


# -----------------------------
# Summary DTOs (read-only walk)
# -----------------------------

@dataclass
class CmoMaterial:
    name: str
    shader: str
    textures: List[str]
    skeleton: bool


@dataclass
class CmoMesh:
    name: str
    materials: List[CmoMaterial]


@dataclass
class CmoSummary:
    path: str
    file_size: int
    meshes: List[CmoMesh]
    rewrites: List[Rewrite]
    stats: WalkStats
