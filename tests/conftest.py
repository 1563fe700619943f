import struct

import pytest

from libcmo.model import (
    BONE_SIZE,
    EXTENTS_SIZE,
    MATERIAL_SIZE,
    MAX_TEXTURE,
    SKIN_VERTEX_SIZE,
    SUBMESH_SIZE,
    VERTEX_SIZE,
)


def u32(n):
    return struct.pack("<I", n)


def fill(n, seed):
    return bytes((seed + i) & 0xFF for i in range(n))


def wstr(text, terminated=True):
    if terminated:
        text += "\x00"
    payload = text.encode("utf-16-le")
    return u32(len(payload) // 2) + payload


def material(name="mat", shader="", textures=(), skeleton=False, bones=(), animation=b"",
             submeshes=1, indices=(6,), vertices=(4,), skin=(), terminated=True):
    textures = list(textures) + [""] * (MAX_TEXTURE - len(textures))
    out = wstr(name)
    out += fill(MATERIAL_SIZE, 1)
    out += wstr(shader, terminated) if shader else u32(0)
    for tex in textures:
        out += wstr(tex, terminated) if tex else u32(0)
    out += bytes([1 if skeleton else 0])
    out += u32(submeshes) + fill(SUBMESH_SIZE * submeshes, 2)
    out += u32(len(indices))
    for n in indices:
        out += u32(n) + fill(2 * n, 3)
    out += u32(len(vertices))
    for n in vertices:
        out += u32(n) + fill(VERTEX_SIZE * n, 4)
    out += u32(len(skin))
    for n in skin:
        out += u32(n) + fill(SKIN_VERTEX_SIZE * n, 5)
    out += fill(EXTENTS_SIZE, 6)
    if skeleton:
        out += u32(len(bones))
        for b in bones:
            out += wstr(b) + fill(BONE_SIZE, 7)
        out += animation
    return out


def model(*meshes):
    """meshes: (name, [material bytes, ...]) pairs."""
    out = u32(len(meshes))
    for name, mats in meshes:
        out += wstr(name) + u32(len(mats))
        for m in mats:
            out += m
    return out


class Recorder:
    """Rewriter that returns every string unchanged and remembers the calls."""

    def __init__(self):
        self.calls = []

    def rewrite(self, kind, raw):
        self.calls.append((kind, raw))
        return raw


class Listener:
    def __init__(self):
        self.meshes = []
        self.materials = []

    def mesh(self, name):
        self.meshes.append(name)

    def material(self, mat):
        self.materials.append(mat)


@pytest.fixture
def write_model(tmp_path):
    def _write(data, name="model.cmo"):
        p = tmp_path / name
        p.write_bytes(data)
        return p
    return _write
