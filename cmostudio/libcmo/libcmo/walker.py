"""libcmo.walker

Streaming CMO walker.

The file is never loaded as a whole. Every count is read from the input,
written to the output unchanged, and then used to copy exactly the block it
describes. The only places where content is interpreted are the shader and
texture reference slots of each material, where the rewriter gets to replace
the string before it is written back.

Layout walked (per mesh, per material):

  uint32 name_len, wchar[name_len]           material name
  Material (132 bytes)
  uint32 len, wchar[len]                     pixel shader      <- rewrite
  8 x (uint32 len, wchar[len])               textures          <- rewrite
  uint8 skeleton
  uint32 n, SubMesh[n]
  uint32 n, n x (uint32 k, uint16[k])        index buffers
  uint32 n, n x (uint32 k, Vertex[k])        vertex buffers
  uint32 n, n x (uint32 k, SkinVertex[k])    skinning vertex buffers
  MeshExtents (40 bytes)
  [uint32 n, n x (uint32 len, wchar[len], Bone)]   only with keep_bones
  [rest of file]                                   only with keep_animation
"""

from __future__ import annotations

import logging
import struct
from typing import BinaryIO, Tuple

from .model import (
    BONE_SIZE,
    COUNT_SIZE,
    EXTENTS_SIZE,
    INDEX_SIZE,
    MATERIAL_SIZE,
    MAX_TEXTURE,
    SHADER,
    SKIN_VERTEX_SIZE,
    SUBMESH_SIZE,
    TEXTURE,
    VERTEX_SIZE,
    WCHAR_SIZE,
    CmoMaterial,
    PassConfig,
    TruncatedInput,
    WalkStats,
)

log = logging.getLogger(__name__)

_CHUNK = 1024 * 1024


class NullSink:
    """Write target for read-only walks."""

    def write(self, b: bytes) -> int:
        return len(b)


def decode_wstr(payload: bytes) -> Tuple[str, bool]:
    """Decode a UTF-16LE payload up to its first NUL.

    Returns the text and whether a terminator was present.
    """
    text = payload.decode("utf-16-le", errors="surrogatepass")
    nul = text.find("\x00")
    if nul < 0:
        return text, False
    return text[:nul], True


def encode_wstr(text: str, terminated: bool) -> bytes:
    if terminated:
        text += "\x00"
    return text.encode("utf-16-le", errors="surrogatepass")


class _Pipe:
    """Paired input/output stream with byte accounting."""

    def __init__(self, src: BinaryIO, dst, stats: WalkStats):
        self.src = src
        self.dst = dst
        self.stats = stats

    def read(self, n: int) -> bytes:
        if n <= _CHUNK:
            b = self.src.read(n)
        else:
            parts = []
            left = n
            while left:
                part = self.src.read(min(left, _CHUNK))
                if not part:
                    break
                parts.append(part)
                left -= len(part)
            b = b"".join(parts)
        if len(b) != n:
            raise TruncatedInput(self.stats.bytes_in, n, len(b))
        self.stats.bytes_in += n
        return b

    def write(self, b: bytes) -> None:
        self.dst.write(b)
        self.stats.bytes_out += len(b)

    def copy(self, n: int) -> None:
        # Bounded chunks: a garbage count must fail on EOF, not on allocation.
        while n > 0:
            step = min(n, _CHUNK)
            self.write(self.read(step))
            n -= step

    def u32(self) -> int:
        raw = self.read(COUNT_SIZE)
        self.write(raw)
        return struct.unpack("<I", raw)[0]

    def u8(self) -> int:
        raw = self.read(1)
        self.write(raw)
        return raw[0]

    def wstr(self) -> str:
        n = self.u32()
        payload = self.read(n * WCHAR_SIZE)
        self.write(payload)
        return decode_wstr(payload)[0]

    def copy_rest(self) -> int:
        total = 0
        while True:
            b = self.src.read(_CHUNK)
            if not b:
                return total
            self.stats.bytes_in += len(b)
            self.write(b)
            total += len(b)

    def remaining(self) -> int:
        cur = self.src.tell()
        end = self.src.seek(0, 2)
        self.src.seek(cur)
        return end - cur


class Walker:
    """Copies one model stream to another, rewriting reference strings.

    ``rewriter`` needs a ``rewrite(kind, raw) -> str`` method. ``listener``, if
    given, gets ``mesh(name)`` and ``material(CmoMaterial)`` calls in file order.
    """

    def __init__(self, config: PassConfig, rewriter, listener=None):
        self.config = config
        self.rewriter = rewriter
        self.listener = listener

    def run(self, src: BinaryIO, dst) -> WalkStats:
        stats = WalkStats()
        p = _Pipe(src, dst, stats)

        n_mesh = p.u32()
        for _ in range(n_mesh):
            name = p.wstr()
            stats.meshes += 1
            if self.listener is not None:
                self.listener.mesh(name)
            n_mats = p.u32()
            for _ in range(n_mats):
                if self._material(p):
                    return stats

        stats.trailing = p.remaining()
        if stats.trailing:
            log.warning("%d trailing bytes left uncopied", stats.trailing)
        return stats

    def _reference(self, p: _Pipe, kind: str) -> str:
        n = struct.unpack("<I", p.read(COUNT_SIZE))[0]
        payload = p.read(n * WCHAR_SIZE)
        raw, terminated = decode_wstr(payload)

        short = self.rewriter.rewrite(kind, raw)

        if short == raw:
            p.write(struct.pack("<I", n))
            p.write(payload)
        else:
            out = encode_wstr(short, terminated)
            p.write(struct.pack("<I", len(out) // WCHAR_SIZE))
            p.write(out)
        return raw

    def _material(self, p: _Pipe) -> bool:
        """Walk one material. Returns True once the input has been drained."""
        stats = p.stats
        name = p.wstr()
        p.copy(MATERIAL_SIZE)

        shader = self._reference(p, SHADER)
        textures = [self._reference(p, TEXTURE) for _ in range(MAX_TEXTURE)]

        skeleton = p.u8() != 0
        stats.materials += 1
        if self.listener is not None:
            self.listener.material(CmoMaterial(name=name, shader=shader, textures=textures, skeleton=skeleton))

        p.copy(p.u32() * SUBMESH_SIZE)

        for _ in range(p.u32()):
            p.copy(p.u32() * INDEX_SIZE)

        for _ in range(p.u32()):
            p.copy(p.u32() * VERTEX_SIZE)

        for _ in range(p.u32()):
            p.copy(p.u32() * SKIN_VERTEX_SIZE)

        p.copy(EXTENTS_SIZE)

        if not skeleton:
            return False

        if not self.config.keep_bones:
            # The bone block is neither consumed nor copied; the next material
            # is read from where the bones start.
            stats.skipped_skeletons += 1
            log.warning("material %r has a skeleton but bones are not kept; bone data left in place", name)
            return False

        n_bones = p.u32()
        for _ in range(n_bones):
            p.wstr()
            p.copy(BONE_SIZE)
        stats.bones += n_bones

        if self.config.keep_animation:
            copied = p.copy_rest()
            log.debug("copied %d bytes of animation data", copied)
            return True

        return False


def transcode_model(src: BinaryIO, dst, rewriter, config: PassConfig, listener=None) -> WalkStats:
    return Walker(config, rewriter, listener).run(src, dst)


def scan_model(src: BinaryIO, rewriter, config: PassConfig, listener=None) -> WalkStats:
    """Walk ``src`` without producing output."""
    return Walker(config, rewriter, listener).run(src, NullSink())
