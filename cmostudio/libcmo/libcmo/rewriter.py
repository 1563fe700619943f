"""libcmo.rewriter

Reference shortening and the matching asset renames.

The exporter bakes shader and texture names in as the full project-relative
path with separators turned into '_' (e.g. ``_Users_me_Game_FBX_wood.png``).
Two policies cut that down to the bare asset name:

  suffix-cut     keep what follows the last '_'
  prefix-strip   remove the known build prefix (case-insensitive, first hit)

Shaders always use suffix-cut; the strip prefix only describes texture paths.
Stored references lose their ``.dgsl`` / ``.png`` suffix, the files on disk
keep it.
"""

from __future__ import annotations

import logging
import os
from typing import List, Set, Tuple

from .model import (
    MISSING,
    PLANNED,
    RENAMED,
    REPLACED,
    SUFFIXES,
    TEXTURE,
    UNCHANGED,
    AssetRenameFailed,
    PassConfig,
    Rewrite,
    fold,
)

log = logging.getLogger(__name__)


def split_suffix(raw: str, kind: str) -> Tuple[str, str]:
    suffix = SUFFIXES[kind]
    if raw.endswith(suffix):
        return raw[: -len(suffix)], suffix
    return raw, ""


def suffix_cut(stem: str) -> str:
    pos = stem.rfind("_")
    if pos < 0:
        return stem
    return stem[pos + 1 :]


def prefix_strip(stem: str, folded_prefix: str) -> str:
    pos = fold(stem).find(folded_prefix)
    if pos < 0:
        return stem
    return stem[:pos] + stem[pos + len(folded_prefix) :]


def shorten(raw: str, kind: str, config: PassConfig) -> str:
    """Shortened stem for ``raw``; no filesystem access."""
    if not raw:
        return raw
    stem, _ = split_suffix(raw, kind)
    if kind == TEXTURE and config.prefix_strip:
        return prefix_strip(stem, config.strip_prefix_folded)
    return suffix_cut(stem)


class AssetSync:
    """Rewriter that keeps the asset files next to a model in step with it.

    One instance per model file. ``rewrites`` collects every non-empty
    reference seen, in file order.
    """

    def __init__(self, folder: str, config: PassConfig):
        self.folder = folder
        self.config = config
        self.rewrites: List[Rewrite] = []
        # Dry-run bookkeeping: files a real run would have moved away / created.
        self._moved: Set[str] = set()
        self._created: Set[str] = set()

    def rewrite(self, kind: str, raw: str) -> str:
        if not raw:
            return raw

        short = shorten(raw, kind, self.config)
        stem, suffix = split_suffix(raw, kind)
        if short == stem:
            self.rewrites.append(Rewrite(kind, raw, short, UNCHANGED))
            return short
        if not short:
            log.warning("%s %r: shortened to an empty name, asset becomes %r", kind, raw, suffix)

        src = os.path.join(self.folder, stem + suffix)
        dst = os.path.join(self.folder, short + suffix)
        action = self._sync(kind, raw, short, src, dst)
        self.rewrites.append(Rewrite(kind, raw, short, action, src=src, dst=dst))
        return short

    def _exists(self, path: str) -> bool:
        if path in self._created:
            return True
        return path not in self._moved and os.path.lexists(path)

    def _sync(self, kind: str, raw: str, short: str, src: str, dst: str) -> str:
        if self.config.dry_run:
            return self._plan(kind, raw, src, dst)

        if not os.path.isfile(src):
            # Not in this folder, or an earlier material already moved it.
            log.debug("%s %r: no asset at %s", kind, raw, src)
            return MISSING

        action = RENAMED
        if os.path.lexists(dst):
            log.warning("%s %r: replacing existing %s", kind, raw, dst)
            try:
                os.remove(dst)
            except OSError as e:
                raise AssetRenameFailed(kind, raw, short, src, dst, f"cannot delete destination: {e}") from e
            action = REPLACED

        try:
            os.rename(src, dst)
        except OSError as e:
            raise AssetRenameFailed(kind, raw, short, src, dst, str(e)) from e

        log.info("%s: %s -> %s", kind, os.path.basename(src), os.path.basename(dst))
        return action

    def _plan(self, kind: str, raw: str, src: str, dst: str) -> str:
        """Same decisions as a real run, against the folder as it would be by now."""
        if src in self._created:
            present = True
        else:
            present = src not in self._moved and os.path.isfile(src)
        if not present:
            log.debug("%s %r: no asset at %s", kind, raw, src)
            return MISSING

        action = PLANNED
        if self._exists(dst):
            log.warning("%s %r: would replace existing %s", kind, raw, dst)
            action = REPLACED

        self._moved.add(src)
        self._created.discard(src)
        self._created.add(dst)
        self._moved.discard(dst)
        return action
