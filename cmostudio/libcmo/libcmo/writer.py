"""libcmo.writer

Per-file driver: rewrite a model next to itself, then swap it in.

  model.cmo  --walk-->  model.cmo.new  --(clean close)-->  model.cmo

The original is only replaced after the new copy has been written in full and
closed. On any failure the ``.new`` file is removed and the original stays as
it was. Asset renames done before the failure are not rolled back.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable, List

from .model import CmoError, FileOutcome, ModelSwapFailed, PassConfig
from .rewriter import AssetSync
from .walker import scan_model, transcode_model

log = logging.getLogger(__name__)

TEMP_SUFFIX = ".new"


def _discard(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        log.warning("could not remove partial output %s: %s", path, e)


def _preview(path: str, sync: AssetSync, config: PassConfig) -> FileOutcome:
    try:
        with open(path, "rb") as src:
            stats = scan_model(src, sync, config)
    except (CmoError, OSError) as e:
        err = e if isinstance(e, CmoError) else CmoError(f"{path}: {e}")
        log.error("%s: %s", path, err)
        return FileOutcome(path=path, ok=False, error=err, rewrites=sync.rewrites)
    return FileOutcome(path=path, ok=True, rewrites=sync.rewrites, stats=stats)


def transcode_file(path: str, config: PassConfig) -> FileOutcome:
    """Rewrite one model file in place.

    Never raises for a file-scoped failure; the error is in the outcome.
    """
    path = os.path.abspath(path)
    tmp = path + TEMP_SUFFIX
    sync = AssetSync(os.path.dirname(path), config)

    if config.dry_run:
        return _preview(path, sync, config)

    try:
        with open(path, "rb") as src, open(tmp, "wb") as dst:
            stats = transcode_model(src, dst, sync, config)
    except (CmoError, OSError) as e:
        _discard(tmp)
        err = e if isinstance(e, CmoError) else CmoError(f"{path}: {e}")
        log.error("%s: %s", path, err)
        return FileOutcome(path=path, ok=False, error=err, rewrites=sync.rewrites)

    try:
        os.replace(tmp, path)
    except OSError as e:
        _discard(tmp)
        err = ModelSwapFailed(f"Cannot replace {path} with {tmp}: {e}")
        log.error("%s", err)
        return FileOutcome(path=path, ok=False, error=err, rewrites=sync.rewrites, stats=stats)

    outcome = FileOutcome(path=path, ok=True, rewrites=sync.rewrites, stats=stats)
    log.info("%s: %d meshes, %d materials, %d assets renamed",
             os.path.basename(path), stats.meshes, stats.materials, len(outcome.renamed))
    return outcome


def transcode_files(paths: Iterable[str], config: PassConfig) -> List[FileOutcome]:
    """Process files one at a time, continuing past failures."""
    return [transcode_file(p, config) for p in paths]
