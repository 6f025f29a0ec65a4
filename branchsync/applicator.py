# -----------------------------------------------------------------------------
# Copyright (C) 2026 Iliyas Jorio.
# This file is part of branchsync, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Apply a resolution choice to the staging index of a replay step.

The index is owned by the replay step and mutated in place; nothing else
holds a reference to it while resolutions are being applied.
"""

from __future__ import annotations

import logging
from contextlib import suppress

from branchsync.conflict import (
    Conflict, ConflictInvariantError, ConflictSides, MergeConflict, OpaqueMerge)
from branchsync.porcelain import *
from branchsync.resolution import InvalidResolutionError, ManualResolution, Resolution, ResolutionChoice
from branchsync.textmerge import mergeBlobs

_logger = logging.getLogger(__name__)


def _clearConflict(index: Index, path: str):
    conflicts = index.conflicts
    if conflicts is None:
        return
    with suppress(KeyError):  # path has no conflict stages
        del conflicts[path]


def selectEntry(index: Index, path: str, entry: IndexEntry):
    """
    Resolve `path` to `entry`'s content and mode at stage 0.
    A fresh IndexEntry is built so that no conflict stage flags leak through.
    """
    _clearConflict(index, path)
    index.add(IndexEntry(path, entry.id, entry.mode))


def deleteEntry(index: Index, path: str):
    _clearConflict(index, path)
    if path in index:
        index.remove(path)


def storeContent(repo: Repo, index: Index, path: str, data: bytes, mode: FileMode | int):
    blobId = repo.create_blob(data)
    _clearConflict(index, path)
    index.add(IndexEntry(path, blobId, mode))


def _survivingEntry(sides: ConflictSides) -> IndexEntry:
    entry = sides.branch if sides.branch is not None else sides.main
    if entry is None:
        raise ConflictInvariantError(f"no surviving entry for {sides.path}")
    return entry


def applyResolution(
        repo: Repo,
        index: Index,
        sides: ConflictSides,
        conflict: Conflict,
        choice: ResolutionChoice,
        ignoreWhitespace: bool = True,
):
    path = conflict.path

    if isinstance(conflict, OpaqueMerge) and choice not in (Resolution.Incoming, Resolution.Base):
        raise InvalidResolutionError(f"{path} is binary: only '{Resolution.Incoming}' or '{Resolution.Base}' apply")

    _logger.debug(f"Resolve {conflict.kind} {path}: {choice}")

    if choice == Resolution.Incoming:
        if sides.branch is not None:
            selectEntry(index, path, sides.branch)
        else:
            deleteEntry(index, path)

    elif choice == Resolution.Base:
        if sides.main is not None:
            selectEntry(index, path, sides.main)
        else:
            deleteEntry(index, path)

    elif choice == Resolution.Later:
        if isinstance(conflict, MergeConflict):
            # Re-merge rather than reuse conflict.mergeContent, which is a lossy decode
            ancestorId = sides.ancestor.id if sides.ancestor is not None else None
            data = mergeBlobs(repo, ancestorId, sides.main.id, sides.branch.id, ignoreWhitespace)
            storeContent(repo, index, path, data, sides.branch.mode)
        else:
            # Deletion conflict: keep the file around and let the user decide later
            selectEntry(index, path, _survivingEntry(sides))

    elif isinstance(choice, ManualResolution):
        mode = _survivingEntry(sides).mode
        storeContent(repo, index, path, choice.text.encode("utf-8"), mode)

    else:
        raise InvalidResolutionError(f"unsupported resolution choice for {path}: {choice!r}")
