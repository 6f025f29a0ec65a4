# -----------------------------------------------------------------------------
# Copyright (C) 2026 Iliyas Jorio.
# This file is part of branchsync, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from __future__ import annotations

import dataclasses
import logging
from enum import StrEnum
from typing import NamedTuple

from branchsync.porcelain import *
from branchsync.resolution import ManualResolution, Resolution
from branchsync.textmerge import mergeText

_logger = logging.getLogger(__name__)


class ConflictInvariantError(RuntimeError):
    """
    The conflict report or the resolution supply is inconsistent.
    Indicates a bug, never a user error.
    """


class ConflictKind(StrEnum):
    MainDeletion = "main-deletion"
    BranchDeletion = "branch-deletion"
    Merge = "merge"
    OpaqueMerge = "opaque-merge"


class ConflictSides(NamedTuple):
    """
    One path's entries in a replay step. Each side is either absent (None)
    or present.

    `main` is the base side we're replaying onto ("ours" to libgit2);
    `branch` is the commit being replayed ("theirs" to libgit2).
    """

    ancestor: IndexEntry | None
    main: IndexEntry | None
    branch: IndexEntry | None

    @property
    def path(self) -> str:
        for entry in self.branch, self.main, self.ancestor:
            if entry is not None:
                return entry.path
        raise ConflictInvariantError("conflict has no entries on any side")


@dataclasses.dataclass(frozen=True)
class Conflict:
    path: str

    kind = None  # overridden by subclasses

    def allowedChoices(self) -> tuple:
        return Resolution.Incoming, Resolution.Base


@dataclasses.dataclass(frozen=True)
class MainDeletion(Conflict):
    """ Deleted on the base side, still present (changed) on the branch. """
    kind = ConflictKind.MainDeletion


@dataclasses.dataclass(frozen=True)
class BranchDeletion(Conflict):
    """ Deleted on the branch, still present (changed) on the base side. """
    kind = ConflictKind.BranchDeletion


@dataclasses.dataclass(frozen=True)
class MergeConflict(Conflict):
    mainContent: str = ""
    branchContent: str = ""
    mergeContent: str = ""

    kind = ConflictKind.Merge

    def allowedChoices(self):
        return Resolution.Incoming, Resolution.Base, Resolution.Later, ManualResolution


@dataclasses.dataclass(frozen=True)
class OpaqueMerge(Conflict):
    """ Both sides changed a binary file. Only whole-side choices apply. """
    kind = ConflictKind.OpaqueMerge


def _decode(repo: Repo, entry: IndexEntry | None) -> str:
    data = repo.read_blob_or_empty(entry.id if entry is not None else None)
    return data.decode("utf-8", errors="replace")


def classifyConflict(repo: Repo, sides: ConflictSides, ignoreWhitespace: bool = True) -> Conflict | None:
    """
    Turn one path's conflicting entries into a Conflict, or None if both
    sides agree on the content (then either entry can be kept as is).
    """

    mainPresent = sides.main is not None
    branchPresent = sides.branch is not None

    if mainPresent and branchPresent:
        main, branch = sides.main, sides.branch
        path = branch.path

        if main.id == branch.id:
            _logger.debug(f"{path}: identical on both sides, keeping branch entry")
            return None

        ancestorId = sides.ancestor.id if sides.ancestor is not None else None
        if any(repo.is_binary_blob(oid) for oid in (ancestorId, main.id, branch.id)):
            return OpaqueMerge(path)

        return MergeConflict(
            path,
            mainContent=_decode(repo, main),
            branchContent=_decode(repo, branch),
            mergeContent=mergeText(repo, ancestorId, main.id, branch.id, ignoreWhitespace))

    elif mainPresent:
        return BranchDeletion(sides.main.path)

    elif branchPresent:
        return MainDeletion(sides.branch.path)

    else:
        raise ConflictInvariantError(f"conflict without main or branch side (ancestor: {sides.ancestor})")
