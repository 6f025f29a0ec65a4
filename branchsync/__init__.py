# -----------------------------------------------------------------------------
# Copyright (C) 2026 Iliyas Jorio.
# This file is part of branchsync, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Keep feature branches in sync with a base branch.

Each branch's own commits are replayed on top of the base's tip. Conflicts
are classified and handed back to the caller as values; the caller supplies
resolution choices and tries again. Uncommitted work in the checked-out
branch is parked in temporary commits for the duration of an operation.
"""

from branchsync.bracket import bracketed, popTempCommits, saveTemp
from branchsync.conflict import (
    BranchDeletion,
    Conflict,
    ConflictKind,
    MainDeletion,
    MergeConflict,
    OpaqueMerge,
    classifyConflict,
)
from branchsync.porcelain import BranchNotFoundError, BranchSyncError, Repo, RepoContext
from branchsync.prune import findPrunableBranches, pruneBranches
from branchsync.resolution import ManualResolution, Resolution, parseResolution, parseResolutionMap
from branchsync.syncengine import (
    SyncComplete,
    SyncConflicted,
    SyncDetails,
    syncAllBranches,
    syncBranches,
    trySyncBranch,
)
from branchsync.textmerge import mergeBlobs, mergeText
