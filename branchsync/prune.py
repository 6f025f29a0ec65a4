# -----------------------------------------------------------------------------
# Copyright (C) 2026 Iliyas Jorio.
# This file is part of branchsync, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Delete branches that have nothing left that the base branch lacks.
"""

from __future__ import annotations

import logging

from branchsync.bracket import bracketed, skipTempCommits
from branchsync.porcelain import *
from branchsync.repoprefs import resolveBaseBranch

_logger = logging.getLogger(__name__)


def findPrunableBranches(repo: Repo, baseName: str = "") -> list[str]:
    baseBranch = resolveBaseBranch(repo, baseName)
    baseTipId = skipTempCommits(repo, repo.find_local_branch(baseBranch).target)

    prunable = []

    for name in repo.listall_local_branch_names():
        if name == baseBranch:
            continue

        tip = repo.peel_commit(repo.find_local_branch(name).target)
        forkId = repo.merge_base(baseTipId, tip.id)
        if forkId is None:
            continue

        if tip.tree_id == repo.peel_commit(forkId).tree_id:
            prunable.append(name)

    return prunable


def pruneBranches(repo: Repo, baseName: str = "") -> list[str]:
    """
    Delete every prunable branch except the checked-out one.
    Returns the names of the deleted branches.
    """
    # Reject a bad base before anything is committed
    repo.find_local_branch(resolveBaseBranch(repo, baseName))

    deleted = []

    with bracketed(repo, "Save before prune"):
        for name in findPrunableBranches(repo, baseName):
            if repo.is_checked_out(name):
                _logger.info(f"Not pruning '{name}': it is checked out")
                continue
            repo.delete_local_branch(name)
            _logger.info(f"Pruned '{name}'")
            deleted.append(name)

    return deleted
