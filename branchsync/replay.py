# -----------------------------------------------------------------------------
# Copyright (C) 2026 Iliyas Jorio.
# This file is part of branchsync, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Replay a branch's commits onto a new base, one commit at a time, entirely in
memory. Nothing here moves a ref; callers decide what to do with the
resulting commit ids.
"""

from __future__ import annotations

import dataclasses
import logging

from branchsync.conflict import ConflictInvariantError, ConflictSides
from branchsync.porcelain import *

_logger = logging.getLogger(__name__)


@dataclasses.dataclass
class ReplayStep:
    commit: Commit
    "The original commit being replayed."

    index: Index
    "Staging state for this step. Owned by the step; mutated in place while resolving."

    def hasConflicts(self) -> bool:
        return self.index.conflicts is not None

    def conflictSides(self) -> list[ConflictSides]:
        conflicts = self.index.conflicts
        if conflicts is None:
            return []
        # Snapshot the collection: resolving mutates it
        return [ConflictSides(ancestor, main=ours, branch=theirs)
                for ancestor, ours, theirs in conflicts]


def listCommitsToReplay(repo: Repo, ontoId: Oid, branchTipId: Oid) -> list[Commit]:
    """
    Commits reachable from the branch tip but not from the new base,
    oldest first (parents before children). Merge commits are skipped.
    """
    walker = repo.walk(branchTipId, SortMode.TOPOLOGICAL | SortMode.REVERSE)
    walker.hide(ontoId)

    commits = []
    for commit in walker:
        if len(commit.parent_ids) > 1:
            _logger.warning(f"Skipping merge commit {id7(commit.id)} during replay")
            continue
        commits.append(commit)
    return commits


def replayStep(repo: Repo, onto: Commit, commit: Commit) -> ReplayStep:
    """
    Apply the changes introduced by `commit` on top of `onto`'s tree.
    """
    if commit.parent_ids:
        ancestorTree = repo.peel_commit(commit.parent_ids[0]).tree
    else:
        ancestorTree = repo.peel_tree(repo.TreeBuilder().write())  # root commit: diff against empty tree

    index = repo.merge_trees(ancestorTree, onto.tree, commit.tree)
    return ReplayStep(commit, index)


def commitStep(repo: Repo, step: ReplayStep, parent: Commit) -> Oid | None:
    """
    Turn a fully-resolved step into a commit on top of `parent`.

    Returns None if the step introduces no change on top of `parent`
    (the commit was already applied upstream).
    """
    if step.hasConflicts():
        raise ConflictInvariantError(f"step {id7(step.commit.id)} still has conflicts at commit time")

    treeId = step.index.write_tree(repo)
    if treeId == parent.tree_id:
        _logger.debug(f"{id7(step.commit.id)} already applied, dropping it")
        return None

    original = step.commit
    committer = repo.committer_signature(fallback=original.committer)
    return repo.create_commit(None, original.author, committer, original.message, treeId, [parent.id])

