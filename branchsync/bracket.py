# -----------------------------------------------------------------------------
# Copyright (C) 2026 Iliyas Jorio.
# This file is part of branchsync, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Temporary-commit bracketing.

Operations that need a clean tree (sync, prune) run between saveTemp and
popTempCommits. saveTemp commits uncommitted work on the current branch under
a reserved message prefix; popTempCommits peels every such commit off the tip
again and puts the work back in the working tree and index.

Up to two temporary commits are made per save:
1. a snapshot of the index, if anything is staged;
2. a snapshot of the working tree (including untracked, non-ignored files),
   if it differs from the index.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager

from branchsync.appconsts import *
from branchsync.porcelain import *
from branchsync.resolution import InvalidResolutionError

_logger = logging.getLogger(__name__)


class BracketError(BranchSyncError):
    pass


UNWOUND_ERRORS = (BranchSyncError, InvalidResolutionError)
"""
Errors caused by bad input from the caller. If the body of a bracket raises
one of these, the temporary commits are popped before it propagates.
"""


def isTempCommit(commit: Commit) -> bool:
    return len(commit.parent_ids) == 1 and commit.message.startswith(TEMP_COMMIT_PREFIX)


def isIndexSnapshot(commit: Commit) -> bool:
    return isTempCommit(commit) and commit.message.startswith(TEMP_INDEX_PREFIX)


def skipTempCommits(repo: Repo, oid: Oid) -> Oid:
    """ Walk down from `oid` to the first commit that isn't temporary. """
    commit = repo.peel_commit(oid)
    while isTempCommit(commit):
        commit = repo.peel_commit(commit.parent_ids[0])
    return commit.id


def _checkBracketable(repo: Repo):
    try:
        branchName = repo.head_branch_name
    except BranchSyncError as exc:
        raise BracketError(str(exc)) from exc

    if repo.any_conflicts:
        raise BracketError(f"cannot save work in progress on '{branchName}': the index has unresolved conflicts")

    return branchName


def saveTemp(repo: Repo, message: str = "Save") -> int:
    """
    Commit uncommitted work on the checked-out branch as temporary commits.
    Returns how many were created (0 if the tree was clean).
    """
    branchName = _checkBracketable(repo)
    head = repo.head_commit
    signature = repo.committer_signature(fallback=head.committer)

    index = repo.index
    index.read()
    stagedTree = index.write_tree()

    # Snapshot the working tree: tracked changes, deletions, untracked files
    deletedPaths = [path for path, flags in repo.status().items()
                    if flags & FileStatus.WT_DELETED]
    index.add_all()
    for path in deletedPaths:
        index.remove(path)
    worktreeTree = index.write_tree()

    numCommits = 0

    if stagedTree != head.tree_id:
        repo.create_commit_on_head(f"{TEMP_INDEX_PREFIX} {message}", signature, signature, stagedTree)
        numCommits += 1

    if worktreeTree != stagedTree:
        repo.create_commit_on_head(f"{TEMP_COMMIT_PREFIX} {message}", signature, signature, worktreeTree)
        numCommits += 1

    if numCommits:
        index.write()  # index now matches the new tip
        _logger.info(f"Saved work in progress on '{branchName}' as {numCommits} temporary commit(s)")
    else:
        index.read(force=True)  # drop the in-memory snapshot

    return numCommits


def popTempCommits(repo: Repo) -> bool:
    """
    Remove all temporary commits from the tip of the checked-out branch,
    keeping their changes in the working tree and restoring the staged state.

    Safe to call repeatedly: returns False and does nothing if the tip isn't
    a temporary commit.
    """
    _checkBracketable(repo)

    commit = repo.head_commit
    indexSnapshot = None
    numPopped = 0

    while isTempCommit(commit):
        if isIndexSnapshot(commit):
            indexSnapshot = commit  # keep the lowest one
        commit = repo.peel_commit(commit.parent_ids[0])
        numPopped += 1

    if not numPopped:
        return False

    repo.reset(commit.id, ResetMode.MIXED)

    if indexSnapshot is not None:
        index = repo.index
        index.read_tree(indexSnapshot.tree)
        index.write()

    _logger.info(f"Restored work in progress from {numPopped} temporary commit(s) onto {id7(commit.id)}")
    return True


@contextmanager
def bracketed(repo: Repo, message: str = "Save"):
    """
    Run the body with uncommitted work saved as temporary commits, then
    restore it. Nested brackets converge to the original uncommitted state.

    If the body raises one of UNWOUND_ERRORS, the work is restored before the
    error propagates. Any other error leaves the temporary commits in place
    (the repository may be in an unexpected state); popTempCommits recovers
    them.
    """
    numSaved = saveTemp(repo, message)
    try:
        yield numSaved
    except UNWOUND_ERRORS:
        if numSaved:
            _logger.info("Operation rejected; restoring work in progress")
            popTempCommits(repo)
        raise
    except BaseException:
        if numSaved:
            _logger.warning(f"Operation failed; work in progress is still saved in {numSaved} temporary commit(s). "
                            f"Run 'branchsync recover' to restore it.")
        raise
    if numSaved:
        popTempCommits(repo)
