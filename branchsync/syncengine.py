# -----------------------------------------------------------------------------
# Copyright (C) 2026 Iliyas Jorio.
# This file is part of branchsync, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Keep a branch in sync with its base by replaying its commits on top of the
base's tip.

A sync attempt is all-or-nothing. Every conflict in a replay step is
classified, and resolved if the caller supplied a choice for its path. If any
conflict is left without a choice, the attempt stops at that step and returns
SyncConflicted listing exactly those conflicts; no ref moves. Otherwise the
branch ref is moved to the last replayed commit.

Nothing in here ever prompts: asking the user is up to the caller, who
re-invokes trySyncBranch with a fuller ResolutionMap.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable, Mapping

from branchsync.appconsts import *
from branchsync.applicator import applyResolution, selectEntry
from branchsync.bracket import bracketed, skipTempCommits
from branchsync.conflict import Conflict, classifyConflict
from branchsync.porcelain import *
from branchsync.replay import ReplayStep, commitStep, listCommitsToReplay, replayStep
from branchsync.repoprefs import RepoPrefs, resolveBaseBranch
from branchsync.resolution import ResolutionMap, parseResolutionMap

_logger = logging.getLogger(__name__)


class SyncDetails:
    """ Outcome of one sync attempt: SyncComplete or SyncConflicted. """

    branchName: str

    @property
    def isComplete(self) -> bool:
        return isinstance(self, SyncComplete)


@dataclasses.dataclass(frozen=True)
class SyncComplete(SyncDetails):
    branchName: str
    tipId: Oid
    numReplayed: int = 0


@dataclasses.dataclass(frozen=True)
class SyncConflicted(SyncDetails):
    branchName: str
    conflicts: list[Conflict]
    commitId: Oid
    "Original commit whose replay step could not be resolved."

    @property
    def paths(self) -> list[str]:
        return [c.path for c in self.conflicts]


def _resolveStep(
        repo: Repo,
        step: ReplayStep,
        resolutions: ResolutionMap,
        ignoreWhitespace: bool,
) -> list[Conflict]:
    """
    Classify and resolve every conflict in a step.
    Returns the conflicts that have no resolution in the map.
    """
    unresolved = []

    for sides in step.conflictSides():
        conflict = classifyConflict(repo, sides, ignoreWhitespace)

        if conflict is None:
            # Same content on both sides
            selectEntry(step.index, sides.path, sides.branch)
            continue

        try:
            choice = resolutions[conflict.path]
        except KeyError:
            unresolved.append(conflict)
            continue

        applyResolution(repo, step.index, sides, conflict, choice, ignoreWhitespace)

    return unresolved


def _moveBranch(repo: Repo, branchName: str, newTip: Oid, message: str):
    if repo.is_checked_out(branchName):
        _logger.info(f"Hard reset of checked-out branch '{branchName}' to {id7(newTip)}")
        repo.reset(newTip, ResetMode.HARD)
    else:
        _logger.info(f"Moving branch '{branchName}' to {id7(newTip)}")
        branch = repo.find_local_branch(branchName)
        branch.set_target(newTip, message)


def trySyncBranch(
        repo: Repo,
        branchName: str,
        resolutions: ResolutionMap | Mapping[str, str] | None = None,
        baseName: str = "",
) -> SyncDetails:
    """
    Replay `branchName` onto the tip of its base branch.

    `resolutions` maps file paths to choices (ResolutionChoice values or their
    string forms) and is consulted for every conflicting path in every step.
    """

    prefs = RepoPrefs.initForRepo(repo, baseName)
    resolutions = parseResolutionMap(resolutions or {})

    branch = repo.find_local_branch(branchName)
    base = repo.find_local_branch(prefs.baseBranch)

    branchTipId = branch.target
    baseTipId = skipTempCommits(repo, base.target)

    if branchName == prefs.baseBranch:
        _logger.info(f"'{branchName}' is the base branch, nothing to sync")
        return SyncComplete(branchName, branchTipId)

    forkId = repo.merge_base(baseTipId, branchTipId)
    if forkId is None:
        raise BranchSyncError(f"'{branchName}' has no history in common with '{prefs.baseBranch}'")

    if repo.is_checked_out(branchName) and repo.has_uncommitted_changes():
        raise BranchSyncError(f"'{branchName}' is checked out and has uncommitted changes; sync it under bracketed()")

    if forkId == baseTipId:
        _logger.info(f"'{branchName}' is already up to date with '{prefs.baseBranch}'")
        return SyncComplete(branchName, branchTipId)

    reflogMessage = f"branchsync: sync {branchName} onto {prefs.baseBranch}"

    if forkId == branchTipId:
        # Nothing of its own on the branch; fast-forward it
        _moveBranch(repo, branchName, baseTipId, reflogMessage)
        return SyncComplete(branchName, baseTipId)

    commits = listCommitsToReplay(repo, baseTipId, branchTipId)
    _logger.info(f"Replaying {len(commits)} commit(s) of '{branchName}' onto {prefs.baseBranch} {id7(baseTipId)}")

    tip = repo.peel_commit(baseTipId)
    numReplayed = 0

    for commit in commits:
        step = replayStep(repo, tip, commit)

        if step.hasConflicts():
            unresolved = _resolveStep(repo, step, resolutions, prefs.ignoreWhitespace)
            if unresolved:
                _logger.info(f"Step {id7(commit.id)} has {len(unresolved)} unresolved conflict(s), "
                             f"'{branchName}' left untouched")
                return SyncConflicted(branchName, unresolved, commit.id)

        newId = commitStep(repo, step, tip)
        if newId is not None:
            tip = repo.peel_commit(newId)
            numReplayed += 1
        _logger.debug(f"Replayed {id7(commit.id)} -> {id7(newId)}")

    if APP_DEBUG:
        assert tip.id == baseTipId or repo.descendant_of(tip.id, baseTipId), "replayed tip is off the base"

    _moveBranch(repo, branchName, tip.id, reflogMessage)
    return SyncComplete(branchName, tip.id, numReplayed)


def _resolutionsFor(
        resolutions: ResolutionMap | Mapping[str, ResolutionMap] | None,
        branchName: str,
) -> ResolutionMap | None:
    """
    `resolutions` may be a single map shared by every branch, or a mapping
    of branch names to maps.
    """
    if not resolutions:
        return None
    if all(isinstance(value, Mapping) for value in resolutions.values()):
        return resolutions.get(branchName)
    return resolutions


def syncBranches(
        repo: Repo,
        names: Iterable[str] = (),
        resolutions: ResolutionMap | Mapping[str, ResolutionMap] | None = None,
        baseName: str = "",
) -> dict[str, SyncDetails]:
    """
    Sync several branches (the checked-out one if `names` is empty) while
    uncommitted work is bracketed away.
    """
    names = list(names)
    if not names:
        names = [repo.head_branch_name]

    # Reject bad input before anything is committed
    baseBranch = resolveBaseBranch(repo, baseName)
    for name in [baseBranch, *names]:
        repo.find_local_branch(name)
    branchResolutions = {name: parseResolutionMap(_resolutionsFor(resolutions, name) or {})
                         for name in names}

    results = {}
    with bracketed(repo, "Save before sync"):
        for name in names:
            results[name] = trySyncBranch(repo, name, branchResolutions[name], baseName)
    return results


def syncAllBranches(
        repo: Repo,
        resolutions: ResolutionMap | Mapping[str, ResolutionMap] | None = None,
        baseName: str = "",
) -> dict[str, SyncDetails]:
    baseBranch = RepoPrefs.initForRepo(repo, baseName).baseBranch
    names = [name for name in repo.listall_local_branch_names() if name != baseBranch]
    return syncBranches(repo, names, resolutions, baseName)
