# -----------------------------------------------------------------------------
# Copyright (C) 2026 Iliyas Jorio.
# This file is part of branchsync, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Thin convenience layer over pygit2.

Modules import everything from here (`from branchsync.porcelain import *`)
rather than reaching into pygit2 directly, so that the handful of libgit2
idioms we rely on live in one place.
"""

from __future__ import annotations

import logging
import os

import pygit2
from pygit2 import (
    Blob,
    Branch,
    Commit,
    GitError,
    Index,
    IndexEntry,
    Oid,
    Patch,
    Signature,
    Tree,
)
from pygit2.enums import (
    BranchType,
    DiffOption,
    FileMode,
    FileStatus,
    ResetMode,
    SortMode,
)

_logger = logging.getLogger(__name__)

NULL_OID = Oid(raw=b"\x00" * 20)


class BranchSyncError(Exception):
    """ A problem the user can fix (missing branch, detached HEAD...). """


class BranchNotFoundError(BranchSyncError, KeyError):
    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self):
        return f"no local branch named '{self.name}'"


def id7(oid: Oid | str | None) -> str:
    if oid is None:
        return "(none)"
    return str(oid)[:7]


def isNullOid(oid: Oid | str | None) -> bool:
    return oid is None or oid == NULL_OID or str(oid) == str(NULL_OID)


class Repo(pygit2.Repository):
    """
    pygit2.Repository with a few higher-level helpers.
    Method names follow pygit2's snake_case so they read like native calls.
    """

    def peel_commit(self, oid: Oid | str) -> Commit:
        return self[oid].peel(Commit)

    def peel_blob(self, oid: Oid | str) -> Blob:
        return self[oid].peel(Blob)

    def peel_tree(self, oid: Oid | str) -> Tree:
        return self[oid].peel(Tree)

    def read_blob_or_empty(self, oid: Oid | str | None) -> bytes:
        """ Missing content (no blob, or the null oid) reads as empty bytes. """
        if isNullOid(oid):
            return b""
        return self.peel_blob(oid).data

    def is_binary_blob(self, oid: Oid | str | None) -> bool:
        if isNullOid(oid):
            return False
        return self.peel_blob(oid).is_binary

    def in_workdir(self, path: str) -> str:
        return os.path.join(self.workdir, path)

    @property
    def head_commit(self) -> Commit:
        return self.head.peel(Commit)

    @property
    def head_branch_name(self) -> str:
        if self.head_is_unborn:
            raise BranchSyncError("HEAD is unborn; commit something first")
        if self.head_is_detached:
            raise BranchSyncError("HEAD is detached; check out a branch first")
        return self.head.shorthand

    @property
    def any_conflicts(self) -> bool:
        return self.index.conflicts is not None

    def has_uncommitted_changes(self) -> bool:
        """ Staged or unstaged changes to tracked files. Untracked files don't count. """
        ignoredFlags = int(FileStatus.WT_NEW | FileStatus.IGNORED)
        return any(int(flags) & ~ignoredFlags for flags in self.status().values())

    def find_local_branch(self, name: str) -> Branch:
        branch = self.branches.local.get(name)
        if branch is None:
            raise BranchNotFoundError(name)
        return branch

    def is_checked_out(self, branchName: str) -> bool:
        if self.head_is_unborn or self.head_is_detached:
            return False
        return self.head.shorthand == branchName

    def listall_local_branch_names(self) -> list[str]:
        return sorted(self.branches.local)

    def create_branch_from_commit(self, name: str, oid: Oid, force: bool = False) -> Branch:
        commit = self.peel_commit(oid)
        return self.branches.local.create(name, commit, force=force)

    def delete_local_branch(self, name: str):
        self.branches.local.delete(name)

    def get_config_value(self, key: str | tuple[str, ...]) -> str:
        if isinstance(key, tuple):
            key = ".".join(key)
        config = self.config
        if key not in config:
            return ""
        return config[key]

    def get_config_bool(self, key: str | tuple[str, ...], default: bool) -> bool:
        if isinstance(key, tuple):
            key = ".".join(key)
        config = self.config
        if key not in config:
            return default
        return config.get_bool(key)

    def committer_signature(self, fallback: Signature) -> Signature:
        """
        The repo's configured identity, or `fallback` if the user
        hasn't configured user.name/user.email.
        """
        try:
            return self.default_signature
        except (KeyError, GitError):
            _logger.debug("No default signature configured, reusing original committer")
            return fallback

    def create_commit_on_head(
            self,
            message: str,
            author: Signature | None = None,
            committer: Signature | None = None,
            tree: Oid | None = None,
    ) -> Oid:
        """
        Commit `tree` (defaults to the current index) on top of HEAD and
        advance the checked-out branch.
        """
        if tree is None:
            tree = self.index.write_tree()
        if self.head_is_unborn:
            parents = []
        else:
            parents = [self.head.target]
        if committer is None:
            committer = self.default_signature
        if author is None:
            author = committer
        return self.create_commit("HEAD", author, committer, message, tree, parents)


class RepoContext:
    """
    Open a Repo and free its handle (and file locks) on exit.
    """

    def __init__(self, path: str):
        self.repo = Repo(path)

    def __enter__(self) -> Repo:
        return self.repo

    def __exit__(self, excType, excValue, excTraceback):
        self.repo.free()
