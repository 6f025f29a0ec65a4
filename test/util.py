# -----------------------------------------------------------------------------
# Copyright (C) 2026 Iliyas Jorio.
# This file is part of branchsync, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

import os
import tempfile

import pygit2

from branchsync.porcelain import *

TEST_SIGNATURE = Signature("Test Person", "toto@example.com", 1672600000, 0)

BINARY_CONTENT = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"


def writeFile(path, text):
    # Prevent accidental littering of current working directory
    assert os.path.isabs(path), "pass me an absolute path"

    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(text.encode("utf-8"))


def readFile(path):
    with open(path, "rb") as f:
        return f.read()


def makeTestRepo(tempDir: tempfile.TemporaryDirectory | str, name="TestRepo") -> Repo:
    """ Initialize an empty repository whose unborn HEAD points to 'main'. """
    tempDirPath = tempDir if isinstance(tempDir, str) else tempDir.name

    path = os.path.realpath(f"{tempDirPath}/{name}")
    assert not os.path.exists(path)

    pygit2.init_repository(path, initial_head="main")
    return Repo(path)


def commitOnBranch(
        repo: Repo,
        branchName: str,
        files: dict[str, str | bytes | None],
        message: str = "",
        parent: Oid | None = None,
) -> Oid:
    """
    Commit `files` on top of `branchName`'s tip (or on top of `parent`) and
    point the branch at the new commit, creating the branch if needed.
    A None value deletes the path.

    The working tree is left alone; call resetWorkdir if the branch is
    checked out.
    """
    branch = repo.branches.local.get(branchName)
    if parent is None and branch is not None:
        parent = branch.target

    index = pygit2.Index()
    parents = []
    if parent is not None:
        index.read_tree(repo.peel_commit(parent).tree)
        parents = [parent]

    for path, content in files.items():
        if content is None:
            index.remove(path)
            continue
        if isinstance(content, str):
            content = content.encode("utf-8")
        index.add(IndexEntry(path, repo.create_blob(content), FileMode.BLOB))

    message = message or f"Edit {', '.join(files)} on {branchName}"
    tree = index.write_tree(repo)
    oid = repo.create_commit(None, TEST_SIGNATURE, TEST_SIGNATURE, message, tree, parents)

    if branch is None:
        repo.create_branch_from_commit(branchName, oid)
    else:
        branch.set_target(oid)
    return oid


def resetWorkdir(repo: Repo):
    """ Make the working tree and the index match the checked-out commit. """
    repo.reset(repo.head.target, ResetMode.HARD)


def switchToBranch(repo: Repo, branchName: str):
    repo.checkout(f"refs/heads/{branchName}")


def readBlobAtTip(repo: Repo, branchName: str, path: str) -> bytes | None:
    """ Contents of `path` in the branch's tip commit, or None if absent. """
    tree = repo.peel_commit(repo.find_local_branch(branchName).target).tree
    if path not in tree:
        return None
    return tree[path].data


def tipCommit(repo: Repo, branchName: str) -> Commit:
    return repo.peel_commit(repo.find_local_branch(branchName).target)
