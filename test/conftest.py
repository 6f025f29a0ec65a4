# -----------------------------------------------------------------------------
# Copyright (C) 2026 Iliyas Jorio.
# This file is part of branchsync, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Generator

import pygit2
import pytest

from .util import TEST_SIGNATURE


def setUpGitConfigSearchPaths(prefix=""):
    """
    Prevent unit tests from accessing the host system's git config files.
    This modifies libgit2 search paths and GIT_CONFIG environment variables
    for vanilla git.
    """
    ConfigLevel = pygit2.enums.ConfigLevel

    levels = [
        ConfigLevel.GLOBAL,
        ConfigLevel.XDG,
        ConfigLevel.SYSTEM,
        ConfigLevel.PROGRAMDATA,
    ]

    for level in levels:
        if prefix:
            path = f"{prefix}_{level.name}"
            os.makedirs(path, exist_ok=True)
        else:
            path = ""
        pygit2.settings.search_path[level] = path

    def vanillaGitConfigPath(level):
        path = pygit2.settings.search_path[level]
        if path:
            path += "/.gitconfig"
        return path

    os.environ["GIT_CONFIG_SYSTEM"] = vanillaGitConfigPath(ConfigLevel.SYSTEM)
    os.environ["GIT_CONFIG_GLOBAL"] = vanillaGitConfigPath(ConfigLevel.GLOBAL)


@pytest.fixture(scope='session', autouse=True)
def maskHostGitConfig(tmp_path_factory):
    # Session-wide git config with a known identity, so that commits made by
    # the code under test have a committer.
    setUpGitConfigSearchPaths(str(tmp_path_factory.mktemp("MaskedGitConfig") / "config"))

    globalConfigPath = os.environ["GIT_CONFIG_GLOBAL"]
    with open(globalConfigPath, "w", encoding="utf-8") as f:
        f.write(f"[user]\n"
                f"\tname = {TEST_SIGNATURE.name}\n"
                f"\temail = {TEST_SIGNATURE.email}\n")

    yield

    setUpGitConfigSearchPaths("")


@pytest.fixture(scope='session', autouse=True)
def setUpLogging():
    rootLogger = logging.root
    rootLogger.setLevel(logging.DEBUG)

    yield

    # Chatty destructors may cause spam after pytest has wound down.
    # Work around https://github.com/pytest-dev/pytest/issues/5502
    for handler in rootLogger.handlers:
        rootLogger.removeHandler(handler)


@pytest.fixture(autouse=True)
def clearBaseBranchEnv(monkeypatch):
    # Don't let the developer's environment pick a different base branch
    from branchsync.appconsts import BASE_BRANCH_ENV
    monkeypatch.delenv(BASE_BRANCH_ENV, raising=False)


@pytest.fixture
def tempDir() -> Generator[tempfile.TemporaryDirectory, None, None]:
    location = os.environ.get("BRANCHSYNC_TEMPDIR", None)

    td = tempfile.TemporaryDirectory(prefix="branchsynctest-", dir=location)
    yield td
    td.cleanup()
