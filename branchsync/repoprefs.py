# -----------------------------------------------------------------------------
# Copyright (C) 2026 Iliyas Jorio.
# This file is part of branchsync, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Manage branchsync settings stored in a repository's .git/config.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from branchsync.appconsts import *
from branchsync.porcelain import *

_logger = logging.getLogger(__name__)


@dataclass
class RepoPrefs:
    _GitConfigSection = APP_SYSTEM_NAME

    baseBranch: str = DEFAULT_BASE_BRANCH
    ignoreWhitespace: bool = True

    @classmethod
    def initForRepo(cls, repo: Repo, baseOverride: str = "") -> RepoPrefs:
        section = cls._GitConfigSection
        prefs = cls()
        prefs.baseBranch = resolveBaseBranch(repo, baseOverride)
        prefs.ignoreWhitespace = repo.get_config_bool((section, "ignoreWhitespace"), default=True)
        return prefs


def resolveBaseBranch(repo: Repo, specified: str = "") -> str:
    """
    Pick the base branch name, first match wins:
    explicit argument, $BRANCHSYNC_BASE, branchsync.base in git config, "main".
    """
    if specified:
        return specified

    fromEnv = os.environ.get(BASE_BRANCH_ENV, "")
    if fromEnv:
        _logger.debug(f"Base branch from ${BASE_BRANCH_ENV}: {fromEnv}")
        return fromEnv

    fromConfig = repo.get_config_value((RepoPrefs._GitConfigSection, "base"))
    if fromConfig:
        _logger.debug(f"Base branch from git config: {fromConfig}")
        return fromConfig

    return DEFAULT_BASE_BRANCH
