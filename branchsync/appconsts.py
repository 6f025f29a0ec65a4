# -----------------------------------------------------------------------------
# Copyright (C) 2026 Iliyas Jorio.
# This file is part of branchsync, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

import sys as _sys
import os as _os


def _envBool(key: str) -> bool:
    return _os.environ.get(key, "") not in ["", "0"]


APP_VERSION = "0.3.0"
APP_SYSTEM_NAME = "branchsync"
APP_DISPLAY_NAME = "branchsync"

DEFAULT_BASE_BRANCH = "main"
BASE_BRANCH_ENV = "BRANCHSYNC_BASE"

TEMP_COMMIT_PREFIX = "[branchsync-temp]"
"""
Reserved commit message prefix for temporary commits made by bracketing.
Matched with str.startswith, never with a looser comparison.
"""

TEMP_INDEX_PREFIX = TEMP_COMMIT_PREFIX + " staged"
"""
Temporary commits whose tree is a snapshot of the index (staged changes),
as opposed to a snapshot of the working tree.
"""

APP_TESTMODE = _envBool("APP_TESTMODE") or "pytest" in _sys.modules
"""
Unit testing mode.
Can be forced with environment variable APP_TESTMODE.
"""

APP_DEBUG = APP_TESTMODE or _envBool("APP_DEBUG")
"""
Enable expensive assertions.
Can be forced with environment variable APP_DEBUG.
Implied by APP_TESTMODE.
"""
