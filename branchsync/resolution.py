# -----------------------------------------------------------------------------
# Copyright (C) 2026 Iliyas Jorio.
# This file is part of branchsync, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Resolution choices supplied by whoever presents conflicts to the user
(command line, web form, MCP tool...).

Presentation layers exchange choices as plain strings:
"incoming", "base", "later", or "manual:<text>".
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from enum import StrEnum
from typing import TypeAlias

MANUAL_PREFIX = "manual:"


class InvalidResolutionError(ValueError):
    pass


class Resolution(StrEnum):
    Incoming = "incoming"
    "Take the branch side."

    Base = "base"
    "Take the base (main) side."

    Later = "later"
    "Accept the merged text with conflict markers and fix it by hand later."


@dataclasses.dataclass(frozen=True)
class ManualResolution:
    text: str

    def __str__(self):
        return f"{MANUAL_PREFIX}{self.text}"


ResolutionChoice: TypeAlias = Resolution | ManualResolution
ResolutionMap: TypeAlias = dict[str, ResolutionChoice]


def parseResolution(value: str | ResolutionChoice) -> ResolutionChoice:
    if isinstance(value, (Resolution, ManualResolution)):
        return value

    if value.startswith(MANUAL_PREFIX):
        return ManualResolution(value.removeprefix(MANUAL_PREFIX))

    try:
        return Resolution(value)
    except ValueError:
        raise InvalidResolutionError(f"unexpected resolution choice: '{value}'") from None


def parseResolutionMap(form: Mapping[str, str | ResolutionChoice]) -> ResolutionMap:
    return {path: parseResolution(value) for path, value in form.items()}
