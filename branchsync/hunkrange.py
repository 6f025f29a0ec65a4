# -----------------------------------------------------------------------------
# Copyright (C) 2026 Iliyas Jorio.
# This file is part of branchsync, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Interval arithmetic over line indices, used to decide whether edits made by
two independent diffs overlap.
"""

from __future__ import annotations

import dataclasses
from typing import NamedTuple

from branchsync.porcelain import *


@dataclasses.dataclass(frozen=True)
class Range:
    """
    Closed-open span [start, end) of zero-based line indices.
    """

    start: int
    end: int

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"inverted range {self.start}..{self.end}")

    @classmethod
    def fromHunkCoords(cls, start: int, lines: int) -> Range:
        """
        Convert one-based hunk coordinates as reported by libgit2.

        A side with zero lines (pure insertion or pure deletion) is anchored
        at `start` as-is, because libgit2 then reports the line *after which*
        the edit happens.
        """
        if lines == 0:
            return cls(start, start)
        return cls(start - 1, start - 1 + lines)

    def __len__(self):
        return self.end - self.start

    def touches(self, other: Range) -> bool:
        # Widen by one line on each side: adjacent edits count as overlapping,
        # otherwise their output would interleave incoherently.
        isPastLeft = self.end + 1 < other.start
        isPastRight = other.end + 1 < self.start
        return not (isPastLeft or isPastRight)

    def join(self, other: Range) -> Range:
        return Range(min(self.start, other.start), max(self.end, other.end))

    def slice(self, lines: list[bytes]) -> list[bytes]:
        return lines[self.start:self.end]

    def __repr__(self):
        return f"Range({self.start}, {self.end})"


class Hunk(NamedTuple):
    old: Range
    new: Range


def diffHunks(oldData: bytes | None, newData: bytes | None, ignoreWhitespace: bool = True) -> list[Hunk]:
    """
    Compute the line-diff hunks turning `oldData` into `newData`.

    The stream is ordered by `old.start` and its old ranges never overlap.
    None is treated as empty content.
    """

    flags = DiffOption.NORMAL
    if ignoreWhitespace:
        flags |= DiffOption.IGNORE_WHITESPACE

    patch = Patch.create_from(
        oldData or b"",
        newData or b"",
        flag=flags,
        context_lines=0,
        interhunk_lines=0)

    if patch is None:  # identical buffers
        return []

    return [Hunk(Range.fromHunkCoords(h.old_start, h.old_lines),
                 Range.fromHunkCoords(h.new_start, h.new_lines))
            for h in patch.hunks]
