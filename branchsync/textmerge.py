# -----------------------------------------------------------------------------
# Copyright (C) 2026 Iliyas Jorio.
# This file is part of branchsync, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Three-way line merge.

Two independent two-way diffs (original to upstream, original to branch) are
walked in lock-step. Hunks whose original ranges touch are gathered into a
ConflictRegion. A region edited by only one side is taken from that side;
a region edited by both sides is emitted between conflict markers, upstream
first.
"""

from __future__ import annotations

import dataclasses
import logging
from collections import deque

from branchsync.hunkrange import Hunk, Range, diffHunks
from branchsync.porcelain import *

_logger = logging.getLogger(__name__)

MARKER_UPSTREAM = b"<<<<<<<\n"
MARKER_SEPARATOR = b"=======\n"
MARKER_BRANCH = b">>>>>>>\n"

MERGE_REGION_CAP = 100_000
"""
Most regions (edited spans, conflicted or not) a single merge may produce.
"""


class BinaryBlobError(ValueError):
    def __init__(self, oid: Oid):
        super().__init__(f"cannot merge binary blob {id7(oid)} line by line")
        self.oid = oid


class MergeRegionLimitError(RuntimeError):
    pass


class MalformedHunksError(RuntimeError):
    pass


@dataclasses.dataclass
class ConflictRegion:
    original: Range
    upstreamHunks: list[Hunk] = dataclasses.field(default_factory=list)
    branchHunks: list[Hunk] = dataclasses.field(default_factory=list)

    @property
    def upstream(self) -> Range | None:
        return self._sideRange(self.upstreamHunks)

    @property
    def branch(self) -> Range | None:
        return self._sideRange(self.branchHunks)

    @property
    def isConflict(self) -> bool:
        return bool(self.upstreamHunks) and bool(self.branchHunks)

    def absorbUpstream(self, hunk: Hunk):
        self.original = self.original.join(hunk.old)
        self.upstreamHunks.append(hunk)

    def absorbBranch(self, hunk: Hunk):
        self.original = self.original.join(hunk.old)
        self.branchHunks.append(hunk)

    def _sideRange(self, hunks: list[Hunk]) -> Range | None:
        """
        Lines of one side standing in for the whole original region,
        including the lines that this side left untouched.
        """
        if not hunks:
            return None
        first, last = hunks[0], hunks[-1]
        return Range(self.original.start + first.new.start - first.old.start,
                     self.original.end + last.new.end - last.old.end)


def splitLines(data: bytes) -> list[bytes]:
    """
    Split on LF only, keeping line ends. Unlike bytes.splitlines, CR and
    other separators stay inside the line they belong to.
    """
    pieces = data.split(b"\n")
    lines = [piece + b"\n" for piece in pieces[:-1]]
    if pieces[-1]:
        lines.append(pieces[-1])
    return lines


def _writeBlock(out: list[bytes], lines: list[bytes]):
    out.extend(lines)
    if lines and not lines[-1].endswith(b"\n"):
        # Keep the next marker on a line of its own
        out.append(b"\n")


def _gatherRegion(upstreamHunks: deque[Hunk], branchHunks: deque[Hunk]) -> ConflictRegion:
    # Seed from the pending hunk that starts earlier in the original (ties go to the branch)
    if upstreamHunks and (not branchHunks or upstreamHunks[0].old.start < branchHunks[0].old.start):
        region = ConflictRegion(upstreamHunks[0].old)
    else:
        region = ConflictRegion(branchHunks[0].old)

    absorbing = True
    while absorbing:
        absorbing = False

        if upstreamHunks and upstreamHunks[0].old.touches(region.original):
            region.absorbUpstream(upstreamHunks.popleft())
            absorbing = True

        if branchHunks and branchHunks[0].old.touches(region.original):
            region.absorbBranch(branchHunks.popleft())
            absorbing = True

    return region


def mergeLines(
        originalLines: list[bytes],
        upstreamLines: list[bytes],
        branchLines: list[bytes],
        upstreamHunks: list[Hunk],
        branchHunks: list[Hunk],
        maxRegions: int = MERGE_REGION_CAP,
) -> bytes:
    """
    Raises MalformedHunksError if a hunk stream isn't sorted by original
    position, and MergeRegionLimitError past `maxRegions` regions.
    """
    for hunks in upstreamHunks, branchHunks:
        if any(a.old.start > b.old.start for a, b in zip(hunks, hunks[1:])):
            raise MalformedHunksError("hunk stream is not in original order")

    pendingUpstream = deque(upstreamHunks)
    pendingBranch = deque(branchHunks)

    out: list[bytes] = []
    cursor = 0
    numRegions = 0
    numConflicts = 0

    while pendingUpstream or pendingBranch:
        numRegions += 1
        if numRegions > maxRegions:
            raise MergeRegionLimitError(f"merge has more than {maxRegions} regions")

        region = _gatherRegion(pendingUpstream, pendingBranch)
        if region.original.start < cursor:
            raise MalformedHunksError(f"region at line {region.original.start} overlaps output up to line {cursor}")

        # Original lines up to the region stay as they are
        out.extend(originalLines[cursor:region.original.start])

        if region.isConflict:
            numConflicts += 1
            out.append(MARKER_UPSTREAM)
            _writeBlock(out, region.upstream.slice(upstreamLines))
            out.append(MARKER_SEPARATOR)
            _writeBlock(out, region.branch.slice(branchLines))
            out.append(MARKER_BRANCH)
        elif region.upstream is not None:
            out.extend(region.upstream.slice(upstreamLines))
        elif region.branch is not None:
            out.extend(region.branch.slice(branchLines))
        else:
            raise AssertionError("a region must come from at least one side")

        cursor = max(cursor, region.original.end)

    out.extend(originalLines[cursor:])

    _logger.debug(f"Merged {numRegions} regions, {numConflicts} conflicted")
    return b"".join(out)


def _readText(repo: Repo, oid: Oid | None) -> bytes:
    if repo.is_binary_blob(oid):
        raise BinaryBlobError(oid)
    return repo.read_blob_or_empty(oid)


def mergeBlobs(
        repo: Repo,
        originalId: Oid | None,
        upstreamId: Oid | None,
        branchId: Oid | None,
        ignoreWhitespace: bool = True,
) -> bytes:
    """
    Three-way merge of three blobs. A missing blob (None or the null oid)
    counts as empty content, so "added on both sides" merges like any other
    edit. Raises BinaryBlobError if any blob is binary.
    """
    originalData = _readText(repo, originalId)
    upstreamData = _readText(repo, upstreamId)
    branchData = _readText(repo, branchId)

    upstreamHunks = diffHunks(originalData, upstreamData, ignoreWhitespace)
    branchHunks = diffHunks(originalData, branchData, ignoreWhitespace)

    return mergeLines(
        splitLines(originalData),
        splitLines(upstreamData),
        splitLines(branchData),
        upstreamHunks,
        branchHunks)


def mergeText(
        repo: Repo,
        originalId: Oid | None,
        upstreamId: Oid | None,
        branchId: Oid | None,
        ignoreWhitespace: bool = True,
) -> str:
    data = mergeBlobs(repo, originalId, upstreamId, branchId, ignoreWhitespace)
    return data.decode("utf-8", errors="replace")
