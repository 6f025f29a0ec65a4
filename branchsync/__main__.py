# -----------------------------------------------------------------------------
# Copyright (C) 2026 Iliyas Jorio.
# This file is part of branchsync, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

import argparse
import logging
import sys

import pygit2

from branchsync.appconsts import *
from branchsync.bracket import popTempCommits
from branchsync.porcelain import BranchSyncError, RepoContext, id7, isNullOid
from branchsync.prune import pruneBranches
from branchsync.resolution import InvalidResolutionError, ManualResolution, MANUAL_PREFIX, parseResolution
from branchsync.syncengine import SyncConflicted, syncAllBranches, syncBranches
from branchsync.textmerge import BinaryBlobError, mergeBlobs

EXIT_CONFLICTED = 1
EXIT_ERROR = 2


def parseResolveArgs(pairs: list[str]) -> dict:
    resolutions = {}
    for pair in pairs:
        path, sep, choice = pair.partition("=")
        if not sep or not path:
            raise InvalidResolutionError(f"expected PATH=CHOICE, got '{pair}'")
        resolutions[path] = parseResolution(choice)
    return resolutions


def describeChoices(conflict) -> str:
    names = []
    for choice in conflict.allowedChoices():
        if choice is ManualResolution:
            names.append(f"{MANUAL_PREFIX}<text>")
        else:
            names.append(str(choice))
    return ", ".join(names)


def printSyncResults(results) -> int:
    exitCode = 0

    for name, details in results.items():
        if not isinstance(details, SyncConflicted):
            print(f"{name}: in sync ({id7(details.tipId)}, {details.numReplayed} commit(s) replayed)")
            continue

        exitCode = EXIT_CONFLICTED
        print(f"{name}: {len(details.conflicts)} unresolved conflict(s) "
              f"replaying {id7(details.commitId)}; branch left untouched")
        for conflict in details.conflicts:
            print(f"    {conflict.kind:<16} {conflict.path}    [{describeChoices(conflict)}]")

    if exitCode:
        print("Re-run with --resolve PATH=CHOICE for each path listed above.", file=sys.stderr)

    return exitCode


def cmdSync(args) -> int:
    resolutions = parseResolveArgs(args.resolve)
    with RepoContext(args.repo) as repo:
        if args.all:
            results = syncAllBranches(repo, resolutions, args.base)
        else:
            results = syncBranches(repo, args.branches, resolutions, args.base)
    return printSyncResults(results)


def cmdPrune(args) -> int:
    with RepoContext(args.repo) as repo:
        deleted = pruneBranches(repo, args.base)
    if deleted:
        print(f"Deleted: {', '.join(deleted)}")
    return 0


def cmdRecover(args) -> int:
    with RepoContext(args.repo) as repo:
        if not popTempCommits(repo):
            print("Nothing to recover.")
    return 0


def cmdMergeText(args) -> int:
    def blobArg(value: str):
        return None if value == "-" else value

    with RepoContext(args.repo) as repo:
        oids = []
        for value in args.original, args.upstream, args.branch:
            oid = blobArg(value)
            if not isNullOid(oid):
                oid = repo.revparse_single(oid).id
            oids.append(oid)
        data = mergeBlobs(repo, *oids, ignoreWhitespace=not args.keep_whitespace)

    sys.stdout.buffer.write(data)
    sys.stdout.flush()
    return 0


def makeParser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_SYSTEM_NAME,
        description="Keep branches in sync with their base branch.",
        epilog=f"The base branch defaults to ${BASE_BRANCH_ENV}, then git config '{APP_SYSTEM_NAME}.base', "
               f"then '{DEFAULT_BASE_BRANCH}'.")
    parser.add_argument("--version", action="version", version=f"{APP_DISPLAY_NAME} {APP_VERSION}")
    parser.add_argument("-C", dest="repo", default="", metavar="PATH", help="repository to work in (default: current directory)")
    parser.add_argument("-v", dest="verbose", action="count", default=0, help="more logging (repeat for debug output)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync = subparsers.add_parser("sync", help="replay branches onto the tip of the base branch")
    sync.add_argument("branches", nargs="*", metavar="BRANCH", help="branches to sync (default: the checked-out branch)")
    sync.add_argument("--all", action="store_true", help="sync every local branch except the base")
    sync.add_argument("--base", default="", metavar="NAME", help="base branch")
    sync.add_argument("--resolve", action="append", default=[], metavar="PATH=CHOICE",
                      help="resolve a conflicting path: incoming, base, later, or manual:<text>")
    sync.set_defaults(func=cmdSync)

    prune = subparsers.add_parser("prune", help="delete branches that have nothing the base lacks")
    prune.add_argument("--base", default="", metavar="NAME", help="base branch")
    prune.set_defaults(func=cmdPrune)

    recover = subparsers.add_parser("recover", help="restore work in progress left in temporary commits")
    recover.set_defaults(func=cmdRecover)

    mergeText = subparsers.add_parser("merge-text", help="three-way merge of three blobs, printed to stdout")
    mergeText.add_argument("original", metavar="ORIGINAL", help="blob id, or - if absent")
    mergeText.add_argument("upstream", metavar="UPSTREAM", help="blob id, or - if absent")
    mergeText.add_argument("branch", metavar="BRANCH", help="blob id, or - if absent")
    mergeText.add_argument("--keep-whitespace", action="store_true", help="don't ignore whitespace when aligning lines")
    mergeText.set_defaults(func=cmdMergeText)

    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.WARNING,
        format='%(levelname).1s %(asctime)s %(filename)-16s | %(message)s',
        datefmt="%H:%M:%S")
    logging.captureWarnings(True)

    args = makeParser().parse_args(argv)

    if args.verbose >= 2:
        logging.root.setLevel(logging.DEBUG)
    elif args.verbose == 1:
        logging.root.setLevel(logging.INFO)

    repoPath = pygit2.discover_repository(args.repo or ".")
    if repoPath is None:
        print(f"{APP_SYSTEM_NAME}: not a git repository: {args.repo or '.'}", file=sys.stderr)
        return EXIT_ERROR
    args.repo = repoPath

    try:
        return args.func(args)
    except (BranchSyncError, InvalidResolutionError, BinaryBlobError) as exc:
        print(f"{APP_SYSTEM_NAME}: {exc}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
