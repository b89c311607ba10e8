"""Command line access to a repository's history."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterable

from .config import ViewerConfig
from .exceptions import HistViewError
from .git.repository import GitRepository
from .models.commit import CommitRecord
from .validation import validate_ref_name


def _resolve_config(config_dir: Path | None) -> ViewerConfig:
    return ViewerConfig.load(config_dir)


def _open_repository(args: argparse.Namespace, config: ViewerConfig) -> GitRepository:
    repository = GitRepository.discover(args.path.resolve(), short_id_length=config.short_id_length)
    config.add_recent_repository(repository.path)
    config.save()
    return repository


def _format_line(record: CommitRecord) -> str:
    date = record.committer.when.strftime("%Y-%m-%d %H:%M")
    return f"{record.short_id}  {date}  {record.author.name:<20}  {record.summary}"


def _print_record(record: CommitRecord, as_json: bool) -> None:
    if as_json:
        print(json.dumps(record.to_dict()))
    else:
        print(_format_line(record))


def _log(args: argparse.Namespace) -> None:
    config = _resolve_config(args.config_dir)
    with _open_repository(args, config) as repository:
        if args.branch:
            validate_ref_name(args.branch)
        stream = repository.get_commits_streaming(
            limit=args.limit or config.commit_limit,
            batch_size=args.batch_size or config.commit_batch_size,
            start=args.branch or "HEAD",
        )
        while not stream.is_complete:
            for record in stream.next_batch():
                _print_record(record, args.json)
    if not args.json:
        print(f"\n{stream.loaded_count} commits")


def _show(args: argparse.Namespace) -> None:
    config = _resolve_config(args.config_dir)
    with _open_repository(args, config) as repository:
        record = repository.get_commit(args.commit)
        refs = repository.refs_for_commit(record.id)

    if args.json:
        print(json.dumps(record.to_dict(), indent=2))
        return

    print(f"commit {record.id}" + (f" ({', '.join(refs)})" if refs else ""))
    for parent_id in record.parent_ids:
        print(f"parent {parent_id}")
    print(f"tree   {record.tree_id}")
    print(f"Author:    {record.author}  {record.author.when.isoformat()}")
    print(f"Committer: {record.committer}  {record.committer.when.isoformat()}")
    print()
    for line in record.message.rstrip("\n").splitlines():
        print(f"    {line}")


def _search(args: argparse.Namespace) -> None:
    config = _resolve_config(args.config_dir)
    with _open_repository(args, config) as repository:
        matches = repository.search_commits(
            args.query, max_count=args.max_count or config.commit_limit
        )
    if not matches:
        print("No matching commits.")
        return
    for record in matches:
        print(_format_line(record))


def _refs(args: argparse.Namespace) -> None:
    config = _resolve_config(args.config_dir)
    with _open_repository(args, config) as repository:
        references = repository.get_references()

    if references.is_detached:
        print("HEAD is detached")
    for name in references.local_branches:
        marker = "*" if name == references.current_branch else " "
        print(f"{marker} {name}")
    if args.remote:
        for name in references.remote_branches:
            print(f"  remotes/{name}")
    for name in references.tags:
        print(f"  tag: {name}")


def _info(args: argparse.Namespace) -> None:
    config = _resolve_config(args.config_dir)
    with _open_repository(args, config) as repository:
        info = repository.info

    print("Repository summary:")
    print(f"  Name     : {info.name}")
    print(f"  Path     : {info.path}")
    print(f"  Bare     : {'yes' if info.is_bare else 'no'}")
    print(f"  HEAD     : {info.head_branch or '(detached or unborn)'}")
    print(f"  Branches : {', '.join(info.branches) or '-'}")
    print(f"  Tags     : {', '.join(info.tags) or '-'}")
    print(f"  Remotes  : {', '.join(info.remotes) or '-'}")


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value}")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="histview", description=__doc__)
    parser.add_argument(
        "--config-dir",
        type=Path,
        help="Directory holding config.json (defaults to ~/.histview)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    log_parser = subparsers.add_parser("log", help="Stream commit history from HEAD")
    log_parser.add_argument("path", type=Path, nargs="?", default=Path.cwd(), help="Repository path")
    log_parser.add_argument("--limit", type=_positive_int, help="Maximum number of commits")
    log_parser.add_argument("--batch-size", type=_positive_int, help="Commits per load cycle")
    log_parser.add_argument("--json", action="store_true", help="Print one JSON object per commit")
    log_parser.add_argument("--branch", help="Walk from this branch or tag instead of HEAD")
    log_parser.set_defaults(func=_log)

    show_parser = subparsers.add_parser("show", help="Show a single commit")
    show_parser.add_argument("path", type=Path, help="Repository path")
    show_parser.add_argument("commit", help="Full or abbreviated commit id")
    show_parser.add_argument("--json", action="store_true", help="Print the commit as JSON")
    show_parser.set_defaults(func=_show)

    search_parser = subparsers.add_parser("search", help="Search commit messages and authors")
    search_parser.add_argument("path", type=Path, help="Repository path")
    search_parser.add_argument("query", help="Case-insensitive text to look for")
    search_parser.add_argument("--max-count", type=_positive_int, help="Commits to search")
    search_parser.set_defaults(func=_search)

    refs_parser = subparsers.add_parser("refs", help="List branches and tags")
    refs_parser.add_argument("path", type=Path, nargs="?", default=Path.cwd(), help="Repository path")
    refs_parser.add_argument("--remote", action="store_true", help="Include remote-tracking branches")
    refs_parser.set_defaults(func=_refs)

    info_parser = subparsers.add_parser("info", help="Display repository metadata")
    info_parser.add_argument("path", type=Path, nargs="?", default=Path.cwd(), help="Repository path")
    info_parser.set_defaults(func=_info)

    return parser


def main(argv: Iterable[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except HistViewError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
