"""CLI entrypoints for convkit commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from . import __version__
from .config import ConfigError, Effective, resolve_effective
from .formatter import run_format
from .lint import run_lint
from .logging import configure_logging, get_logger
from .output import print_format, print_lint, print_sync
from .policy import IndexLoadError, load_index
from .sync import run_sync

_logger = get_logger("cli")


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    _add_verbose_option(parser, suppress_default=True)
    parser.add_argument(
        "--repo-root",
        default=None,
        help="Repository root (defaults to the nearest directory with convkit config or .git).",
    )
    parser.add_argument(
        "--index",
        default=None,
        help="Path to the convention index, relative to the repository root.",
    )
    parser.add_argument(
        "--output",
        choices=("human", "json"),
        default=None,
        help="Output mode (default: human).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="convkit",
        description=(
            "Lint, format, and sync JSON files against convention policies. "
            "Configuration precedence: CLI > convkit.toml > defaults."
        ),
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    version_parser = subparsers.add_parser("version", help="Print the convkit version.")
    _add_verbose_option(version_parser, suppress_default=True)

    lint_parser = subparsers.add_parser(
        "lint",
        help="Validate files matched by index rules against their policies.",
    )
    _add_common_options(lint_parser)
    lint_parser.add_argument(
        "--scope",
        default=None,
        help="Scope token for sync drift checks (e.g. repo, lib).",
    )

    format_parser = subparsers.add_parser(
        "format",
        help="Reorder keys and adjust blank lines per policy.",
    )
    _add_common_options(format_parser)
    format_parser.add_argument(
        "--write", action="store_true", help="Write formatted files to disk."
    )
    format_parser.add_argument(
        "--diff",
        action="store_true",
        help="Show unified diffs for files that would change (disables writing).",
    )
    format_parser.add_argument(
        "--check",
        action="store_true",
        help="Exit non-zero when any file would change (disables writing).",
    )

    sync_parser = subparsers.add_parser(
        "sync",
        help="Copy or merge template files into the repository.",
    )
    _add_common_options(sync_parser)
    sync_parser.add_argument(
        "--scope",
        default=None,
        help="Scope token selecting which sync rules apply (e.g. repo, lib).",
    )
    sync_parser.add_argument(
        "--write", action="store_true", help="Apply changes to disk."
    )
    sync_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report planned writes without changing files.",
    )
    sync_parser.add_argument(
        "--check",
        action="store_true",
        help="Exit non-zero when any target would change.",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for convkit commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(getattr(args, "verbose", False)))

    if args.command == "version":
        print(__version__)
        return

    try:
        if args.command == "format":
            effective = resolve_effective(
                _repo_root(args),
                index=args.index,
                output=args.output,
                write=True if args.write else None,
                diff=True if args.diff else None,
                check=True if args.check else None,
            )
        else:
            effective = resolve_effective(
                _repo_root(args),
                index=args.index,
                scope=args.scope,
                output=args.output,
            )
    except ConfigError as exc:
        parser.exit(2, f"convkit: {exc}\n")

    _require_index(parser, effective)

    try:
        if args.command == "lint":
            code = _run_lint(effective)
        elif args.command == "format":
            code = _run_format(effective)
        elif args.command == "sync":
            code = _run_sync(
                effective,
                write=bool(args.write),
                dry_run=bool(args.dry_run),
                check=bool(args.check),
            )
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except IndexLoadError as exc:
        parser.exit(2, f"convkit: {exc}\n")
    if code:
        parser.exit(code)


def _repo_root(args: argparse.Namespace) -> Path | None:
    return Path(args.repo_root) if args.repo_root else None


def _require_index(parser: argparse.ArgumentParser, effective: Effective) -> None:
    if not effective.index_configured:
        parser.exit(2, "convkit: Index is not configured. Pass --index or add convkit.toml.\n")
    if not effective.config_found:
        _logger.debug("No convkit config found under %s; using defaults", effective.repo_root)
    if not effective.index_path.is_file():
        parser.exit(
            2,
            f"convkit: Index file not found: {effective.index_path} "
            "(pass --index or configure convkit.toml)\n",
        )


def _log_default_patterns(effective: Effective) -> None:
    if effective.output == "json":
        return
    try:
        index = load_index(effective.index_path)
    except IndexLoadError:
        return
    defaults = sorted(
        {
            pattern
            for rule in index.rules
            if rule.id not in effective.pattern_overrides
            for pattern in rule.patterns
        }
    )
    if defaults:
        _logger.info("Using default patterns: [%s]", ", ".join(defaults))


def _run_lint(effective: Effective) -> int:
    _log_default_patterns(effective)
    result = run_lint(
        effective.repo_root,
        effective.index_path,
        effective.scope,
        pattern_overrides=effective.pattern_overrides,
        sync_config=effective.sync,
    )
    print_lint(result, effective.output)
    return 1 if result.summary.errors > 0 else 0


def _run_format(effective: Effective) -> int:
    _log_default_patterns(effective)
    diff = effective.diff
    check = effective.check
    write = effective.write and not (diff or check)
    results = run_format(
        effective.repo_root,
        effective.index_path,
        write=write,
        capture_old=diff or check,
        strict_linebreak=effective.strict_linebreak,
        linebreak=effective.linebreak,
        pattern_overrides=effective.pattern_overrides,
    )
    print_format(results, effective.output, write=write, diff=diff)
    if check and any(result.changed for result in results):
        return 1
    return 0


def _run_sync(effective: Effective, *, write: bool, dry_run: bool, check: bool) -> int:
    if dry_run or check:
        apply = False
    else:
        apply = write or bool(effective.sync.write)
    actions = run_sync(
        effective.repo_root,
        effective.index_path,
        effective.scope,
        write=apply,
        sync_config=effective.sync,
    )
    print_sync(actions, effective.output)
    if check and any(action.would_write for action in actions):
        return 1
    return 0


if __name__ == "__main__":
    main(sys.argv[1:])
