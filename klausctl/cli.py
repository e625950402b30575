"""Command-line entry point for klausctl."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass


@dataclass
class _BuildInfo:
    version: str = "dev"
    commit: str = "none"
    date: str = "unknown"


_BUILD = _BuildInfo()


def set_build_info(version: str, commit: str, date: str) -> None:
    """Record the version, commit and build date shown by the version command."""
    _BUILD.version = version
    _BUILD.commit = commit
    _BUILD.date = date


def version_text() -> str:
    """Return the text printed by the version command."""
    return (
        f"klausctl {_BUILD.version}\n"
        f"  commit: {_BUILD.commit}\n"
        f"  built:  {_BUILD.date}\n"
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="klausctl")
    commands = parser.add_subparsers(dest="command")
    commands.add_parser(
        "version",
        help="Show version information",
        description="Display the klausctl version, commit, and build date.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run klausctl with the given arguments and return the exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        if args.command == "version":
            sys.stdout.write(version_text())
        else:
            parser.print_help()
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())