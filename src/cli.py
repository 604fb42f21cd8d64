"""Command-line interface for dependency-radar-core."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from artifacts.write import generate_report
from rules.config import ConfigError, load_config
from scan.manifest import ManifestError


def _add_common_paths(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Project root holding package.json (default: .)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dependency-radar")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate", help="Aggregate collaborator payloads into a JSON report"
    )
    _add_common_paths(generate_parser)
    generate_parser.add_argument(
        "--out-dir",
        default=None,
        help="Output directory for the report (default: project root)",
    )
    generate_parser.add_argument(
        "--payload-dir",
        default=None,
        help="Directory of pre-fetched npm-ls/npm-audit/npm-outdated JSON "
        "(default: <root>/.dependency-radar)",
    )
    generate_parser.add_argument(
        "--workspace",
        action="append",
        default=None,
        metavar="DIR",
        help="Workspace sub-package directory, relative to root (repeatable)",
    )
    generate_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log progress to stderr",
    )

    return parser


def _resolve_dir(value: str | None) -> Path | None:
    if value is None:
        return None
    return Path(value).expanduser().resolve()


def _handle_generate(
    root: Path,
    out_dir: str | None,
    payload_dir: str | None,
    workspace: list[str] | None,
) -> int:
    try:
        config = load_config(root)
        result = generate_report(
            root=root,
            out_dir=_resolve_dir(out_dir),
            config=config,
            payload_dir=_resolve_dir(payload_dir),
            workspace=[(root / item).resolve() for item in workspace or []],
        )
    except (ManifestError, ConfigError) as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 1

    tool_errors = result["tool_errors"]
    if isinstance(tool_errors, dict):
        for tool, message in sorted(tool_errors.items()):
            sys.stderr.write(f"warning: {tool}: {message}\n")

    artifacts = result["artifacts"]
    if isinstance(artifacts, list):
        for path in artifacts:
            sys.stdout.write(f"{path}\n")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(levelname)s %(name)s: %(message)s",
        )

    root = Path(args.root).expanduser().resolve()

    if args.command == "generate":
        return _handle_generate(root, args.out_dir, args.payload_dir, args.workspace)

    raise AssertionError


if __name__ == "__main__":
    raise SystemExit(main())
