"""
CLI entrypoint for protosync.

Usage:
    python -m protosync run
    python -m protosync run --version v0_34 --version v0_37
    python -m protosync sync ./target/upstream https://github.com/org/repo main
    python -m protosync resolve ./target/upstream v0.34.x
    python -m protosync tree
"""
import argparse
import logging
import os
import sys
from typing import List, Optional

from protosync.codegen.tree import MissingCompiledOutput
from protosync.collector import FileCopyFailed
from protosync.compiler import CompileFailed
from protosync.config import CONFIG_ENV_VAR, ConfigError, load_config
from protosync.pipeline import Pipeline
from protosync.vcs.git import GitRepository, VcsOperationFailed
from protosync.vcs.resolver import AmbiguousLocalBranch, RefNotFound, RefResolver
from protosync.vcs.sync import RepoSync

LOG_LEVEL_ENV_VAR = "PROTOSYNC_LOG_LEVEL"
LOG_FORMAT = "  [%(levelname)s] => %(message)s"

PIPELINE_ERRORS = (
    OSError,
    ConfigError,
    VcsOperationFailed,
    RefNotFound,
    AmbiguousLocalBranch,
    CompileFailed,
    FileCopyFailed,
    MissingCompiledOutput,
    ValueError,
)


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging for CLI runs."""
    if verbose:
        level = logging.DEBUG
    else:
        level_name = os.getenv(LOG_LEVEL_ENV_VAR, "INFO").upper()
        level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="protosync",
        description="Sync, compile and reassemble versioned protobuf definitions"
    )
    parser.add_argument(
        "--config",
        help=f"Path to protosync.yaml (default: ${CONFIG_ENV_VAR} or ./protosync.yaml)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    run_parser = subparsers.add_parser("run", help="Run the full pipeline")
    run_parser.add_argument(
        "--version",
        dest="versions",
        action="append",
        metavar="IDENT",
        help="Only build this version (repeatable, default: all)"
    )

    sync_parser = subparsers.add_parser("sync", help="Clone or fetch a repo and check out a commitish")
    sync_parser.add_argument("directory", help="Local clone directory")
    sync_parser.add_argument("url", help="Repository URL")
    sync_parser.add_argument("commitish", help="Branch, tag or commit id")

    resolve_parser = subparsers.add_parser("resolve", help="Resolve a commitish in an existing clone")
    resolve_parser.add_argument("directory", help="Local clone directory")
    resolve_parser.add_argument("commitish", help="Branch, tag or commit id")

    subparsers.add_parser("tree", help="Regenerate module files from collected output")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    configure_logging(args.verbose)

    try:
        if args.command == "run":
            pipeline = Pipeline(load_config(args.config))
            results = pipeline.run(only=args.versions)
            for result in results:
                print(
                    f"✅ {result.version.ident}: {result.resolved.commit[:12]} "
                    f"({result.schema_count} schemas, {len(result.collected)} generated files)"
                )
            print(f"✅ Aggregator written to {pipeline.config.aggregator_path}")

        elif args.command == "sync":
            resolved = RepoSync().sync(args.directory, args.url, args.commitish)
            print(f"✅ {args.directory} at {resolved.commit}")

        elif args.command == "resolve":
            repo = GitRepository.open(args.directory)
            resolved = RefResolver(repo).resolve(args.commitish)
            reference = resolved.reference.name if resolved.reference else "-"
            print(f"{resolved.commit} {reference}")

        elif args.command == "tree":
            pipeline = Pipeline(load_config(args.config))
            for path in pipeline.regenerate_modules():
                print(f"✅ Wrote {path}")

    except PIPELINE_ERRORS as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
