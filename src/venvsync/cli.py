from __future__ import annotations

import argparse
from pathlib import Path

from . import __version__
from .bootstrap import default_home, ensure_self_environment
from .errors import SyncError
from .lock import PipCompileLockDriver
from .logging import configure_logging
from .models import LockOptions, SyncMode, SyncOptions, Verbosity
from .process import SubprocessRunner
from .project import discover_project, load_python_version
from .sync import sync
from .toolchain import PathInterpreterResolver


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command == "sync":
        return _handle_sync_command(args)
    raise SystemExit(f"Unknown command: {args.command}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="venvsync")
    parser.add_argument("--version", action="version", version=__version__)
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser(
        "sync", help="Create or update the project virtualenv from its lock files"
    )
    sync_parser.add_argument(
        "--mode",
        choices=[mode.value for mode in SyncMode],
        default=SyncMode.REGULAR.value,
        help="How far to sync: interpreter only, lock only, regular or full rebuild",
    )
    sync_parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Recreate the virtualenv even if venvsync did not create it",
    )
    sync_parser.add_argument(
        "--dev",
        action="store_true",
        help="Install from the dev lock file when it exists",
    )
    verbosity_group = sync_parser.add_mutually_exclusive_group()
    verbosity_group.add_argument("-v", "--verbose", action="store_true")
    verbosity_group.add_argument("-q", "--quiet", action="store_true")
    sync_parser.add_argument(
        "--update-all",
        action="store_true",
        help="Upgrade every locked dependency",
    )
    sync_parser.add_argument(
        "--update",
        action="append",
        default=[],
        metavar="PACKAGE",
        help="Upgrade a single locked dependency (repeatable)",
    )
    sync_parser.add_argument(
        "--pre", action="store_true", help="Allow pre-release versions when locking"
    )
    progress_group = sync_parser.add_mutually_exclusive_group()
    progress_group.add_argument(
        "--progress",
        dest="progress",
        action="store_const",
        const=True,
        default=None,
        help="Force-enable the phase progress bar",
    )
    progress_group.add_argument(
        "--no-progress",
        dest="progress",
        action="store_const",
        const=False,
        help="Disable the phase progress bar",
    )
    sync_parser.add_argument(
        "--project",
        default=None,
        help="Directory to start the pyproject.toml search from",
    )
    return parser


def options_from_args(args: argparse.Namespace) -> SyncOptions:
    if args.verbose:
        verbosity = Verbosity.VERBOSE
    elif args.quiet:
        verbosity = Verbosity.QUIET
    else:
        verbosity = Verbosity.NORMAL
    return SyncOptions(
        verbosity=verbosity,
        dev=args.dev,
        mode=SyncMode(args.mode),
        force=args.force,
        lock_options=LockOptions(
            update_all=args.update_all,
            update=tuple(args.update),
            pre=args.pre,
        ),
        show_progress=args.progress,
    )


def _handle_sync_command(args: argparse.Namespace) -> int:
    options = options_from_args(args)
    logger = configure_logging(options.verbosity)
    start = Path(args.project) if args.project else Path.cwd()
    project = discover_project(start)
    python = load_python_version(project.workspace_path)

    runner = SubprocessRunner()
    try:
        self_env = ensure_self_environment(
            default_home(), runner=runner, verbosity=options.verbosity
        )
    except SyncError as exc:
        raise exc.with_context("could not sync because bootstrap failed") from exc

    report = sync(
        project,
        options,
        python=python,
        self_env=self_env,
        interpreters=PathInterpreterResolver(runner),
        lock_driver=PipCompileLockDriver(self_env, runner),
        runner=runner,
        logger=logger,
    )
    logger.debug(
        "Sync finished state=%s action=%s python=%s",
        report.state.value,
        report.action.value,
        report.python,
    )
    return 0
