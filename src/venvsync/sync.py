from __future__ import annotations

import logging
import shutil
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from tqdm import tqdm

from .bootstrap import SelfEnvironment
from .creator import create_environment
from .descriptor import has_descriptor, read_descriptor, write_descriptor
from .errors import PolicyViolation, SyncError, SyncIOError
from .installer import install_dependencies, select_lockfile
from .lock import LockDriver
from .logging import get_logger
from .models import (
    EnvironmentDescriptor,
    EnvironmentState,
    LockMode,
    SyncAction,
    SyncMode,
    SyncOptions,
    SyncReport,
    Verbosity,
    VersionRequest,
)
from .process import CommandRunner
from .project import Project
from .toolchain import InterpreterResolver

_INSTALL_MODES = (SyncMode.REGULAR, SyncMode.FULL)
_UNMANAGED_MESSAGE = (
    "virtualenv is not managed by venvsync. Run `venvsync sync -f` to force."
)


@dataclass(frozen=True)
class ExistingEnvironment:
    """What is on disk at the environment path before a sync touches it."""

    path: Path
    present: bool
    descriptor: EnvironmentDescriptor | None

    @property
    def unmanaged(self) -> bool:
        return self.present and self.descriptor is None


def inspect_environment(venv: Path) -> ExistingEnvironment:
    if not venv.is_dir():
        return ExistingEnvironment(path=venv, present=False, descriptor=None)
    descriptor = read_descriptor(venv) if has_descriptor(venv) else None
    return ExistingEnvironment(path=venv, present=True, descriptor=descriptor)


def classify_environment(
    existing: ExistingEnvironment, target: EnvironmentDescriptor
) -> EnvironmentState:
    if not existing.present:
        return EnvironmentState.ABSENT
    if existing.descriptor is None:
        return EnvironmentState.UNMANAGED
    if existing.descriptor.python == target.python:
        return EnvironmentState.MANAGED_VALID
    return EnvironmentState.MANAGED_DRIFTED


def decide_action(state: EnvironmentState, options: SyncOptions) -> SyncAction:
    if state is EnvironmentState.ABSENT:
        return SyncAction.CREATE
    if state is EnvironmentState.MANAGED_VALID:
        if options.mode is SyncMode.FULL:
            return SyncAction.RECREATE
        return SyncAction.REUSE
    if state is EnvironmentState.MANAGED_DRIFTED:
        return SyncAction.RECREATE
    if options.force:
        return SyncAction.RECREATE
    raise PolicyViolation(_UNMANAGED_MESSAGE)


def sync(
    project: Project,
    options: SyncOptions,
    *,
    python: VersionRequest,
    self_env: SelfEnvironment,
    interpreters: InterpreterResolver,
    lock_driver: LockDriver,
    runner: CommandRunner,
    logger: logging.Logger | None = None,
) -> SyncReport:
    """Bring the project's virtualenv in line with its lock files.

    Phases run strictly in order: environment, lock files, installation.
    ``options.mode`` decides how far the sync goes; the first failing phase
    aborts everything after it.
    """
    logger = logger or get_logger()
    venv = project.venv_path

    existing = inspect_environment(venv)
    if existing.unmanaged and not options.force:
        raise PolicyViolation(_UNMANAGED_MESSAGE)

    with _phase("failed fetching toolchain ahead of sync"):
        target = EnvironmentDescriptor(python=interpreters.fetch(python))

    state = classify_environment(existing, target)
    action = decide_action(state, options)
    if not options.quiet:
        if state is EnvironmentState.MANAGED_DRIFTED:
            assert existing.descriptor is not None
            logger.warning(
                "Python version mismatch (found %s, expect %s), recreating.",
                existing.descriptor.python,
                target.python,
            )
        elif state is EnvironmentState.UNMANAGED:
            logger.warning("Forcing re-creation of non venvsync managed virtualenv")

    phases = _planned_phases(options.mode)
    lockfiles: tuple[Path, ...] = ()
    installed_from: Path | None = None
    with tqdm(
        total=len(phases),
        disable=not _resolve_show_progress(options),
        dynamic_ncols=True,
        unit="phase",
    ) as progress:
        progress.set_description_str("environment")
        _resolve_environment(
            venv,
            action=action,
            target=target,
            options=options,
            self_env=self_env,
            interpreters=interpreters,
            runner=runner,
            logger=logger,
        )
        progress.update(1)

        if options.mode is not SyncMode.PYTHON_ONLY:
            lockfiles = _regenerate_lockfiles(
                project, options=options, lock_driver=lock_driver, progress=progress
            )

        if options.mode in _INSTALL_MODES:
            progress.set_description_str("install")
            installed_from = select_lockfile(
                project.lockfile, project.dev_lockfile, dev=options.dev
            )
            if not options.quiet:
                logger.info("Installing dependencies")
            install_dependencies(
                self_env=self_env,
                venv=venv,
                lockfile=installed_from,
                workspace_root=project.workspace_path,
                verbosity=options.verbosity,
                runner=runner,
            )
            progress.update(1)

    if not options.quiet and options.mode is not SyncMode.PYTHON_ONLY:
        logger.info("Done!")

    return SyncReport(
        state=state,
        action=action,
        python=target.python,
        lockfiles=lockfiles,
        installed_from=installed_from,
    )


def _resolve_environment(
    venv: Path,
    *,
    action: SyncAction,
    target: EnvironmentDescriptor,
    options: SyncOptions,
    self_env: SelfEnvironment,
    interpreters: InterpreterResolver,
    runner: CommandRunner,
    logger: logging.Logger,
) -> None:
    if action is SyncAction.REUSE:
        if options.mode in _INSTALL_MODES and not options.quiet:
            logger.info("Reusing already existing virtualenv")
        return

    if action is SyncAction.RECREATE:
        remove_environment(venv)

    if not options.quiet:
        logger.info("Initializing new virtualenv in %s", venv)
        logger.info("Python version: %s", target.python)
    with _phase("failed creating virtualenv ahead of sync"):
        create_environment(
            self_env=self_env,
            interpreters=interpreters,
            version=target.python,
            destination=venv,
            verbosity=options.verbosity,
            runner=runner,
        )
    write_descriptor(venv, target)


def remove_environment(venv: Path) -> None:
    """Delete ``venv`` recursively; a directory that is already gone is fine."""
    try:
        shutil.rmtree(venv)
    except FileNotFoundError:
        return
    except OSError as exc:
        raise SyncIOError(f"failed removing virtualenv ahead of sync: {exc}") from exc


def _regenerate_lockfiles(
    project: Project,
    *,
    options: SyncOptions,
    lock_driver: LockDriver,
    progress: tqdm,
) -> tuple[Path, ...]:
    if project.is_workspace:
        scope = "workspace"
        update = lock_driver.update_workspace_lockfile
    else:
        scope = "project"
        update = lock_driver.update_single_project_lockfile

    written: list[Path] = []
    for mode, target in (
        (LockMode.PRODUCTION, project.lockfile),
        (LockMode.DEV, project.dev_lockfile),
    ):
        progress.set_description_str(f"{mode.value} lock")
        with _phase(f"could not write {mode.value} lockfile for {scope}"):
            update(project, mode, target, options.verbosity, options.lock_options)
        written.append(target)
        progress.update(1)
    return tuple(written)


def _planned_phases(mode: SyncMode) -> list[str]:
    phases = ["environment"]
    if mode is not SyncMode.PYTHON_ONLY:
        phases.extend(["production lock", "dev lock"])
    if mode in _INSTALL_MODES:
        phases.append("install")
    return phases


def _resolve_show_progress(options: SyncOptions) -> bool:
    if options.verbosity is not Verbosity.NORMAL:
        return False
    if options.show_progress is not None:
        return options.show_progress
    return sys.stderr.isatty()


@contextmanager
def _phase(context: str) -> Iterator[None]:
    try:
        yield
    except SyncError as exc:
        raise exc.with_context(context) from exc
    except OSError as exc:
        raise SyncIOError(f"{context}: {exc}") from exc
