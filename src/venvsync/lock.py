from __future__ import annotations

from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Protocol

from .bootstrap import SelfEnvironment
from .errors import ExternalToolFailure, SyncIOError
from .models import LockMode, LockOptions, Verbosity
from .process import Command, CommandRunner
from .project import Project


class LockDriver(Protocol):
    """Produces one deterministic lock file per call at ``target``."""

    def update_single_project_lockfile(
        self,
        project: Project,
        mode: LockMode,
        target: Path,
        verbosity: Verbosity,
        options: LockOptions,
    ) -> None: ...

    def update_workspace_lockfile(
        self,
        project: Project,
        mode: LockMode,
        target: Path,
        verbosity: Verbosity,
        options: LockOptions,
    ) -> None: ...


class PipCompileLockDriver:
    """Resolves lock files with pip-compile from the self environment."""

    def __init__(self, self_env: SelfEnvironment, runner: CommandRunner) -> None:
        self._self_env = self_env
        self._runner = runner

    def update_single_project_lockfile(
        self,
        project: Project,
        mode: LockMode,
        target: Path,
        verbosity: Verbosity,
        options: LockOptions,
    ) -> None:
        self._compile(
            (project.root,),
            mode=mode,
            target=target,
            cwd=project.workspace_path,
            verbosity=verbosity,
            options=options,
        )

    def update_workspace_lockfile(
        self,
        project: Project,
        mode: LockMode,
        target: Path,
        verbosity: Verbosity,
        options: LockOptions,
    ) -> None:
        self._compile(
            project.workspace_members or (project.root,),
            mode=mode,
            target=target,
            cwd=project.workspace_path,
            verbosity=verbosity,
            options=options,
        )

    def _compile(
        self,
        members: tuple[Path, ...],
        *,
        mode: LockMode,
        target: Path,
        cwd: Path,
        verbosity: Verbosity,
        options: LockOptions,
    ) -> None:
        with TemporaryDirectory(prefix="venvsync-lock-") as tmp:
            source = Path(tmp) / "requirements.in"
            source.write_text(render_lock_input(members, mode=mode))
            argv = build_compile_arguments(
                self._self_env.pip_compile,
                source=source,
                target=target,
                verbosity=verbosity,
                options=options,
            )
            code = self._runner.run(Command(argv=tuple(argv), cwd=cwd))
        if code != 0:
            raise ExternalToolFailure(f"failed to generate {mode.value} lockfile")
        stamp_lockfile(target, mode=mode)


def render_lock_input(members: tuple[Path, ...], *, mode: LockMode) -> str:
    extras = "[dev]" if mode is LockMode.DEV else ""
    return "".join(f"-e {member}{extras}\n" for member in members)


def build_compile_arguments(
    pip_compile: Path,
    *,
    source: Path,
    target: Path,
    verbosity: Verbosity,
    options: LockOptions,
) -> list[str]:
    argv = [
        str(pip_compile),
        "--no-header",
        "--allow-unsafe",
        "--resolver=backtracking",
        "--output-file",
        str(target),
    ]
    if options.update_all:
        argv.append("--upgrade")
    for package in options.update:
        argv.extend(["--upgrade-package", package])
    if options.pre:
        argv.append("--pre")
    if verbosity is Verbosity.QUIET:
        argv.append("-q")
    elif verbosity is Verbosity.VERBOSE:
        argv.append("-v")
    argv.append(str(source))
    return argv


def stamp_lockfile(target: Path, *, mode: LockMode) -> None:
    header = f"# generated by venvsync\n# mode: {mode.value}\n"
    try:
        body = target.read_text()
    except FileNotFoundError as exc:
        raise ExternalToolFailure(
            f"pip-compile did not produce a lockfile at {target}"
        ) from exc
    except OSError as exc:
        raise SyncIOError(f"could not read lockfile {target}: {exc}") from exc
    if body.startswith(header):
        return
    try:
        target.write_text(header + body)
    except OSError as exc:
        raise SyncIOError(f"could not write lockfile {target}: {exc}") from exc
