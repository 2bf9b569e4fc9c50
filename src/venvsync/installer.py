from __future__ import annotations

import os
import shutil
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from tempfile import TemporaryDirectory

from .bootstrap import SelfEnvironment
from .errors import ExternalToolFailure, SyncIOError
from .models import Verbosity
from .process import Command, CommandRunner


@dataclass(frozen=True)
class ModuleIsolation:
    """The single module an isolated process is allowed to import from its search path."""

    module_name: str
    source: Path


@contextmanager
def isolated_search_path(isolation: ModuleIsolation) -> Iterator[Path]:
    """Yield a throwaway directory that contains only ``isolation.module_name``.

    The directory is meant to be the whole of ``PYTHONPATH`` for the child
    process. It is removed when the block exits, whether or not it raised.
    """
    with TemporaryDirectory(prefix="venvsync-isolated-") as tmp:
        directory = Path(tmp)
        _materialize_module(isolation, directory / isolation.module_name)
        entries = sorted(entry.name for entry in directory.iterdir())
        if entries != [isolation.module_name]:
            raise SyncIOError(
                f"isolated search path must contain only {isolation.module_name}, "
                f"found: {', '.join(entries)}"
            )
        yield directory


def _materialize_module(isolation: ModuleIsolation, target: Path) -> None:
    source = isolation.source
    try:
        target.symlink_to(source, target_is_directory=source.is_dir())
        return
    except OSError:
        # Symlinks can be unavailable (e.g. unprivileged Windows); fall back to a copy.
        pass
    try:
        if source.is_dir():
            shutil.copytree(source, target)
        else:
            shutil.copy2(source, target)
    except OSError as exc:
        raise SyncIOError(
            f"failed linking {isolation.module_name} module into for pip-sync: {exc}"
        ) from exc


def select_lockfile(lockfile: Path, dev_lockfile: Path, *, dev: bool) -> Path:
    if dev and dev_lockfile.is_file():
        return dev_lockfile
    return lockfile


def build_install_command(
    *,
    self_env: SelfEnvironment,
    venv: Path,
    lockfile: Path,
    workspace_root: Path,
    search_path: Path,
    verbosity: Verbosity,
    environ: Mapping[str, str] | None = None,
) -> Command:
    environ = os.environ if environ is None else environ
    python = venv / "bin" / "python"
    argv = [
        str(self_env.pip_sync),
        "--python-executable",
        str(python),
        # pip-sync hands this string to pip verbatim; the quotes keep paths
        # with spaces intact
        f'--pip-args="--python={python}"',
        str(lockfile),
    ]
    env = {"PYTHONPATH": str(search_path)}
    if verbosity is Verbosity.VERBOSE:
        argv.append("--verbose")
        if "PIP_VERBOSE" not in environ:
            env["PIP_VERBOSE"] = "2"
    elif verbosity is Verbosity.QUIET:
        argv.append("-q")
    else:
        env["PYTHONWARNINGS"] = "ignore"
    return Command(argv=tuple(argv), cwd=workspace_root, env=env)


def install_dependencies(
    *,
    self_env: SelfEnvironment,
    venv: Path,
    lockfile: Path,
    workspace_root: Path,
    verbosity: Verbosity,
    runner: CommandRunner,
) -> None:
    isolation = ModuleIsolation(module_name="pip", source=self_env.pip_module())
    with isolated_search_path(isolation) as search_path:
        command = build_install_command(
            self_env=self_env,
            venv=venv,
            lockfile=lockfile,
            workspace_root=workspace_root,
            search_path=search_path,
            verbosity=verbosity,
        )
        code = runner.run(command)
    if code != 0:
        raise ExternalToolFailure("installation of dependencies failed")
