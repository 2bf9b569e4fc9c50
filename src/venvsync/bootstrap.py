from __future__ import annotations

import os
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path

from .errors import ExternalToolFailure, SyncIOError
from .logging import get_logger
from .models import Verbosity
from .process import Command, CommandRunner

SELF_REQUIREMENTS = ("virtualenv>=20.24", "pip-tools>=7.3")
_HOME_ENV_VAR = "VENVSYNC_HOME"
_MARKER_FILENAME = "tool-requirements.txt"

_LOGGER = get_logger("bootstrap")


@dataclass(frozen=True)
class SelfEnvironment:
    """Handle to the tool environment that hosts virtualenv and pip-tools."""

    root: Path

    @property
    def bin_dir(self) -> Path:
        return self.root / "bin"

    @property
    def python(self) -> Path:
        return self.bin_dir / "python"

    @property
    def virtualenv(self) -> Path:
        return self.bin_dir / "virtualenv"

    @property
    def pip_sync(self) -> Path:
        return self.bin_dir / "pip-sync"

    @property
    def pip_compile(self) -> Path:
        return self.bin_dir / "pip-compile"

    def pip_module(self) -> Path:
        candidates = sorted(
            self.root.glob("lib/python*/site-packages/pip"), key=_site_packages_version
        )
        if not candidates:
            raise ExternalToolFailure(
                f"pip module not found in self environment: {self.root}"
            )
        return candidates[-1]


def default_home() -> Path:
    override = os.environ.get(_HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".venvsync"


def ensure_self_environment(
    home: Path,
    *,
    runner: CommandRunner,
    verbosity: Verbosity = Verbosity.NORMAL,
) -> SelfEnvironment:
    """Create or refresh the tool environment under ``home`` once.

    The environment is reused as long as the recorded tool requirements
    match ``SELF_REQUIREMENTS``.
    """
    self_env = SelfEnvironment(root=home / "self")
    marker = self_env.root / _MARKER_FILENAME
    expected = "\n".join(SELF_REQUIREMENTS) + "\n"
    if self_env.python.exists() and marker.is_file() and marker.read_text() == expected:
        return self_env

    if verbosity is not Verbosity.QUIET:
        _LOGGER.info("Bootstrapping tool environment in %s", self_env.root)
    try:
        if self_env.root.exists():
            shutil.rmtree(self_env.root)
        home.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise SyncIOError(
            f"could not prepare self environment: {self_env.root}: {exc}"
        ) from exc

    venv_command = Command(argv=(sys.executable, "-m", "venv", str(self_env.root)))
    if runner.run(venv_command) != 0:
        raise ExternalToolFailure("failed to create self environment")

    install_args = [str(self_env.python), "-m", "pip", "install"]
    if verbosity is not Verbosity.VERBOSE:
        install_args.append("-q")
    install_args.extend(SELF_REQUIREMENTS)
    if runner.run(Command(argv=tuple(install_args))) != 0:
        raise ExternalToolFailure("failed to install tools into self environment")

    try:
        marker.write_text(expected)
    except OSError as exc:
        raise SyncIOError(f"failed writing self environment marker: {exc}") from exc
    return self_env


def _site_packages_version(pip_module: Path) -> tuple[int, ...]:
    # lib/python3.11/site-packages/pip -> (3, 11)
    version = pip_module.parent.parent.name.removeprefix("python")
    return tuple(int(part) for part in version.split(".") if part.isdigit())
