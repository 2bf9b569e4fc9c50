from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .errors import ExternalToolFailure
from .logging import get_logger

_LOGGER = get_logger("process")


@dataclass(frozen=True)
class Command:
    """An external tool invocation.

    ``env`` holds overrides applied on top of the current process environment.
    """

    argv: tuple[str, ...]
    cwd: Path | None = None
    env: dict[str, str] = field(default_factory=dict)

    @property
    def program(self) -> str:
        return Path(self.argv[0]).name

    def render(self) -> str:
        return " ".join(self.argv)


class CommandRunner(Protocol):
    def run(self, command: Command) -> int: ...

    def capture(self, command: Command) -> tuple[int, str]: ...


class SubprocessRunner:
    """Runs commands as blocking child processes."""

    def run(self, command: Command) -> int:
        _LOGGER.debug("Running %s", command.render())
        try:
            completed = subprocess.run(
                list(command.argv),
                cwd=command.cwd,
                env=_merged_env(command.env),
                check=False,
            )
        except OSError as exc:
            raise ExternalToolFailure(
                f"unable to invoke {command.program} command: {exc}"
            ) from exc
        _LOGGER.debug("%s exited with %d", command.program, completed.returncode)
        return completed.returncode

    def capture(self, command: Command) -> tuple[int, str]:
        _LOGGER.debug("Capturing %s", command.render())
        try:
            completed = subprocess.run(
                list(command.argv),
                cwd=command.cwd,
                env=_merged_env(command.env),
                check=False,
                capture_output=True,
                text=True,
            )
        except OSError as exc:
            raise ExternalToolFailure(
                f"unable to invoke {command.program} command: {exc}"
            ) from exc
        return completed.returncode, completed.stdout


def _merged_env(overrides: dict[str, str]) -> dict[str, str] | None:
    if not overrides:
        return None
    env = os.environ.copy()
    env.update(overrides)
    return env
