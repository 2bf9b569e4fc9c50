from __future__ import annotations

from pathlib import Path

from .bootstrap import SelfEnvironment
from .errors import ExternalToolFailure
from .models import InterpreterVersion, Verbosity
from .process import Command, CommandRunner
from .toolchain import InterpreterResolver


def create_environment(
    *,
    self_env: SelfEnvironment,
    interpreters: InterpreterResolver,
    version: InterpreterVersion,
    destination: Path,
    verbosity: Verbosity,
    runner: CommandRunner,
) -> None:
    """Materialize an empty virtualenv at ``destination`` without seed packages."""
    interpreter = interpreters.binary(version)
    argv: list[str] = [str(self_env.virtualenv)]
    env: dict[str, str] = {}
    if verbosity is Verbosity.VERBOSE:
        argv.append("--verbose")
    else:
        argv.append("-q")
        env["PYTHONWARNINGS"] = "ignore"
    argv.extend(["-p", str(interpreter), "--no-seed", "--", str(destination)])

    if runner.run(Command(argv=tuple(argv), env=env)) != 0:
        raise ExternalToolFailure("failed to initialize virtualenv")
