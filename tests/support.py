import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from venvsync.bootstrap import SelfEnvironment
from venvsync.errors import ExternalToolFailure
from venvsync.models import InterpreterVersion, LockMode
from venvsync.process import Command
from venvsync.project import Project


class FakeRunner:
    """Records commands instead of spawning them.

    ``virtualenv`` invocations create the destination directory so the
    orchestrator sees a materialized environment.
    """

    def __init__(self, *, failing: tuple[str, ...] = ()) -> None:
        self.commands: list[Command] = []
        self.failing = set(failing)
        self.captures: dict[str, tuple[int, str]] = {}
        self.isolated_entries: list[list[str]] = []

    def run(self, command: Command) -> int:
        self.commands.append(command)
        if command.program == "pip-sync" and "PYTHONPATH" in command.env:
            self.isolated_entries.append(sorted(os.listdir(command.env["PYTHONPATH"])))
        if command.program in self.failing:
            return 1
        if command.program == "virtualenv":
            destination = Path(command.argv[-1])
            destination.mkdir(parents=True, exist_ok=True)
            (destination / "pyvenv.cfg").write_text("home = /usr/bin\n")
        return 0

    def capture(self, command: Command) -> tuple[int, str]:
        self.commands.append(command)
        return self.captures.get(command.argv[0], (1, ""))

    def programs(self) -> list[str]:
        return [command.program for command in self.commands]

    def find(self, program: str) -> list[Command]:
        return [command for command in self.commands if command.program == program]


class FakeInterpreters:
    def __init__(self, version: str) -> None:
        self.version = InterpreterVersion.parse(version)
        self.requests: list[object] = []

    def fetch(self, request) -> InterpreterVersion:
        self.requests.append(request)
        return self.version

    def binary(self, version: InterpreterVersion) -> Path:
        return Path(f"/opt/python/{version}/bin/python3")


class FakeLockDriver:
    def __init__(self, *, failing: LockMode | None = None) -> None:
        self.calls: list[tuple[str, LockMode, Path]] = []
        self.failing = failing

    def update_single_project_lockfile(self, project, mode, target, verbosity, options):
        self._write("project", mode, target)

    def update_workspace_lockfile(self, project, mode, target, verbosity, options):
        self._write("workspace", mode, target)

    def _write(self, scope: str, mode: LockMode, target: Path) -> None:
        self.calls.append((scope, mode, target))
        if mode is self.failing:
            raise ExternalToolFailure(f"failed to generate {mode.value} lockfile")
        extra = "pytest==8.2.0\n" if mode is LockMode.DEV else ""
        target.write_text(f"# mode: {mode.value}\nrequests==2.31.0\n{extra}")


def make_self_env(root: Path) -> SelfEnvironment:
    self_env = SelfEnvironment(root=root / "self")
    pip_module = self_env.root / "lib" / "python3.11" / "site-packages" / "pip"
    pip_module.mkdir(parents=True)
    (pip_module / "__init__.py").write_text("")
    self_env.bin_dir.mkdir(parents=True, exist_ok=True)
    return self_env


def make_project(root: Path, *, workspace: bool = False) -> Project:
    project_root = root / "project"
    project_root.mkdir(parents=True, exist_ok=True)
    (project_root / "pyproject.toml").write_text('[project]\nname = "demo"\n')
    members = (project_root,) if workspace else None
    return Project(
        root=project_root,
        venv_path=project_root / ".venv",
        workspace_members=members,
    )
