from __future__ import annotations

import shutil
from pathlib import Path
from typing import Protocol

from .errors import ExternalToolFailure
from .logging import get_logger
from .models import InterpreterVersion, VersionRequest
from .process import Command, CommandRunner

_VERSION_SCRIPT = (
    "import sys; "
    "print(sys.implementation.name, '%d.%d.%d' % sys.version_info[:3])"
)

_LOGGER = get_logger("toolchain")


class InterpreterResolver(Protocol):
    def fetch(self, request: VersionRequest) -> InterpreterVersion: ...

    def binary(self, version: InterpreterVersion) -> Path: ...


class PathInterpreterResolver:
    """Finds interpreters on ``PATH`` and asks each one for its exact version."""

    def __init__(self, runner: CommandRunner, *, search_path: str | None = None) -> None:
        self._runner = runner
        self._search_path = search_path
        self._binaries: dict[InterpreterVersion, Path] = {}

    def fetch(self, request: VersionRequest) -> InterpreterVersion:
        for name in _candidate_names(request):
            location = shutil.which(name, path=self._search_path)
            if location is None:
                continue
            version = self._query_version(Path(location))
            if version is None or not request.matches(version):
                continue
            self._binaries.setdefault(version, Path(location))
            _LOGGER.debug("Resolved %s to %s (%s)", request, location, version)
            return version
        raise ExternalToolFailure(f"no interpreter matching {request} found on PATH")

    def binary(self, version: InterpreterVersion) -> Path:
        cached = self._binaries.get(version)
        if cached is not None:
            return cached
        self.fetch(version.as_request())
        return self._binaries[version]

    def _query_version(self, binary: Path) -> InterpreterVersion | None:
        code, output = self._runner.capture(Command(argv=(str(binary), "-c", _VERSION_SCRIPT)))
        if code != 0:
            return None
        try:
            kind, version = output.split()
            return InterpreterVersion.parse(f"{kind}@{version}")
        except ValueError:
            _LOGGER.debug("Ignoring interpreter with unexpected version output: %s", binary)
            return None


def _candidate_names(request: VersionRequest) -> list[str]:
    prefix = "python" if request.kind == "cpython" else request.kind
    names: list[str] = []
    if request.minor is not None:
        names.append(f"{prefix}{request.major}.{request.minor}")
    names.append(f"{prefix}{request.major}")
    names.append(prefix)
    return names
