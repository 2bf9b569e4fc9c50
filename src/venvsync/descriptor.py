from __future__ import annotations

import json
from pathlib import Path

from .errors import ConfigurationError, SyncIOError
from .models import EnvironmentDescriptor, InterpreterVersion

DESCRIPTOR_FILENAME = "rye-venv.json"


def descriptor_path(venv: Path) -> Path:
    return venv / DESCRIPTOR_FILENAME


def has_descriptor(venv: Path) -> bool:
    return descriptor_path(venv).is_file()


def read_descriptor(venv: Path) -> EnvironmentDescriptor:
    """Load the descriptor recorded inside ``venv``.

    A missing file is an error here; callers that need to tell managed and
    unmanaged environments apart check ``has_descriptor`` first.
    """
    path = descriptor_path(venv)
    try:
        raw = path.read_text()
    except OSError as exc:
        raise SyncIOError(f"could not read venv marker file: {path}: {exc}") from exc

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"malformed venv marker file: {path}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError(
            f"malformed venv marker file: {path}: expected a JSON object"
        )
    python = payload.get("python")
    if not isinstance(python, str):
        raise ConfigurationError(
            f"malformed venv marker file: {path}: missing 'python'"
        )
    try:
        version = InterpreterVersion.parse(python)
    except ValueError as exc:
        raise ConfigurationError(f"malformed venv marker file: {path}: {exc}") from exc
    return EnvironmentDescriptor(python=version)


def write_descriptor(venv: Path, descriptor: EnvironmentDescriptor) -> Path:
    path = descriptor_path(venv)
    payload = {"python": str(descriptor.python)}
    try:
        path.write_text(json.dumps(payload, indent=2) + "\n")
    except OSError as exc:
        raise SyncIOError(f"failed writing venv marker file: {path}: {exc}") from exc
    return path
