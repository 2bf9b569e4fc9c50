from __future__ import annotations

import sys
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from .errors import ConfigurationError
from .models import VersionRequest

_MANIFEST = "pyproject.toml"
_PYTHON_PIN = ".python-version"
_DEFAULT_VENV = ".venv"


@dataclass(frozen=True)
class Project:
    root: Path
    venv_path: Path
    workspace_members: tuple[Path, ...] | None = None
    workspace_root: Path | None = None

    @property
    def is_workspace(self) -> bool:
        return self.workspace_members is not None

    @property
    def workspace_path(self) -> Path:
        return self.workspace_root or self.root

    @property
    def lockfile(self) -> Path:
        return self.workspace_path / "requirements.lock"

    @property
    def dev_lockfile(self) -> Path:
        return self.workspace_path / "requirements-dev.lock"


def discover_project(start: Path) -> Project:
    """Find the project enclosing ``start``.

    A project listed as a member of a workspace further up the tree shares
    that workspace's virtualenv and lock files.
    """
    start = start.expanduser().resolve()
    for directory in (start, *start.parents):
        manifest = directory / _MANIFEST
        if manifest.is_file():
            project = load_project(manifest)
            if project.is_workspace:
                return project
            return _enclosing_workspace(project) or project
    raise ConfigurationError(f"No {_MANIFEST} found in {start} or any parent")


def _enclosing_workspace(project: Project) -> Project | None:
    for directory in project.root.parents:
        manifest = directory / _MANIFEST
        if not manifest.is_file():
            continue
        candidate = load_project(manifest)
        if candidate.workspace_members and project.root in candidate.workspace_members:
            return replace(candidate, root=project.root, workspace_root=candidate.root)
    return None


def load_project(manifest: Path) -> Project:
    try:
        data = tomllib.loads(manifest.read_text())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {manifest}: {exc}") from exc
    root = manifest.resolve().parent
    settings = _tool_settings(data, manifest=manifest)

    venv_name = settings.get("virtual-env", _DEFAULT_VENV)
    if not isinstance(venv_name, str) or not venv_name.strip():
        raise ConfigurationError(
            f"'tool.venvsync.virtual-env' must be a non-empty string: {manifest}"
        )

    workspace = settings.get("workspace")
    members: tuple[Path, ...] | None = None
    if workspace is not None:
        if not isinstance(workspace, dict):
            raise ConfigurationError(
                f"'tool.venvsync.workspace' must be a table: {manifest}"
            )
        members = _expand_members(root, workspace.get("members", []), manifest=manifest)

    return Project(
        root=root,
        venv_path=root / venv_name.strip(),
        workspace_members=members,
    )


def load_python_version(root: Path) -> VersionRequest:
    """Read the nearest ``.python-version`` pin, defaulting to this interpreter."""
    for directory in (root, *root.parents):
        pin = directory / _PYTHON_PIN
        if not pin.is_file():
            continue
        for line in pin.read_text().splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            try:
                return VersionRequest.parse(stripped)
            except ValueError as exc:
                raise ConfigurationError(f"{exc} in {pin}") from exc
        break
    return VersionRequest(major=sys.version_info.major, minor=sys.version_info.minor)


def _tool_settings(data: dict[str, Any], *, manifest: Path) -> dict[str, Any]:
    tool = data.get("tool", {})
    if not isinstance(tool, dict):
        raise ConfigurationError(f"'tool' must be a table: {manifest}")
    settings = tool.get("venvsync", {})
    if not isinstance(settings, dict):
        raise ConfigurationError(f"'tool.venvsync' must be a table: {manifest}")
    return settings


def _expand_members(root: Path, patterns: Any, *, manifest: Path) -> tuple[Path, ...]:
    if not isinstance(patterns, list) or not all(
        isinstance(pattern, str) and pattern.strip() for pattern in patterns
    ):
        raise ConfigurationError(
            f"'tool.venvsync.workspace.members' must be an array of strings: {manifest}"
        )
    absolute = [pattern for pattern in patterns if Path(pattern.strip()).is_absolute()]
    if absolute:
        raise ConfigurationError(
            f"'tool.venvsync.workspace.members' must be relative to the workspace "
            f"root, got: {', '.join(absolute)}: {manifest}"
        )
    members: list[Path] = [root]
    for pattern in patterns:
        for candidate in sorted(root.glob(pattern.strip())):
            if not (candidate / _MANIFEST).is_file():
                continue
            resolved = candidate.resolve()
            if resolved not in members:
                members.append(resolved)
    return tuple(members)
