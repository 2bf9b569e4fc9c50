from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

_DEFAULT_KIND = "cpython"
_VERSION_PATTERN = re.compile(
    r"^(?:(?P<kind>[a-z][a-z0-9_-]*)@)?"
    r"(?P<major>\d+)(?:\.(?P<minor>\d+)(?:\.(?P<patch>\d+))?)?$"
)


@dataclass(frozen=True)
class InterpreterVersion:
    """Exact interpreter version an environment is built against."""

    major: int
    minor: int
    patch: int
    kind: str = _DEFAULT_KIND

    @classmethod
    def parse(cls, text: str) -> InterpreterVersion:
        match = _VERSION_PATTERN.match(text.strip())
        if match is None or match.group("patch") is None:
            raise ValueError(f"Invalid interpreter version: {text!r}")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            kind=match.group("kind") or _DEFAULT_KIND,
        )

    def as_request(self) -> VersionRequest:
        return VersionRequest(
            major=self.major, minor=self.minor, patch=self.patch, kind=self.kind
        )

    def __str__(self) -> str:
        version = f"{self.major}.{self.minor}.{self.patch}"
        if self.kind == _DEFAULT_KIND:
            return version
        return f"{self.kind}@{version}"


@dataclass(frozen=True)
class VersionRequest:
    """A possibly partial interpreter version, e.g. ``3.11`` or ``pypy@3.10``."""

    major: int
    minor: int | None = None
    patch: int | None = None
    kind: str = _DEFAULT_KIND

    @classmethod
    def parse(cls, text: str) -> VersionRequest:
        match = _VERSION_PATTERN.match(text.strip())
        if match is None:
            raise ValueError(f"Invalid interpreter version request: {text!r}")
        minor = match.group("minor")
        patch = match.group("patch")
        return cls(
            major=int(match.group("major")),
            minor=int(minor) if minor is not None else None,
            patch=int(patch) if patch is not None else None,
            kind=match.group("kind") or _DEFAULT_KIND,
        )

    def matches(self, version: InterpreterVersion) -> bool:
        if self.kind != version.kind or self.major != version.major:
            return False
        if self.minor is not None and self.minor != version.minor:
            return False
        if self.patch is not None and self.patch != version.patch:
            return False
        return True

    def __str__(self) -> str:
        parts = [str(self.major)]
        if self.minor is not None:
            parts.append(str(self.minor))
            if self.patch is not None:
                parts.append(str(self.patch))
        version = ".".join(parts)
        if self.kind == _DEFAULT_KIND:
            return version
        return f"{self.kind}@{version}"


@dataclass(frozen=True)
class EnvironmentDescriptor:
    python: InterpreterVersion


class SyncMode(Enum):
    PYTHON_ONLY = "python-only"
    LOCK_ONLY = "lock-only"
    REGULAR = "regular"
    FULL = "full"


class Verbosity(Enum):
    QUIET = "quiet"
    NORMAL = "normal"
    VERBOSE = "verbose"


class LockMode(Enum):
    PRODUCTION = "production"
    DEV = "dev"


class EnvironmentState(Enum):
    ABSENT = "absent"
    MANAGED_VALID = "managed-valid"
    MANAGED_DRIFTED = "managed-drifted"
    UNMANAGED = "unmanaged"


class SyncAction(Enum):
    CREATE = "create"
    REUSE = "reuse"
    RECREATE = "recreate"


@dataclass(frozen=True)
class LockOptions:
    update_all: bool = False
    update: tuple[str, ...] = ()
    pre: bool = False


@dataclass(frozen=True)
class SyncOptions:
    verbosity: Verbosity = Verbosity.NORMAL
    dev: bool = False
    mode: SyncMode = SyncMode.PYTHON_ONLY
    force: bool = False
    lock_options: LockOptions = field(default_factory=LockOptions)
    show_progress: bool | None = None

    @property
    def quiet(self) -> bool:
        return self.verbosity is Verbosity.QUIET


@dataclass(frozen=True)
class SyncReport:
    state: EnvironmentState
    action: SyncAction
    python: InterpreterVersion
    lockfiles: tuple[Path, ...] = ()
    installed_from: Path | None = None
