from __future__ import annotations


class SyncError(SystemExit):
    """Base class for every failure raised while synchronizing an environment.

    Derives from ``SystemExit`` so an unhandled error terminates the process
    with a non-zero status and prints its message.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def with_context(self, context: str) -> SyncError:
        return type(self)(f"{context}: {self.message}")


class ConfigurationError(SyncError):
    """Persisted state or project configuration could not be parsed."""


class PolicyViolation(SyncError):
    """A destructive action was refused."""


class ExternalToolFailure(SyncError):
    """An external tool could not be run or exited with a non-zero status."""


class SyncIOError(SyncError):
    """A filesystem operation failed."""
