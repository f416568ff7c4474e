"""
Exception hierarchy for commitcoupling.

Repository and command failures abort an analysis. File access problems are
collected as anomalies instead of being raised.
"""
from pathlib import Path
from typing import Optional, Sequence, Union


class CommitCouplingError(Exception):
    """Base exception for all commitcoupling errors."""

    def __init__(self, message: str, details: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class RepositoryError(CommitCouplingError):
    """Raised when a path does not exist or is not a Git repository."""

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(
            f"Invalid repository: {path}",
            details={"path": str(path), "reason": reason},
        )
        self.path = path
        self.reason = reason


class InvalidPathError(RepositoryError):
    """Raised when a path contains control characters."""

    def __init__(self, path: Union[str, Path]):
        super().__init__(path, "path contains control characters")


class CommandError(CommitCouplingError):
    """Raised when a subprocess cannot be spawned or exits non-zero."""

    def __init__(self, command: Sequence[str], status: Optional[int], stderr: str = ""):
        details = {"command": " ".join(str(part) for part in command)}
        if status is not None:
            details["status"] = str(status)
        if stderr:
            details["stderr"] = stderr.strip()

        super().__init__("Command failed", details=details)
        self.command = list(command)
        self.status = status
        self.stderr = stderr


class FileAccessError(CommitCouplingError):
    """A tracked file could not be opened for line counting."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Cannot access file: {path}",
            details={"path": path, "reason": reason},
        )
        self.path = path
        self.reason = reason


class ConfigError(CommitCouplingError):
    """Raised for invalid configuration values or unreadable config files."""

    def __init__(self, reason: str, key: Optional[str] = None):
        details = {"key": key} if key else None
        super().__init__(f"Invalid configuration: {reason}", details=details)
        self.reason = reason
        self.key = key


class AnalysisCancelled(CommitCouplingError):
    """Raised when the caller abandons an analysis that is still running."""

    def __init__(self, stage: str):
        super().__init__("Analysis cancelled", details={"stage": stage})
        self.stage = stage
