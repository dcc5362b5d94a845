"""
Exception and warning types shared by every oladmin component.

Per-target failures in batch operations are captured and aggregated by the
callers; everything else propagates up to the CLI, which reports it and
exits non-zero.
"""

import builtins
from typing import Optional, Sequence


# ----------------------------------------------------------------
# Custom Exceptions
# ----------------------------------------------------------------
class ToolkitError(Exception):
    """Base exception for oladmin errors."""

    pass


class ConfigurationError(ToolkitError):
    """Raised when a configuration file or override is invalid."""

    pass


class NotFoundError(ToolkitError):
    """Raised when an input file, path or executable is missing."""

    def __init__(self, path: str, what: str = "Path") -> None:
        self.path = path
        self.what = what
        super().__init__(f"{what} not found: {path}")


class ValidationError(ToolkitError):
    """Raised when one or more required files are missing and a batch is aborted."""

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing files: {', '.join(self.missing)}")


class ExecutionError(ToolkitError):
    """Raised when an external command returns a non-zero exit status."""

    def __init__(
        self,
        cmd: Sequence[str],
        returncode: int,
        stdout: Optional[str] = None,
        stderr: Optional[str] = None,
    ) -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        message = f"Command failed with exit code {returncode}: {' '.join(self.cmd)}"
        if self.stderr.strip():
            message += f" ({self.stderr.strip().splitlines()[-1]})"
        super().__init__(message)


class TimeoutError(ToolkitError, builtins.TimeoutError):
    """Raised when an external command exceeds its time limit."""

    def __init__(self, cmd: Sequence[str], timeout: float) -> None:
        self.cmd = list(cmd)
        self.timeout = timeout
        super().__init__(f"Command timed out after {timeout} seconds: {' '.join(self.cmd)}")


class VerificationError(ToolkitError):
    """Raised when a value read back after a patch differs from what was written."""

    def __init__(
        self,
        path: str,
        setting: str,
        original: Optional[str],
        attempted: str,
        actual: Optional[str],
    ) -> None:
        self.path = path
        self.setting = setting
        self.original = original
        self.attempted = attempted
        self.actual = actual
        super().__init__(
            f"Verification failed for {setting} in {path}: "
            f"expected {attempted!r}, found {actual!r} (was {original!r})"
        )


# ----------------------------------------------------------------
# Warnings
# ----------------------------------------------------------------
class DegradedModeWarning(UserWarning):
    """An optional tool is unavailable and a weaker guarantee was accepted."""

    pass
