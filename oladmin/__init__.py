"""
oladmin: SSH key distribution, batch scp transfers, Ansible vault
scaffolding and Oracle Linux hardening helpers.
"""

__version__ = "1.0.0"

from .errors import (
    ConfigurationError,
    DegradedModeWarning,
    ExecutionError,
    NotFoundError,
    TimeoutError,
    ToolkitError,
    ValidationError,
    VerificationError,
)
from .lists import ListFile, load_entries
from .patcher import Absent, Commented, Present, SettingRule, ThresholdRule, patch, patch_file, scan
from .reporting import ConsoleReporter, RecordingReporter, Reporter
from .runner import CommandRunner
from .transfer import BatchTransferRunner, HostKeyPolicy, Target, TransferReport
from .validation import ValidationResult, validate_paths

__all__ = [
    "__version__",
    "Absent",
    "BatchTransferRunner",
    "CommandRunner",
    "Commented",
    "ConfigurationError",
    "ConsoleReporter",
    "DegradedModeWarning",
    "ExecutionError",
    "HostKeyPolicy",
    "ListFile",
    "NotFoundError",
    "Present",
    "RecordingReporter",
    "Reporter",
    "SettingRule",
    "Target",
    "ThresholdRule",
    "TimeoutError",
    "ToolkitError",
    "TransferReport",
    "ValidationError",
    "ValidationResult",
    "VerificationError",
    "load_entries",
    "patch",
    "patch_file",
    "scan",
    "validate_paths",
]
