"""
Batch file distribution over scp.

The local file set is validated once, up front, and the whole batch is
aborted if anything is missing. Delivery is then attempted best-effort per
target: each target gets exactly one scp invocation carrying every file,
and a failure on one target never stops the others.

Host key checking is disabled by default (StrictHostKeyChecking=no), the
same policy the original provisioning scripts used. It is a security
trade-off: unknown host keys are accepted silently. Pass a different
HostKeyPolicy to tighten it.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .errors import ExecutionError, NotFoundError, TimeoutError
from .reporting import NullReporter, Reporter
from .runner import CommandRunner
from .validation import require_all_present, validate_paths

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------
# Data Structures
# ----------------------------------------------------------------
class HostKeyPolicy(str, Enum):
    """Value passed to ssh/scp as StrictHostKeyChecking."""

    ACCEPT_ANY = "no"
    ACCEPT_NEW = "accept-new"
    STRICT = "yes"

    def ssh_options(self) -> List[str]:
        return ["-o", f"StrictHostKeyChecking={self.value}"]


class TransferState(str, Enum):
    PENDING = "pending"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class Target:
    host: str
    username: str
    remote_dir: str = "~/"

    @property
    def login(self) -> str:
        return f"{self.username}@{self.host}"

    @property
    def destination(self) -> str:
        return f"{self.login}:{self.remote_dir}"

    def __str__(self) -> str:
        return self.login


@dataclass
class TransferOutcome:
    target: Target
    state: TransferState = TransferState.PENDING
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.state is TransferState.SUCCEEDED


@dataclass
class TransferReport:
    """Per-target outcomes, kept in the order the targets were given."""

    outcomes: List[TransferOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def success_count(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failures(self) -> List[Target]:
        return [o.target for o in self.outcomes if o.state is TransferState.FAILED]

    @property
    def all_succeeded(self) -> bool:
        return self.success_count == self.total


def report_summary(report: TransferReport, reporter: Reporter) -> None:
    reporter.section("Results")
    reporter.success(f"Success: {report.success_count}/{report.total}")
    if report.failures:
        reporter.error(f"Failed: {len(report.failures)} servers")
        reporter.error(f"Failed servers: {' '.join(t.host for t in report.failures)}")


# ----------------------------------------------------------------
# Runner
# ----------------------------------------------------------------
class BatchTransferRunner:
    """Ship one validated file set to many targets."""

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        reporter: Optional[Reporter] = None,
        host_key_policy: HostKeyPolicy = HostKeyPolicy.ACCEPT_ANY,
        max_workers: int = 1,
    ) -> None:
        self.runner = runner or CommandRunner()
        self.reporter = reporter or NullReporter()
        self.host_key_policy = HostKeyPolicy(host_key_policy)
        self.max_workers = max(1, max_workers)

    def build_command(self, files: Sequence[str], target: Target, private_key: Union[str, Path]) -> List[str]:
        return [
            "scp",
            "-i",
            str(private_key),
            *self.host_key_policy.ssh_options(),
            "--",
            *files,
            target.destination,
        ]

    def run(
        self,
        files: Iterable[str],
        targets: Iterable[Target],
        private_key: Union[str, Path],
    ) -> TransferReport:
        """
        Validate the file set, then deliver it to every target.

        Raises:
            ValueError: no files or no targets
            NotFoundError: the private key does not exist
            ValidationError: at least one local file is missing; nothing is sent
        """
        files = list(files)
        targets = list(targets)
        if not files:
            raise ValueError("No files to transfer")
        if not targets:
            raise ValueError("No target servers given")
        key = Path(private_key)
        if not key.is_file():
            raise NotFoundError(str(key), "Private key")

        require_all_present(validate_paths(files))

        if self.host_key_policy is HostKeyPolicy.ACCEPT_ANY:
            self.reporter.warning("Host key checking is disabled (StrictHostKeyChecking=no)")

        outcomes = [TransferOutcome(t) for t in targets]
        if self.max_workers == 1 or len(outcomes) == 1:
            for outcome in outcomes:
                self._attempt(outcome, files, key)
        else:
            # Repeated targets share a group so they never run concurrently.
            groups: Dict[Target, List[TransferOutcome]] = {}
            for outcome in outcomes:
                groups.setdefault(outcome.target, []).append(outcome)
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [
                    executor.submit(self._attempt_group, group, files, key)
                    for group in groups.values()
                ]
                for future in futures:
                    future.result()
        return TransferReport(outcomes)

    def _attempt_group(self, group: List[TransferOutcome], files: List[str], key: Path) -> None:
        for outcome in group:
            self._attempt(outcome, files, key)

    def _attempt(self, outcome: TransferOutcome, files: List[str], key: Path) -> None:
        target = outcome.target
        outcome.state = TransferState.ATTEMPTING
        self.reporter.info(f"Copying {len(files)} files to {target.destination}")
        try:
            self.runner.run(self.build_command(files, target, key), capture_output=False)
        except (ExecutionError, TimeoutError, NotFoundError) as e:
            outcome.state = TransferState.FAILED
            outcome.error = str(e)
            logger.debug(f"Transfer to {target} failed: {e}")
            self.reporter.error(f"Error copying files to {target}: {e}")
            return
        outcome.state = TransferState.SUCCEEDED
        self.reporter.success(f"Successfully copied files to {target.destination}")
