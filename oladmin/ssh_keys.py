"""
SSH key generation and distribution.

Keys live at <ssh_dir>/id_rsa_<name> (private) and id_rsa_<name>.pub.
Distribution runs ssh-copy-id once per server with host key checking
disabled and forced overwrite, exactly as the provisioning workflow expects;
ssh-copy-id prompts for the remote password itself when needed.
"""

import logging
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from .errors import DegradedModeWarning, ExecutionError, NotFoundError, TimeoutError
from .reporting import NullReporter, Reporter
from .runner import CommandRunner
from .transfer import HostKeyPolicy, Target, TransferOutcome, TransferReport, TransferState

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ["ssh-keygen", "ssh-copy-id"]
OPTIONAL_TOOLS = ["ansible-vault"]


@dataclass(frozen=True)
class KeyPair:
    name: str
    ssh_dir: Path

    @property
    def private_key(self) -> Path:
        return self.ssh_dir / f"id_rsa_{self.name}"

    @property
    def public_key(self) -> Path:
        return self.ssh_dir / f"id_rsa_{self.name}.pub"

    def exists(self) -> bool:
        return self.private_key.exists() or self.public_key.exists()


def check_dependencies(runner: CommandRunner, reporter: Optional[Reporter] = None) -> List[str]:
    """
    Verify the OpenSSH client tools are installed.

    Returns the optional tools that are missing. A missing ansible-vault is a
    DegradedModeWarning: vault files will be written as plain text.

    Raises:
        NotFoundError: one or more required tools are missing
    """
    reporter = reporter or NullReporter()
    missing = [tool for tool in REQUIRED_TOOLS if not runner.exists(tool)]
    if missing:
        raise NotFoundError(", ".join(missing), "Required tools")
    missing_optional = [tool for tool in OPTIONAL_TOOLS if not runner.exists(tool)]
    for tool in missing_optional:
        message = f"{tool} is not installed. Vault files will be created as plain text."
        warnings.warn(message, DegradedModeWarning, stacklevel=2)
        reporter.warning(message)
    return missing_optional


class SSHKeyManager:
    def __init__(
        self,
        ssh_dir: Union[str, Path],
        runner: Optional[CommandRunner] = None,
        reporter: Optional[Reporter] = None,
        key_type: str = "rsa",
        key_bits: int = 4096,
        host_key_policy: HostKeyPolicy = HostKeyPolicy.ACCEPT_ANY,
    ) -> None:
        self.ssh_dir = Path(ssh_dir)
        self.runner = runner or CommandRunner()
        self.reporter = reporter or NullReporter()
        self.key_type = key_type
        self.key_bits = key_bits
        self.host_key_policy = HostKeyPolicy(host_key_policy)

    def key(self, name: str) -> KeyPair:
        return KeyPair(name, self.ssh_dir)

    def ensure_ssh_dir(self) -> bool:
        """Create the SSH directory with mode 700. Returns True if it was created."""
        if self.ssh_dir.is_dir():
            return False
        self.reporter.info(f"Creating SSH directory: {self.ssh_dir}")
        self.ssh_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(self.ssh_dir, 0o700)
        return True

    def generate_key(self, name: str, overwrite: bool = False) -> KeyPair:
        """
        Generate a passphrase-less key pair commented with its name.

        Raises:
            ValueError: empty key name
            FileExistsError: the key exists and overwrite was not requested
            ExecutionError: ssh-keygen failed
        """
        if not name.strip():
            raise ValueError("Key name cannot be empty")
        pair = self.key(name.strip())
        if pair.exists():
            if not overwrite:
                raise FileExistsError(f"SSH key '{pair.name}' already exists")
            # ssh-keygen asks before overwriting; remove the old pair instead.
            for path in (pair.private_key, pair.public_key):
                if path.exists():
                    path.unlink()
        self.ensure_ssh_dir()
        self.reporter.info("Generating SSH key...")
        self.runner.run(
            [
                "ssh-keygen",
                "-t", self.key_type,
                "-b", str(self.key_bits),
                "-f", str(pair.private_key),
                "-N", "",
                "-C", pair.name,
            ]
        )
        os.chmod(pair.private_key, 0o600)
        os.chmod(pair.public_key, 0o644)
        self.reporter.success(f"SSH key generated: {pair.private_key}")
        return pair

    def copy_command(self, pair: KeyPair, target: Target) -> List[str]:
        return [
            "ssh-copy-id",
            "-f",
            *self.host_key_policy.ssh_options(),
            "-i",
            str(pair.public_key),
            target.login,
        ]

    def copy_to_servers(
        self,
        name: str,
        servers: Iterable[str],
        username_for: Callable[[str], str],
    ) -> TransferReport:
        """
        Install the public key on every server, one at a time.

        `username_for` is asked for each server's login; an empty answer
        fails that server without running anything. Failures never stop
        the remaining servers.

        Raises:
            NotFoundError: the public key does not exist
        """
        pair = self.key(name)
        if not pair.public_key.is_file():
            raise NotFoundError(str(pair.public_key), "Public key")

        report = TransferReport()
        for server in servers:
            username = (username_for(server) or "").strip()
            outcome = TransferOutcome(Target(server, username, ""))
            report.outcomes.append(outcome)
            if not username:
                outcome.state = TransferState.FAILED
                outcome.error = "Username cannot be empty"
                self.reporter.error(f"Username cannot be empty for {server}")
                continue
            outcome.state = TransferState.ATTEMPTING
            self.reporter.info(f"Copying key to {outcome.target.login}...")
            try:
                self.runner.run(self.copy_command(pair, outcome.target), capture_output=False)
            except (ExecutionError, TimeoutError, NotFoundError) as e:
                outcome.state = TransferState.FAILED
                outcome.error = str(e)
                self.reporter.error(f"Error copying key to {outcome.target.login}: {e}")
                continue
            outcome.state = TransferState.SUCCEEDED
            self.reporter.success(f"Successfully copied key to {outcome.target.login}")
        return report
