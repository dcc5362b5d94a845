"""
Ansible vault and inventory scaffolding.

For a vault name and a host list this writes:

    <vault_dir>/<name>.yml              host list
    <vault_dir>/inventory_<name>.yml    inventory using ~/.ssh/id_rsa_<name>
    <vault_dir>/<host>.yml              per-host secrets, encrypted

Per-host content is piped to `ansible-vault encrypt`. Without ansible-vault
the plaintext is written instead and a DegradedModeWarning is raised.
"""

import logging
import warnings
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from .errors import DegradedModeWarning, ExecutionError, TimeoutError
from .reporting import NullReporter, Reporter
from .runner import CommandRunner

logger = logging.getLogger(__name__)


def _stamp(created: datetime) -> str:
    return created.strftime("%a %b %d %H:%M:%S %Y")


def render_vault_file(name: str, hosts: Sequence[str], created: datetime) -> str:
    lines = [
        f"# Ansible Vault File: {name}",
        f"# Created: {_stamp(created)}",
        "",
        f"vault_name: {name}",
        "hosts:",
    ]
    lines.extend(f"  - {host}" for host in hosts)
    return "\n".join(lines) + "\n"


def render_inventory(name: str, hosts: Sequence[str], created: datetime, user: str = "root") -> str:
    key_file = f"~/.ssh/id_rsa_{name}"
    lines = [
        f"# Ansible Inventory File: {name}",
        f"# Created: {_stamp(created)}",
        "",
        "all:",
        "  hosts:",
    ]
    for host in hosts:
        lines.extend(
            [
                f"    {host}:",
                f"      ansible_host: {host}",
                f"      ansible_user: {user}",
                f"      ansible_ssh_private_key_file: {key_file}",
            ]
        )
    lines.extend(
        [
            "  vars:",
            f"    ansible_ssh_private_key_file: {key_file}",
            f"    ansible_user: {user}",
            "    ansible_ssh_common_args: '-o StrictHostKeyChecking=no'",
        ]
    )
    return "\n".join(lines) + "\n"


def render_host_content(host: str, content: str, created: datetime) -> str:
    return f"# Vault content for {host}\n# Created: {_stamp(created)}\n\n{content}\n"


@dataclass
class VaultReport:
    vault_file: Path
    inventory_file: Path
    encrypted: List[Path] = field(default_factory=list)
    plaintext: List[Path] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def host_files(self) -> List[Path]:
        return self.encrypted + self.plaintext


class VaultBuilder:
    def __init__(
        self,
        vault_dir: Union[str, Path],
        runner: Optional[CommandRunner] = None,
        reporter: Optional[Reporter] = None,
        ansible_user: str = "root",
        vault_password_file: Optional[str] = None,
    ) -> None:
        self.vault_dir = Path(vault_dir)
        self.runner = runner or CommandRunner()
        self.reporter = reporter or NullReporter()
        self.ansible_user = ansible_user
        self.vault_password_file = vault_password_file

    def encrypt_command(self, output: Path) -> List[str]:
        cmd = ["ansible-vault", "encrypt", "--output", str(output)]
        if self.vault_password_file:
            cmd.extend(["--vault-password-file", self.vault_password_file])
        cmd.append("-")
        return cmd

    def create(
        self,
        name: str,
        hosts: Sequence[str],
        content_for: Callable[[str], str],
        created: Optional[datetime] = None,
    ) -> VaultReport:
        if not name.strip():
            raise ValueError("Vault name cannot be empty")
        if not hosts:
            raise ValueError("No hosts given")
        created = created or datetime.now()

        if not self.vault_dir.is_dir():
            self.reporter.info(f"Creating host_vars directory: {self.vault_dir}")
            self.vault_dir.mkdir(parents=True, exist_ok=True)

        report = VaultReport(
            vault_file=self.vault_dir / f"{name}.yml",
            inventory_file=self.vault_dir / f"inventory_{name}.yml",
        )
        report.vault_file.write_text(render_vault_file(name, hosts, created))
        report.inventory_file.write_text(render_inventory(name, hosts, created, self.ansible_user))

        can_encrypt = self.runner.exists("ansible-vault")
        if not can_encrypt:
            message = "ansible-vault is not installed; host vault files will be written as plain text"
            warnings.warn(message, DegradedModeWarning, stacklevel=2)
            self.reporter.warning(message)

        self.reporter.info("Creating vault files for each host...")
        for host in hosts:
            content = (content_for(host) or "").strip()
            if not content:
                self.reporter.warning(f"Vault content is empty for {host}, skipping...")
                report.skipped.append(host)
                continue
            host_file = self.vault_dir / f"{host}.yml"
            text = render_host_content(host, content, created)
            if not can_encrypt:
                host_file.write_text(text)
                report.plaintext.append(host_file)
                self.reporter.success(f"Created plain text vault file: {host_file}")
                continue
            try:
                self.runner.run(self.encrypt_command(host_file), input_text=text)
            except (ExecutionError, TimeoutError) as e:
                report.failed.append(host)
                self.reporter.error(f"Failed to create vault file for {host}: {e}")
                continue
            report.encrypted.append(host_file)
            self.reporter.success(f"Created encrypted vault file: {host_file}")
        return report
