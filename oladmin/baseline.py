"""
Oracle Linux 8 security baseline.

Installs and enables firewalld, the SELinux Python bindings and ClamAV,
rewrites the Oracle Linux repository definitions, and produces a GRUB2
PBKDF2 password hash for use in playbooks. Every step goes through a
CommandRunner so it can be exercised without a real system.
"""

import logging
import os
import re
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from .errors import ExecutionError, NotFoundError, TimeoutError
from .patcher import PatchResult, uncomment_directives
from .reporting import NullReporter, Reporter
from .runner import CommandRunner

logger = logging.getLogger(__name__)

SUPPORTED_RELEASE = 8
MIN_BOOTLOADER_PASSWORD_LENGTH = 8
GPG_KEY = "file:///etc/pki/rpm-gpg/RPM-GPG-KEY-oracle"
YUM_BASE = "https://yum$ociregion.$ocidomain/repo/OracleLinux/OL8"

CLAMAV_PACKAGES = [
    "clamav",
    "clamav-update",
    "clamav-devel",
    "clamav-lib",
    "clamav-server",
    "clamav-server-systemd",
]
CLAMD_DIRECTIVES = [
    "LogFile",
    "LogFileMaxSize",
    "LogTime",
    "LogSyslog",
    "LogRotate",
    "DatabaseDirectory",
    "LocalSocket",
    "FixStaleSocket",
]
CLAMD_USER = "clamscan"
CLAMD_UNIT_TEXT = """\
[Unit]
Description = clamd scanner (%i) daemon
Documentation=man:clamd(8) man:clamd.conf(5) https://www.clamav.net/documents/
After = syslog.target nss-lookup.target network.target

[Service]
Type = forking
ExecStart = /usr/sbin/clamd -c /etc/clamd.d/%i.conf
# Reload the database
ExecReload=/bin/kill -USR2 $MAINPID
Restart = on-failure
TimeoutStartSec=420

[Install]
WantedBy = multi-user.target
"""


# ----------------------------------------------------------------
# Repository definitions
# ----------------------------------------------------------------
@dataclass(frozen=True)
class RepoSection:
    repo_id: str
    name: str
    path: str

    def render(self) -> str:
        return "\n".join(
            [
                f"[{self.repo_id}]",
                f"name={self.name}",
                f"baseurl={YUM_BASE}/{self.path}/$basearch/",
                f"gpgkey={GPG_KEY}",
                "gpgcheck=1",
                "enabled=1",
                "repo_gpgcheck=0",
            ]
        )


REPO_FILES = {
    "oraclelinux-developer-ol8.repo": [
        RepoSection("ol8_developer", "Oracle Linux 8 Development Packages ($basearch)", "developer"),
    ],
    "oracle-linux-ol8.repo": [
        RepoSection("ol8_baseos_latest", "Oracle Linux 8 BaseOS Latest ($basearch)", "baseos/latest"),
        RepoSection("ol8_appstream", "Oracle Linux 8 Application Stream ($basearch)", "appstream"),
    ],
    "uek-ol8.repo": [
        RepoSection(
            "ol8_UEKR7",
            "Latest Unbreakable Enterprise Kernel Release 7 for Oracle Linux $releasever ($basearch)",
            "UEKR7",
        ),
    ],
}
EPEL_REPO_FILE = "oracle-epel-ol8.repo"
EPEL_SECTIONS = [
    RepoSection(
        "ol8_developer_EPEL",
        "Oracle Linux $releasever EPEL Packages for Development ($basearch)",
        "developer/EPEL",
    ),
    RepoSection(
        "ol8_developer_EPEL_modular",
        "Oracle Linux $releasever EPEL Modular Packages for Development ($basearch)",
        "developer/EPEL/modular",
    ),
]
EXPECTED_REPO_IDS = ["ol8_developer", "ol8_baseos_latest", "ol8_appstream", "ol8_UEKR7"]


def render_repo_file(sections: Sequence[RepoSection]) -> str:
    return "\n\n".join(section.render() for section in sections) + "\n"


# ----------------------------------------------------------------
# OS detection
# ----------------------------------------------------------------
def detect_oracle_release(path: Union[str, Path] = "/etc/oracle-release") -> int:
    """
    Return the Oracle Linux major version.

    Raises:
        NotFoundError: the release file is missing (not Oracle Linux)
    """
    path = Path(path)
    if not path.is_file():
        raise NotFoundError(str(path), "Oracle Linux release file")
    match = re.search(r"\d+", path.read_text())
    if not match:
        raise NotFoundError(str(path), "Oracle Linux version")
    return int(match.group())


# ----------------------------------------------------------------
# Firewall & SELinux
# ----------------------------------------------------------------
def setup_firewall(runner: CommandRunner, reporter: Optional[Reporter] = None) -> None:
    """
    Install, enable and start firewalld.

    Raises:
        ExecutionError: a step failed or the service is not active afterwards
    """
    reporter = reporter or NullReporter()
    reporter.info("Installing and configuring firewalld...")
    runner.run(["dnf", "-y", "install", "firewalld"])
    runner.run(["systemctl", "enable", "firewalld"])
    runner.run(["systemctl", "start", "firewalld"])
    check = ["systemctl", "is-active", "--quiet", "firewalld"]
    if not runner.succeeds(check):
        reporter.error("Failed to start firewalld")
        raise ExecutionError(check, 3)
    reporter.success("Firewalld is running")


def setup_selinux(runner: CommandRunner, reporter: Optional[Reporter] = None) -> bool:
    reporter = reporter or NullReporter()
    reporter.info("Installing SELinux packages...")
    runner.run(["dnf", "-y", "install", "python3-libselinux"])
    installed = runner.succeeds(["rpm", "-q", "python3-libselinux"])
    if installed:
        reporter.success("SELinux packages installed")
    else:
        reporter.warning("python3-libselinux does not appear to be installed")
    return installed


# ----------------------------------------------------------------
# Bootloader password
# ----------------------------------------------------------------
def validate_bootloader_password(password: str, confirm: str) -> str:
    if password != confirm:
        raise ValueError("Passwords do not match")
    if len(password) < MIN_BOOTLOADER_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_BOOTLOADER_PASSWORD_LENGTH} characters long")
    return password


def parse_grub_hash(output: str) -> str:
    match = re.search(r"grub\.pbkdf2\.\S+", output)
    if not match:
        raise ValueError("No PBKDF2 hash found in grub2-mkpasswd-pbkdf2 output")
    return match.group()


def generate_grub_password_hash(runner: CommandRunner, password: str) -> str:
    """Feed the password twice to grub2-mkpasswd-pbkdf2 and return the hash."""
    result = runner.run(["grub2-mkpasswd-pbkdf2"], input_text=f"{password}\n{password}\n")
    return parse_grub_hash(result.stdout)


# ----------------------------------------------------------------
# Repositories
# ----------------------------------------------------------------
def backup_repo_files(
    repos_dir: Union[str, Path],
    reporter: Optional[Reporter] = None,
    now: Optional[datetime] = None,
) -> Tuple[Path, List[Path]]:
    """Copy the managed repo files that exist into backup.<timestamp>/."""
    reporter = reporter or NullReporter()
    repos_dir = Path(repos_dir)
    now = now or datetime.now()
    backup_dir = repos_dir / f"backup.{now.strftime('%Y%m%d_%H%M%S')}"
    backup_dir.mkdir(parents=True, exist_ok=True)
    copied = []
    for name in [*REPO_FILES, EPEL_REPO_FILE]:
        source = repos_dir / name
        if source.is_file():
            copied.append(Path(shutil.copy2(source, backup_dir / name)))
    reporter.success(f"Repository files backed up to {backup_dir}")
    return backup_dir, copied


def write_repo_files(repos_dir: Union[str, Path], reporter: Optional[Reporter] = None) -> List[Path]:
    reporter = reporter or NullReporter()
    repos_dir = Path(repos_dir)
    written = []
    for name, sections in REPO_FILES.items():
        path = repos_dir / name
        path.write_text(render_repo_file(sections))
        written.append(path)
        reporter.success(f"{name} configured")
    return written


def check_repositories(runner: CommandRunner, reporter: Optional[Reporter] = None) -> List[str]:
    """Clean the dnf cache and return the managed repo ids dnf reports."""
    reporter = reporter or NullReporter()
    reporter.info("Testing repository configuration...")
    runner.run(["dnf", "clean", "all"])
    listing = runner.output(["dnf", "repolist"])
    found = [repo_id for repo_id in EXPECTED_REPO_IDS if re.search(rf"^{repo_id}\b", listing, re.M)]
    if found:
        reporter.success("Repository configuration test passed")
    else:
        reporter.warning("Repository configuration test failed; check the repository files")
    return found


# ----------------------------------------------------------------
# ClamAV
# ----------------------------------------------------------------
@dataclass
class ClamAVSetupResult:
    scan_conf: Optional[PatchResult] = None
    database_updated: bool = False
    active: bool = False


def setup_clamav(
    runner: CommandRunner,
    repos_dir: Union[str, Path],
    unit_dir: Union[str, Path],
    scan_conf: Union[str, Path],
    run_dir: Union[str, Path],
    db_dir: Union[str, Path],
    unit: str = "clamd@scan",
    reporter: Optional[Reporter] = None,
    owner: Optional[str] = CLAMD_USER,
) -> ClamAVSetupResult:
    """
    Install ClamAV from Oracle's EPEL repository and run clamd@scan.

    Package and systemd steps raise ExecutionError on failure. A failed
    freshclam only produces a warning since the daemon can start with an
    older database.
    """
    reporter = reporter or NullReporter()
    result = ClamAVSetupResult()

    reporter.section("Installing ClamAV")
    reporter.info("Installing Oracle EPEL release package...")
    runner.run(["dnf", "install", "-y", "oracle-epel-release-el8"])
    (Path(repos_dir) / EPEL_REPO_FILE).write_text(render_repo_file(EPEL_SECTIONS))
    reporter.success("EPEL repository file configured")

    runner.run(["dnf", "config-manager", "--set-enabled", "ol8_developer_EPEL"])
    runner.run(["dnf", "clean", "all", "-y"])
    runner.run(["dnf", "makecache", "-y"])
    reporter.info("Updating system packages...")
    runner.run(["dnf", "update", "-y"])
    reporter.info("Installing ClamAV packages...")
    runner.run(["dnf", "install", "-y", *CLAMAV_PACKAGES])

    unit_file = Path(unit_dir) / "clamd@.service"
    unit_file.write_text(CLAMD_UNIT_TEXT)
    reporter.success(f"Wrote {unit_file}")
    _reload_and_enable(runner, unit)

    scan_conf = Path(scan_conf)
    if scan_conf.is_file():
        result.scan_conf = uncomment_directives(scan_conf, CLAMD_DIRECTIVES)
        if result.scan_conf.changed:
            reporter.success("ClamAV scan configuration updated")
        else:
            reporter.info("ClamAV scan configuration already properly configured")
    else:
        reporter.warning(f"ClamAV scan configuration file not found: {scan_conf}")

    run_dir, db_dir = Path(run_dir), Path(db_dir)
    run_dir.mkdir(parents=True, exist_ok=True)
    db_dir.mkdir(parents=True, exist_ok=True)
    if owner:
        _chown_tree(run_dir, owner, recursive=False)
        _chown_tree(db_dir, owner)
    os.chmod(db_dir, 0o755)

    reporter.info("Updating ClamAV virus database...")
    try:
        runner.run(["freshclam"])
        result.database_updated = True
        reporter.success("ClamAV virus database updated successfully")
    except (ExecutionError, TimeoutError) as e:
        reporter.warning(f"ClamAV virus database update may have failed, continuing: {e}")

    runner.run(["systemctl", "restart", unit])
    result.active = runner.succeeds(["systemctl", "is-active", "--quiet", unit])
    if result.active:
        reporter.success("ClamAV service is running")
    else:
        reporter.warning("ClamAV service may not be running properly")
    return result


def _chown_tree(path: Path, owner: str, recursive: bool = True) -> None:
    shutil.chown(path, owner, owner)
    if not recursive:
        return
    for root, dirs, files in os.walk(path):
        for name in [*dirs, *files]:
            shutil.chown(os.path.join(root, name), owner, owner)


def _reload_and_enable(runner: CommandRunner, unit: str) -> None:
    runner.run(["systemctl", "daemon-reexec"])
    runner.run(["systemctl", "daemon-reload"])
    runner.run(["systemctl", "enable", "--now", unit])


# ----------------------------------------------------------------
# Summary
# ----------------------------------------------------------------
def collect_summary(
    runner: CommandRunner,
    repos_dir: Union[str, Path],
    clamd_unit: str = "clamd@scan",
) -> List[Tuple[str, bool]]:
    repos_dir = Path(repos_dir)
    checks = [
        ("Firewalld", runner.succeeds(["systemctl", "is-active", "--quiet", "firewalld"])),
        ("SELinux packages", runner.succeeds(["rpm", "-q", "python3-libselinux"])),
    ]
    for name in [*REPO_FILES, EPEL_REPO_FILE]:
        checks.append((name, (repos_dir / name).is_file()))
    checks.append(("ClamAV antivirus", runner.succeeds(["systemctl", "is-active", "--quiet", clamd_unit])))
    return checks
