"""
Logrotate retention and password-quality compliance.

The workflow is split in two: scan_system() and build_plan() only read and
decide, apply_plan() performs the edits. The CLI shows the plan and asks for
confirmation in between.

Checks:
  * every active `rotate N` directive in logrotate.conf and logrotate.d,
    including the per-log blocks, must be >= 13
  * pwquality.conf must require one digit, upper, lower and special character
    (dcredit/ucredit/lcredit/ocredit = -1) and all four classes (minclass = 4)

Follow-up checks after remediation: logrotate syntax, ClamAV daemon state,
nodev/nosuid on the sensitive mount points, and remounting them.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import ExecutionError, NotFoundError, TimeoutError, VerificationError
from .patcher import (
    Absent,
    PatchResult,
    SettingRule,
    SettingStatus,
    ThresholdRule,
    describe,
    is_backup_name,
    patch_file,
    scan,
    scan_rules,
)
from .reporting import NullReporter, Reporter
from .runner import CommandRunner

logger = logging.getLogger(__name__)

PWQUALITY_DESCRIPTIONS = {
    "dcredit": "minimum 1 digit",
    "ucredit": "minimum 1 uppercase",
    "lcredit": "minimum 1 lowercase",
    "ocredit": "minimum 1 special character",
    "minclass": "all 4 character classes required",
}
SECURE_MOUNT_OPTIONS = ("nodev", "nosuid")


# ----------------------------------------------------------------
# Rules
# ----------------------------------------------------------------
def pwquality_rules(expected: Mapping[str, str]) -> List[SettingRule]:
    return [
        SettingRule(name, str(value), PWQUALITY_DESCRIPTIONS.get(name, ""))
        for name, value in expected.items()
    ]


def logrotate_rule(minimum: int = 13) -> ThresholdRule:
    return ThresholdRule("rotate", minimum, f"keep at least {minimum} rotated logs")


def logrotate_files(conf: Union[str, Path], conf_dir: Union[str, Path]) -> List[Path]:
    """
    The main config (if present) followed by readable files in the drop-in dir.

    Backups left by earlier fixes sit next to the originals and are skipped.
    """
    files = []
    conf, conf_dir = Path(conf), Path(conf_dir)
    if conf.is_file():
        files.append(conf)
    if conf_dir.is_dir():
        for path in sorted(conf_dir.iterdir()):
            if is_backup_name(path.name):
                continue
            if path.is_file() and os.access(path, os.R_OK):
                files.append(path)
    return files


# ----------------------------------------------------------------
# Scanning & planning
# ----------------------------------------------------------------
@dataclass(frozen=True)
class FileScan:
    path: Path
    statuses: Tuple[SettingStatus, ...] = ()
    exists: bool = True

    @property
    def compliant(self) -> bool:
        return self.exists and all(s.compliant for s in self.statuses)

    @property
    def fixable(self) -> List[SettingStatus]:
        return [s for s in self.statuses if s.fixable]

    @property
    def absent(self) -> List[str]:
        return [s.name for s in self.statuses if isinstance(s.value, Absent)]


def scan_logrotate(paths: Sequence[Path], rule: ThresholdRule) -> List[FileScan]:
    return [FileScan(path, (scan(path, rule),)) for path in paths]


def scan_pwquality(path: Union[str, Path], rules: Sequence[SettingRule]) -> FileScan:
    path = Path(path)
    if not path.is_file():
        return FileScan(path, tuple(SettingStatus(r.name, Absent(), False) for r in rules), exists=False)
    return FileScan(path, tuple(scan_rules(path, rules)))


@dataclass
class RemediationPlan:
    logrotate: List[FileScan] = field(default_factory=list)
    pwquality: Optional[FileScan] = None
    rotate_rule: ThresholdRule = field(default_factory=logrotate_rule)
    pwquality_rules: List[SettingRule] = field(default_factory=list)

    @property
    def logrotate_fixes(self) -> List[FileScan]:
        return [s for s in self.logrotate if s.fixable]

    @property
    def logrotate_without_directive(self) -> List[Path]:
        return [s.path for s in self.logrotate if s.absent]

    @property
    def pwquality_fixes(self) -> List[SettingStatus]:
        return self.pwquality.fixable if self.pwquality else []

    @property
    def manual_actions(self) -> List[str]:
        """Settings that cannot be fixed automatically because they are absent."""
        if self.pwquality is None:
            return []
        if not self.pwquality.exists:
            return [f"{self.pwquality.path}: file not found"]
        return [f"{self.pwquality.path}: {name} not found (needs add)" for name in self.pwquality.absent]

    @property
    def needs_changes(self) -> bool:
        return bool(self.logrotate_fixes or self.pwquality_fixes)

    @property
    def compliant(self) -> bool:
        logrotate_ok = all(s.compliant or s.absent for s in self.logrotate)
        return logrotate_ok and (self.pwquality is None or self.pwquality.compliant)


def build_plan(
    logrotate_scans: Sequence[FileScan],
    pwquality_scan: Optional[FileScan],
    rotate_rule: ThresholdRule,
    rules: Sequence[SettingRule],
) -> RemediationPlan:
    return RemediationPlan(list(logrotate_scans), pwquality_scan, rotate_rule, list(rules))


def scan_system(
    logrotate_conf: Union[str, Path],
    logrotate_dir: Union[str, Path],
    pwquality_file: Union[str, Path],
    rotate_minimum: int,
    expected: Mapping[str, str],
) -> RemediationPlan:
    rule = logrotate_rule(rotate_minimum)
    rules = pwquality_rules(expected)
    return build_plan(
        scan_logrotate(logrotate_files(logrotate_conf, logrotate_dir), rule),
        scan_pwquality(pwquality_file, rules),
        rule,
        rules,
    )


# ----------------------------------------------------------------
# Applying
# ----------------------------------------------------------------
@dataclass
class RemediationReport:
    patched: List[PatchResult] = field(default_factory=list)
    failures: List[VerificationError] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.patched)

    @property
    def ok(self) -> bool:
        return not self.failures and not self.errors


def apply_plan(plan: RemediationPlan, reporter: Optional[Reporter] = None, now: Optional[datetime] = None) -> RemediationReport:
    """
    Patch every fixable file in the plan.

    A verification failure stops work on that file only; it is recorded with
    the original and attempted values and never retried.
    """
    reporter = reporter or NullReporter()
    report = RemediationReport()

    if plan.logrotate_fixes:
        reporter.section("Applying Logrotate Fixes")
    for file_scan in plan.logrotate_fixes:
        reporter.info(f"Processing: {file_scan.path}")
        result = _apply_one(report, reporter, file_scan.path, [plan.rotate_rule], now)
        if result is not None:
            for change in result.changes:
                reporter.success(
                    f"Updated: rotate {describe(change.original)} → {change.attempted} (line {change.line_number})"
                )

    if plan.pwquality is not None and plan.pwquality_fixes:
        reporter.section("Applying Password Quality Fixes")
        result = _apply_one(report, reporter, plan.pwquality.path, plan.pwquality_rules, now)
        if result is not None:
            if result.backup:
                reporter.success(f"Backup created: {result.backup.name}")
            for change in result.changes:
                reporter.success(f"Set {change.name} = {change.attempted}")
    for action in plan.manual_actions:
        reporter.warning(f"Manual action required: {action}")
    return report


def _apply_one(
    report: RemediationReport,
    reporter: Reporter,
    path: Path,
    rules: Sequence,
    now: Optional[datetime],
) -> Optional[PatchResult]:
    try:
        result = patch_file(path, rules, now=now)
    except VerificationError as e:
        logger.error(f"Verification failed for {e.setting} in {e.path}")
        report.failures.append(e)
        reporter.error(f"Verification failed: expected {e.attempted}, got {e.actual} in {e.path}")
        return None
    except (NotFoundError, OSError) as e:
        report.errors.append(f"{path}: {e}")
        reporter.error(f"Failed to update: {path} ({e})")
        return None
    if result.changed:
        report.patched.append(result)
    return result


# ----------------------------------------------------------------
# Mount options
# ----------------------------------------------------------------
@dataclass(frozen=True)
class MountCheck:
    mount_point: str
    mounted: bool
    nodev: bool = False
    nosuid: bool = False

    @property
    def missing(self) -> List[str]:
        if not self.mounted:
            return []
        return [opt for opt, ok in (("nodev", self.nodev), ("nosuid", self.nosuid)) if not ok]


def _unescape_mount_field(value: str) -> str:
    return value.replace("\\040", " ").replace("\\011", "\t").replace("\\134", "\\")


def parse_mount_options(text: str) -> Dict[str, List[str]]:
    """Parse /proc/mounts content into {mount point: options}."""
    mounts: Dict[str, List[str]] = {}
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 4:
            continue
        mounts[_unescape_mount_field(parts[1])] = parts[3].split(",")
    return mounts


def check_mount_security(mounts: Mapping[str, Sequence[str]], mount_points: Sequence[str]) -> List[MountCheck]:
    checks = []
    for point in mount_points:
        options = mounts.get(point)
        if options is None:
            checks.append(MountCheck(point, False))
        else:
            checks.append(MountCheck(point, True, "nodev" in options, "nosuid" in options))
    return checks


def read_mounts(path: Union[str, Path] = "/proc/mounts") -> Dict[str, List[str]]:
    return parse_mount_options(Path(path).read_text())


def remount_filesystems(
    runner: CommandRunner,
    mount_points: Sequence[str],
    reporter: Optional[Reporter] = None,
) -> Tuple[List[str], List[str]]:
    """Remount each point so fstab option changes take effect. Failures are warnings."""
    reporter = reporter or NullReporter()
    remounted, failed = [], []
    for point in mount_points:
        reporter.info(f"Remounting: {point}")
        try:
            runner.run(["mount", "-o", "remount", point])
        except (ExecutionError, TimeoutError, NotFoundError):
            failed.append(point)
            reporter.warning(f"Failed to remount: {point} (may not be mounted or already remounted)")
            continue
        remounted.append(point)
        reporter.success(f"Successfully remounted: {point}")
    return remounted, failed


# ----------------------------------------------------------------
# Post-remediation checks
# ----------------------------------------------------------------
def check_logrotate_config(runner: CommandRunner, conf: Union[str, Path]) -> Optional[bool]:
    """Dry-run logrotate against the main config. None when logrotate is not installed."""
    if not runner.exists("logrotate"):
        return None
    return runner.succeeds(["logrotate", "-d", str(conf)])


@dataclass
class ClamAVStatus:
    installed: bool = False
    active: bool = False
    enabled: bool = False
    database_ok: Optional[bool] = None
    socket_present: bool = False
    started: Optional[bool] = None


def clamav_status(
    runner: CommandRunner,
    unit: str = "clamd@scan",
    socket_path: Union[str, Path] = "/run/clamd.scan/clamd.sock",
    start_if_inactive: bool = True,
) -> ClamAVStatus:
    status = ClamAVStatus(installed=runner.exists("clamscan"))
    if not status.installed:
        return status
    status.active = runner.succeeds(["systemctl", "is-active", "--quiet", unit])
    if status.active:
        status.enabled = runner.succeeds(["systemctl", "is-enabled", "--quiet", unit])
        if runner.exists("freshclam"):
            status.database_ok = runner.succeeds(["freshclam", "--version"])
    elif start_if_inactive:
        status.started = runner.succeeds(["systemctl", "start", unit])
    try:
        status.socket_present = Path(socket_path).is_socket()
    except OSError:
        status.socket_present = False
    return status
