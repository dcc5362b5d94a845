"""
Idempotent, verified edits of line-oriented configuration files.

A rule names one setting and the value it must have. Scanning a file puts
the setting in one of three states:

    Absent      no matching line; reported, never inserted automatically
    Commented   matching line carries a leading '#'; rewritten uncommented
    Present     active line with a value; rewritten only when non-compliant

An exact-value setting is governed by its first active line. A threshold
directive such as logrotate's `rotate N` may appear once per log block, so
every active occurrence is checked and every non-compliant one rewritten.

Every mutating call copies the file to <path>.backup.<YYYYMMDD_HHMMSS>
first (with a .1, .2 ... suffix when that name is taken), writes the new
content, then reads each rewritten line back and raises VerificationError if
it does not hold the attempted value. Running the same patch twice leaves
the file untouched the second time.

Files are decoded as UTF-8 with surrogateescape, so stray bytes in other
encodings survive a rewrite unchanged.
"""

import logging
import os
import re
import shutil
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import ClassVar, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .errors import NotFoundError, VerificationError

logger = logging.getLogger(__name__)

BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
BACKUP_NAME_RE = re.compile(r"\.backup\.\d{8}_\d{6}(?:\.\d+)?$")
ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"

PathLike = Union[str, Path]


# ----------------------------------------------------------------
# Setting values
# ----------------------------------------------------------------
@dataclass(frozen=True)
class SettingValue:
    """Base of the three setting states."""


@dataclass(frozen=True)
class Present(SettingValue):
    value: str


@dataclass(frozen=True)
class Commented(SettingValue):
    value: Optional[str] = None


@dataclass(frozen=True)
class Absent(SettingValue):
    pass


def describe(value: SettingValue) -> str:
    if isinstance(value, Present):
        return value.value
    if isinstance(value, Commented):
        return "commented out"
    return "not found"


# ----------------------------------------------------------------
# Rules
# ----------------------------------------------------------------
@dataclass(frozen=True)
class SettingRule:
    """An exact-match `name = value` setting (pwquality.conf style)."""

    name: str
    expected: str
    description: str = ""

    every_line: ClassVar[bool] = False

    @property
    def pattern(self) -> "re.Pattern[str]":
        return re.compile(
            r"^(?P<indent>[ \t]*)(?P<hash>#?)[ \t]*"
            + re.escape(self.name)
            + r"(?P<sep>[ \t]*=[ \t]*)(?P<value>.*?)[ \t]*$"
        )

    @property
    def target_value(self) -> str:
        return self.expected

    def is_compliant(self, value: str) -> bool:
        return value == self.expected

    def render(self, match: "re.Match[str]") -> str:
        return f"{match.group('indent')}{self.name} = {self.expected}"


@dataclass(frozen=True)
class ThresholdRule:
    """
    A numeric `name N` directive (logrotate style) that must be at least
    `minimum` on every active line. Non-compliant values are raised to
    exactly `minimum`.
    """

    name: str
    minimum: int
    description: str = ""

    every_line: ClassVar[bool] = True

    @property
    def pattern(self) -> "re.Pattern[str]":
        return re.compile(
            r"^(?P<indent>[ \t]*)(?P<hash>#?)[ \t]*"
            + re.escape(self.name)
            + r"(?P<sep>[ \t]+)(?P<value>-?\d+)[ \t]*$"
        )

    @property
    def target_value(self) -> str:
        return str(self.minimum)

    def is_compliant(self, value: str) -> bool:
        try:
            return int(value) >= self.minimum
        except ValueError:
            return False

    def render(self, match: "re.Match[str]") -> str:
        return f"{match.group('indent')}{self.name}{match.group('sep')}{self.minimum}"


Rule = Union[SettingRule, ThresholdRule]


@dataclass(frozen=True)
class SettingStatus:
    name: str
    value: SettingValue
    compliant: bool
    line_number: Optional[int] = None

    @property
    def needs_fix(self) -> bool:
        return not self.compliant

    @property
    def fixable(self) -> bool:
        return self.needs_fix and not isinstance(self.value, Absent)


@dataclass(frozen=True)
class SettingChange:
    name: str
    original: SettingValue
    attempted: str
    line_number: int


@dataclass
class PatchResult:
    path: Path
    statuses: List[SettingStatus] = field(default_factory=list)
    changes: List[SettingChange] = field(default_factory=list)
    backup: Optional[Path] = None

    @property
    def changed(self) -> bool:
        return bool(self.changes)

    @property
    def absent(self) -> List[str]:
        return [s.name for s in self.statuses if isinstance(s.value, Absent)]


# ----------------------------------------------------------------
# Per-path locking
# ----------------------------------------------------------------
_registry_lock = threading.Lock()
_path_locks: Dict[str, threading.Lock] = {}


@contextmanager
def file_lock(path: PathLike) -> Iterator[None]:
    """Serialize mutations of one file within this process."""
    key = os.path.realpath(path)
    with _registry_lock:
        lock = _path_locks.setdefault(key, threading.Lock())
    with lock:
        yield


# ----------------------------------------------------------------
# Scanning
# ----------------------------------------------------------------
Match = Tuple[int, "re.Match[str]"]


def _locate(lines: Sequence[str], rule: Rule) -> List[Match]:
    """
    Locate the lines that govern a setting.

    Active lines win; a commented line is only used when no active line
    exists. Exact-value rules stop at the first active line, threshold
    rules collect all of them.
    """
    pattern = rule.pattern
    active: List[Match] = []
    first_commented: Optional[Match] = None
    for i, line in enumerate(lines):
        m = pattern.match(line.rstrip("\r\n"))
        if not m:
            continue
        if not m.group("hash"):
            active.append((i, m))
            if not rule.every_line:
                break
        elif first_commented is None:
            first_commented = (i, m)
    if active:
        return active
    return [first_commented] if first_commented else []


def _status(lines: Sequence[str], rule: Rule) -> Tuple[SettingStatus, List[Match]]:
    """Classify a setting and return the lines a patch must rewrite."""
    found = _locate(lines, rule)
    if not found:
        return SettingStatus(rule.name, Absent(), False), []
    idx, m = found[0]
    if m.group("hash"):
        return SettingStatus(rule.name, Commented(m.group("value")), False, idx + 1), found
    failing = [(i, fm) for i, fm in found if not rule.is_compliant(fm.group("value"))]
    if not failing:
        return SettingStatus(rule.name, Present(m.group("value")), True, idx + 1), []
    idx, m = failing[0]
    return SettingStatus(rule.name, Present(m.group("value")), False, idx + 1), failing


def scan_text(text: str, rule: Rule) -> SettingStatus:
    return _status(text.splitlines(), rule)[0]


def scan(path: PathLike, rule: Rule) -> SettingStatus:
    path = Path(path)
    if not path.is_file():
        raise NotFoundError(str(path), "Configuration file")
    return scan_text(_read_raw(path), rule)


def scan_rules(path: PathLike, rules: Sequence[Rule]) -> List[SettingStatus]:
    path = Path(path)
    if not path.is_file():
        raise NotFoundError(str(path), "Configuration file")
    text = _read_raw(path)
    return [scan_text(text, rule) for rule in rules]


# ----------------------------------------------------------------
# Backups
# ----------------------------------------------------------------
def backup_path_for(path: PathLike, now: Optional[datetime] = None) -> Path:
    now = now or datetime.now()
    return Path(f"{path}.backup.{now.strftime(BACKUP_TIMESTAMP_FORMAT)}")


def is_backup_name(name: str) -> bool:
    return BACKUP_NAME_RE.search(name) is not None


def create_backup(path: PathLike, now: Optional[datetime] = None) -> Path:
    """
    Copy a file to its timestamped backup name.

    Backups taken within the same second get a numeric suffix, so every
    mutation keeps its own pre-state.
    """
    base = backup_path_for(path, now)
    backup, n = base, 0
    while backup.exists():
        n += 1
        backup = Path(f"{base}.{n}")
    shutil.copy2(path, backup)
    logger.debug(f"Backed up {path} to {backup}")
    return backup


def _read_raw(path: Path) -> str:
    with open(path, "r", encoding=ENCODING, errors=ENCODING_ERRORS, newline="") as f:
        return f.read()


def _write_raw(path: Path, text: str) -> None:
    with open(path, "w", encoding=ENCODING, errors=ENCODING_ERRORS, newline="") as f:
        f.write(text)


def _line_ending(line: str) -> str:
    if line.endswith("\r\n"):
        return "\r\n"
    if line.endswith("\n"):
        return "\n"
    return ""


# ----------------------------------------------------------------
# Patching
# ----------------------------------------------------------------
def patch_file(path: PathLike, rules: Sequence[Rule], now: Optional[datetime] = None) -> PatchResult:
    """
    Bring every rule in `rules` into compliance within one file.

    At most one backup is written per call, and only when something changes.

    Raises:
        NotFoundError: the file does not exist
        VerificationError: a rewritten setting did not read back as written
    """
    path = Path(path)
    if not path.is_file():
        raise NotFoundError(str(path), "Configuration file")

    with file_lock(path):
        lines = _read_raw(path).splitlines(keepends=True)
        result = PatchResult(path)
        for rule in rules:
            status, targets = _status(lines, rule)
            result.statuses.append(status)
            if not status.fixable:
                continue
            for idx, m in targets:
                value = m.group("value")
                original = Commented(value) if m.group("hash") else Present(value)
                lines[idx] = rule.render(m) + _line_ending(lines[idx])
                result.changes.append(SettingChange(rule.name, original, rule.target_value, idx + 1))

        if not result.changes:
            return result

        result.backup = create_backup(path, now)
        _write_raw(path, "".join(lines))

        written = _read_raw(path).splitlines()
        by_name = {rule.name: rule for rule in rules}
        for change in result.changes:
            actual = _active_value(written, change.line_number - 1, by_name[change.name])
            if actual != change.attempted:
                original = change.original.value if isinstance(change.original, (Present, Commented)) else None
                raise VerificationError(str(path), change.name, original, change.attempted, actual)
    return result


def _active_value(lines: Sequence[str], idx: int, rule: Rule) -> Optional[str]:
    if idx >= len(lines):
        return None
    m = rule.pattern.match(lines[idx])
    if m is None or m.group("hash"):
        return None
    return m.group("value")


def patch(path: PathLike, rule: Rule, now: Optional[datetime] = None) -> PatchResult:
    return patch_file(path, [rule], now=now)


# ----------------------------------------------------------------
# Uncommenting directives
# ----------------------------------------------------------------
def _directive_patterns(name: str) -> Tuple["re.Pattern[str]", "re.Pattern[str]"]:
    active = re.compile(r"^[ \t]*" + re.escape(name) + r"([ \t]|$)")
    # Only '#Name value' example lines; '# Name ...' is usually prose.
    commented = re.compile(r"^[ \t]*#" + re.escape(name) + r"(?P<rest>[ \t].*)?$")
    return active, commented


def uncomment_directives(path: PathLike, names: Sequence[str], now: Optional[datetime] = None) -> PatchResult:
    """
    Activate `#Name value` example lines for directives that have no active line.

    Returns a PatchResult whose changes list the uncommented directives.
    """
    path = Path(path)
    if not path.is_file():
        raise NotFoundError(str(path), "Configuration file")

    with file_lock(path):
        lines = _read_raw(path).splitlines(keepends=True)
        result = PatchResult(path)
        for name in names:
            active, commented = _directive_patterns(name)
            stripped = [line.rstrip("\r\n") for line in lines]
            if any(active.match(line) for line in stripped):
                result.statuses.append(SettingStatus(name, Present(""), True))
                continue
            idx = next((i for i, line in enumerate(stripped) if commented.match(line)), None)
            if idx is None:
                result.statuses.append(SettingStatus(name, Absent(), False))
                continue
            rest = commented.match(stripped[idx]).group("rest") or ""
            result.statuses.append(SettingStatus(name, Commented(rest.strip()), False, idx + 1))
            lines[idx] = f"{name}{rest}" + _line_ending(lines[idx])
            result.changes.append(SettingChange(name, Commented(rest.strip()), rest.strip(), idx + 1))

        if not result.changes:
            return result

        result.backup = create_backup(path, now)
        _write_raw(path, "".join(lines))

        written = _read_raw(path).splitlines()
        for change in result.changes:
            active, _ = _directive_patterns(change.name)
            if not any(active.match(line) for line in written):
                raise VerificationError(str(path), change.name, "commented", change.attempted, None)
    return result
