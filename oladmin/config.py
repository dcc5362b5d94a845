"""
Runtime configuration.

Defaults live in the Config dataclass. An optional TOML file with an
[oladmin] table overrides them, and OLADMIN_<FIELD> environment variables
override scalar fields on top of that.
"""

import os
import tomllib
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .errors import ConfigurationError

CONFIG_ENV_VAR = "OLADMIN_CONFIG"
ENV_PREFIX = "OLADMIN_"


@dataclass
class Config:
    # SSH keys and transfers
    ssh_dir: Path = field(default_factory=lambda: Path.home() / ".ssh")
    key_type: str = "rsa"
    key_bits: int = 4096
    remote_dir: str = "~/"
    host_key_policy: str = "no"
    transfer_workers: int = 1
    command_timeout: int = 300

    # Ansible scaffolding
    vault_dir: Path = Path("host_vars")
    ansible_user: str = "root"
    vault_password_file: Optional[str] = None

    # Logging
    log_file: Optional[str] = None

    # Compliance remediation
    logrotate_conf: Path = Path("/etc/logrotate.conf")
    logrotate_dir: Path = Path("/etc/logrotate.d")
    rotate_minimum: int = 13
    pwquality_file: Path = Path("/etc/security/pwquality.conf")
    pwquality_rules: Dict[str, str] = field(
        default_factory=lambda: {
            "dcredit": "-1",
            "ucredit": "-1",
            "lcredit": "-1",
            "ocredit": "-1",
            "minclass": "4",
        }
    )
    mount_points: List[str] = field(default_factory=lambda: ["/home", "/tmp", "/var", "/var/log"])

    # Oracle Linux baseline
    oracle_release_file: Path = Path("/etc/oracle-release")
    repos_dir: Path = Path("/etc/yum.repos.d")
    systemd_unit_dir: Path = Path("/usr/lib/systemd/system")
    clamd_scan_conf: Path = Path("/etc/clamd.d/scan.conf")
    clamd_unit: str = "clamd@scan"
    clamd_socket: Path = Path("/run/clamd.scan/clamd.sock")
    clamd_run_dir: Path = Path("/run/clamd.scan")
    clamav_db_dir: Path = Path("/var/lib/clamav")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _coerce(name: str, current: Any, value: Any) -> Any:
    """Convert a TOML or environment value to the type of the field's default."""
    if isinstance(current, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if isinstance(current, int):
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if isinstance(current, Path):
        return Path(os.path.expanduser(str(value)))
    if isinstance(current, dict):
        if not isinstance(value, Mapping):
            raise ConfigurationError(f"{name} must be a table")
        return {str(k): str(v) for k, v in value.items()}
    if isinstance(current, list):
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        if not isinstance(value, list):
            raise ConfigurationError(f"{name} must be a list")
        return [str(v) for v in value]
    if value is None:
        return None
    return str(value)


def apply_overrides(config: Config, overrides: Mapping[str, Any]) -> Config:
    known = {f.name for f in fields(Config)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")
    for name, value in overrides.items():
        setattr(config, name, _coerce(name, getattr(config, name), value))
    return config


def env_overrides(environ: Mapping[str, str]) -> Dict[str, str]:
    """Collect OLADMIN_<FIELD> variables for the scalar fields."""
    result = {}
    for f in fields(Config):
        key = ENV_PREFIX + f.name.upper()
        if key in environ and f.name != "pwquality_rules":
            result[f.name] = environ[key]
    return result


def load_config(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    environ = os.environ if environ is None else environ
    config = Config()
    path = path or environ.get(CONFIG_ENV_VAR)
    if path:
        path = Path(path)
        if not path.is_file():
            raise ConfigurationError(f"Configuration file not found: {path}")
        try:
            with path.open("rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {path}: {e}")
        apply_overrides(config, data.get("oladmin", {}))
    apply_overrides(config, env_overrides(environ))
    return config
