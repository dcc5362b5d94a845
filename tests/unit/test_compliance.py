import pytest

from oladmin import compliance
from oladmin.compliance import (
    apply_plan,
    check_logrotate_config,
    check_mount_security,
    clamav_status,
    logrotate_files,
    parse_mount_options,
    remount_filesystems,
    scan_system,
)
from oladmin.errors import VerificationError
from oladmin.patcher import Absent, Commented, Present
from oladmin.reporting import Level

PWQUALITY = """\
# Configuration for systemwide password quality limits
# dcredit = 0
ucredit = 1
lcredit = -1
minclass = 4
"""


@pytest.fixture
def system(config):
    config.logrotate_conf.write_text("weekly\nrotate 4\ncreate\n")
    (config.logrotate_dir / "syslog").write_text("/var/log/messages {\n    rotate 13\n}\n")
    (config.logrotate_dir / "btmp").write_text("/var/log/btmp {\n    rotate 1\n}\n")
    (config.logrotate_dir / "bootlog").write_text("/var/log/boot.log {\n    daily\n}\n")
    config.pwquality_file.write_text(PWQUALITY)
    return config


def _scan(config):
    return scan_system(
        config.logrotate_conf,
        config.logrotate_dir,
        config.pwquality_file,
        config.rotate_minimum,
        config.pwquality_rules,
    )


@pytest.mark.unit
def test_logrotate_files_lists_main_config_first(system):
    files = logrotate_files(system.logrotate_conf, system.logrotate_dir)
    assert files[0] == system.logrotate_conf
    assert [f.name for f in files[1:]] == ["bootlog", "btmp", "syslog"]


@pytest.mark.unit
def test_plan_lists_fixes_and_manual_actions(system):
    plan = _scan(system)

    assert plan.needs_changes
    assert not plan.compliant
    assert [s.path.name for s in plan.logrotate_fixes] == ["logrotate.conf", "btmp"]
    assert plan.logrotate_without_directive == [system.logrotate_dir / "bootlog"]
    by_name = {s.name: s.value for s in plan.pwquality.statuses}
    assert by_name == {
        "dcredit": Commented("0"),
        "ucredit": Present("1"),
        "lcredit": Present("-1"),
        "ocredit": Absent(),
        "minclass": Present("4"),
    }
    assert [s.name for s in plan.pwquality_fixes] == ["dcredit", "ucredit"]
    assert plan.manual_actions == [f"{system.pwquality_file}: ocredit not found (needs add)"]


@pytest.mark.unit
def test_scanning_changes_nothing(system):
    before = system.pwquality_file.read_text()
    _scan(system)
    assert system.pwquality_file.read_text() == before
    assert not list(system.pwquality_file.parent.glob("*.backup.*"))


@pytest.mark.unit
def test_missing_pwquality_file_means_every_setting_absent(system):
    system.pwquality_file.unlink()
    plan = _scan(system)
    assert not plan.pwquality.exists
    assert all(isinstance(s.value, Absent) for s in plan.pwquality.statuses)
    assert plan.pwquality_fixes == []
    assert plan.manual_actions == [f"{system.pwquality_file}: file not found"]


@pytest.mark.unit
def test_apply_plan_fixes_everything_fixable(system, reporter):
    report = apply_plan(_scan(system), reporter)

    assert report.ok
    assert report.success_count == 3
    assert "rotate 13\n" in system.logrotate_conf.read_text()
    assert "    rotate 13\n" in (system.logrotate_dir / "btmp").read_text()
    pw = system.pwquality_file.read_text()
    assert "dcredit = -1\n" in pw
    assert "ucredit = -1\n" in pw
    assert "ocredit" not in pw
    assert any("ocredit" in m for m in reporter.messages(Level.WARNING))

    after = _scan(system)
    assert not after.needs_changes


@pytest.mark.unit
def test_backups_from_a_fix_are_not_scanned_as_config(system):
    apply_plan(_scan(system))
    assert list(system.logrotate_dir.glob("btmp.backup.*"))

    files = logrotate_files(system.logrotate_conf, system.logrotate_dir)
    assert [f.name for f in files[1:]] == ["bootlog", "btmp", "syslog"]

    again = apply_plan(_scan(system))
    assert again.success_count == 0
    assert len(list(system.logrotate_dir.glob("btmp.backup.*"))) == 1


@pytest.mark.unit
def test_per_log_blocks_in_main_config_are_fixed(system, reporter):
    system.logrotate_conf.write_text(
        "weekly\nrotate 13\n\n/var/log/wtmp {\n    rotate 1\n}\n\n/var/log/btmp {\n    rotate 1\n}\n"
    )
    plan = _scan(system)
    assert system.logrotate_conf in [s.path for s in plan.logrotate_fixes]

    apply_plan(plan, reporter)

    assert "rotate 1\n" not in system.logrotate_conf.read_text()
    assert any("(line 5)" in m for m in reporter.messages(Level.SUCCESS))
    assert not _scan(system).needs_changes


@pytest.mark.unit
def test_non_utf8_drop_in_does_not_abort_scan(system):
    (system.logrotate_dir / "legacy").write_bytes(b"# caf\xe9\n/var/log/legacy {\n    rotate 2\n}\n")

    plan = _scan(system)

    assert "legacy" in [s.path.name for s in plan.logrotate_fixes]


@pytest.mark.unit
def test_verification_failure_is_collected_and_other_files_continue(system, reporter, monkeypatch):
    real_patch_file = compliance.patch_file

    def flaky_patch_file(path, rules, now=None):
        if path == system.logrotate_conf:
            raise VerificationError(str(path), "rotate", "4", "13", "4")
        return real_patch_file(path, rules, now=now)

    monkeypatch.setattr(compliance, "patch_file", flaky_patch_file)

    report = apply_plan(_scan(system), reporter)

    assert not report.ok
    assert [f.path for f in report.failures] == [str(system.logrotate_conf)]
    assert report.failures[0].original == "4"
    assert report.failures[0].attempted == "13"
    assert "    rotate 13\n" in (system.logrotate_dir / "btmp").read_text()
    assert report.success_count == 2


@pytest.mark.unit
def test_parse_mount_options():
    text = (
        "/dev/sda1 / xfs rw,relatime 0 0\n"
        "/dev/sda2 /home xfs rw,nosuid,nodev,relatime 0 0\n"
        "tmpfs /tmp tmpfs rw,nosuid 0 0\n"
        "/dev/sdb1 /mnt/my\\040disk ext4 rw 0 0\n"
    )
    mounts = parse_mount_options(text)
    assert mounts["/home"] == ["rw", "nosuid", "nodev", "relatime"]
    assert "/mnt/my disk" in mounts


@pytest.mark.unit
def test_check_mount_security():
    mounts = {"/home": ["rw", "nodev", "nosuid"], "/tmp": ["rw", "nosuid"]}
    checks = {c.mount_point: c for c in check_mount_security(mounts, ["/home", "/tmp", "/var"])}
    assert checks["/home"].missing == []
    assert checks["/tmp"].missing == ["nodev"]
    assert not checks["/var"].mounted
    assert checks["/var"].missing == []


@pytest.mark.unit
def test_remount_failures_are_warnings(make_runner, reporter):
    runner = make_runner(fail_on=["/var"])
    remounted, failed = remount_filesystems(runner, ["/home", "/var"], reporter)
    assert remounted == ["/home"]
    assert failed == ["/var"]
    assert runner.calls == [["mount", "-o", "remount", "/home"], ["mount", "-o", "remount", "/var"]]
    assert reporter.messages(Level.WARNING)


@pytest.mark.unit
def test_check_logrotate_config(make_runner):
    assert check_logrotate_config(make_runner(missing=["logrotate"]), "/etc/logrotate.conf") is None
    runner = make_runner()
    assert check_logrotate_config(runner, "/etc/logrotate.conf") is True
    assert runner.calls == [["logrotate", "-d", "/etc/logrotate.conf"]]


@pytest.mark.unit
def test_clamav_status_starts_inactive_service(make_runner, tmp_path):
    runner = make_runner(fail_on=["is-active"])
    status = clamav_status(runner, "clamd@scan", tmp_path / "clamd.sock")
    assert status.installed
    assert not status.active
    assert status.started
    assert ["systemctl", "start", "clamd@scan"] in runner.calls
    assert not status.socket_present


@pytest.mark.unit
def test_clamav_status_when_not_installed(make_runner, tmp_path):
    runner = make_runner(missing=["clamscan"])
    status = clamav_status(runner, "clamd@scan", tmp_path / "clamd.sock")
    assert not status.installed
    assert runner.calls == []
