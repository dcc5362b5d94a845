from datetime import datetime

import pytest

from oladmin.baseline import (
    CLAMAV_PACKAGES,
    EPEL_REPO_FILE,
    backup_repo_files,
    check_repositories,
    collect_summary,
    detect_oracle_release,
    generate_grub_password_hash,
    parse_grub_hash,
    setup_clamav,
    setup_firewall,
    setup_selinux,
    validate_bootloader_password,
    write_repo_files,
)
from oladmin.errors import ExecutionError, NotFoundError
from oladmin.reporting import Level

GRUB_OUTPUT = (
    "Enter password: \nReenter password: \n"
    "PBKDF2 hash of your password is grub.pbkdf2.sha512.10000.ABCDEF.0123456789\n"
)


@pytest.mark.unit
def test_detect_oracle_release(write_file):
    path = write_file("oracle-release", "Oracle Linux Server release 8.9\n")
    assert detect_oracle_release(path) == 8


@pytest.mark.unit
def test_detect_release_on_other_distribution(tmp_path):
    with pytest.raises(NotFoundError):
        detect_oracle_release(tmp_path / "oracle-release")


@pytest.mark.unit
def test_setup_firewall_commands(runner, reporter):
    setup_firewall(runner, reporter)
    assert runner.calls == [
        ["dnf", "-y", "install", "firewalld"],
        ["systemctl", "enable", "firewalld"],
        ["systemctl", "start", "firewalld"],
        ["systemctl", "is-active", "--quiet", "firewalld"],
    ]
    assert "Firewalld is running" in reporter.messages(Level.SUCCESS)


@pytest.mark.unit
def test_setup_firewall_fails_when_service_inactive(make_runner):
    with pytest.raises(ExecutionError):
        setup_firewall(make_runner(fail_on=["is-active"]))


@pytest.mark.unit
def test_setup_selinux_checks_package(make_runner):
    assert setup_selinux(make_runner()) is True
    assert setup_selinux(make_runner(fail_on=["-q"])) is False


@pytest.mark.unit
@pytest.mark.parametrize(
    "password,confirm,message",
    [("Secret123!", "Secret123?", "do not match"), ("short", "short", "at least 8")],
)
def test_validate_bootloader_password_rejects(password, confirm, message):
    with pytest.raises(ValueError, match=message):
        validate_bootloader_password(password, confirm)


@pytest.mark.unit
def test_validate_bootloader_password_accepts():
    assert validate_bootloader_password("Secret123!", "Secret123!") == "Secret123!"


@pytest.mark.unit
def test_grub_hash_pipes_password_twice(make_runner):
    runner = make_runner(outputs={"grub2-mkpasswd-pbkdf2": GRUB_OUTPUT})
    assert generate_grub_password_hash(runner, "Secret123!") == "grub.pbkdf2.sha512.10000.ABCDEF.0123456789"
    assert runner.inputs == ["Secret123!\nSecret123!\n"]


@pytest.mark.unit
def test_parse_grub_hash_without_hash():
    with pytest.raises(ValueError):
        parse_grub_hash("error: passwords don't match\n")


@pytest.mark.unit
def test_backup_repo_files_copies_only_existing(tmp_path):
    (tmp_path / "uek-ol8.repo").write_text("[old]\n")
    (tmp_path / "unrelated.repo").write_text("[x]\n")

    backup_dir, copied = backup_repo_files(tmp_path, now=datetime(2024, 1, 2, 3, 4, 5))

    assert backup_dir == tmp_path / "backup.20240102_030405"
    assert copied == [backup_dir / "uek-ol8.repo"]
    assert (backup_dir / "uek-ol8.repo").read_text() == "[old]\n"


@pytest.mark.unit
def test_write_repo_files(tmp_path):
    written = write_repo_files(tmp_path)
    assert sorted(p.name for p in written) == [
        "oracle-linux-ol8.repo",
        "oraclelinux-developer-ol8.repo",
        "uek-ol8.repo",
    ]
    base = (tmp_path / "oracle-linux-ol8.repo").read_text()
    assert base.startswith("[ol8_baseos_latest]\n")
    assert "\n\n[ol8_appstream]\n" in base
    assert "baseurl=https://yum$ociregion.$ocidomain/repo/OracleLinux/OL8/appstream/$basearch/\n" in base
    assert base.count("gpgcheck=1\n") == 2


@pytest.mark.unit
def test_check_repositories(make_runner, reporter):
    listing = "repo id              repo name\nol8_UEKR7   UEK\nol8_appstream   AppStream\n"
    runner = make_runner(outputs={"dnf": listing})
    assert check_repositories(runner, reporter) == ["ol8_appstream", "ol8_UEKR7"]
    assert runner.calls[0] == ["dnf", "clean", "all"]


@pytest.mark.unit
def test_setup_clamav(config, make_runner, reporter):
    config.clamd_scan_conf.write_text("#LogFile /var/log/clamd.scan\n#LocalSocket /run/clamd.scan/clamd.sock\n")
    runner = make_runner(fail_on=["freshclam"])

    result = setup_clamav(
        runner,
        config.repos_dir,
        config.systemd_unit_dir,
        config.clamd_scan_conf,
        config.clamd_run_dir,
        config.clamav_db_dir,
        reporter=reporter,
        owner=None,
    )

    assert ["dnf", "install", "-y", *CLAMAV_PACKAGES] in runner.calls
    assert ["systemctl", "enable", "--now", "clamd@scan"] in runner.calls
    assert runner.calls[-2] == ["systemctl", "restart", "clamd@scan"]
    assert "[ol8_developer_EPEL]" in (config.repos_dir / EPEL_REPO_FILE).read_text()
    assert "Type = forking" in (config.systemd_unit_dir / "clamd@.service").read_text()
    assert config.clamd_scan_conf.read_text() == (
        "LogFile /var/log/clamd.scan\nLocalSocket /run/clamd.scan/clamd.sock\n"
    )
    assert config.clamd_run_dir.is_dir()
    assert not result.database_updated
    assert result.active
    assert any("database update" in m for m in reporter.messages(Level.WARNING))


@pytest.mark.unit
def test_setup_clamav_stops_on_package_failure(config, make_runner):
    runner = make_runner(fail_on=["clamav-server"])
    with pytest.raises(ExecutionError):
        setup_clamav(
            runner,
            config.repos_dir,
            config.systemd_unit_dir,
            config.clamd_scan_conf,
            config.clamd_run_dir,
            config.clamav_db_dir,
            owner=None,
        )
    assert not (config.systemd_unit_dir / "clamd@.service").exists()


@pytest.mark.unit
def test_collect_summary(config, make_runner):
    write_repo_files(config.repos_dir)
    runner = make_runner(fail_on=["clamd@scan"])
    checks = dict(collect_summary(runner, config.repos_dir))
    assert checks["Firewalld"]
    assert checks["uek-ol8.repo"]
    assert not checks[EPEL_REPO_FILE]
    assert not checks["ClamAV antivirus"]
