from pathlib import Path

import pytest
from click.testing import CliRunner

from oladmin import __version__, compliance
from oladmin.cli import cli
from oladmin.errors import VerificationError

GRUB_OUTPUT = "PBKDF2 hash of your password is grub.pbkdf2.sha512.10000.AB.CD\n"


@pytest.fixture
def invoke(tmp_path, config):
    """Run the CLI with a fake runner and a config rooted in tmp_path."""

    def _invoke(args, runner, input=None, with_config=True):
        obj = {"runner": runner}
        if with_config:
            obj["config"] = config
        return CliRunner().invoke(
            cli, ["--log-file", str(tmp_path / "oladmin.log"), *args], obj=obj, input=input
        )

    return _invoke


@pytest.fixture
def transfer_inputs(list_file, private_key, tmp_path):
    files = [str(list_file("a.conf", ["a"])), str(list_file("b.conf", ["b"]))]
    files_list = list_file("files.txt", files)
    servers = list_file("servers.txt", ["10.0.0.1", "# skipped", "10.0.0.2"])
    return files_list, servers


def _fake_keygen(cmd):
    key = Path(cmd[cmd.index("-f") + 1])
    key.write_text("private\n")
    Path(f"{key}.pub").write_text("ssh-rsa AAAA\n")


@pytest.mark.unit
def test_version(invoke, runner):
    result = invoke(["--version"], runner)
    assert result.exit_code == 0
    assert __version__ in result.output


@pytest.mark.unit
def test_files_copy_to_every_server(invoke, runner, transfer_inputs, config):
    files_list, servers = transfer_inputs
    config.ssh_dir.mkdir(exist_ok=True)

    result = invoke(["files", "copy", "deploy", str(files_list), str(servers), "--user", "root", "--yes"], runner)

    assert result.exit_code == 0, result.output
    assert [c[-1] for c in runner.commands("scp")] == ["root@10.0.0.1:~/", "root@10.0.0.2:~/"]
    assert "Success: 2/2" in result.output


@pytest.mark.unit
def test_files_copy_partial_failure_exits_non_zero(invoke, make_runner, transfer_inputs):
    files_list, servers = transfer_inputs
    runner = make_runner(fail_on=["root@10.0.0.2:~/"])

    result = invoke(["files", "copy", "deploy", str(files_list), str(servers), "-u", "root", "-y"], runner)

    assert result.exit_code == 1
    assert len(runner.commands("scp")) == 2
    assert "Failed servers: 10.0.0.2" in result.output


@pytest.mark.unit
def test_files_copy_missing_file_aborts(invoke, runner, list_file, private_key, tmp_path):
    files_list = list_file("files.txt", [str(tmp_path / "gone.conf")])
    servers = list_file("servers.txt", ["10.0.0.1"])

    result = invoke(["files", "copy", "deploy", str(files_list), str(servers), "-u", "root", "-y"], runner)

    assert result.exit_code == 1
    assert "Missing files" in result.output
    assert runner.calls == []


@pytest.mark.unit
def test_files_push_can_be_declined(invoke, runner, transfer_inputs):
    files_list, _ = transfer_inputs
    result = invoke(["files", "push", "deploy", str(files_list), "--host", "h1", "--user", "root"], runner, input="n\n")
    assert result.exit_code == 0
    assert runner.calls == []


@pytest.mark.unit
def test_keys_create_and_decline_overwrite(invoke, make_runner, config):
    runner = make_runner(side_effects={"ssh-keygen": _fake_keygen})

    first = invoke(["keys", "create", "web"], runner)
    second = invoke(["keys", "create", "web"], runner, input="n\n")

    assert first.exit_code == 0, first.output
    assert second.exit_code == 0
    assert len(runner.commands("ssh-keygen")) == 1
    assert (config.ssh_dir / "id_rsa_web.pub").exists()


@pytest.mark.unit
def test_keys_copy_with_shared_user(invoke, runner, list_file, config):
    config.ssh_dir.mkdir()
    (config.ssh_dir / "id_rsa_web.pub").write_text("ssh-rsa AAAA\n")
    servers = list_file("servers.txt", ["a", "b"])

    result = invoke(["keys", "copy", "web", str(servers), "--user", "root"], runner)

    assert result.exit_code == 0, result.output
    assert [c[-1] for c in runner.commands("ssh-copy-id")] == ["root@a", "root@b"]


@pytest.mark.unit
def test_vault_create_with_content_file(invoke, runner, list_file, write_file, config):
    hosts = list_file("hosts.txt", ["h1", "h2"])
    content = write_file("secrets.yml", "db_password: s3cret\n")

    result = invoke(["vault", "create", "prod", str(hosts), "--content-file", str(content)], runner)

    assert result.exit_code == 0, result.output
    assert (config.vault_dir / "inventory_prod.yml").exists()
    assert len(runner.commands("ansible-vault")) == 2


@pytest.mark.unit
def test_security_status_changes_nothing(invoke, runner, config):
    config.pwquality_file.write_text("dcredit = 0\n")
    config.logrotate_conf.write_text("rotate 4\n")

    result = invoke(["security", "status"], runner)

    assert result.exit_code == 0, result.output
    assert config.pwquality_file.read_text() == "dcredit = 0\n"
    assert "Manual action required" in result.output


@pytest.mark.unit
def test_security_fix_applies_plan(invoke, runner, config):
    config.pwquality_file.write_text("dcredit = 0\n# ucredit = 1\nlcredit = -1\nocredit = -1\nminclass = 4\n")
    config.logrotate_conf.write_text("rotate 4\n")

    result = invoke(["security", "fix", "--yes", "--skip-remount", "--skip-tests"], runner)

    assert result.exit_code == 0, result.output
    assert config.pwquality_file.read_text() == "dcredit = -1\nucredit = -1\nlcredit = -1\nocredit = -1\nminclass = 4\n"
    assert config.logrotate_conf.read_text() == "rotate 13\n"
    assert runner.calls == []


@pytest.mark.unit
def test_security_fix_declined_leaves_files(invoke, runner, config):
    config.pwquality_file.write_text("dcredit = 0\n")
    result = invoke(["security", "fix"], runner, input="n\n")
    assert result.exit_code == 0
    assert config.pwquality_file.read_text() == "dcredit = 0\n"


@pytest.mark.unit
def test_security_fix_verification_failure_exits_non_zero(invoke, runner, config, monkeypatch):
    config.pwquality_file.write_text("dcredit = 0\n")

    def failing_patch_file(path, rules, now=None):
        raise VerificationError(str(path), "dcredit", "0", "-1", "0")

    monkeypatch.setattr(compliance, "patch_file", failing_patch_file)

    result = invoke(["security", "fix", "--yes", "--skip-remount", "--skip-tests"], runner)

    assert result.exit_code == 1
    assert "manual review" in result.output


@pytest.mark.unit
def test_grub_password_reprompts_until_valid(invoke, make_runner):
    runner = make_runner(outputs={"grub2-mkpasswd-pbkdf2": GRUB_OUTPUT})

    result = invoke(["baseline", "grub-password"], runner, input="short\nshort\nSecret123!\nSecret123!\n")

    assert result.exit_code == 0, result.output
    assert "at least 8 characters" in result.output
    assert "grub.pbkdf2.sha512.10000.AB.CD" in result.output
    assert runner.inputs == ["Secret123!\nSecret123!\n"]


@pytest.mark.unit
def test_missing_config_file_is_reported(invoke, runner, tmp_path):
    result = invoke(["--config", str(tmp_path / "none.toml"), "security", "status"], runner, with_config=False)
    assert result.exit_code == 1
    assert "Configuration file not found" in result.output


@pytest.mark.unit
def test_missing_list_file_is_reported(invoke, runner, tmp_path):
    result = invoke(["vault", "create", "prod", str(tmp_path / "hosts.txt")], runner)
    assert result.exit_code == 1
    assert "List file not found" in result.output
