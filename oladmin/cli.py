"""
oladmin command line interface.

Every command is a thin shell over the library: it gathers input, shows a
preview, asks for confirmation where something is about to change, and
renders the resulting report. Core modules never prompt.
"""

import logging
import os
import shutil
import signal
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import click
import pyfiglet
from rich import box
from rich.panel import Panel
from rich.prompt import Prompt
from rich.style import Style
from rich.table import Table
from rich.text import Text

from . import __version__
from .baseline import (
    SUPPORTED_RELEASE,
    backup_repo_files,
    check_repositories,
    collect_summary,
    detect_oracle_release,
    generate_grub_password_hash,
    setup_clamav,
    setup_firewall,
    setup_selinux,
    validate_bootloader_password,
    write_repo_files,
)
from .compliance import (
    RemediationPlan,
    apply_plan,
    check_logrotate_config,
    check_mount_security,
    clamav_status,
    read_mounts,
    remount_filesystems,
    scan_system,
)
from .config import Config, load_config
from .errors import ToolkitError
from .lists import load_entries
from .logs import default_log_file, setup_logger
from .patcher import Absent, describe
from .reporting import ConsoleReporter, NordColors, Reporter, console
from .runner import CommandRunner
from .ssh_keys import SSHKeyManager, check_dependencies
from .transfer import BatchTransferRunner, HostKeyPolicy, Target, TransferReport, report_summary
from .validation import require_all_present, validate_paths
from .vault import VaultBuilder

APP_NAME = "oladmin"
APP_SUBTITLE = "Oracle Linux Admin Toolkit"

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------
# UI Helpers
# ----------------------------------------------------------------
def create_header() -> Panel:
    """Create the pyfiglet banner panel."""
    term_width = shutil.get_terminal_size().columns
    adjusted_width = min(term_width - 4, 80)
    ascii_art = pyfiglet.Figlet(font="slant", width=adjusted_width).renderText(APP_NAME)
    ascii_lines = [line for line in ascii_art.splitlines() if line.strip()]
    colors = NordColors.get_frost_gradient(min(len(ascii_lines), 4))

    styled_text = ""
    for i, line in enumerate(ascii_lines):
        color = colors[i % len(colors)]
        escaped_line = line.replace("[", "\\[").replace("]", "\\]")
        styled_text += f"[bold {color}]{escaped_line}[/]\n"

    return Panel(
        Text.from_markup(styled_text.rstrip("\n")),
        border_style=Style(color=NordColors.FROST_1),
        padding=(1, 2),
        title=f"[bold {NordColors.SNOW_STORM_2}]v{__version__}[/]",
        title_align="right",
        subtitle=f"[bold {NordColors.SNOW_STORM_1}]{APP_SUBTITLE}[/]",
        subtitle_align="center",
        box=box.ROUNDED,
    )


def display_panel(title: str, message: str, style: str = NordColors.FROST_2) -> None:
    console.print(
        Panel(
            Text.from_markup(message),
            title=f"[bold {style}]{title}[/]",
            border_style=Style(color=style),
            padding=(1, 2),
            box=box.ROUNDED,
        )
    )


def _table(title: str, *columns: str) -> Table:
    table = Table(
        title=f"[bold {NordColors.FROST_2}]{title}[/]",
        show_header=True,
        header_style=f"bold {NordColors.FROST_1}",
        box=box.ROUNDED,
        expand=False,
    )
    for column in columns:
        table.add_column(column)
    return table


def _mark(ok: bool) -> str:
    return f"[{NordColors.GREEN}]✓ OK[/]" if ok else f"[{NordColors.RED}]✗ NEEDS FIX[/]"


def show_transfer_report(report: TransferReport, reporter: Reporter) -> None:
    table = _table("Transfer Results", "Target", "Status", "Error")
    for outcome in report.outcomes:
        status = f"[{NordColors.GREEN}]✓ success[/]" if outcome.success else f"[{NordColors.RED}]✗ {outcome.state.value}[/]"
        table.add_row(outcome.target.login, status, outcome.error or "")
    console.print(table)
    report_summary(report, reporter)


def show_plan(plan: RemediationPlan) -> None:
    table = _table("Logrotate Retention", "File", "rotate", "Status")
    for scan in plan.logrotate:
        status = scan.statuses[0]
        if isinstance(status.value, Absent):
            table.add_row(str(scan.path), "-", f"[{NordColors.POLAR_NIGHT_4}]no directive[/]")
        else:
            table.add_row(str(scan.path), describe(status.value), _mark(status.compliant))
    console.print(table)

    if plan.pwquality is not None:
        table = _table(f"Password Quality ({plan.pwquality.path})", "Setting", "Current", "Expected", "Status")
        for rule, status in zip(plan.pwquality_rules, plan.pwquality.statuses):
            table.add_row(
                f"{rule.name}  [{NordColors.POLAR_NIGHT_4}]{rule.description}[/]",
                describe(status.value),
                rule.expected,
                _mark(status.compliant),
            )
        console.print(table)


# ----------------------------------------------------------------
# Context & Error Handling
# ----------------------------------------------------------------
@dataclass
class AppContext:
    config: Config
    runner: CommandRunner
    reporter: Reporter


class ToolkitGroup(click.Group):
    """Click group that turns toolkit errors into a reported message and exit 1."""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except (ToolkitError, ValueError) as e:
            reporter = ctx.obj.reporter if isinstance(ctx.obj, AppContext) else ConsoleReporter()
            reporter.error(str(e))
            logger.debug("Command failed", exc_info=True)
            ctx.exit(1)
        except KeyboardInterrupt:
            console.print("\n[warning]Operation cancelled by user[/warning]")
            ctx.exit(130)


def signal_handler(sig: int, frame: Any) -> None:
    sig_name = "SIGINT" if sig == signal.SIGINT else "SIGTERM"
    console.print(f"\n[warning]⚠ Process interrupted by {sig_name}[/warning]")
    sys.exit(128 + sig)


def _fail_unless(ctx: click.Context, ok: bool) -> None:
    if not ok:
        ctx.exit(1)


# ----------------------------------------------------------------
# Root Group
# ----------------------------------------------------------------
@click.group(cls=ToolkitGroup)
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="TOML configuration file")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Log file path")
@click.version_option(__version__, prog_name=APP_NAME)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], debug: bool, log_file: Optional[str]) -> None:
    """Provisioning and hardening helpers for Oracle Linux fleets."""
    overrides: Dict[str, Any] = ctx.obj if isinstance(ctx.obj, dict) else {}
    config = overrides.get("config") or load_config(config_path)
    setup_logger(log_file or config.log_file or default_log_file(), debug=debug)
    ctx.obj = AppContext(
        config=config,
        runner=overrides.get("runner") or CommandRunner(timeout=config.command_timeout),
        reporter=overrides.get("reporter") or ConsoleReporter(),
    )


def _key_manager(app: AppContext, policy: Optional[str] = None) -> SSHKeyManager:
    return SSHKeyManager(
        app.config.ssh_dir,
        runner=app.runner,
        reporter=app.reporter,
        key_type=app.config.key_type,
        key_bits=app.config.key_bits,
        host_key_policy=HostKeyPolicy(policy or app.config.host_key_policy),
    )


def _load_nonempty(path: str, what: str) -> List[str]:
    entries = load_entries(path)
    if not entries:
        raise ValueError(f"No {what} found in file {path}")
    return entries


_policy_option = click.option(
    "--host-key-policy",
    type=click.Choice([p.value for p in HostKeyPolicy]),
    default=None,
    help="StrictHostKeyChecking value passed to ssh/scp",
)


# ----------------------------------------------------------------
# keys
# ----------------------------------------------------------------
@cli.group()
def keys() -> None:
    """Generate and distribute SSH keys."""


@keys.command("create")
@click.argument("name")
@click.option("--force", is_flag=True, help="Overwrite an existing key without asking")
@click.pass_obj
def keys_create(app: AppContext, name: str, force: bool) -> None:
    """Generate ~/.ssh/id_rsa_NAME."""
    check_dependencies(app.runner, app.reporter)
    manager = _key_manager(app)
    overwrite = force
    if not force and manager.key(name).exists():
        app.reporter.warning(f"SSH key '{name}' already exists")
        if not click.confirm("Do you want to overwrite?", default=False):
            app.reporter.info("Keeping the existing key")
            return
        overwrite = True
    pair = manager.generate_key(name, overwrite=overwrite)
    console.print(f"Private key: [bold]{pair.private_key}[/bold]")
    console.print(f"Public key:  [bold]{pair.public_key}[/bold]")


@keys.command("copy")
@click.argument("name")
@click.argument("servers_file", type=click.Path(dir_okay=False))
@click.option("--user", "-u", default=None, help="Login for every server (prompted per server otherwise)")
@_policy_option
@click.pass_context
def keys_copy(ctx: click.Context, name: str, servers_file: str, user: Optional[str], host_key_policy: Optional[str]) -> None:
    """Install the public key on every server in SERVERS_FILE."""
    app: AppContext = ctx.obj
    check_dependencies(app.runner, app.reporter)
    servers = _load_nonempty(servers_file, "servers")
    app.reporter.info(f"Copying key '{name}' to {len(servers)} servers")

    def username_for(server: str) -> str:
        return user if user is not None else click.prompt(f"Enter username for {server}", default="", show_default=False)

    report = _key_manager(app, host_key_policy).copy_to_servers(name, servers, username_for)
    show_transfer_report(report, app.reporter)
    _fail_unless(ctx, report.all_succeeded)


# ----------------------------------------------------------------
# files
# ----------------------------------------------------------------
@cli.group()
def files() -> None:
    """Copy validated file sets to servers with scp."""


def _preview_files(app: AppContext, paths: Sequence[str]) -> None:
    result = validate_paths(paths)
    for path in result.present:
        app.reporter.success(f"Found: {path}")
    for path in result.missing:
        app.reporter.error(f"Not found: {path}")
    require_all_present(result)


def _transfer(
    ctx: click.Context,
    name: str,
    files_list: str,
    targets: List[Target],
    workers: Optional[int],
    yes: bool,
    host_key_policy: Optional[str],
) -> None:
    app: AppContext = ctx.obj
    paths = _load_nonempty(files_list, "files")
    _preview_files(app, paths)
    pair = _key_manager(app).key(name)

    table = _table("Transfer Plan", "Setting", "Value")
    table.add_row("Key", str(pair.private_key))
    table.add_row("Files", str(len(paths)))
    table.add_row("Targets", ", ".join(t.destination for t in targets))
    console.print(table)
    if not yes and not click.confirm("Proceed with file copy?", default=False):
        app.reporter.info("Operation cancelled")
        return

    runner = BatchTransferRunner(
        app.runner,
        app.reporter,
        host_key_policy=HostKeyPolicy(host_key_policy or app.config.host_key_policy),
        max_workers=workers or app.config.transfer_workers,
    )
    report = runner.run(paths, targets, pair.private_key)
    show_transfer_report(report, app.reporter)
    _fail_unless(ctx, report.all_succeeded)


@files.command("copy")
@click.argument("name")
@click.argument("files_list", type=click.Path(dir_okay=False))
@click.argument("servers_file", type=click.Path(dir_okay=False))
@click.option("--user", "-u", required=True, help="Login used on every server")
@click.option("--remote-dir", "-d", default=None, help="Destination directory (default ~/)")
@click.option("--workers", "-w", type=click.IntRange(min=1), default=None, help="Parallel transfers")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@_policy_option
@click.pass_context
def files_copy(
    ctx: click.Context,
    name: str,
    files_list: str,
    servers_file: str,
    user: str,
    remote_dir: Optional[str],
    workers: Optional[int],
    yes: bool,
    host_key_policy: Optional[str],
) -> None:
    """Copy every file in FILES_LIST to every server in SERVERS_FILE."""
    app: AppContext = ctx.obj
    remote_dir = remote_dir or app.config.remote_dir
    servers = _load_nonempty(servers_file, "servers")
    targets = [Target(server, user, remote_dir) for server in servers]
    _transfer(ctx, name, files_list, targets, workers, yes, host_key_policy)


@files.command("push")
@click.argument("name")
@click.argument("files_list", type=click.Path(dir_okay=False))
@click.option("--host", "-H", required=True, help="Target host")
@click.option("--user", "-u", required=True, help="Login on the target host")
@click.option("--remote-dir", "-d", default=None, help="Destination directory (default ~/)")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@_policy_option
@click.pass_context
def files_push(
    ctx: click.Context,
    name: str,
    files_list: str,
    host: str,
    user: str,
    remote_dir: Optional[str],
    yes: bool,
    host_key_policy: Optional[str],
) -> None:
    """Copy every file in FILES_LIST to a single host."""
    app: AppContext = ctx.obj
    target = Target(host, user, remote_dir or app.config.remote_dir)
    _transfer(ctx, name, files_list, [target], 1, yes, host_key_policy)


# ----------------------------------------------------------------
# vault
# ----------------------------------------------------------------
@cli.group()
def vault() -> None:
    """Scaffold Ansible vault and inventory files."""


@vault.command("create")
@click.argument("name")
@click.argument("hosts_file", type=click.Path(dir_okay=False))
@click.option("--content-file", type=click.Path(exists=True, dir_okay=False), help="Vault content used for every host")
@click.pass_context
def vault_create(ctx: click.Context, name: str, hosts_file: str, content_file: Optional[str]) -> None:
    """Write host_vars/NAME.yml, its inventory and one vault file per host."""
    app: AppContext = ctx.obj
    hosts = _load_nonempty(hosts_file, "hosts")
    shared = Path(content_file).read_text() if content_file else None

    def content_for(host: str) -> str:
        if shared is not None:
            return shared
        return click.prompt(f"Enter vault content for {host}", default="", show_default=False)

    builder = VaultBuilder(
        app.config.vault_dir,
        runner=app.runner,
        reporter=app.reporter,
        ansible_user=app.config.ansible_user,
        vault_password_file=app.config.vault_password_file,
    )
    report = builder.create(name, hosts, content_for)

    table = _table("Ansible Vault Created", "File", "Kind")
    table.add_row(str(report.vault_file), "vault")
    table.add_row(str(report.inventory_file), "inventory")
    for path in report.encrypted:
        table.add_row(str(path), "encrypted")
    for path in report.plaintext:
        table.add_row(str(path), f"[{NordColors.YELLOW}]plain text[/]")
    console.print(table)
    for host in report.skipped:
        app.reporter.warning(f"Skipped: {host}")
    _fail_unless(ctx, not report.failed)


# ----------------------------------------------------------------
# security
# ----------------------------------------------------------------
@cli.group()
def security() -> None:
    """Logrotate and password-quality compliance."""


def _scan(app: AppContext) -> RemediationPlan:
    c = app.config
    return scan_system(c.logrotate_conf, c.logrotate_dir, c.pwquality_file, c.rotate_minimum, c.pwquality_rules)


def _show_mounts(app: AppContext) -> None:
    try:
        mounts = read_mounts()
    except OSError as e:
        app.reporter.warning(f"Could not read mount table: {e}")
        return
    table = _table("Mount Options", "Mount point", "nodev", "nosuid")
    for check in check_mount_security(mounts, app.config.mount_points):
        if not check.mounted:
            table.add_row(check.mount_point, "-", f"[{NordColors.POLAR_NIGHT_4}]not a separate mount[/]")
            continue
        table.add_row(check.mount_point, _mark(check.nodev), _mark(check.nosuid))
    console.print(table)


@security.command("status")
@click.pass_obj
def security_status(app: AppContext) -> None:
    """Show the current compliance state without changing anything."""
    plan = _scan(app)
    show_plan(plan)
    _show_mounts(app)
    for action in plan.manual_actions:
        app.reporter.warning(f"Manual action required: {action}")
    if plan.compliant:
        app.reporter.success("All settings are compliant")


@security.command("fix")
@click.option("--yes", "-y", is_flag=True, help="Apply without asking")
@click.option("--skip-remount", is_flag=True, help="Do not remount the checked file systems")
@click.option("--skip-tests", is_flag=True, help="Skip the logrotate and ClamAV checks")
@click.pass_context
def security_fix(ctx: click.Context, yes: bool, skip_remount: bool, skip_tests: bool) -> None:
    """Preview and apply logrotate and password-quality fixes."""
    app: AppContext = ctx.obj
    plan = _scan(app)
    show_plan(plan)

    if not plan.needs_changes:
        for action in plan.manual_actions:
            app.reporter.warning(f"Manual action required: {action}")
        app.reporter.success("No automatic changes needed")
    elif yes or click.confirm("Apply these changes?", default=False):
        report = apply_plan(plan, app.reporter)
        app.reporter.section("Remediation Summary")
        app.reporter.success(f"Files updated: {report.success_count}")
        for failure in report.failures:
            app.reporter.error(
                f"{failure.path}: {failure.setting} was {failure.original!r}, "
                f"attempted {failure.attempted!r}, found {failure.actual!r}"
            )
        if not report.ok:
            app.reporter.error("Some settings need manual review")
            ctx.exit(1)
    else:
        app.reporter.info("No changes applied")
        return

    if not skip_tests:
        app.reporter.section("Post-remediation Checks")
        logrotate_ok = check_logrotate_config(app.runner, app.config.logrotate_conf)
        if logrotate_ok is None:
            app.reporter.warning("logrotate is not installed")
        elif logrotate_ok:
            app.reporter.success("Logrotate configuration is valid")
        else:
            app.reporter.error("Logrotate configuration has errors")
        status = clamav_status(app.runner, app.config.clamd_unit, app.config.clamd_socket)
        if not status.installed:
            app.reporter.warning("ClamAV is not installed")
        elif status.active:
            app.reporter.success(f"{app.config.clamd_unit} is running")
        elif status.started:
            app.reporter.success(f"{app.config.clamd_unit} started")
        else:
            app.reporter.error(f"{app.config.clamd_unit} is not running")
        _show_mounts(app)

    if not skip_remount and (yes or click.confirm("Remount file systems to apply mount options?", default=False)):
        remount_filesystems(app.runner, app.config.mount_points, app.reporter)


# ----------------------------------------------------------------
# baseline
# ----------------------------------------------------------------
@cli.group()
def baseline() -> None:
    """Oracle Linux 8 security baseline."""


def _prompt_bootloader_password() -> str:
    console.print("Password requirements: at least 8 characters, mixed character classes")
    while True:
        password = click.prompt("Enter bootloader password", hide_input=True)
        confirm = click.prompt("Confirm bootloader password", hide_input=True)
        try:
            return validate_bootloader_password(password, confirm)
        except ValueError as e:
            console.print(f"[danger]✗ {e}. Please try again.[/danger]")


def _grub_password(app: AppContext) -> str:
    password = _prompt_bootloader_password()
    app.reporter.info("Generating password hash...")
    grub_hash = generate_grub_password_hash(app.runner, password)
    display_panel("GRUB2 Password Hash", grub_hash, NordColors.GREEN)
    app.reporter.success("Copy the hash above into your playbook")
    return grub_hash


def _configure_repos(app: AppContext) -> None:
    backup_repo_files(app.config.repos_dir, app.reporter)
    write_repo_files(app.config.repos_dir, app.reporter)
    check_repositories(app.runner, app.reporter)


def _clamav(app: AppContext) -> None:
    c = app.config
    setup_clamav(
        app.runner,
        c.repos_dir,
        c.systemd_unit_dir,
        c.clamd_scan_conf,
        c.clamd_run_dir,
        c.clamav_db_dir,
        unit=c.clamd_unit,
        reporter=app.reporter,
    )


def _show_summary(app: AppContext) -> bool:
    checks = collect_summary(app.runner, app.config.repos_dir, app.config.clamd_unit)
    table = _table("Setup Summary", "Component", "Status")
    for component, ok in checks:
        table.add_row(component, f"[{NordColors.GREEN}]✓ OK[/]" if ok else f"[{NordColors.RED}]✗ missing[/]")
    console.print(table)
    return all(ok for _, ok in checks)


def _require_root() -> None:
    if os.geteuid() != 0:
        raise click.UsageError("This command must be run as root")


@baseline.command("setup")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_obj
def baseline_setup(app: AppContext, yes: bool) -> None:
    """Run the full baseline: firewall, SELinux, GRUB password, repos, ClamAV."""
    _require_root()
    version = detect_oracle_release(app.config.oracle_release_file)
    if version != SUPPORTED_RELEASE:
        app.reporter.warning(f"Designed for Oracle Linux {SUPPORTED_RELEASE}, but this is version {version}")
        if not yes and not click.confirm("Continue anyway?", default=False):
            return
    console.print(
        "This will:\n"
        "  1. Install and configure firewalld\n"
        "  2. Install SELinux packages\n"
        "  3. Generate a bootloader password hash\n"
        "  4. Configure Oracle Linux repositories\n"
        "  5. Install and configure ClamAV antivirus"
    )
    if not yes and not click.confirm("Do you want to continue?", default=False):
        app.reporter.info("Setup cancelled by user")
        return

    setup_firewall(app.runner, app.reporter)
    setup_selinux(app.runner, app.reporter)
    _grub_password(app)
    _configure_repos(app)
    _clamav(app)
    _show_summary(app)
    app.reporter.success("Setup completed")


@baseline.command("grub-password")
@click.pass_obj
def baseline_grub_password(app: AppContext) -> None:
    """Generate a GRUB2 PBKDF2 password hash."""
    _grub_password(app)


@baseline.command("repos")
@click.pass_obj
def baseline_repos(app: AppContext) -> None:
    """Back up and rewrite the Oracle Linux repository files."""
    _require_root()
    _configure_repos(app)


@baseline.command("clamav")
@click.pass_obj
def baseline_clamav(app: AppContext) -> None:
    """Install and configure the clamd@scan daemon."""
    _require_root()
    _clamav(app)


@baseline.command("summary")
@click.pass_context
def baseline_summary(ctx: click.Context) -> None:
    """Show which baseline components are in place."""
    _fail_unless(ctx, _show_summary(ctx.obj))


# ----------------------------------------------------------------
# Interactive Menu
# ----------------------------------------------------------------
MENU_OPTIONS = [
    ("1", "Generate SSH key"),
    ("2", "Copy SSH key to servers from file"),
    ("3", "Copy multiple files to a server"),
    ("4", "Copy files to servers from file"),
    ("5", "Create Ansible vault"),
    ("6", "Security compliance status"),
    ("7", "Fix security compliance"),
    ("8", "Exit"),
]


def _run_menu_action(ctx: click.Context, action: Callable[[], None]) -> None:
    try:
        action()
    except click.exceptions.Exit:
        pass
    except (ToolkitError, ValueError) as e:
        ctx.obj.reporter.error(str(e))


@cli.command()
@click.pass_context
def menu(ctx: click.Context) -> None:
    """Interactive menu over the same commands."""
    while True:
        console.clear()
        console.print(create_header())
        table = _table("Main Menu", "#", "Action")
        for key, label in MENU_OPTIONS:
            table.add_row(key, label)
        console.print(table)
        choice = Prompt.ask("Choose option", choices=[key for key, _ in MENU_OPTIONS])

        if choice == "1":
            name = Prompt.ask("Enter key name")
            _run_menu_action(ctx, lambda: ctx.invoke(keys_create, name=name, force=False))
        elif choice == "2":
            name = Prompt.ask("Enter existing key name")
            servers_file = Prompt.ask("Enter servers file path")
            _run_menu_action(
                ctx,
                lambda: ctx.invoke(keys_copy, name=name, servers_file=servers_file, user=None, host_key_policy=None),
            )
        elif choice == "3":
            name = Prompt.ask("Enter key name")
            files_list = Prompt.ask("Enter files list path")
            user = Prompt.ask("Enter username")
            host = Prompt.ask("Enter target IP")
            remote_dir = Prompt.ask("Enter remote directory", default=ctx.obj.config.remote_dir)
            _run_menu_action(
                ctx,
                lambda: ctx.invoke(
                    files_push, name=name, files_list=files_list, host=host, user=user,
                    remote_dir=remote_dir, yes=False, host_key_policy=None,
                ),
            )
        elif choice == "4":
            name = Prompt.ask("Enter key name")
            files_list = Prompt.ask("Enter files list path")
            servers_file = Prompt.ask("Enter servers file path")
            user = Prompt.ask("Enter username for all servers")
            remote_dir = Prompt.ask("Enter remote directory", default=ctx.obj.config.remote_dir)
            _run_menu_action(
                ctx,
                lambda: ctx.invoke(
                    files_copy, name=name, files_list=files_list, servers_file=servers_file, user=user,
                    remote_dir=remote_dir, workers=None, yes=False, host_key_policy=None,
                ),
            )
        elif choice == "5":
            name = Prompt.ask("Enter vault name")
            hosts_file = Prompt.ask("Enter hosts file path")
            _run_menu_action(ctx, lambda: ctx.invoke(vault_create, name=name, hosts_file=hosts_file, content_file=None))
        elif choice == "6":
            _run_menu_action(ctx, lambda: ctx.invoke(security_status))
        elif choice == "7":
            _run_menu_action(
                ctx, lambda: ctx.invoke(security_fix, yes=False, skip_remount=False, skip_tests=False)
            )
        else:
            ctx.obj.reporter.info("Goodbye!")
            return
        Prompt.ask("Press Enter to return to the main menu", default="", show_default=False)


def main() -> None:
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    cli(prog_name=APP_NAME)


if __name__ == "__main__":
    main()
