"""CLI interface for casb-risk-sync."""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from .casb import CasbReportClient
from .config import AppConfig, ConfigWatcher, find_config_file, load_config
from .directory import AzureDirectory, ShellCommandRunner, validate_email
from .errors import ConfigError, LoginError, RiskSyncError
from .logging_utils import setup_logging
from .sync import SyncEngine

app = typer.Typer(
    name="casb-risk-sync",
    help="Move Azure AD users into risk-level groups based on Forcepoint CASB risk scores",
    no_args_is_help=True,
)
console = Console()
logger = logging.getLogger(__name__)


def get_config(config_path: Path | None = None) -> tuple[AppConfig, Path]:
    """Load configuration from file and environment."""
    if config_path is None:
        config_path = find_config_file()
        if config_path is None:
            console.print(
                "[red]Error: no --config given and no azure_casb.yml found "
                "in your home directory[/red]"
            )
            raise typer.Exit(1)
    try:
        return load_config(config_path), config_path
    except ConfigError as e:
        console.print(f"[red]Error loading config: {e}[/red]")
        raise typer.Exit(1) from None


def prompt_admin_login_name() -> str:
    """Ask for the Azure administrator's login until it is a valid email."""
    while True:
        username = typer.prompt("Enter your Azure administrator's username").strip()
        try:
            return validate_email(username)
        except ValueError as e:
            logger.error("%s", e)


def prompt_admin_password(username: str) -> str:
    password = typer.prompt(
        f"Enter password for '{username}'", hide_input=True, default="", show_default=False
    ).strip()
    if not password:
        raise LoginError("please enter a valid password")
    return password


def ensure_login(directory: AzureDirectory, config: AppConfig) -> None:
    """Sign the Azure CLI in unless it already has a session."""
    account = directory.current_account()
    if account:
        logger.info("Using existing Azure CLI session for %s", account)
        return

    username = config.azure.admin_login_name or prompt_admin_login_name()
    password = config.azure.admin_login_password or prompt_admin_password(username)
    directory.login(username, password)


def _with_overrides(config: AppConfig, mail_nickname: bool) -> AppConfig:
    if not mail_nickname or config.risk_manager.mail_nickname:
        return config
    risk_manager = config.risk_manager.model_copy(update={"mail_nickname": True})
    return config.model_copy(update={"risk_manager": risk_manager})


@app.command()
def run(
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to config file (default: ~/azure_casb.yml)"),
    ] = None,
    mail_nickname: Annotated[
        bool,
        typer.Option(
            "--mail-nickname",
            "-m",
            help="Compare CASB login names with Azure users by mail nickname",
        ),
    ] = False,
    once: Annotated[
        bool,
        typer.Option("--once", help="Run a single sync cycle and exit"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Run the risk score exporter and group manager."""
    config, path = get_config(config_path)

    secrets = [config.casb.password, config.azure.admin_login_password]
    setup_logging(verbose=verbose, json_format=config.logger.json_format, secrets=secrets)

    try:
        config.validate_for_run()
    except ConfigError as e:
        logger.error("%s", e)
        raise typer.Exit(1) from None

    directory = AzureDirectory(ShellCommandRunner())
    try:
        ensure_login(directory, config)
    except RiskSyncError as e:
        logger.error("%s", e)
        raise typer.Exit(1) from None

    def _on_config_change(new_config: AppConfig) -> None:
        setup_logging(
            verbose=verbose,
            json_format=new_config.logger.json_format,
            secrets=secrets + [new_config.casb.password, new_config.azure.admin_login_password],
        )

    watcher = ConfigWatcher(path, config, on_change=_on_config_change)
    fetcher = CasbReportClient(
        config.casb.risk_score_url,
        config.casb.user_name,
        config.casb.password,
    )
    engine = SyncEngine(
        fetcher,
        directory,
        config_provider=lambda: _with_overrides(watcher.current, mail_nickname),
    )

    if not once:
        watcher.start()
    try:
        engine.run_forever(max_cycles=1 if once else None)
    except KeyboardInterrupt:
        console.print()
        raise typer.Exit(0) from None
    finally:
        watcher.stop()


@app.command()
def logout() -> None:
    """Sign the Azure CLI out."""
    directory = AzureDirectory(ShellCommandRunner())
    try:
        directory.logout()
    except RiskSyncError as e:
        console.print(f"[red]Failed in executing the azure logout command: {e}[/red]")
        raise typer.Exit(1) from None
    console.print("[green]Logged out of Azure CLI[/green]")


def _mask(secret: str) -> str:
    return "********" if secret else "[red]Not set[/red]"


@app.command()
def config_show(
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to config file"),
    ] = None,
) -> None:
    """Show current configuration (with secrets masked)."""
    config, path = get_config(config_path)

    table = Table(title=f"Configuration ({path})")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("CASB User", config.casb.user_name or "[red]Not set[/red]")
    table.add_row("CASB Password", _mask(config.casb.password))
    table.add_row("Risk Score URL", config.casb.risk_score_url or "[red]Not set[/red]")
    table.add_row("Azure Admin", config.azure.admin_login_name or "[dim]Prompted[/dim]")
    admin_password = config.azure.admin_login_password
    table.add_row(
        "Azure Admin Password",
        _mask(admin_password) if admin_password else "[dim]Prompted[/dim]",
    )
    table.add_row("Risk-Level Groups", ", ".join(config.azure.group_names) or "[red]Not set[/red]")
    for entry in config.risk_manager.map_risk_score:
        for key, group in entry.items():
            table.add_row(f"  Score {key}", group)
    table.add_row("Interval", f"{config.risk_manager.interval_time} minutes")
    table.add_row("Mail Nickname Matching", str(config.risk_manager.mail_nickname))
    table.add_row("Terminate Sessions", str(config.risk_manager.terminate_user_active_session))
    table.add_row("JSON Logs", str(config.logger.json_format))

    console.print(table)


if __name__ == "__main__":
    app()
