"""CLI entry point for steamcmd-interface."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn

from steamcmd_interface.client import SteamCmd
from steamcmd_interface.config import SteamCmdConfig
from steamcmd_interface.errors import SetupError, SpawnError, SteamCmdError
from steamcmd_interface.retry import retrying

T = TypeVar("T")

app = typer.Typer(
    name="steamcmd-interface",
    help="Download SteamCMD, log in, and install or update Steam apps.",
    no_args_is_help=True,
)

console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _load_config(
    config_path: str | None,
    install_dir: str | None = None,
) -> SteamCmdConfig:
    config = SteamCmdConfig.load(config_path)
    if install_dir:
        config = config.model_copy(update={"install_dir": install_dir})
    return config


def _run(main: Callable[[], Awaitable[T]]) -> T:
    """Run ``main`` and turn library failures into CLI exit codes."""
    try:
        return asyncio.run(main())
    except SteamCmdError as e:
        console.print(f"[red]SteamCMD failed:[/red] {e} ({e.kind.value})")
        for line in e.output_tail:
            console.print(f"  [dim]{line}[/dim]")
        raise typer.Exit(code=e.exit_code if e.exit_code else 1) from e
    except (SetupError, SpawnError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e


@app.command()
def download(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Download SteamCMD (if needed) and check that it runs."""
    setup_logging(verbose)
    config = _load_config(config_file)

    async def main() -> str:
        steamcmd = await SteamCmd.init(config)
        return steamcmd.exe_path

    exe_path = _run(main)
    console.print(f"SteamCMD ready at [bold]{exe_path}[/bold]")


@app.command()
def login(
    username: str = typer.Argument(..., help="Steam account, or 'anonymous'"),
    password: str | None = typer.Option(None, "--password", "-p"),
    guard_code: str | None = typer.Option(
        None, "--guard-code", "-g", help="Steam Guard code"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Log in to Steam so the credentials are cached for later runs."""
    setup_logging(verbose)
    config = _load_config(config_file)

    async def main() -> None:
        steamcmd = await SteamCmd.init(config)
        await retrying(
            lambda: steamcmd.login(username, password, guard_code), config.retry
        )

    _run(main)
    console.print(f"Logged in as [bold]{username}[/bold]")


@app.command()
def update(
    app_id: int = typer.Argument(..., help="Steam app ID"),
    install_dir: str | None = typer.Option(
        None, "--install-dir", "-d", help="Absolute install directory"
    ),
    validate: bool = typer.Option(False, "--validate", help="Verify all files"),
    platform_type: str | None = typer.Option(
        None, "--platform", help="windows, macos or linux"
    ),
    platform_bitness: int | None = typer.Option(None, "--bitness", help="32 or 64"),
    language: str | None = typer.Option(None, "--language"),
    beta: str | None = typer.Option(None, "--beta", help="Beta branch name"),
    beta_password: str | None = typer.Option(None, "--beta-password"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Install or update an app, showing download progress."""
    setup_logging(verbose)
    config = _load_config(config_file, install_dir=install_dir)

    async def main() -> None:
        steamcmd = await SteamCmd.init(config)

        async def attempt() -> None:
            with Progress(
                TextColumn("{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console,
            ) as progress:
                task = progress.add_task(f"app {app_id}", total=100.0)
                async for event in steamcmd.update_app(
                    app_id,
                    platform_type=platform_type,  # type: ignore[arg-type]
                    platform_bitness=platform_bitness,
                    validate=validate,
                    language=language,
                    beta_name=beta,
                    beta_password=beta_password,
                ):
                    progress.update(
                        task,
                        description=f"{event.state} ({event.state_code})",
                        completed=event.progress_percent,
                    )
                progress.update(task, completed=100.0)

        await retrying(attempt, config.retry)

    _run(main)
    console.print(f"App [bold]{app_id}[/bold] is up to date")


@app.command()
def run(
    commands: list[str] = typer.Argument(..., help="SteamCMD commands, in order"),
    no_login: bool = typer.Option(
        False, "--no-login", help="Don't log in the configured user first"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Run raw SteamCMD commands and print their output."""
    setup_logging(verbose)
    config = _load_config(config_file)

    async def main() -> None:
        steamcmd = await SteamCmd.init(config)
        async for line in steamcmd.run(commands, skip_auto_login=no_login):
            typer.echo(line)

    _run(main)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
