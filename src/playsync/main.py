"""CLI entry point for playsync.

Provides the `playsync` command for playing and inspecting audio files
through the AudioPlayer control surface.
"""

import threading
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from playsync import __version__
from playsync.config import PlayerConfig, ensure_config_exists, get_config_path
from playsync.logging_config import setup_logging
from playsync.player import AudioPlayer
from playsync.state import AudioPlayerState

app = typer.Typer(
    name="playsync",
    help="Play audio files with an engine-synchronized state snapshot",
    rich_markup_mode="rich",
)
config_app = typer.Typer(help="Configuration management")
app.add_typer(config_app, name="config")

console = Console()

LOAD_TIMEOUT_SECONDS = 30.0


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"playsync version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """playsync: audio playback with a consistent state snapshot."""


def _load_config(config_path: Optional[Path]) -> PlayerConfig:
    """Load the given config file or the default one.

    Raises:
        typer.Exit: If an explicit config path does not exist
    """
    if config_path is None:
        return ensure_config_exists()
    try:
        return PlayerConfig.load(config_path)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)


def _describe(state: AudioPlayerState) -> str:
    if state.error:
        return f"[red]error[/red] {state.error}"
    if state.loading:
        return "[yellow]loading[/yellow]"
    if state.playing:
        return "[green]playing[/green]"
    if state.stopped:
        return "[cyan]stopped[/cyan]"
    return "paused" if state.duration else "unloaded"


def _state_table(source: Path, state: AudioPlayerState) -> Table:
    table = Table(title=str(source), show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("status", _describe(state))
    table.add_row("duration", f"{state.duration:.2f}s")
    table.add_row("volume", f"{state.volume:.2f}")
    table.add_row("muted", str(state.muted))
    table.add_row("rate", f"{state.rate:.2f}")
    table.add_row("loop", str(state.loop))
    return table


@app.command()
def play(
    path: Path = typer.Argument(..., help="Audio file to play"),
    volume: Optional[float] = typer.Option(None, "--volume", help="Volume (0.0 to 1.0)"),
    rate: Optional[float] = typer.Option(None, "--rate", help="Playback rate (0.5 to 4.0)"),
    loop: bool = typer.Option(False, "--loop", help="Loop until interrupted"),
    mute: bool = typer.Option(False, "--mute", help="Start muted"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config file"),
) -> None:
    """Play an audio file until it ends or Ctrl-C is pressed."""
    config = _load_config(config_path)
    setup_logging(config.log_dir, config.log_level)

    options = config.handle_options(
        volume=volume,
        rate=rate,
        loop=loop or None,
        mute=mute or None,
        autoplay=True,
        preload=True,
    )

    finished = threading.Event()

    def on_change(new_state: AudioPlayerState, old_state: AudioPlayerState) -> None:
        if _describe(new_state) != _describe(old_state):
            console.print(f"{path.name}: {_describe(new_state)}")
        if new_state.error or (old_state.playing and new_state.stopped):
            finished.set()

    with AudioPlayer(config) as player:
        player.add_listener(on_change)
        player.load(path, options)
        if options.loop:
            player.loop(True)

        try:
            while not finished.wait(0.2):
                pass
        except KeyboardInterrupt:
            player.stop()

        state = player.state

    if state.error:
        console.print(
            Panel.fit(
                f"[bold red]Playback failed[/bold red]\n\n{state.error}",
                title="Error",
                border_style="red",
            )
        )
        raise typer.Exit(code=1)


@app.command()
def info(
    path: Path = typer.Argument(..., help="Audio file to inspect"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config file"),
) -> None:
    """Load an audio file and show the resulting player state."""
    config = _load_config(config_path)
    setup_logging(config.log_dir, config.log_level)

    loaded = threading.Event()

    def on_change(new_state: AudioPlayerState, old_state: AudioPlayerState) -> None:
        if old_state.loading and not new_state.loading:
            loaded.set()

    with AudioPlayer(config) as player:
        player.add_listener(on_change)
        player.load(path, config.handle_options(autoplay=False, preload=True))
        if not loaded.wait(LOAD_TIMEOUT_SECONDS):
            console.print(f"[red]Timed out loading {path}[/red]")
            raise typer.Exit(code=1)
        state = player.state

    console.print(_state_table(path, state))
    if state.error:
        raise typer.Exit(code=1)


@config_app.command("show")
def config_show(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config file"),
) -> None:
    """Show the effective configuration."""
    config = _load_config(config_path)

    table = Table(title=str(config_path or get_config_path()))
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in vars(config).items():
        table.add_row(key, str(value))
    console.print(table)


@config_app.command("init")
def config_init(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config file"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write a default configuration file."""
    path = config_path or get_config_path()
    if path.exists() and not force:
        console.print(f"[yellow]Config already exists at {path}[/yellow] (use --force to overwrite)")
        raise typer.Exit(code=1)

    PlayerConfig().save(path)
    console.print(f"[green]✓[/green] Wrote default config to [cyan]{path}[/cyan]")


if __name__ == "__main__":
    app()
