import click
from rich.console import Console, Group
from rich.table import Table
from rich.live import Live
from rich.panel import Panel
from rich.text import Text
import time

from shared.config import UploaderConfig
from shared.log import setup_logging
from .client import DJClient, ApiRequestError
from .controller import PlayerController, format_duration
from .preferences import Preferences

console = Console()


@click.group()
@click.option('--api-url', envvar='STRAFE_API_URL', help='Base URL of the DJ API')
@click.option('--log-level', default='WARNING', show_default=True)
@click.pass_context
def cli(ctx, api_url, log_level):
    """🎧 Stem player for the DJ API"""
    setup_logging(log_level, console=console)
    config = UploaderConfig.from_env()
    ctx.obj = {
        "config": config,
        "client": DJClient(api_url or config.api_url),
    }


@cli.command()
@click.option('--page', default=1, show_default=True)
@click.option('--limit', default=20, show_default=True)
@click.pass_obj
def albums(obj, page, limit):
    """List albums."""
    try:
        data = obj["client"].get_albums(page, limit)
    except ApiRequestError as e:
        console.print(f"[red]Failed to list albums: {e.message}[/red]")
        raise SystemExit(1)

    table = Table(title=f"Albums (page {page}, {data['total']} total)")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold white")
    for album in data["albums"]:
        table.add_row(album["id"][:8], album["name"])
    console.print(table)


@cli.command()
@click.argument('query')
@click.pass_obj
def search(obj, query):
    """Find albums by title, artist, album or genre."""
    client = obj["client"]
    try:
        album_ids = client.search(query)
        rows = client.artists_albums(album_ids=album_ids) if album_ids else []
    except ApiRequestError as e:
        console.print(f"[red]Search failed: {e.message}[/red]")
        raise SystemExit(1)

    if not rows:
        console.print("[yellow]No matching albums found.[/yellow]")
        return

    table = Table(title=f"Results for '{query}'")
    table.add_column("Artist", style="green")
    table.add_column("Album", style="yellow")
    table.add_column("Genre")
    table.add_column("Tracks", justify="right")
    for row in rows:
        table.add_row(row["artist"] or "", row["album_name"], row.get("genre") or "", str(row["track_count"]))
    console.print(table)


def _now_playing(controller: PlayerController, width: int = 60) -> Panel:
    position = controller.instrumental_engine.position
    status = Text()
    status.append(f"{format_duration(position)} / {controller.duration_label}", style="cyan")

    lines = [status, Text(controller.instrumental_waveform.render(width), style="blue")]
    if controller.vocal_waveform is not None:
        lines.append(Text(controller.vocal_waveform.render(width), style="magenta"))

    info = controller.track.info
    title = f"{info.title or 'Unknown'} · {info.artist or 'Unknown'}"
    return Panel(Group(*lines), title=title, subtitle=f"{info.key} · {info.tempo:.0f} BPM")


@cli.command()
@click.argument('track_id', required=False)
@click.option('--start', type=float, default=None, help='Seek to this many seconds after loading')
@click.pass_obj
def play(obj, track_id, start):
    """Play a track by id, or a random unheard one."""
    config = obj["config"]
    client = obj["client"]
    preferences = Preferences()

    try:
        controller = PlayerController(config.static_url, preferences)
    except OSError as e:
        console.print(Panel.fit(
            "[red bold]Missing System Dependency: libmpv[/red bold]\n\n"
            f"{e}",
            border_style="red"
        ))
        raise SystemExit(1)

    try:
        track = client.get_track(track_id) if track_id else client.random_track(controller.anonymous_id())
    except ApiRequestError as e:
        console.print(f"[red]Could not load track: {e.message}[/red]")
        raise SystemExit(1)

    if not preferences.warning_shown:
        console.print("[yellow]Stems stream separately; use headphones for the best mix.[/yellow]")
        preferences.mark_warning_shown()

    controller.load_track(track)
    controller.play()
    if start is not None:
        controller.seek(start)

    try:
        with Live(_now_playing(controller), console=console, refresh_per_second=4) as live:
            while controller.instrumental_engine.is_playing:
                controller.tick()
                live.update(_now_playing(controller))
                time.sleep(0.25)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")
    finally:
        controller.close()


if __name__ == '__main__':
    cli()
