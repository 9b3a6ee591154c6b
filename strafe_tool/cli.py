"""
Command-line interface for uploading stemmed tracks to the DJ API.
"""

import json
import sys
from pathlib import Path

import click
import requests
from rich.console import Console
from rich.table import Table

from shared.config import UploaderConfig
from shared.constants import DEFAULT_NETWORK_TIMEOUT
from shared.log import setup_logging
from .manifest import build_manifest

console = Console()


@click.group()
@click.version_option(version="1.0.0")
@click.option('-v', '--verbose', count=True, help='-v: info, -vv: debug')
@click.pass_context
def cli(ctx, verbose):
    """
    🎛  Upload utility for the DJ service
    """
    level = {0: "WARNING", 1: "INFO"}.get(verbose, "DEBUG")
    setup_logging(level, console=console)
    ctx.obj = UploaderConfig.from_env()


@cli.command()
@click.option('--show-secrets', is_flag=True, help='Print the password in clear text')
@click.pass_obj
def cfg(config: UploaderConfig, show_secrets):
    """Print configuration variables and exit."""
    password = config.password if show_secrets else "*" * len(config.password)

    table = Table(show_header=True, header_style="bold blue", show_lines=True)
    table.add_column("Section", style="bold blue")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Status")

    def status(value):
        return "[green]✓[/green]" if value else "[yellow]![/yellow]"

    table.add_row("Uploader", "API URL", config.api_url, status(config.api_url))
    table.add_row("", "Username", config.username, status(config.username))
    table.add_row("", "Password", f"[yellow]{password}[/yellow]", status(config.password))
    table.add_row("Player", "Static URL", config.static_url, status(config.static_url))
    console.print(table)


@cli.command()
@click.argument('folder', type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option('-o', '--output', type=click.Path(dir_okay=False, path_type=Path),
              help='Write the manifest here instead of stdout')
@click.option('--instrumental', is_flag=True, help='Tracks have no vocal stem')
@click.option('--key', default="", help='Musical key for every track')
@click.option('--tempo', type=float, default=0.0, help='Tempo (BPM) for every track')
def manifest(folder, output, instrumental, key, tempo):
    """Build an upload manifest from the audio files in FOLDER."""
    items = build_manifest(folder, instrumental=instrumental, key=key, tempo=tempo)
    payload = json.dumps([item.to_dict() for item in items], indent=2)

    if output:
        output.write_text(payload, encoding="utf-8")
        console.print(f"[green]✓[/green] Wrote {len(items)} tracks to {output}")
    else:
        click.echo(payload)


@cli.command()
@click.argument('manifest_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--api-url', help='Override STRAFE_API_URL')
@click.pass_obj
def upload(config: UploaderConfig, manifest_file, api_url):
    """Upload every track in MANIFEST_FILE."""
    try:
        items = json.loads(manifest_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid manifest: {e}[/red]")
        sys.exit(1)

    if not isinstance(items, list) or not items:
        console.print("[yellow]Manifest is empty, nothing to upload.[/yellow]")
        return

    url = f"{(api_url or config.api_url).rstrip('/')}/admin/albums/upload"
    with console.status(f"Uploading {len(items)} tracks..."):
        try:
            response = requests.post(
                url,
                json=items,
                auth=(config.username, config.password),
                timeout=DEFAULT_NETWORK_TIMEOUT,
            )
        except requests.RequestException as e:
            console.print(f"[red]❌ Upload failed: {e}[/red]")
            sys.exit(1)

    if response.status_code != 201:
        console.print(f"[red]❌ Upload rejected ({response.status_code}): {response.text.strip()}[/red]")
        sys.exit(1)

    created = response.json()
    table = Table(title=f"Uploaded {len(created)} tracks")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold white")
    table.add_column("Artist", style="green")
    table.add_column("Album", style="yellow")
    for track in created:
        info = track.get("info") or {}
        table.add_row(track["id"][:8], info.get("Title", ""), info.get("Artist", ""), info.get("Album", ""))
    console.print(table)


if __name__ == '__main__':
    cli()
