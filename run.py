#!/usr/bin/env python3
"""
DJ API launcher.
Loads configuration from the environment (and .env), sets up logging and
serves the REST API.
"""

import click

from shared.api import start_api
from shared.config import ServerConfig
from shared.database import DatabaseManager
from shared.log import setup_logging


@click.command()
@click.option('--port', type=int, default=None, help='Override PORT')
@click.option('--debug', is_flag=True, help='Run Flask in debug mode')
@click.option('--stats', is_flag=True, help='Print library statistics and exit')
def main(port, debug, stats):
    config = ServerConfig.from_env()
    if port is not None:
        config.port = port
    logger = setup_logging(config.log_level)

    if stats:
        counts = DatabaseManager(str(config.resolved_database_path)).get_stats()
        click.echo(f"{counts['albums']} albums, {counts['tracks']} tracks ({counts['instrumental']} instrumental)")
        return

    if not config.admin_configured:
        logger.warning("UPLOAD_ADMIN_USERNAME/UPLOAD_ADMIN_PASSWORD not set; uploads are disabled")
    start_api(config, debug=debug)


if __name__ == '__main__':
    main()
