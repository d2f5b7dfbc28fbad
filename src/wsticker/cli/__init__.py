"""
wsticker CLI entry point.
"""

import click

from .config import init_config
from .serve import serve


@click.group()
@click.version_option(package_name="wsticker")
def cli() -> None:
    """wsticker - push a timestamped tick to WebSocket clients."""


# Register commands
cli.add_command(serve)
cli.add_command(init_config)
