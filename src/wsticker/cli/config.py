"""
Configuration file commands.
"""

from pathlib import Path

import click

from wsticker.config.app import DEFAULT_CONFIG_FILE, generate_default_config


@click.command("init-config")
@click.option(
    "--path",
    "config_path",
    type=click.Path(dir_okay=False),
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help="Where to write the configuration file",
)
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def init_config(config_path: str, force: bool) -> None:
    """Write a configuration file populated with the defaults."""
    target = Path(config_path).expanduser()
    if target.exists() and not force:
        click.echo(f"Config file already exists: {target} (use --force to overwrite)", err=True)
        raise SystemExit(1)

    generate_default_config(config_path)
    click.echo(f"Wrote default configuration to {target}")
