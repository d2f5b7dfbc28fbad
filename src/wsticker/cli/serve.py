"""
Serve command.

Each option can also be set through the environment variable named in its
envvar. Only values actually given override the configuration file.
"""

from typing import Any

import click

from wsticker.config.app import load_config
from wsticker.runner import main as run_main
from wsticker.utils.duration import parse_duration


class DurationParamType(click.ParamType):
    """Click parameter accepting "1s", "250ms", "1m30s" or plain seconds."""

    name = "duration"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> float:
        if isinstance(value, int | float):
            return float(value)
        try:
            return parse_duration(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


DURATION = DurationParamType()


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    envvar="WSTICKER_CONFIG",
    help="Path to custom configuration file",
)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    envvar="DEBUG",
    help="Enable debug logging",
)
@click.option("--route", envvar="ROUTE", help="Route to listen to [default: /ticker]")
@click.option(
    "--interval",
    type=DURATION,
    envvar="INTERVAL",
    help="Interval between ticks, e.g. 1s or 500ms [default: 1s]",
)
@click.option(
    "--port",
    type=click.IntRange(1, 65535),
    envvar="PORT",
    help="Port to listen on [default: 8080]",
)
@click.option("--host", envvar="HOST", help="Interface to bind [default: 0.0.0.0]")
@click.option(
    "--shutdown-policy",
    type=click.Choice(["broadcast", "request"]),
    envvar="SHUTDOWN_POLICY",
    help="How open connections end [default: broadcast]",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    envvar="LOG_LEVEL",
    help="Log level [default: info]; --debug takes precedence",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"]),
    envvar="LOG_FORMAT",
    help="Log output format [default: text]",
)
def serve(
    config_path: str | None,
    debug: bool,
    route: str | None,
    interval: float | None,
    port: int | None,
    host: str | None,
    shutdown_policy: str | None,
    log_level: str | None,
    log_format: str | None,
) -> None:
    """Serve the WebSocket ticker."""
    overrides: dict[str, Any] = {
        "route": route,
        "interval": interval,
        "port": port,
        "host": host,
        "shutdown_policy": shutdown_policy,
        "logging.level": log_level,
        "logging.format": log_format,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if debug:
        overrides["debug"] = True

    try:
        config = load_config(config_path, cli_overrides=overrides)
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    run_main(config)
