import asyncio
import logging
import sys

from wsticker.config.app import TickerConfig
from wsticker.servers.ticker import TickerServer
from wsticker.shutdown import ShutdownSignal
from wsticker.utils.duration import format_duration
from wsticker.utils.logging import setup_logging

logger = logging.getLogger(__name__)


class TickerRunner:
    """Runner for the ticker process."""

    def __init__(self, config: TickerConfig):
        setup_logging(level=config.log_level, fmt=config.logging.format)
        logger.debug("Debug logging enabled")

        self.config = config
        self.shutdown = ShutdownSignal()
        self.server = TickerServer(config=config, shutdown=self.shutdown)

    async def run(self) -> None:
        self.shutdown.install_signal_handlers()

        try:
            await self.server.start()
        except OSError as e:
            logger.error(f"Failed to run app: {e}")
            sys.exit(1)

        logger.info(
            f"Listening on port {self.server.port} "
            f"(route={self.config.route}, interval={format_duration(self.config.interval)}, "
            f"shutdown_policy={self.config.shutdown_policy})"
        )

        # Wait for shutdown
        await self.shutdown.wait()

        await self.server.stop()
        logger.info("App finished")


async def run_ticker(config: TickerConfig) -> None:
    runner = TickerRunner(config)
    await runner.run()


def main(config: TickerConfig) -> None:
    try:
        asyncio.run(run_ticker(config))
    except KeyboardInterrupt:
        sys.exit(0)
