"""Main application entry point for the RabbitMQ Prometheus exporter."""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

from .config.loader import ConfigLoader
from .config.models import ExporterConfig
from .config.settings import Settings
from .scheduler import PollerScheduler
from .services.exposition import ExpositionServer, build_registry
from .services.metric_store import MetricStore
from .services.retry_handler import RetryHandler
from .utils.errors import ConfigLoadError
from .utils.logger import setup_logger

DEFAULT_CONFIG_PATH = "config.json"
CONFIG_RETRY_SECONDS = 10.0


class ExporterApp:
    """
    Main exporter application.

    Loads configuration (retrying until it is valid), starts the metrics
    endpoint and one poller per node, then waits for a shutdown signal.
    """

    def __init__(
        self,
        config_path: str = DEFAULT_CONFIG_PATH,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize exporter application.

        Args:
            config_path: Path to configuration file
            logger: Optional logger instance
        """
        self.config_path = config_path
        self.logger = logger or setup_logger("rabbitmq_exporter", Settings.log_level())
        self.store = MetricStore()
        self.registry = build_registry(self.store)
        self.scheduler = PollerScheduler(self.store, self.logger)
        self.server: Optional[ExpositionServer] = None
        self.config: Optional[ExporterConfig] = None
        self._shutdown = asyncio.Event()

    async def load_config(self) -> ExporterConfig:
        """Load configuration, retrying every 10 seconds until it succeeds."""
        self.logger.info(f"Loading configuration from {self.config_path}")
        config = await RetryHandler.retry_forever(
            lambda: ConfigLoader.load_from_file(self.config_path),
            delay=CONFIG_RETRY_SECONDS,
            exceptions=(ConfigLoadError,),
            logger=self.logger
        )
        self.logger.info(f"Configuration loaded: {len(config.nodes)} node(s)")
        return config

    def request_shutdown(self, signum: Optional[int] = None) -> None:
        if signum is not None:
            self.logger.info(
                f"Received {signal.Signals(signum).name}, initiating graceful shutdown..."
            )
        self._shutdown.set()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(signum, self.request_shutdown, signum)
            except (NotImplementedError, RuntimeError):
                # Not available on this platform or outside the main thread
                self.logger.debug(f"Cannot install handler for {signum}")

    async def run(self) -> None:
        """Run until request_shutdown() is called or a signal arrives."""
        self._install_signal_handlers()

        # Config loading retries forever, so a signal must be able to end it
        load_task = asyncio.ensure_future(self.load_config())
        shutdown_task = asyncio.ensure_future(self._shutdown.wait())
        await asyncio.wait({load_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)
        if not load_task.done():
            load_task.cancel()
            shutdown_task.cancel()
            await asyncio.gather(load_task, shutdown_task, return_exceptions=True)
            self.logger.info("Shutdown requested before configuration was loaded")
            return
        shutdown_task.cancel()
        self.config = load_task.result()

        self.server = ExpositionServer(
            self.registry,
            self.config.port,
            address=self.config.listen_address,
            logger=self.logger
        )
        self.server.start()
        self.scheduler.start(self.config)

        try:
            await self._shutdown.wait()
        finally:
            await self.scheduler.shutdown()
            self.server.shutdown()
            self.logger.info("Exporter stopped")


def main(argv=None):
    """
    CLI entry point.

    Usage: rabbitmq-exporter [config]
    """
    parser = argparse.ArgumentParser(
        description='Prometheus exporter for RabbitMQ management API counters'
    )
    parser.add_argument(
        'config',
        nargs='?',
        default=DEFAULT_CONFIG_PATH,
        help=f'Path to configuration file (default: {DEFAULT_CONFIG_PATH})'
    )
    args = parser.parse_args(argv)

    try:
        app = ExporterApp(config_path=args.config)
        asyncio.run(app.run())
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logging.error(f"Exporter failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
