#!/usr/bin/env python3
"""
Main entry point for the stock order book.

Loads the last snapshot, serves either the REST API or the interactive
console, and saves the book again on shutdown.
"""

import logging
import signal
import sys
from typing import Optional

from stockbook.api.rest_api import run_server
from stockbook.cli.console import ConsoleApp
from stockbook.config.settings import Settings, get_settings
from stockbook.core.matching_engine import MatchingEngine
from stockbook.storage.snapshot import LoadStatus
from stockbook.utils.logger import create_audit_logger, get_logger, log_trade_audit, setup_logging
from stockbook.utils.performance import get_performance_monitor

logger = get_logger(__name__)


class StockBookServer:
    """
    Owns the matching engine for one process and drives its lifecycle.
    """

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize logging, the engine and its restored book."""
        self.settings = settings or get_settings()

        setup_logging(
            level=self.settings.log_level,
            log_file=self.settings.log_file
        )
        self.audit_logger = create_audit_logger(self.settings.audit_log_file)

        monitor = get_performance_monitor() if self.settings.enable_performance_monitoring else None
        self.matching_engine = MatchingEngine(self.settings.book_symbol, performance_monitor=monitor)
        self.matching_engine.add_trade_callback(self._audit_trade)
        self._saved = False

        if self.settings.enable_persistence:
            self._restore()

        logger.info("Stock book server initialized")

    def _audit_trade(self, trade) -> None:
        log_trade_audit(self.audit_logger, trade.to_dict())

    def _restore(self) -> None:
        status, error = self.matching_engine.load_snapshot(self.settings.snapshot_file)
        if status is LoadStatus.LOADED:
            logger.info(f"Data loaded successfully from {self.settings.snapshot_file}")
        elif status is LoadStatus.NOT_FOUND:
            logger.info("No previous data found. Starting fresh.")
        else:
            logger.warning(f"Could not restore book ({status.value}): {error}. Starting fresh.")

    def start(self) -> None:
        """Run the configured interface until it returns or is interrupted."""
        logger.info(f"Starting stock book ({self.settings.interface}) for {self.matching_engine.symbol}")

        if self.settings.interface == "console":
            console = ConsoleApp(
                self.matching_engine,
                snapshot_file=self.settings.snapshot_file if self.settings.enable_persistence else None,
                audit_logger=self.audit_logger,
            )
            console.run()
            # ConsoleApp saves on exit
            self._saved = True
        else:
            run_server(self.matching_engine, self.settings, self.audit_logger)

    def stop(self) -> None:
        """Persist the book once and stop."""
        logger.info("Stopping stock book server...")
        if self.settings.enable_persistence and not self._saved:
            saved, error = self.matching_engine.save_snapshot(self.settings.snapshot_file)
            if saved:
                logger.info(f"Data saved to {self.settings.snapshot_file}")
            else:
                logger.error(f"Error saving data: {error}")
        self._saved = True
        logger.info("Server stopped")


def main():
    """Main entry point."""
    try:
        server = StockBookServer()
    except ValueError as e:
        logging.basicConfig()
        logger.error(f"Fatal error: {str(e)}")
        sys.exit(1)

    def exit_process():
        sys.exit(0)

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        # The finally block below saves once the submission in flight, if any, completes
        server.matching_engine.run_when_idle(exit_process)

    signal.signal(signal.SIGTERM, signal_handler)

    try:
        server.start()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    finally:
        server.stop()


if __name__ == "__main__":
    main()
