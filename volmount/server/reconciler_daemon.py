"""Reconciliation daemon - periodically heals auto-remount volumes"""

import asyncio
import signal

from volmount.config import VolumeEngineConfig
from volmount.models import DatabaseManager, SqlVolumeRepository
from volmount.services.mount_service import MountService
from volmount.services.reconciliation import ReconciliationService
from volmount.utils.logger import get_logger, setup_logging

LOG = get_logger(__name__)


class ReconcilerDaemon:
    """Runs reconciliation passes on an interval until signalled to stop"""

    def __init__(self, config: VolumeEngineConfig):
        self.config = config
        self.db = DatabaseManager(config.db_url)
        self.db.initialize()

        self.repository = SqlVolumeRepository(self.db)
        self.mount_service = MountService(config, self.repository)
        self.reconciliation_service = ReconciliationService(self.mount_service)
        self.stop_event = None

    def _signal_handler(self, signum):
        """Handle shutdown signals"""
        LOG.info(f"Received signal {signum}, initiating shutdown...")
        self.stop_event.set()

    async def run(self):
        self.stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, self._signal_handler, signum)

        LOG.info("=" * 80)
        LOG.info("Starting volmount reconciler")
        LOG.info("=" * 80)
        LOG.info(f"Database:      {VolumeEngineConfig._mask_password(self.config.db_url)}")
        LOG.info(f"Mount base:    {self.config.mount_base_path}")
        LOG.info(f"Interval:      {self.config.reconcile_interval}s")
        LOG.info("=" * 80)

        try:
            await self.reconciliation_service.run_forever(
                self.config.reconcile_interval, self.stop_event
            )
        finally:
            for signum in (signal.SIGTERM, signal.SIGINT):
                loop.remove_signal_handler(signum)
            self.db.close()
            LOG.info("Reconciler stopped")


def main():
    """Main entry point"""
    import argparse

    parser = argparse.ArgumentParser(description='volmount reconciliation daemon')
    parser.add_argument('--config', help='Configuration file')
    parser.add_argument('--db-url', help='Database URL')
    parser.add_argument('--mount-base-path', help='Base directory for volume mounts')
    parser.add_argument('--interval', type=int, help='Seconds between reconciliation passes')
    parser.add_argument('--log-level', help='Log level')
    parser.add_argument('--json-logs', action='store_true', help='Emit JSON log lines')

    args = parser.parse_args()

    # Load configuration
    config = VolumeEngineConfig.from_file(args.config)

    # Override with command line args
    if args.db_url:
        config.db_url = args.db_url
    if args.mount_base_path:
        config.mount_base_path = args.mount_base_path
    if args.interval:
        config.reconcile_interval = args.interval
    if args.log_level:
        config.log_level = args.log_level
    if args.json_logs:
        config.log_json = True

    config.validate()
    setup_logging(config.log_level, config.log_format, config.log_json)

    daemon = ReconcilerDaemon(config)
    asyncio.run(daemon.run())


if __name__ == '__main__':
    main()
