#!/usr/bin/env python3

import argparse
import logging
import signal
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import Optional

from clipkeep.clipboard import MemoryClipboard, get_clipboard_backend
from clipkeep.database import DocumentStore, StoreEvent
from clipkeep.errors import SyncError
from clipkeep.services import ClipboardPoller, HistoryService, SyncProgress, SyncService
from clipkeep.utils.config import AppConfig
from clipkeep.utils.logging_config import configure_logging

logger = logging.getLogger(__name__)


class ClipKeepApp:

    def __init__(self, config: AppConfig, headless: bool = False):
        self.config = config
        self.headless = headless
        self.store: Optional[DocumentStore] = None
        self.poller: Optional[ClipboardPoller] = None
        self.history: Optional[HistoryService] = None
        self.running = False

    def _broadcast(self, event: StoreEvent) -> None:
        logger.debug("Store event: %s", type(event).__name__)

    def open_store(self) -> DocumentStore:
        if self.store is None:
            self.store = DocumentStore(
                self.config.data_dir,
                debounce=self.config.save_debounce,
                broadcast=self._broadcast,
            )
            self.history = HistoryService(self.store)
        return self.store

    def start(self) -> None:
        if self.running:
            return

        self.open_store()
        removed = self.history.cleanup()
        if removed:
            logger.info(f"Removed {removed} expired history items")

        backend = MemoryClipboard() if self.headless else get_clipboard_backend()
        self.poller = ClipboardPoller(
            self.store,
            backend,
            poll_interval=self.config.poll_interval,
            history_limit=self.config.history_limit,
        )
        self.poller.start_monitoring()
        self.running = True
        logger.info(f"clipkeep running, history file: {self.store.file_path}")

    def stop(self) -> None:
        if not self.running:
            return

        self.running = False
        if self.poller:
            self.poller.stop_monitoring()
        if self.store:
            self.store.close()
        logger.info("clipkeep stopped")

    def run_forever(self) -> None:
        self.start()

        try:
            while self.running:
                time.sleep(1.0)
        except KeyboardInterrupt:
            logger.info("Stopping...")
        finally:
            self.stop()

    def sync(self, remote: str, from_cloud: bool) -> int:
        store = self.open_store()
        service = SyncService(store)
        process_id = "download" if from_cloud else "upload"

        def print_progress(progress: SyncProgress) -> None:
            print(progress.data)

        try:
            if from_cloud:
                service.sync_from_cloud(remote, process_id, print_progress)
            else:
                service.sync_to_cloud(remote, process_id, print_progress)
        except SyncError as e:
            logger.error(f"Sync failed: {e}")
            return 1

        code = service.wait(process_id)
        store.close()
        return 0 if code == 0 else 1


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="clipkeep - clipboard history manager"
    )

    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding clipboard-history.json (default: ~/.clipkeep)"
    )

    parser.add_argument(
        "-i", "--poll-interval",
        type=float,
        default=None,
        help="Clipboard polling interval in seconds (default: 1.0)"
    )

    parser.add_argument(
        "--history-limit",
        type=int,
        default=None,
        help="Maximum history rows, favorites excluded; 0 for unlimited (default: 50)"
    )

    parser.add_argument(
        "--headless",
        action="store_true",
        help="Use an in-memory clipboard instead of the OS clipboard"
    )

    sync = parser.add_mutually_exclusive_group()
    sync.add_argument(
        "--sync-to",
        metavar="REMOTE",
        help="Upload the history file to an rclone remote (remote:path) and exit"
    )
    sync.add_argument(
        "--sync-from",
        metavar="REMOTE",
        help="Download the history file from an rclone remote (remote:path) and exit"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose debug logging"
    )

    return parser.parse_args(argv)


def build_config(args) -> AppConfig:
    config = AppConfig.from_env().with_overrides(
        data_dir=args.data_dir,
        poll_interval=args.poll_interval,
        log_level="DEBUG" if args.verbose else None,
    )
    if args.history_limit is not None:
        config = replace(config, history_limit=args.history_limit or None)
    return config


def main(argv=None):
    args = parse_args(argv)
    config = build_config(args)
    configure_logging(config.log_dir, config.log_level)

    app = ClipKeepApp(config, headless=args.headless)

    if args.sync_to or args.sync_from:
        sys.exit(app.sync(args.sync_to or args.sync_from, from_cloud=bool(args.sync_from)))

    def signal_handler(signum, frame):
        app.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        app.run_forever()
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
