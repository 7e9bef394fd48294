"""Cloud backup of the history file through the ``rclone`` CLI.

Each sync runs ``rclone copy`` as a child process keyed by a caller-chosen
process id. Output lines are forwarded to an optional progress callback from
a reader thread; a successful download reloads the store from disk.
"""

import logging
import subprocess
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from clipkeep.database import DocumentStore
from clipkeep.errors import SyncError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncProgress:
    process_id: str
    data: str


ProgressCallback = Callable[[SyncProgress], None]


@dataclass
class _SyncProcess:
    process: subprocess.Popen
    from_cloud: bool
    reader: Optional[threading.Thread] = None
    returncode: Optional[int] = None


class SyncService:

    def __init__(self, store: DocumentStore, rclone: str = "rclone") -> None:
        self.store = store
        self.rclone = rclone
        self._lock = threading.Lock()
        self._processes: Dict[str, _SyncProcess] = {}
        self._results: Dict[str, int] = {}

    @staticmethod
    def validate_remote(config: Optional[str]) -> None:
        if not config:
            raise SyncError("An rclone remote is required")
        parts = config.split(":")
        if len(parts) != 2 or not parts[0]:
            raise SyncError(f"Invalid rclone remote {config!r}, expected remote:path")

    def check_installation(self) -> None:
        try:
            subprocess.run(
                [self.rclone, "version"],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
                timeout=10.0,
            )
        except FileNotFoundError:
            raise SyncError("rclone is not installed; install it and configure a remote first")
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
            raise SyncError(f"rclone version failed: {e}")

    def sync_to_cloud(
        self,
        remote: str,
        process_id: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.validate_remote(remote)
        self.check_installation()

        self.store.flush()
        local_file = self.store.file_path
        if not local_file.exists():
            raise SyncError(f"History file {local_file} does not exist")

        self._spawn(["copy", str(local_file), remote, "-P"], process_id, False, on_progress)

    def sync_from_cloud(
        self,
        remote: str,
        process_id: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.validate_remote(remote)
        self.check_installation()

        self._spawn(["copy", remote, str(self.store.path), "-P"], process_id, True, on_progress)

    def cancel(self, process_id: str) -> bool:
        with self._lock:
            entry = self._processes.pop(process_id, None)
        if entry is None:
            logger.warning("No sync process found to cancel: %s", process_id)
            return False

        entry.process.terminate()
        logger.info("Sync cancelled: %s", process_id)
        return True

    def wait(self, process_id: str, timeout: Optional[float] = None) -> Optional[int]:
        """Block until the sync finishes; returns its exit code."""
        with self._lock:
            entry = self._processes.get(process_id)
        if entry is None:
            return self._results.get(process_id)
        if entry.reader is not None:
            entry.reader.join(timeout)
        return entry.returncode

    def has_sync_in_progress(self) -> bool:
        with self._lock:
            return bool(self._processes)

    def sync_processes(self) -> List[str]:
        with self._lock:
            return list(self._processes)

    def _spawn(
        self,
        args: List[str],
        process_id: str,
        from_cloud: bool,
        on_progress: Optional[ProgressCallback],
    ) -> None:
        command = [self.rclone, *args]
        report = self._reporter(process_id, on_progress)
        report(f"Running: {subprocess.list2cmdline(command)}")

        # the id check and the insert share one acquisition
        with self._lock:
            if process_id in self._processes:
                raise SyncError(f"Sync {process_id} is already running")
            try:
                process = subprocess.Popen(
                    command,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                )
            except OSError as e:
                error = e
                entry = None
            else:
                entry = _SyncProcess(process=process, from_cloud=from_cloud)
                entry.reader = threading.Thread(
                    target=self._follow, args=(process_id, entry, report),
                    name=f"clipkeep-sync-{process_id}", daemon=True)
                self._processes[process_id] = entry
                entry.reader.start()

        if entry is None:
            report(f"Error: {error}")
            raise SyncError(f"Could not start rclone: {error}")

    def _follow(self, process_id: str, entry: _SyncProcess, report: Callable[[str], None]) -> None:
        for line in entry.process.stdout:
            line = line.strip()
            if line:
                report(line)

        code = entry.process.wait()
        entry.returncode = code
        with self._lock:
            self._results[process_id] = code
            # a cancelled sync was already removed and reports nothing more
            cancelled = self._processes.get(process_id) is not entry
            if not cancelled:
                del self._processes[process_id]
        if cancelled:
            return

        if code == 0:
            if entry.from_cloud:
                self.store.reload()
            report("Sync complete")
            logger.info("Sync %s finished", process_id)
        else:
            report(f"Sync failed, exit code: {code}")
            logger.error("Sync %s failed with exit code %s", process_id, code)

    @staticmethod
    def _reporter(process_id: str, on_progress: Optional[ProgressCallback]) -> Callable[[str], None]:
        def report(data: str) -> None:
            if on_progress is None:
                return
            try:
                on_progress(SyncProgress(process_id, data))
            except Exception:
                logger.exception("Sync progress callback failed")

        return report
