"""Background index refresh.

IndexRefresher owns at most one running gather process. It is either IDLE
or RUNNING; starting while RUNNING is refused. The child runs without
blocking the caller and a sentinel thread delivers its exit to
handle_exit(), which returns the refresher to IDLE, marks the directory
table for rebuild and checks again whether another refresh is due.

Usage:
    refresher = IndexRefresher(settings, table_cache=cache)
    refresher.check_and_maybe_start()      # starts only if stale
    refresher.check_and_maybe_start(True)  # always starts
    refresher.wait()
"""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from estmail.exceptions import ConcurrentRefreshError, IndexBuildError

from .builder import build_gather_command, create_index, find_error_lines, marker_path

if TYPE_CHECKING:
    from collections.abc import Callable

    from estmail.config.settings import SearchSettings
    from estmail.storage.directory import DirectoryTableCache

logger = logging.getLogger(__name__)

CONCURRENT_MESSAGE = "Cannot run two update processes simultaneously"


class RefreshState(str, Enum):
    """Refresher states."""

    IDLE = "idle"
    RUNNING = "running"


@dataclass
class RefreshResult:
    """Outcome of one background refresh.

    output holds only the builder's error lines, not its full log.
    """

    targets: tuple[Path, ...]
    returncode: int
    output: str
    errors: list[str] = field(default_factory=list)
    stopped: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.errors and not self.stopped


@dataclass
class IndexStatus:
    """Index freshness information for status reporting."""

    exists: bool
    last_update: datetime | None
    age_seconds: float | None
    stale: bool
    state: RefreshState


class IndexRefresher:
    """Single-flight background refresher for the search index.

    Thread Safety:
    - State transitions happen under an instance-level lock
    - The sentinel thread only calls handle_exit()
    """

    def __init__(
        self,
        settings: SearchSettings,
        table_cache: DirectoryTableCache | None = None,
        on_complete: Callable[[RefreshResult], None] | None = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the refresher.

        Args:
            settings: Resolved settings (index directory, builder, interval)
            table_cache: Directory table to invalidate after each refresh
            on_complete: Optional callback(result) after each refresh
            popen: Process factory (subprocess.Popen or a test double)
            clock: Time source for staleness checks
        """
        self._settings = settings
        self._table_cache = table_cache
        self._on_complete = on_complete
        self._popen = popen
        self._clock = clock

        self._lock = threading.Lock()
        self._state = RefreshState.IDLE
        self._process: subprocess.Popen | None = None
        self._targets: tuple[Path, ...] = ()
        self._sentinel: threading.Thread | None = None
        self._stop_requested = False
        self._last_finished: float | None = None

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is RefreshState.RUNNING

    @property
    def targets(self) -> tuple[Path, ...]:
        """Directories being gathered by the running process."""
        return self._targets

    # ─────────────────────────────────────────────────────────────────
    # Staleness
    # ─────────────────────────────────────────────────────────────────

    def _marker_mtime(self) -> float | None:
        try:
            return marker_path(self._settings.index_directory).stat().st_mtime
        except FileNotFoundError:
            return None

    def is_stale(self) -> bool:
        """Check whether the refresh interval has passed.

        Always False when the interval is disabled. A missing marker is
        stale. A finished attempt counts as an update, so a failing builder
        is not relaunched before the interval passes again.
        """
        interval = self._settings.refresh_interval
        if interval is None:
            return False

        mtime = self._marker_mtime()
        if mtime is None and self._last_finished is None:
            return True

        last = max(mtime or 0.0, self._last_finished or 0.0)
        return self._clock() - last > interval

    def status(self) -> IndexStatus:
        """Report index existence, age and refresher state."""
        mtime = self._marker_mtime()
        return IndexStatus(
            exists=mtime is not None,
            last_update=datetime.fromtimestamp(mtime) if mtime is not None else None,
            age_seconds=self._clock() - mtime if mtime is not None else None,
            stale=self.is_stale(),
            state=self._state,
        )

    # ─────────────────────────────────────────────────────────────────
    # Transitions
    # ─────────────────────────────────────────────────────────────────

    def ensure_index(self) -> bool:
        """Create the index synchronously if its marker is missing.

        Returns:
            True if the index had to be created.

        Raises:
            IndexBuildError: If creation fails.
        """
        if self._marker_mtime() is not None:
            return False

        logger.info("Creating index in %s", self._settings.index_directory)
        create_index(self._settings)
        if self._table_cache is not None:
            self._table_cache.invalidate()
        return True

    def check_and_maybe_start(self, force: bool = False) -> bool:
        """Start a background refresh if forced or the index is stale.

        Args:
            force: Start regardless of staleness.

        Returns:
            True if a refresh process was started.

        Raises:
            ConcurrentRefreshError: If forced while a refresh is running.
            IndexBuildError: If forced and the builder cannot be launched.
        """
        with self._lock:
            if self._state is RefreshState.RUNNING:
                if force:
                    raise ConcurrentRefreshError(CONCURRENT_MESSAGE)
                logger.warning(CONCURRENT_MESSAGE)
                return False

            if not force and not self.is_stale():
                return False

            return self._launch(force)

    def _launch(self, force: bool) -> bool:
        """Launch the gather process. Caller holds the lock."""
        targets = tuple(self._settings.target_directories)
        command = build_gather_command(self._settings, targets)
        self._settings.index_directory.parent.mkdir(parents=True, exist_ok=True)

        try:
            process = self._popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding=self._settings.coding,
                errors="replace",
            )
        except OSError as e:
            if force:
                raise IndexBuildError(f"Cannot run {command[0]}: {e}", command) from e
            logger.warning("Cannot start index update: %s", e)
            return False

        self._state = RefreshState.RUNNING
        self._process = process
        self._targets = targets
        self._stop_requested = False
        self._sentinel = threading.Thread(
            target=self._wait_for_exit,
            args=(process,),
            name="IndexRefresher",
            daemon=True,
        )
        self._sentinel.start()
        logger.info("Index update started: %s", " ".join(command))
        return True

    def _wait_for_exit(self, process: subprocess.Popen) -> None:
        """Sentinel: drain the child's output, then deliver its exit.

        The builder prints a line per gathered file, so only error lines
        are kept.
        """
        kept = []
        if process.stdout is not None:
            for line in process.stdout:
                if find_error_lines(line):
                    kept.append(line.rstrip("\n"))
        returncode = process.wait()
        self.handle_exit(returncode, "\n".join(kept))

    def handle_exit(self, returncode: int, output: str) -> RefreshResult | None:
        """Apply the completion of the running process.

        Returns to IDLE and invalidates the directory table whatever the
        outcome. Failures are logged, not raised. Unless the process was
        stopped, checks again whether a refresh is due.

        Returns:
            The RefreshResult, or None if nothing was running.
        """
        with self._lock:
            if self._state is RefreshState.IDLE:
                return None
            result = RefreshResult(
                targets=self._targets,
                returncode=returncode,
                output=output,
                errors=find_error_lines(output),
                stopped=self._stop_requested,
            )
            self._state = RefreshState.IDLE
            self._process = None
            self._targets = ()
            self._stop_requested = False
            # A cancelled run does not postpone the next one
            if not result.stopped:
                self._last_finished = self._clock()

        if self._table_cache is not None:
            self._table_cache.invalidate()

        if result.stopped:
            logger.info("Index update stopped")
        elif result.success:
            logger.info("Index update finished")
        elif result.errors:
            logger.warning("Index update failed: %s", result.errors[0])
        else:
            logger.warning("Index update exited with status %d", returncode)

        if self._on_complete is not None:
            try:
                self._on_complete(result)
            except Exception as e:  # Broad: user callback
                logger.warning("Error in on_complete callback: %s", e)

        if not result.stopped:
            self.check_and_maybe_start()

        return result

    def stop(self) -> bool:
        """Terminate the running refresh, if any.

        The process exit is then handled as usual, without a re-check.

        Returns:
            True if a process was signalled.
        """
        with self._lock:
            process = self._process
            if self._state is RefreshState.IDLE or process is None:
                return False
            self._stop_requested = True

        process.terminate()
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until no refresh is running.

        Follows refreshes started by the post-completion re-check.

        Returns:
            True if the refresher is IDLE.
        """
        while True:
            thread = self._sentinel
            if thread is None or thread is threading.current_thread():
                break
            thread.join(timeout)
            if thread.is_alive():
                return False
            if self._sentinel is thread:
                break
        return self._state is RefreshState.IDLE
