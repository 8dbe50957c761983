"""Tests for the background index refresher.

Processes are replaced with FakeProcess objects whose exit the test
controls, so the single-flight and completion behaviour can be checked
without a real index builder.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from estmail.config.settings import SearchSettings
from estmail.exceptions import ConcurrentRefreshError, IndexBuildError
from estmail.index.builder import MARKER_FILE
from estmail.index.refresher import IndexRefresher, RefreshResult, RefreshState

NOW = 1_700_000_000.0


class FakeProcess:
    """Popen stand-in that exits when the test says so.

    Its stdout yields the output lines once the process is released.
    """

    def __init__(self, returncode: int = 0, output: str = ""):
        self.returncode: int | None = None
        self._exit_code = returncode
        self._output = output
        self._exited = threading.Event()
        self.terminated = False
        self.stdout = self._lines()

    def _lines(self):
        self._exited.wait(timeout=5)
        yield from self._output.splitlines(keepends=True)

    def wait(self) -> int:
        self._exited.wait(timeout=5)
        self.returncode = self._exit_code
        return self.returncode

    def finish(self) -> None:
        self._exited.set()

    def terminate(self) -> None:
        self.terminated = True
        self._exit_code = -15
        self._exited.set()


class FakePopen:
    """Records launches and hands out FakeProcess objects."""

    def __init__(self, returncode: int = 0, output: str = ""):
        self.returncode = returncode
        self.output = output
        self.calls: list[list[str]] = []
        self.processes: list[FakeProcess] = []

    def __call__(self, command, **kwargs):
        self.calls.append(command)
        process = FakeProcess(self.returncode, self.output)
        self.processes.append(process)
        return process


class Clock:
    """Adjustable time source."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def settings(tmp_path: Path) -> SearchSettings:
    return SearchSettings(
        index_directory=tmp_path / "casket",
        target_directories=(tmp_path / "Mail",),
        refresh_interval=3600,
    )


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def popen() -> FakePopen:
    return FakePopen()


@pytest.fixture
def table_cache() -> MagicMock:
    return MagicMock()


@pytest.fixture
def results() -> list[RefreshResult]:
    return []


@pytest.fixture
def refresher(settings, table_cache, popen, clock, results) -> IndexRefresher:
    return IndexRefresher(
        settings,
        table_cache=table_cache,
        on_complete=results.append,
        popen=popen,
        clock=clock,
    )


def write_marker(settings: SearchSettings, mtime: float) -> Path:
    """Create the index marker with a given modification time."""
    settings.index_directory.mkdir(parents=True, exist_ok=True)
    marker = settings.index_directory / MARKER_FILE
    marker.write_text("")
    os.utime(marker, (mtime, mtime))
    return marker


class TestIsStale:
    """Tests for staleness detection."""

    def test_missing_marker_is_stale(self, refresher):
        """No marker means the index needs a refresh."""
        assert refresher.is_stale()

    def test_fresh_marker(self, refresher, settings):
        """A marker younger than the interval is fresh."""
        write_marker(settings, NOW - 60)

        assert not refresher.is_stale()

    def test_old_marker(self, refresher, settings):
        """A marker older than the interval is stale."""
        write_marker(settings, NOW - 7200)

        assert refresher.is_stale()

    def test_disabled_interval_never_stale(self, tmp_path, popen, clock):
        """With the interval disabled even a missing marker is not stale."""
        settings = SearchSettings(index_directory=tmp_path / "casket", refresh_interval=None)
        refresher = IndexRefresher(settings, popen=popen, clock=clock)

        assert not refresher.is_stale()
        assert not refresher.check_and_maybe_start()
        assert popen.calls == []


class TestStart:
    """Tests for check_and_maybe_start()."""

    def test_fresh_index_not_started(self, refresher, settings, popen):
        """Nothing starts when the index is fresh and not forced."""
        write_marker(settings, NOW - 60)

        assert refresher.check_and_maybe_start() is False
        assert refresher.state is RefreshState.IDLE
        assert popen.calls == []

    def test_stale_index_started(self, refresher, settings, popen, tmp_path):
        """A stale index starts one gather over all targets."""
        write_marker(settings, NOW - 7200)

        assert refresher.check_and_maybe_start() is True

        assert refresher.state is RefreshState.RUNNING
        assert refresher.targets == (tmp_path / "Mail",)
        assert popen.calls == [
            [
                "estcmd", "gather", "-cl", "-fm", "-cm",
                str(tmp_path / "casket"), str(tmp_path / "Mail"),
            ]
        ]
        popen.processes[0].finish()
        refresher.wait(timeout=5)

    def test_force_starts_fresh_index(self, refresher, settings, popen):
        """force=True starts regardless of staleness."""
        write_marker(settings, NOW - 60)

        assert refresher.check_and_maybe_start(force=True) is True

        popen.processes[0].finish()
        refresher.wait(timeout=5)

    def test_second_start_is_advisory(self, refresher, popen, caplog):
        """A second start while running is refused with a warning."""
        refresher.check_and_maybe_start(force=True)

        with caplog.at_level(logging.WARNING):
            assert refresher.check_and_maybe_start() is False

        assert refresher.state is RefreshState.RUNNING
        assert len(popen.calls) == 1
        assert "Cannot run two update processes simultaneously" in caplog.text

        popen.processes[0].finish()
        refresher.wait(timeout=5)

    def test_second_forced_start_is_fatal(self, refresher, popen):
        """A forced second start raises and leaves the first running."""
        refresher.check_and_maybe_start(force=True)

        with pytest.raises(ConcurrentRefreshError):
            refresher.check_and_maybe_start(force=True)

        assert refresher.state is RefreshState.RUNNING
        assert len(popen.calls) == 1

        popen.processes[0].finish()
        refresher.wait(timeout=5)

    def test_launch_failure_advisory(self, settings, clock, caplog):
        """A missing builder is only a warning when not forced."""
        popen = MagicMock(side_effect=FileNotFoundError("estcmd"))
        refresher = IndexRefresher(settings, popen=popen, clock=clock)

        with caplog.at_level(logging.WARNING):
            assert refresher.check_and_maybe_start() is False

        assert refresher.state is RefreshState.IDLE
        assert "Cannot start index update" in caplog.text

    def test_launch_failure_forced(self, settings, clock):
        """A missing builder is fatal when forced."""
        popen = MagicMock(side_effect=FileNotFoundError("estcmd"))
        refresher = IndexRefresher(settings, popen=popen, clock=clock)

        with pytest.raises(IndexBuildError):
            refresher.check_and_maybe_start(force=True)

        assert refresher.state is RefreshState.IDLE


class TestCompletion:
    """Tests for process exit handling."""

    def test_success_returns_to_idle_and_invalidates(
        self, refresher, settings, popen, table_cache, results
    ):
        """A successful run goes back to IDLE and schedules a table rebuild."""
        refresher.check_and_maybe_start(force=True)
        write_marker(settings, NOW)
        popen.processes[0].finish()

        assert refresher.wait(timeout=5)

        assert refresher.state is RefreshState.IDLE
        table_cache.invalidate.assert_called_once()
        assert len(results) == 1
        assert results[0].success

    def test_error_line_is_reported(self, settings, table_cache, clock, results, caplog):
        """An ERROR: line makes the run a failure but still rebuilds."""
        popen = FakePopen(output="gathering...\nERROR: casket is locked\n")
        refresher = IndexRefresher(
            settings,
            table_cache=table_cache,
            on_complete=results.append,
            popen=popen,
            clock=clock,
        )
        refresher.check_and_maybe_start(force=True)

        with caplog.at_level(logging.WARNING):
            popen.processes[0].finish()
            refresher.wait(timeout=5)

        assert refresher.state is RefreshState.IDLE
        table_cache.invalidate.assert_called_once()
        assert not results[0].success
        assert results[0].errors == ["ERROR: casket is locked"]
        assert "Index update failed" in caplog.text

    def test_only_error_lines_are_kept(self, settings, clock, results):
        """Progress lines are dropped while the output is read."""
        progress = "".join(f"estcmd: INFO: registered: /Mail/INBOX/{n}\n" for n in range(500))
        popen = FakePopen(output=progress + "estcmd: ERROR: /Mail/INBOX/7: broken\n")
        refresher = IndexRefresher(
            settings, on_complete=results.append, popen=popen, clock=clock
        )
        refresher.check_and_maybe_start(force=True)

        popen.processes[0].finish()
        refresher.wait(timeout=5)

        assert results[0].output == "estcmd: ERROR: /Mail/INBOX/7: broken"
        assert results[0].errors == ["estcmd: ERROR: /Mail/INBOX/7: broken"]

    def test_failed_run_is_not_relaunched_immediately(
        self, settings, clock, results
    ):
        """After a failure without a marker the re-check waits an interval."""
        popen = FakePopen(returncode=1)
        refresher = IndexRefresher(
            settings, on_complete=results.append, popen=popen, clock=clock
        )
        refresher.check_and_maybe_start()
        popen.processes[0].finish()
        refresher.wait(timeout=5)

        assert len(popen.calls) == 1
        assert not results[0].success

        clock.now += 7200
        assert refresher.is_stale()

    def test_completion_rechecks_staleness(self, settings, table_cache, clock, popen):
        """If the index is stale again after a run, another run starts."""

        def advance(result):
            clock.now += 7200

        refresher = IndexRefresher(
            settings,
            table_cache=table_cache,
            on_complete=advance,
            popen=popen,
            clock=clock,
        )
        write_marker(settings, NOW - 7200)
        refresher.check_and_maybe_start()

        popen.processes[0].finish()
        # Wait for the first sentinel only; the second run is still pending
        first_sentinel = refresher._sentinel
        first_sentinel.join(timeout=5)

        assert len(popen.calls) == 2
        assert refresher.state is RefreshState.RUNNING

        refresher.stop()
        refresher.wait(timeout=5)

    def test_handle_exit_when_idle(self, refresher):
        """A completion with nothing running is ignored."""
        assert refresher.handle_exit(0, "") is None
        assert refresher.state is RefreshState.IDLE

    def test_callback_errors_are_contained(self, settings, popen, clock, caplog):
        """An exception in on_complete does not break the refresher."""

        def boom(result):
            raise RuntimeError("callback failed")

        refresher = IndexRefresher(settings, on_complete=boom, popen=popen, clock=clock)
        refresher.check_and_maybe_start(force=True)

        with caplog.at_level(logging.WARNING):
            popen.processes[0].finish()
            refresher.wait(timeout=5)

        assert refresher.state is RefreshState.IDLE
        assert "callback failed" in caplog.text


class TestStop:
    """Tests for stop()."""

    def test_stop_terminates_and_returns_to_idle(self, refresher, popen, results):
        """stop() signals the child; the exit is handled without a re-check."""
        refresher.check_and_maybe_start(force=True)

        assert refresher.stop() is True
        refresher.wait(timeout=5)

        assert popen.processes[0].terminated
        assert refresher.state is RefreshState.IDLE
        assert results[0].stopped
        # Index is still stale (no marker) but no new run was started
        assert len(popen.calls) == 1

    def test_stopped_run_does_not_postpone_next(self, refresher, settings, popen):
        """A cancelled run leaves an old index stale."""
        write_marker(settings, NOW - 7200)
        refresher.check_and_maybe_start()

        refresher.stop()
        refresher.wait(timeout=5)

        assert refresher.is_stale()
        assert refresher.check_and_maybe_start() is True

        popen.processes[1].finish()
        refresher.wait(timeout=5)

    def test_stop_when_idle(self, refresher):
        """stop() does nothing when no refresh is running."""
        assert refresher.stop() is False


class TestEnsureIndex:
    """Tests for synchronous creation of a missing index."""

    @patch("estmail.index.refresher.create_index")
    def test_creates_missing_index(self, mock_create, refresher, settings, table_cache):
        """A missing marker triggers synchronous creation."""
        assert refresher.ensure_index() is True

        mock_create.assert_called_once_with(settings)
        table_cache.invalidate.assert_called_once()

    @patch("estmail.index.refresher.create_index")
    def test_existing_index_untouched(self, mock_create, refresher, settings):
        """An existing index is not recreated."""
        write_marker(settings, NOW - 99999)

        assert refresher.ensure_index() is False
        mock_create.assert_not_called()

    @patch(
        "estmail.index.refresher.create_index",
        side_effect=IndexBuildError("ERROR: no space"),
    )
    def test_creation_failure_propagates(self, mock_create, refresher):
        """Synchronous creation failures are fatal."""
        with pytest.raises(IndexBuildError):
            refresher.ensure_index()


class TestStatus:
    """Tests for status()."""

    def test_status_without_index(self, refresher):
        """A missing index reports no update time."""
        status = refresher.status()

        assert not status.exists
        assert status.last_update is None
        assert status.stale

    def test_status_with_index(self, refresher, settings):
        """Age is measured from the marker."""
        write_marker(settings, NOW - 120)

        status = refresher.status()

        assert status.exists
        assert status.age_seconds == pytest.approx(120)
        assert not status.stale
        assert status.state is RefreshState.IDLE
