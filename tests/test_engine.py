"""Tests for search engine invocation.

subprocess is mocked; no estcmd binary is needed.
"""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from estmail.config.settings import SearchSettings
from estmail.exceptions import EngineInvocationError, EngineNotFoundError
from estmail.search.engine import (
    build_search_command,
    check_engine_available,
    invoke,
    run_search,
)
from estmail.search.query import translate


@pytest.fixture
def settings() -> SearchSettings:
    """Settings with a fixed index directory."""
    return SearchSettings(index_directory=Path("/idx/casket"))


def completed(returncode: int = 0, stdout: str = "", stderr: str = ""):
    """Build a CompletedProcess for mocked subprocess.run calls."""
    return subprocess.CompletedProcess([], returncode, stdout=stdout, stderr=stderr)


class TestBuildSearchCommand:
    """Tests for build_search_command()."""

    def test_free_text_only(self, settings):
        """Plain queries produce the base command."""
        command = build_search_command(translate("budget"), settings)

        assert command == [
            "estcmd", "search", "-vu", "-max", "-1", "/idx/casket", "budget",
        ]

    def test_predicates_become_attr_pairs_in_order(self, settings):
        """Each predicate adds an -attr pair before the index directory."""
        query = translate("+cdate>2011/01/01 +title:important moge")

        command = build_search_command(query, settings)

        assert command == [
            "estcmd", "search", "-vu", "-max", "-1",
            "-attr", "@cdate NUMGE 2011/01/01",
            "-attr", "@title STRINC important",
            "/idx/casket", "moge",
        ]

    def test_prefix_and_additional_args(self):
        """The remote prefix leads, additional args precede the index."""
        settings = SearchSettings(
            index_directory=Path("/idx"),
            prefix=("ssh", "mailhost"),
            additional_args=("-ord", "@cdate NUMD"),
            engine="/opt/bin/estcmd",
        )

        command = build_search_command(translate("+size<10 x"), settings)

        assert command == [
            "ssh", "mailhost", "/opt/bin/estcmd", "search", "-vu", "-max", "-1",
            "-attr", "@size NUMLE 10",
            "-ord", "@cdate NUMD",
            "/idx", "x",
        ]


class TestInvoke:
    """Tests for invoke() and run_search()."""

    @patch("estmail.search.engine.subprocess.run")
    def test_invoke_passes_encoding(self, mock_run, settings):
        """The configured coding is applied to the child's streams."""
        settings = SearchSettings(index_directory=Path("/idx"), coding="euc-jp")
        mock_run.return_value = completed(stdout="out")

        result = invoke(translate("x"), settings)

        kwargs = mock_run.call_args.kwargs
        assert kwargs["encoding"] == "euc-jp"
        assert kwargs["capture_output"] is True
        assert "timeout" not in kwargs
        assert result.output == "out"
        assert result.ok

    @patch("estmail.search.engine.subprocess.run")
    def test_invoke_reports_nonzero_exit(self, mock_run, settings):
        """invoke() returns failures instead of raising."""
        mock_run.return_value = completed(returncode=2, stderr="bad casket")

        result = invoke(translate("x"), settings)

        assert result.exit_code == 2
        assert not result.ok
        assert result.stderr == "bad casket"

    @patch("estmail.search.engine.subprocess.run")
    def test_run_search_raises_with_captured_output(self, mock_run, settings):
        """run_search() turns a non-zero exit into a hard error."""
        mock_run.return_value = completed(
            returncode=1, stdout="partial", stderr="estcmd: ERROR: broken"
        )

        with pytest.raises(EngineInvocationError) as exc_info:
            run_search(translate("x"), settings)

        error = exc_info.value
        assert error.exit_code == 1
        assert error.stdout == "partial"
        assert "estcmd: ERROR: broken" in str(error)
        assert error.command[0] == "estcmd"

    @patch("estmail.search.engine.subprocess.run")
    def test_run_search_returns_output(self, mock_run, settings):
        """A zero exit returns stdout."""
        mock_run.return_value = completed(stdout="file:///a/1\n")

        assert run_search(translate("x"), settings) == "file:///a/1\n"

    @patch("estmail.search.engine.subprocess.run", side_effect=FileNotFoundError("estcmd"))
    def test_missing_executable(self, mock_run, settings):
        """A missing binary raises EngineNotFoundError."""
        with pytest.raises(EngineNotFoundError):
            invoke(translate("x"), settings)


class TestCheckEngineAvailable:
    """Tests for check_engine_available()."""

    @patch("estmail.search.engine.shutil.which", return_value=None)
    def test_raises_when_missing(self, mock_which, settings):
        """Missing executable is reported."""
        with pytest.raises(EngineNotFoundError, match="estcmd not found"):
            check_engine_available(settings)

    @patch("estmail.search.engine.shutil.which", return_value="/usr/bin/ssh")
    def test_checks_prefix_command(self, mock_which):
        """With a prefix the prefix command is checked."""
        check_engine_available(SearchSettings(prefix=("ssh", "host")))

        mock_which.assert_called_once_with("ssh")
