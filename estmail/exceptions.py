"""Exception hierarchy for estmail.

Each exception type maps to one failure mode of the search pipeline so
callers can decide between aborting a command and showing a notice.

Usage::

    from estmail.exceptions import EngineInvocationError, EstmailError

    try:
        output = run_search(query, settings)
    except EngineInvocationError as exc:
        print(exc.stderr)
"""


class EstmailError(Exception):
    """Base exception for all estmail errors."""


class EngineInvocationError(EstmailError):
    """The search engine exited with a non-zero status.

    Carries the command line and captured output so the message shown to
    the user can include the engine's own diagnostics.
    """

    def __init__(
        self,
        command: list[str],
        exit_code: int,
        stdout: str = "",
        stderr: str = "",
    ):
        self.command = command
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        details = (stderr or stdout).strip()
        message = f"{' '.join(command)} exited with status {exit_code}"
        if details:
            message = f"{message}: {details}"
        super().__init__(message)


class EngineNotFoundError(EstmailError, FileNotFoundError):
    """The search engine or index builder executable could not be launched."""


class IndexBuildError(EstmailError):
    """The index builder reported an ERROR: line or failed to run."""

    def __init__(self, message: str, command: list[str] | None = None, output: str = ""):
        super().__init__(message)
        self.command = command or []
        self.output = output


class ConcurrentRefreshError(EstmailError):
    """A refresh was requested while another one is still running."""


class ConfigError(EstmailError):
    """The configuration file holds a value that cannot be used."""


class InvalidMaximumError(EstmailError, ValueError):
    """The answer to the large-result prompt is not a usable maximum."""
