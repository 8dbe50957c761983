"""Search engine invocation via the estcmd command line.

We run the engine as a subprocess rather than through bindings, which also
lets the whole command be prefixed to run on another host (e.g. over ssh).

Command shape:
    [prefix...] estcmd search -vu -max -1 [-attr "@ATTR OP VALUE"]...
        [additional args...] <index dir> <free text>
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass

from estmail.config.settings import SearchSettings
from estmail.exceptions import EngineInvocationError, EngineNotFoundError

from .models import TranslatedQuery

logger = logging.getLogger(__name__)


@dataclass
class EngineResult:
    """Exit status and captured output of one engine run."""

    command: list[str]
    exit_code: int
    output: str
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def build_search_command(query: TranslatedQuery, settings: SearchSettings) -> list[str]:
    """Build the engine argument vector for a translated query.

    Predicates become "-attr" pairs in their original order.
    """
    command = [*settings.prefix, settings.engine, "search", "-vu", "-max", "-1"]

    for predicate in query.predicates:
        command.extend(["-attr", predicate.to_attr_expression()])

    command.extend(settings.additional_args)
    command.append(str(settings.index_directory))
    command.append(query.free_text)
    return command


def check_engine_available(settings: SearchSettings) -> None:
    """Check that the engine executable can be found.

    With a remote prefix the first prefix word is checked instead, since the
    engine itself lives on the other host.

    Raises:
        EngineNotFoundError: If the executable is not on PATH.
    """
    executable = settings.prefix[0] if settings.prefix else settings.engine
    if not shutil.which(executable):
        raise EngineNotFoundError(
            f"{executable} not found. Install Hyper Estraier or set engine.executable"
        )


def invoke(query: TranslatedQuery, settings: SearchSettings) -> EngineResult:
    """Run the engine synchronously and capture its output.

    Blocks until the engine exits; there is no timeout. A non-zero exit is
    returned to the caller, not raised.

    Raises:
        EngineNotFoundError: If the executable cannot be launched.
    """
    command = build_search_command(query, settings)
    logger.debug("Running %s", command)

    try:
        result = subprocess.run(
            command,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            encoding=settings.coding,
            errors="replace",
        )
    except FileNotFoundError as e:
        raise EngineNotFoundError(f"Cannot run {command[0]}: {e}") from e

    return EngineResult(
        command=command,
        exit_code=result.returncode,
        output=result.stdout,
        stderr=result.stderr,
    )


def run_search(query: TranslatedQuery, settings: SearchSettings) -> str:
    """Run the engine and return its output, failing hard on error.

    Raises:
        EngineInvocationError: If the engine exits with a non-zero status.
        EngineNotFoundError: If the executable cannot be launched.
    """
    result = invoke(query, settings)

    if not result.ok:
        raise EngineInvocationError(
            result.command,
            result.exit_code,
            stdout=result.output,
            stderr=result.stderr,
        )

    return result.output
