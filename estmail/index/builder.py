"""Index creation with the engine's gather command.

    estcmd gather -cl -fm -cm <index dir> <target dir>

The builder exits with status 0 even for some failures, so its output is
also checked for lines starting with "ERROR:".
"""

import logging
import re
import subprocess
from collections.abc import Sequence
from pathlib import Path

from estmail.config.settings import SearchSettings
from estmail.exceptions import IndexBuildError

logger = logging.getLogger(__name__)

# The index keeps its metadata here; the file's mtime is the last update time
MARKER_FILE = "_meta"

ERROR_LINE = re.compile(r"^(?:\S+: )?ERROR:", re.MULTILINE)


def marker_path(index_directory: Path) -> Path:
    """Path of the metadata file whose mtime records the last update."""
    return index_directory / MARKER_FILE


def build_gather_command(settings: SearchSettings, targets: Sequence[Path]) -> list[str]:
    """Build the builder argument vector for one or more target directories."""
    return [
        settings.builder,
        *settings.builder_args,
        str(settings.index_directory),
        *(str(target) for target in targets),
    ]


def find_error_lines(output: str) -> list[str]:
    """Return the lines of builder output that report an error."""
    return [line for line in output.splitlines() if ERROR_LINE.match(line)]


def run_gather(settings: SearchSettings, targets: Sequence[Path]) -> str:
    """Run the builder synchronously and return its combined output.

    Raises:
        IndexBuildError: If the builder cannot be launched, exits with a
            non-zero status, or reports an ERROR: line.
    """
    command = build_gather_command(settings, targets)
    logger.info("Running %s", " ".join(command))

    try:
        result = subprocess.run(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            encoding=settings.coding,
            errors="replace",
        )
    except OSError as e:
        raise IndexBuildError(f"Cannot run {command[0]}: {e}", command) from e

    output = result.stdout or ""
    errors = find_error_lines(output)
    if errors:
        raise IndexBuildError(
            f"{' '.join(command)} failed: {errors[0]}", command, output
        )
    if result.returncode != 0:
        raise IndexBuildError(
            f"{' '.join(command)} exited with status {result.returncode}",
            command,
            output,
        )
    return output


def create_index(settings: SearchSettings) -> int:
    """Create or update the index synchronously, one target at a time.

    Blocks until every target is gathered. Stops at the first failure.

    Returns:
        Number of target directories gathered.

    Raises:
        IndexBuildError: If any gather run fails.
    """
    settings.index_directory.parent.mkdir(parents=True, exist_ok=True)

    for target in settings.target_directories:
        run_gather(settings, [target])

    return len(settings.target_directories)
