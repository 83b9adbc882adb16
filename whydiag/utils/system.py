"""
System command execution helpers.

Every external command runs with a timeout so a hung tool cannot stall a
diagnostic run.
"""

import logging
import shutil
import subprocess
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class CommandError(Exception):
    """Raised when a command is missing, times out, or exits non-zero."""

    def __init__(self, args: Sequence[str], message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(f"{' '.join(args)}: {message}")
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr


def command_exists(name: str) -> bool:
    """Check if a command is available in PATH."""
    return shutil.which(name) is not None


def run_process(args: Sequence[str], timeout: float = DEFAULT_TIMEOUT) -> subprocess.CompletedProcess:
    """
    Run a command and return the completed process whatever its exit status.

    Raises:
        CommandError: if the binary cannot be executed or the timeout expires
    """
    if not args:
        raise ValueError("run_process requires at least one argument")
    logger.debug(f"Running: {' '.join(args)}")
    try:
        return subprocess.run(
            list(args),
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise CommandError(args, "command not found") from e
    except PermissionError as e:
        raise CommandError(args, "permission denied") from e
    except subprocess.TimeoutExpired as e:
        raise CommandError(args, f"timed out after {timeout:g}s") from e


def run_cmd(args: Sequence[str], timeout: float = DEFAULT_TIMEOUT) -> str:
    """
    Run a command and return its stdout.

    Raises:
        CommandError: on missing binary, timeout, or non-zero exit
    """
    process = run_process(args, timeout=timeout)
    if process.returncode != 0:
        raise CommandError(
            args,
            f"exited with status {process.returncode}: {process.stderr.strip()}",
            returncode=process.returncode,
            stderr=process.stderr,
        )
    return process.stdout
