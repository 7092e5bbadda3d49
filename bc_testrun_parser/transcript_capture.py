"""
Runs a test-engine command and captures its console transcript.

The command is whatever invokes the engine (typically a PowerShell call to
Run-TestsInBcContainer). stdout and stderr are captured together so that
interleaved diagnostics stay in order with the result lines.
"""

import logging
import subprocess
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 1800


@dataclass(frozen=True)
class CapturedRun:
    """Transcript and timing of one engine invocation."""
    transcript: str
    duration_seconds: float
    return_code: int


def capture_transcript(command: list[str], timeout: int = DEFAULT_TIMEOUT) -> CapturedRun:
    """
    Run a command and capture its combined output.

    Args:
        command: Command and arguments
        timeout: Timeout in seconds

    Returns:
        CapturedRun with the transcript, wall-clock duration and exit code

    Raises:
        FileNotFoundError: If the executable does not exist
        subprocess.TimeoutExpired: If the command exceeds the timeout
    """
    logger.info(f"Running test command: {' '.join(command)}")
    started = time.monotonic()
    result = subprocess.run(
        command,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        errors="replace",
        timeout=timeout,
    )
    duration = time.monotonic() - started
    logger.info(f"Test command exited with {result.returncode} after {duration:.1f}s")
    return CapturedRun(
        transcript=result.stdout or "",
        duration_seconds=duration,
        return_code=result.returncode,
    )
