"""External command execution for deploy tools."""

import logging
import shlex
import subprocess
import time
from pathlib import Path
from typing import Optional, Union

from .error_handling import describe_error
from .protocols import ProcessResult

logger = logging.getLogger(__name__)


class SubprocessRunner:
    """ProcessRunner implementation using ``subprocess.run``.

    Standard error is merged into standard output so the deploy tool's
    output is classified as a single text blob. The command line is split
    with ``shlex`` and executed without a shell.
    """

    def run(
        self, command: str, cwd: Union[str, Path], timeout: Optional[float] = None
    ) -> ProcessResult:
        start_time = time.time()
        try:
            result = subprocess.run(
                shlex.split(command),
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            logger.warning(f"Command timed out after {timeout}s: {command}")
            partial = e.output or ""
            if isinstance(partial, bytes):
                partial = partial.decode(errors="replace")
            message = describe_error(
                TimeoutError(f"'{command}' timed out after {timeout}s")
            )
            return ProcessResult(output=f"{partial}{message}", returncode=None)
        except (OSError, ValueError) as e:
            # Command not found, bad working directory, unbalanced quotes
            logger.warning(f"Could not run '{command}': {e}")
            return ProcessResult(output=describe_error(e), returncode=None)

        duration_ms = int((time.time() - start_time) * 1000)
        logger.debug(
            f"'{command}' exited with {result.returncode}",
            extra={"duration_ms": duration_ms},
        )
        return ProcessResult(output=result.stdout, returncode=result.returncode)
