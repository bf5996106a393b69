"""
Protocol definitions for the collaborators used by the deployers.

These protocols define the seams where Pushr talks to the outside world:
version control, process execution and status notifications. Concrete
implementations live in ``pushr.git``, ``pushr.process`` and
``pushr.notifications``; tests substitute in-memory doubles.

Usage:
    >>> from pushr.protocols import ProcessResult
    >>>
    >>> class EchoRunner:
    ...     def run(self, command, cwd, timeout=None):
    ...         return ProcessResult(output=command, returncode=0)
"""

from abc import abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Union

from .git.models import CommitInfo


@dataclass(frozen=True)
class ProcessResult:
    """Captured result of an external command."""

    output: str
    returncode: Optional[int]


class ProcessRunner(Protocol):
    """Protocol for running external commands with captured output."""

    @abstractmethod
    def run(
        self, command: str, cwd: Union[str, Path], timeout: Optional[float] = None
    ) -> ProcessResult:
        """
        Run a command and capture combined standard output and error.

        Args:
            command: Command line to execute
            cwd: Working directory for the command
            timeout: Seconds before the command is killed, None for no limit

        Returns:
            ProcessResult with the combined output. Failures to start or
            finish the command are reported as output text, never raised.
        """
        ...


class VersionControl(Protocol):
    """Protocol for the version control reads and updates a deploy needs."""

    @abstractmethod
    def fetch_latest(self, location: Union[str, Path]) -> str:
        """
        Update the working copy at ``location`` from its remote.

        Returns:
            Output of the update. Failures are returned as text, never raised.
        """
        ...

    @abstractmethod
    def latest_revision(self, location: Union[str, Path]) -> str:
        """
        Full hash of the most recent commit.

        Raises:
            VersionControlError: If the location cannot be read
        """
        ...

    @abstractmethod
    def commit_history(self, location: Union[str, Path]) -> List[str]:
        """
        All commit hashes reachable from HEAD, most recent first.

        Raises:
            VersionControlError: If the location cannot be read
        """
        ...

    @abstractmethod
    def latest_commit_info(self, location: Union[str, Path]) -> CommitInfo:
        """
        Metadata of the most recent commit.

        Raises:
            VersionControlError: If the location cannot be read
        """
        ...


class NotificationSink(Protocol):
    """Protocol for best-effort delivery of short status messages."""

    @abstractmethod
    async def notify(self, message: str) -> bool:
        """
        Deliver a status message.

        Returns:
            True if delivered. Delivery failures are logged, never raised.
        """
        ...
