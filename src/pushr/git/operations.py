"""Git operations used to compare and update application revisions"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from ..error_handling import VersionControlError, describe_error
from .models import LOG_FORMAT, CommitInfo

logger = logging.getLogger(__name__)


def open_repository(location: Union[str, Path]) -> Repo:
    """Open the working copy at ``location``"""
    try:
        return Repo(location)
    except (InvalidGitRepositoryError, NoSuchPathError) as e:
        raise VersionControlError(f"Not a git repository: {location} ({e})") from e


def git_fetch_latest(repo: Repo, timeout: Optional[float] = None) -> str:
    """Pull the tracked branch into the working copy.

    Errors are returned as text so they end up in the deploy log.
    """
    try:
        output = repo.git.pull(kill_after_timeout=timeout)
        return output or "Already up to date."
    except GitCommandError as e:
        logger.warning(f"git pull failed in {repo.working_dir}: {e}")
        return describe_error(e)


def git_latest_revision(repo: Repo) -> str:
    """Full hash of HEAD"""
    try:
        return repo.git.rev_list("HEAD", max_count=1).strip()
    except GitCommandError as e:
        raise VersionControlError(
            f"Cannot read revision of {repo.working_dir}: {e}"
        ) from e


def git_commit_history(repo: Repo) -> List[str]:
    """Hashes of every commit reachable from HEAD, most recent first"""
    try:
        return repo.git.rev_list("HEAD").split()
    except GitCommandError as e:
        raise VersionControlError(
            f"Cannot read history of {repo.working_dir}: {e}"
        ) from e


def git_latest_commit_info(repo: Repo) -> CommitInfo:
    """Short hash, subject, author, relative age and timestamp of HEAD"""
    try:
        line = repo.git.log(f"--pretty=format:{LOG_FORMAT}", "-n", "1")
    except GitCommandError as e:
        raise VersionControlError(
            f"Cannot read log of {repo.working_dir}: {e}"
        ) from e

    return CommitInfo.from_log_line(line)


class GitVersionControl:
    """VersionControl implementation backed by GitPython."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout

    def fetch_latest(self, location: Union[str, Path]) -> str:
        try:
            repo = open_repository(location)
        except VersionControlError as e:
            logger.warning(str(e))
            return describe_error(e)

        with repo:
            return git_fetch_latest(repo, timeout=self.timeout)

    def latest_revision(self, location: Union[str, Path]) -> str:
        with open_repository(location) as repo:
            return git_latest_revision(repo)

    def commit_history(self, location: Union[str, Path]) -> List[str]:
        with open_repository(location) as repo:
            return git_commit_history(repo)

    def latest_commit_info(self, location: Union[str, Path]) -> CommitInfo:
        with open_repository(location) as repo:
            return git_latest_commit_info(repo)
