"""
Shared fixtures for the Pushr test suite.

Provides:
1. Real git repositories (origin, fetched repository, deployed copy)
2. In-memory doubles for version control and process execution
3. Application configuration builders
"""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Generator, List, Optional

import git
import pytest

from pushr.config import ApplicationConfig
from pushr.error_handling import VersionControlError
from pushr.git.models import CommitInfo
from pushr.orchestrator import clear_application_locks
from pushr.protocols import ProcessResult


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture(autouse=True)
def reset_application_locks():
    yield
    clear_application_locks()


@pytest.fixture
def test_logger() -> logging.Logger:
    logger = logging.getLogger("pushr.tests")
    logger.setLevel(logging.DEBUG)
    return logger


class GitRepositoryFactory:
    """Factory for the repositories a deploy works with.

    ``origin`` plays the remote, ``repository`` is the clone Pushr pulls
    into and ``deployed`` is the clone standing in for the deployed copy.
    """

    @staticmethod
    def configure(repo: git.Repo) -> git.Repo:
        with repo.config_writer() as config:
            config.set_value("user", "name", "Test User")
            config.set_value("user", "email", "test@example.com")
            config.set_value("pull", "rebase", "false")
        return repo

    @staticmethod
    def create_origin(path: Path) -> git.Repo:
        path.mkdir(parents=True, exist_ok=True)
        repo = GitRepositoryFactory.configure(git.Repo.init(path, initial_branch="master"))
        GitRepositoryFactory.add_commit(repo, "README.md", "# Test Application", "Initial commit")
        return repo

    @staticmethod
    def clone(origin: git.Repo, path: Path) -> git.Repo:
        return GitRepositoryFactory.configure(git.Repo.clone_from(origin.working_dir, path))

    @staticmethod
    def add_commit(repo: git.Repo, file_name: str, content: str, message: str) -> str:
        (Path(repo.working_dir) / file_name).write_text(content)
        repo.index.add([file_name])
        return repo.index.commit(message).hexsha


@pytest.fixture
def git_repo_factory():
    """Provide access to GitRepositoryFactory."""
    return GitRepositoryFactory


@pytest.fixture
def deploy_repos(temp_dir: Path) -> Dict[str, git.Repo]:
    """Origin with one commit, plus a repository clone and a deployed clone."""
    origin = GitRepositoryFactory.create_origin(temp_dir / "origin")
    repository = GitRepositoryFactory.clone(origin, temp_dir / "repository")
    deployed = GitRepositoryFactory.clone(origin, temp_dir / "deployed")
    yield {"origin": origin, "repository": repository, "deployed": deployed}
    for repo in (origin, repository, deployed):
        repo.close()


class FakeVersionControl:
    """In-memory VersionControl keyed by location.

    ``histories`` maps a location to its hashes, most recent first.
    ``pending`` holds hashes that ``fetch_latest`` prepends to a location.
    """

    def __init__(
        self,
        histories: Optional[Dict[str, List[str]]] = None,
        pending: Optional[Dict[str, List[str]]] = None,
        fetch_output: str = "Updating",
    ):
        self.histories = {str(Path(k)): list(v) for k, v in (histories or {}).items()}
        self.pending = {str(Path(k)): list(v) for k, v in (pending or {}).items()}
        self.fetch_output = fetch_output
        self.calls: List[tuple] = []

    def _history(self, location) -> List[str]:
        key = str(Path(location))
        if key not in self.histories:
            raise VersionControlError(f"Not a git repository: {location}")
        return self.histories[key]

    def fetch_latest(self, location) -> str:
        key = str(Path(location))
        self.calls.append(("fetch_latest", key))
        new = self.pending.pop(key, [])
        if key in self.histories:
            self.histories[key] = list(new) + self.histories[key]
        return self.fetch_output

    def latest_revision(self, location) -> str:
        self.calls.append(("latest_revision", str(Path(location))))
        return self._history(location)[0]

    def commit_history(self, location) -> List[str]:
        self.calls.append(("commit_history", str(Path(location))))
        return list(self._history(location))

    def latest_commit_info(self, location) -> CommitInfo:
        self.calls.append(("latest_commit_info", str(Path(location))))
        head = self._history(location)[0]
        return CommitInfo(
            revision=head[:7],
            message=f"Commit {head}",
            author="Test User",
            when="2 hours ago",
            datetime="2026-10-16 10:00:00 +0000",
        )


class FakeRunner:
    """ProcessRunner double returning canned output per working directory."""

    def __init__(self, output: str = "Deploy finished.", returncode: Optional[int] = 0):
        self.default = ProcessResult(output=output, returncode=returncode)
        self.results: Dict[str, ProcessResult] = {}
        self.calls: List[tuple] = []

    def set_result(self, cwd, output: str, returncode: Optional[int] = 0) -> None:
        self.results[str(Path(cwd))] = ProcessResult(output=output, returncode=returncode)

    def run(self, command, cwd, timeout=None) -> ProcessResult:
        self.calls.append((command, str(Path(cwd)), timeout))
        return self.results.get(str(Path(cwd)), self.default)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def fake_vcs_factory():
    return FakeVersionControl


@pytest.fixture
def runner_factory():
    return FakeRunner


@pytest.fixture
def make_app(temp_dir: Path):
    """Build an ApplicationConfig with existing deployed and repository dirs."""

    def _make_app(name: str, deploy_command: Optional[str] = "cap deploy", **overrides):
        deployed = temp_dir / name / "deployed"
        repository = temp_dir / name / "repository"
        deployed.mkdir(parents=True, exist_ok=True)
        repository.mkdir(parents=True, exist_ok=True)
        data = {
            "name": name,
            "path": str(deployed),
            "repository": str(repository),
            "deploy_command": deploy_command,
        }
        data.update(overrides)
        return ApplicationConfig(**data)

    return _make_app


def pytest_configure(config):
    config.addinivalue_line("markers", "requires_git: Tests that create real git repositories")
