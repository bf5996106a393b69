"""Per-application deploys: version check, deploy tool invocation, classification."""

import logging
import time
from pathlib import Path
from typing import Optional

from .config import ApplicationConfig, SuccessStrategy
from .error_handling import ConfigurationError, VersionControlError
from .git.models import CommitInfo, DeployOutcome, DeployStatus
from .protocols import ProcessResult, ProcessRunner, VersionControl

logger = logging.getLogger(__name__)

NO_UPGRADE_MESSAGE = "No upgrade required."
FAILURE_MARKER = "failed"
NOTIFICATION_SUBJECT_LENGTH = 100


def classify_output(
    result: ProcessResult, strategy: SuccessStrategy = SuccessStrategy.OUTPUT
) -> bool:
    """Decide whether a deploy tool run succeeded.

    With the ``output`` strategy the run succeeded iff the output is
    non-empty and does not contain ``"failed"`` (case-sensitive). This
    misreads output such as ``"no failed steps"`` as a failure, and a crash
    whose output omits the word as a success.

    With the ``exit_code`` strategy the exit status must be 0 and the
    output non-empty.
    """
    if not result.output:
        return False

    if strategy is SuccessStrategy.EXIT_CODE:
        return result.returncode == 0

    return FAILURE_MARKER not in result.output


class ApplicationDeployer:
    """Deploys one application when its repository is ahead of the deployed copy."""

    def __init__(
        self,
        config: ApplicationConfig,
        version_control: VersionControl,
        runner: ProcessRunner,
        command_timeout: Optional[float] = None,
        success_strategy: SuccessStrategy = SuccessStrategy.OUTPUT,
        log: Optional[logging.Logger] = None,
    ):
        self.log = log or logger
        if not Path(config.path).exists():
            self.log.critical(
                f"Path not valid: {config.path}", extra={"application": config.name}
            )
            raise ConfigurationError(
                f"File not found: {config.path}", application=config.name
            )

        self.config = config
        self.version_control = version_control
        self.runner = runner
        self.command_timeout = command_timeout
        self.success_strategy = success_strategy
        self.commit = self._deployed_commit_info()

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def repository(self) -> str:
        return self.config.repository

    def _extra(self, **fields) -> dict:
        return {"application": self.name, **fields}

    def _deployed_commit_info(self) -> CommitInfo:
        try:
            return self.version_control.latest_commit_info(self.config.deployed_copy)
        except VersionControlError as e:
            self.log.warning(
                f"Cannot read deployed revision: {e}", extra=self._extra()
            )
            return CommitInfo()

    def deploy(self) -> DeployOutcome:
        """Fetch, compare and run the deploy command when revisions differ.

        Raises:
            ConfigurationError: If no deploy command is configured
        """
        command = self.config.deploy_command
        if not command:
            raise ConfigurationError(
                "deploy_command is a required setting", application=self.name
            )

        self.log.info("Downloading updates...", extra=self._extra())
        fetch_output = self.version_control.fetch_latest(self.repository)
        self.log.debug(fetch_output, extra=self._extra())

        self.log.info("Checking versions...", extra=self._extra())
        try:
            latest = self.version_control.latest_revision(self.repository)
            deployed = self.version_control.latest_revision(
                self.config.deployed_copy
            )
        except VersionControlError as e:
            self.log.warning(f"Version check failed: {e}", extra=self._extra())
            return DeployOutcome(
                application=self.name,
                status=DeployStatus.FAILED,
                message=f"{fetch_output}\nVersion check failed: {e}",
            )

        if latest == deployed:
            self.log.info("No updates found", extra=self._extra(revision=deployed))
            return DeployOutcome(
                application=self.name,
                status=DeployStatus.UP_TO_DATE,
                message=NO_UPGRADE_MESSAGE,
                revision=deployed,
            )

        self.log.info(
            f"Updating from {deployed or '(unknown)'} to {latest}",
            extra=self._extra(revision=latest),
        )
        self._check_ancestry(deployed)

        self.log.info("Deployment starting...", extra=self._extra(revision=latest))
        start_time = time.time()
        result = self.runner.run(command, cwd=self.repository, timeout=self.command_timeout)
        duration_ms = int((time.time() - start_time) * 1000)

        success = classify_output(result, self.success_strategy)
        if success:
            self.log.info(
                f"Successfully deployed revision {latest}. Deploy tool output:\n{result.output}",
                extra=self._extra(revision=latest, duration_ms=duration_ms),
            )
        else:
            self.log.warning(
                f"Error when deploying revision {latest}! Deploy tool output:\n{result.output}",
                extra=self._extra(revision=latest, duration_ms=duration_ms),
            )

        return DeployOutcome(
            application=self.name,
            status=DeployStatus.DEPLOYED if success else DeployStatus.FAILED,
            message=result.output,
            revision=latest,
        )

    def _check_ancestry(self, deployed: str) -> None:
        """Warn when the deployed revision is missing from the repository history."""
        try:
            history = self.version_control.commit_history(self.repository)
        except VersionControlError as e:
            self.log.warning(f"Cannot read history: {e}", extra=self._extra())
            return

        if deployed not in history:
            self.log.warning(
                "Deployed revision is not an ancestor of the repository HEAD!",
                extra=self._extra(revision=deployed),
            )

    def notification_message(self, outcome: DeployOutcome) -> Optional[str]:
        """Short status line for the notification sink, None for no-ops."""
        if outcome.is_noop:
            return None

        if not outcome.success:
            return f"FAIL! Deploying {self.name} failed. Check log for details."

        try:
            commit = self.version_control.latest_commit_info(self.repository)
        except VersionControlError:
            commit = CommitInfo(revision=(outcome.revision or "")[:7])

        subject = commit.message[:NOTIFICATION_SUBJECT_LENGTH]
        return f"Deployed {self.name} with revision {commit.revision}: {subject}"
