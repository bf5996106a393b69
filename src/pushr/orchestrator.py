"""Sequential deploys across all configured applications."""

import logging
import threading
from typing import Dict, Iterable, List, Optional

from .config import ApplicationConfig, PushrSettings, SuccessStrategy
from .deployer import ApplicationDeployer
from .error_handling import ConfigurationError
from .git.models import (
    AggregateResult,
    ApplicationSummary,
    DeployOutcome,
    DeployStatus,
)
from .git.operations import GitVersionControl
from .process import SubprocessRunner
from .protocols import ProcessRunner, VersionControl

logger = logging.getLogger(__name__)

SECTION_SEPARATOR = "=" * 40
RECORD_SEPARATOR = "\n"


# Process-wide registry of per-application locks
_application_locks: Dict[str, threading.Lock] = {}
_registry_lock = threading.Lock()


def get_application_lock(name: str) -> threading.Lock:
    """Get or create the lock serialising deploys of one application."""
    with _registry_lock:
        if name not in _application_locks:
            _application_locks[name] = threading.Lock()
        return _application_locks[name]


def clear_application_locks() -> None:
    """Forget all application locks (useful for testing)."""
    with _registry_lock:
        _application_locks.clear()


def format_section(name: str, output: str) -> str:
    return f"{name}\n{SECTION_SEPARATOR}\n{output}"


class DeploymentOrchestrator:
    """Builds a deployer per configured application and deploys them in order.

    Deployers are created fresh on every call, so nothing about repository
    state is cached between runs.
    """

    def __init__(
        self,
        applications: Iterable[ApplicationConfig],
        version_control: Optional[VersionControl] = None,
        runner: Optional[ProcessRunner] = None,
        command_timeout: Optional[float] = None,
        success_strategy: SuccessStrategy = SuccessStrategy.OUTPUT,
        abort_on_configuration_error: bool = True,
        log: Optional[logging.Logger] = None,
    ):
        self.applications = list(applications)
        self.version_control = version_control or GitVersionControl(
            timeout=command_timeout
        )
        self.runner = runner or SubprocessRunner()
        self.command_timeout = command_timeout
        self.success_strategy = success_strategy
        self.abort_on_configuration_error = abort_on_configuration_error
        self.log = log or logger

    @classmethod
    def from_settings(
        cls,
        settings: PushrSettings,
        version_control: Optional[VersionControl] = None,
        runner: Optional[ProcessRunner] = None,
        log: Optional[logging.Logger] = None,
    ) -> "DeploymentOrchestrator":
        return cls(
            settings.applications,
            version_control=version_control,
            runner=runner,
            command_timeout=settings.command_timeout,
            success_strategy=settings.success_strategy,
            abort_on_configuration_error=settings.abort_on_configuration_error,
            log=log,
        )

    def build_deployer(self, config: ApplicationConfig) -> ApplicationDeployer:
        return ApplicationDeployer(
            config,
            version_control=self.version_control,
            runner=self.runner,
            command_timeout=self.command_timeout,
            success_strategy=self.success_strategy,
            log=self.log,
        )

    def info(self) -> List[ApplicationSummary]:
        """Deployed revision of every application. No side effects.

        Raises:
            ConfigurationError: If an application path does not exist
        """
        return [
            ApplicationSummary(name=deployer.name, commit=deployer.commit)
            for deployer in map(self.build_deployer, self.applications)
        ]

    def _deploy_one(self, config: ApplicationConfig) -> tuple[DeployOutcome, Optional[str]]:
        with get_application_lock(config.name):
            try:
                deployer = self.build_deployer(config)
                outcome = deployer.deploy()
            except ConfigurationError as e:
                if self.abort_on_configuration_error:
                    raise
                self.log.error(
                    f"Skipping application: {e}", extra={"application": config.name}
                )
                return (
                    DeployOutcome(
                        application=config.name,
                        status=DeployStatus.FAILED,
                        message=f"Configuration error: {e}",
                    ),
                    None,
                )

            return outcome, deployer.notification_message(outcome)

    def deploy_all(self) -> AggregateResult:
        """Deploy every application in order and aggregate the outcomes.

        Every application is attempted even when an earlier one fails.

        Raises:
            ConfigurationError: On an invalid application when
                ``abort_on_configuration_error`` is set
        """
        success = True
        sections = []
        outcomes = []
        notifications = []

        for config in self.applications:
            outcome, notification = self._deploy_one(config)
            sections.append(format_section(config.name, outcome.message))
            outcomes.append(outcome)
            if notification:
                notifications.append(notification)
            if not outcome.success:
                success = False

        self.log.info(
            f"Deployed {len(outcomes)} application(s), "
            f"{'all succeeded' if success else 'with failures'}"
        )
        return AggregateResult(
            success=success,
            log=RECORD_SEPARATOR.join(sections),
            outcomes=outcomes,
            notifications=notifications,
        )
