"""Configuration for Pushr.

Settings are read from a YAML file and validated with pydantic. A handful
of values can be overridden from the environment, which is populated from
``.env`` files with python-dotenv without overriding variables that are
already set.

Example ``config.yml``::

    name: production
    token: secret
    applications:
      - name: shop
        path: /var/www/shop
        revision_dir: shared/cached-copy
        repository: /srv/repos/shop
        deploy_command: cap deploy
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import yaml
from dotenv import dotenv_values, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .error_handling import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_APPLICATION_NAME = "You really should set this to something"
DEFAULT_CONFIG_FILE = "config.yml"

# Token values that count as "not set" in the file or the environment
TOKEN_PLACEHOLDERS = ["", "YOUR_TOKEN_HERE", "REPLACE_ME", "CHANGEME"]


class SuccessStrategy(str, Enum):
    """How deploy tool output is judged."""

    OUTPUT = "output"  # non-empty and no "failed" in the text
    EXIT_CODE = "exit_code"  # exit status 0 and non-empty output


class ApplicationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = DEFAULT_APPLICATION_NAME
    path: str
    repository: str
    revision_dir: Optional[str] = None
    deploy_command: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _default_name(cls, value):
        return value or DEFAULT_APPLICATION_NAME

    @property
    def deployed_copy(self) -> Path:
        """Working copy whose HEAD is the deployed revision"""
        if self.revision_dir:
            return Path(self.path) / self.revision_dir
        return Path(self.path)


class NotificationConfig(BaseModel):
    url: Optional[str] = None
    timeout: float = 10.0

    @property
    def enabled(self) -> bool:
        return bool(self.url)


class PushrSettings(BaseModel):
    name: str = "pushr"
    token: Optional[str] = None
    command_timeout: Optional[float] = Field(default=600.0, gt=0)
    success_strategy: SuccessStrategy = SuccessStrategy.OUTPUT
    abort_on_configuration_error: bool = True
    log_file: Optional[str] = None
    log_level: str = "INFO"
    notification: NotificationConfig = NotificationConfig()
    applications: list[ApplicationConfig] = []

    @field_validator("token", mode="before")
    @classmethod
    def _unset_placeholder_token(cls, value):
        if isinstance(value, str) and is_placeholder(value):
            return None
        return value


def is_placeholder(value: Optional[str]) -> bool:
    """Check whether a setting value is missing or an obvious placeholder."""
    if value is None:
        return True
    return value.strip() in TOKEN_PLACEHOLDERS


def load_environment_variables(config_path: Optional[Path] = None) -> list[str]:
    """Load ``.env`` files from the working directory and the config directory.

    Existing environment variables win, except ``PUSHR_TOKEN`` which is
    replaced when it only holds a placeholder.

    Returns:
        Paths of the files that were loaded
    """
    candidates = [Path.cwd() / ".env"]
    if config_path is not None:
        candidates.append(config_path.parent / ".env")

    loaded_files = []
    for env_file in dict.fromkeys(c.resolve() for c in candidates):
        if not env_file.exists():
            continue

        token_before = os.getenv("PUSHR_TOKEN")
        load_dotenv(env_file, override=False)

        if is_placeholder(token_before):
            file_token = dotenv_values(env_file).get("PUSHR_TOKEN")
            if not is_placeholder(file_token):
                os.environ["PUSHR_TOKEN"] = file_token

        loaded_files.append(str(env_file))
        logger.info(f"Loaded environment variables from {env_file}")

    return loaded_files


def _apply_environment_overrides(data: dict) -> dict:
    token = os.getenv("PUSHR_TOKEN")
    if not is_placeholder(token):
        data["token"] = token

    log_level = os.getenv("PUSHR_LOG_LEVEL")
    if log_level:
        data["log_level"] = log_level

    timeout = os.getenv("PUSHR_COMMAND_TIMEOUT")
    if timeout:
        data["command_timeout"] = timeout

    notification_url = os.getenv("PUSHR_NOTIFICATION_URL")
    if notification_url:
        notification = dict(data.get("notification") or {})
        notification["url"] = notification_url
        data["notification"] = notification

    return data


def load_settings(config_path: Union[str, Path, None] = None) -> PushrSettings:
    """Read, override and validate the configuration file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    path = Path(config_path or DEFAULT_CONFIG_FILE)
    load_environment_variables(path)

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigurationError(f"Configuration file not found: {path}") from e
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read configuration {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration {path} must be a mapping")

    try:
        settings = PushrSettings.model_validate(_apply_environment_overrides(data))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration {path}: {e}") from e

    logger.debug(
        f"Loaded {len(settings.applications)} application(s) from {path}"
    )
    return settings
