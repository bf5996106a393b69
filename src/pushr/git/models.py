"""Pydantic models for revisions and deploy results"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

LOG_FIELD_SEPARATOR = " ;;;;; "
LOG_FORMAT = LOG_FIELD_SEPARATOR.join(["%h", "%s", "%an", "%ar", "%ci"])


class CommitInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    revision: str = ""
    message: str = ""
    author: str = ""
    when: str = ""
    datetime: str = ""

    @classmethod
    def from_log_line(cls, line: str) -> "CommitInfo":
        """Parse a single ``git log`` line produced with ``LOG_FORMAT``.

        Missing trailing fields are left empty, extra separators are kept
        in the last field.
        """
        fields = line.strip().split(LOG_FIELD_SEPARATOR, 4)
        fields += [""] * (5 - len(fields))
        revision, message, author, when, timestamp = fields
        return cls(
            revision=revision,
            message=message,
            author=author,
            when=when,
            datetime=timestamp,
        )

    @property
    def is_empty(self) -> bool:
        return not self.revision


class DeployStatus(str, Enum):
    DEPLOYED = "deployed"
    FAILED = "failed"
    UP_TO_DATE = "up_to_date"


class DeployOutcome(BaseModel):
    application: str
    status: DeployStatus
    message: str
    revision: Optional[str] = None

    @property
    def success(self) -> bool:
        # An up to date application does not block the batch
        return self.status is not DeployStatus.FAILED

    @property
    def is_noop(self) -> bool:
        return self.status is DeployStatus.UP_TO_DATE


class AggregateResult(BaseModel):
    success: bool
    log: str
    outcomes: list[DeployOutcome] = []
    notifications: list[str] = []


class ApplicationSummary(BaseModel):
    name: str
    commit: CommitInfo
