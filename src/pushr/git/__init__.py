"""Git access for Pushr"""

from .models import *
from .operations import *

__all__ = [
    # Models
    "CommitInfo",
    "DeployStatus",
    "DeployOutcome",
    "AggregateResult",
    "ApplicationSummary",
    "LOG_FORMAT",
    "LOG_FIELD_SEPARATOR",
    # Operations
    "GitVersionControl",
    "open_repository",
    "git_fetch_latest",
    "git_latest_revision",
    "git_commit_history",
    "git_latest_commit_info",
]
