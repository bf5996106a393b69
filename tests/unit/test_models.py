"""Tests for the revision and result models."""

import pytest
from pydantic import ValidationError

from pushr.git.models import (
    LOG_FIELD_SEPARATOR,
    LOG_FORMAT,
    AggregateResult,
    CommitInfo,
    DeployOutcome,
    DeployStatus,
)


class TestCommitInfo:
    def test_from_log_line(self):
        line = LOG_FIELD_SEPARATOR.join(
            ["1a2b3c4", "Fix checkout", "Jo Doe", "3 days ago", "2026-10-13 09:15:02 +0200"]
        )

        info = CommitInfo.from_log_line(line)

        assert info.revision == "1a2b3c4"
        assert info.message == "Fix checkout"
        assert info.author == "Jo Doe"
        assert info.when == "3 days ago"
        assert info.datetime == "2026-10-13 09:15:02 +0200"
        assert not info.is_empty

    def test_message_with_semicolons_is_kept(self):
        line = LOG_FIELD_SEPARATOR.join(["abc", "a; b;; c", "Jo", "now", "2026-10-16"])

        assert CommitInfo.from_log_line(line).message == "a; b;; c"

    def test_missing_fields_are_empty(self):
        info = CommitInfo.from_log_line("abc1234")

        assert info.revision == "abc1234"
        assert info.message == ""
        assert info.datetime == ""

    def test_empty_line(self):
        assert CommitInfo.from_log_line("").is_empty

    def test_frozen(self):
        with pytest.raises(ValidationError):
            CommitInfo(revision="abc").revision = "def"

    def test_log_format_has_five_fields(self):
        assert LOG_FORMAT.split(LOG_FIELD_SEPARATOR) == ["%h", "%s", "%an", "%ar", "%ci"]


class TestDeployOutcome:
    @pytest.mark.parametrize(
        "status,success,noop",
        [
            (DeployStatus.DEPLOYED, True, False),
            (DeployStatus.FAILED, False, False),
            (DeployStatus.UP_TO_DATE, True, True),
        ],
    )
    def test_success_by_status(self, status, success, noop):
        outcome = DeployOutcome(application="shop", status=status, message="")

        assert outcome.success is success
        assert outcome.is_noop is noop

    def test_status_values(self):
        assert DeployStatus("up_to_date") is DeployStatus.UP_TO_DATE


def test_aggregate_defaults():
    result = AggregateResult(success=True, log="")

    assert result.outcomes == []
    assert result.notifications == []
