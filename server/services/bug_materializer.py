"""Turns parsed CI failures into tracked bugs."""

from __future__ import annotations

import logging

from server.models import (
    Bug,
    BugPriority,
    BugSeverity,
    BugSource,
    BugStatus,
    CIReportContext,
    FailureTestType,
    NormalizedFailure,
)
from server.services.database_service import DatabaseService
from server.services.failure_parser import UNKNOWN_FILE

logger = logging.getLogger(__name__)

CI_ACTIVITY_ACTION = "created this bug from CI test failure"
SHORT_COMMIT_LENGTH = 7


def build_bug_title(failure: NormalizedFailure) -> str:
    return f"Test Failure: {failure.test_name}"


def build_bug_description(
    failure: NormalizedFailure,
    context: CIReportContext,
    link_base_url: str = "https://github.com",
) -> str:
    """Render the markdown body of a CI bug.

    File and commit links are only added when the repository is known; a file
    link also needs a real file path.
    """
    has_file = bool(failure.file) and failure.file != UNKNOWN_FILE
    short_commit = context.commit[:SHORT_COMMIT_LENGTH] if context.commit else None

    file_line = f"**File:** {failure.file or 'Unknown'}"
    if failure.line:
        file_line += f" (line {failure.line})"

    lines = [
        "## Test Failure Details",
        "",
        "**Error Message:**",
        "```",
        failure.error,
        "```",
        "",
        file_line,
    ]
    if context.repository and has_file:
        ref = context.commit or "HEAD"
        file_url = f"{link_base_url}/{context.repository}/blob/{ref}/{failure.file}"
        lines.append(f"**View File:** [{failure.file}]({file_url})")

    lines.extend(
        [
            "",
            f"**Branch:** {context.branch or 'unknown'}",
            f"**Commit:** {short_commit or 'unknown'}",
        ]
    )
    if context.repository and context.commit:
        commit_url = f"{link_base_url}/{context.repository}/commit/{context.commit}"
        lines.append(f"**View Commit:** [{short_commit}]({commit_url})")

    lines.extend(["", "This bug was automatically created from CI test failures."])
    return "\n".join(lines)


def priority_for(failure: NormalizedFailure) -> BugPriority:
    if failure.test_type == FailureTestType.INTEGRATION:
        return BugPriority.HIGH
    return BugPriority.MEDIUM


def severity_for(failure: NormalizedFailure) -> BugSeverity:
    if failure.test_type == FailureTestType.INTEGRATION:
        return BugSeverity.MAJOR
    return BugSeverity.MINOR


class BugMaterializer:
    """Persists one bug plus its creation activity per CI failure."""

    def __init__(self, db_service: DatabaseService, link_base_url: str = "https://github.com"):
        self.db_service = db_service
        self.link_base_url = link_base_url.rstrip("/")

    def materialize(self, failure: NormalizedFailure, context: CIReportContext) -> Bug:
        """Create the bug and its activity as a single unit.

        Both rows are committed together. On any error the transaction is rolled
        back and the exception propagates, leaving earlier bugs untouched.
        """
        try:
            bug = self.db_service.create_bug(
                title=build_bug_title(failure),
                description=build_bug_description(failure, context, self.link_base_url),
                project_id=context.project_id,
                reporter_id=context.reporter_id,
                status=BugStatus.OPEN,
                priority=priority_for(failure),
                severity=severity_for(failure),
                source=BugSource.CI,
            )
            self.db_service.create_activity(
                action=CI_ACTIVITY_ACTION,
                bug_id=bug.id,
                project_id=context.project_id,
                user_id=context.reporter_id,
            )
            self.db_service.commit()
        except Exception:
            self.db_service.rollback()
            raise

        logger.info("Created bug %s for failing test '%s'", bug.id, failure.test_name)
        return bug
