"""CI report ingestion: from a base64 test log to filed bugs."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any

from server.models import (
    CIReportContext,
    CIReportRequest,
    CIReportResult,
    CreatedBugSummary,
    FailedBugSummary,
    NormalizedFailure,
    Project,
    User,
)
from server.services.bug_materializer import BugMaterializer
from server.services.database_service import DatabaseService
from server.services.failure_parser import extract_failures
from server.utils.api_keys import verify_api_key

logger = logging.getLogger(__name__)


class CIReportError(Exception):
    """Base error for a rejected CI report; carries the HTTP status to answer with."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidPayloadError(CIReportError):
    status_code = 400


class InvalidApiKeyError(CIReportError):
    status_code = 401


class ProjectNotFoundError(CIReportError):
    status_code = 404


class DefaultReporterNotFoundError(CIReportError):
    status_code = 500


MISSING_FIELDS_MESSAGE = "Missing required fields: projectId and testOutput"


def decode_test_output(encoded: str) -> str:
    """Decode the base64 ``testOutput`` field into text.

    Missing padding is tolerated and invalid UTF-8 sequences are replaced.
    """
    compact = "".join(encoded.split())
    compact += "=" * (-len(compact) % 4)
    try:
        raw = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidPayloadError("testOutput must be base64-encoded") from e
    return raw.decode("utf-8", errors="replace")


@dataclass
class ReporterPolicy:
    """How to pick the user that signs automatically filed bugs.

    An explicit user id wins, then an email, then the earliest-created admin.
    """

    user_id: str | None = None
    email: str | None = None

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> ReporterPolicy:
        reporter = config.get("default_reporter") or {}
        return cls(user_id=reporter.get("user_id"), email=reporter.get("email"))

    def resolve(self, db_service: DatabaseService) -> User | None:
        if self.user_id:
            return db_service.get_user(self.user_id)
        if self.email:
            return db_service.get_user_by_email(self.email)
        return db_service.get_first_admin()


class CIReportService:
    """Validates a CI report, parses failures and files one bug per failure."""

    def __init__(
        self,
        db_service: DatabaseService,
        reporter_policy: ReporterPolicy | None = None,
        verify_keys: bool = True,
        link_base_url: str = "https://github.com",
    ):
        self.db_service = db_service
        self.reporter_policy = reporter_policy or ReporterPolicy()
        self.verify_keys = verify_keys
        self.materializer = BugMaterializer(db_service, link_base_url=link_base_url)

    def validate(self, request: CIReportRequest) -> None:
        if not request.project_id or not request.test_output:
            raise InvalidPayloadError(MISSING_FIELDS_MESSAGE)

    def resolve_project(self, project_id: str) -> Project:
        project = self.db_service.get_project(project_id)
        if not project:
            raise ProjectNotFoundError("Project not found")
        return project

    def check_api_key(self, project: Project, api_key: str) -> None:
        if not self.verify_keys:
            return
        if not verify_api_key(api_key, self.db_service.get_project_api_key_hash(project.id)):
            logger.warning("Rejected CI report for project %s: API key mismatch", project.id)
            raise InvalidApiKeyError("Unauthorized")

    def resolve_reporter(self) -> User:
        reporter = self.reporter_policy.resolve(self.db_service)
        if not reporter:
            raise DefaultReporterNotFoundError("No default reporter found")
        return reporter

    def file_bugs(
        self,
        failures: list[NormalizedFailure],
        project: Project,
        context: CIReportContext,
    ) -> CIReportResult:
        """Materialize failures one after another.

        Each failure is its own unit: a persistence error is recorded in the
        result and the loop moves on to the next failure.
        """
        result = CIReportResult()
        for failure in failures:
            try:
                bug = self.materializer.materialize(failure, context)
            except Exception as e:
                logger.warning("Could not file bug for failing test '%s': %s", failure.test_name, e)
                result.failed.append(FailedBugSummary(test_name=failure.test_name, error=str(e)))
                continue

            result.bugs.append(
                CreatedBugSummary(id=bug.id, title=bug.title, project=bug.project_name or project.name)
            )

        result.created = len(result.bugs)
        return result

    def process(self, request: CIReportRequest, api_key: str) -> CIReportResult | None:
        """Run the whole report.

        Returns None when the output contains no failures; nothing is filed
        in that case. The project is resolved before the key is checked, so an
        unknown project answers 404 whatever the key.
        """
        self.validate(request)
        project = self.resolve_project(request.project_id)
        self.check_api_key(project, api_key)

        output = decode_test_output(request.test_output)
        failures = extract_failures(output)
        if not failures:
            logger.info("CI report for project %s: no failures detected", project.id)
            return None

        logger.info("Detected %d test failure(s) for project %s", len(failures), project.id)
        reporter = self.resolve_reporter()

        context = CIReportContext(
            project_id=project.id,
            reporter_id=reporter.id,
            commit=request.commit,
            branch=request.branch,
            repository=request.repository or project.repository,
        )
        return self.file_bugs(failures, project, context)
