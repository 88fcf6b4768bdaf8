"""Data models for the bug tracker API."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class UserRole(StrEnum):
    ADMIN = "admin"
    USER = "user"


class BugStatus(StrEnum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class BugPriority(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class BugSeverity(StrEnum):
    MINOR = "MINOR"
    MAJOR = "MAJOR"
    CRITICAL = "CRITICAL"


class BugSource(StrEnum):
    """Where a bug came from."""

    MANUAL = "manual"
    CI = "ci"  # Filed automatically from a failing CI run


class FrameworkKind(StrEnum):
    """Test-runner family recognised in CI output."""

    JEST = "jest"
    PYTEST = "pytest"
    GENERIC = "generic"


class FailureTestType(StrEnum):
    """Test suite a failure belongs to, derived from its file path."""

    UNIT = "unit"
    INTEGRATION = "integration"
    UNKNOWN = "unknown"


# User / project / bug models
class User(BaseModel):
    id: str
    email: str
    name: str
    role: UserRole = UserRole.USER
    created_at: datetime | None = None


class Project(BaseModel):
    id: str
    name: str
    description: str | None = None
    repository: str | None = None
    has_api_key: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Bug(BaseModel):
    id: str
    title: str
    description: str
    status: BugStatus = BugStatus.OPEN
    priority: BugPriority = BugPriority.MEDIUM
    severity: BugSeverity = BugSeverity.MINOR
    source: BugSource = BugSource.MANUAL
    project_id: str
    project_name: str | None = None
    reporter_id: str
    assignee_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Activity(BaseModel):
    id: str
    action: str
    bug_id: str | None = None
    project_id: str | None = None
    user_id: str
    created_at: datetime | None = None


# CI ingestion models
class NormalizedFailure(BaseModel):
    """One failing test pulled out of raw CI output."""

    # Field names follow the JSON payloads exchanged with CI callers
    model_config = ConfigDict(populate_by_name=True)

    test_name: str = Field(alias="testName")
    file: str | None = None
    error: str
    line: int | None = None
    test_type: FailureTestType = Field(default=FailureTestType.UNKNOWN, alias="testType")


class CIReportRequest(BaseModel):
    """Body of a CI report; every field is optional at parse time so the handler can report what is missing."""

    model_config = ConfigDict(populate_by_name=True)

    project_id: str | None = Field(default=None, alias="projectId")
    commit: str | None = None
    branch: str | None = None
    repository: str | None = None
    test_output: str | None = Field(default=None, alias="testOutput")


class CIReportContext(BaseModel):
    """Everything the materializer needs besides the failure itself."""

    project_id: str
    reporter_id: str
    commit: str | None = None
    branch: str | None = None
    repository: str | None = None


class CreatedBugSummary(BaseModel):
    id: str
    title: str
    project: str


class FailedBugSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    test_name: str = Field(alias="testName")
    error: str


class CIReportResult(BaseModel):
    """Outcome of one CI report."""

    created: int = 0
    bugs: list[CreatedBugSummary] = Field(default_factory=list)
    failed: list[FailedBugSummary] = Field(default_factory=list)

    def to_response(self) -> dict:
        """Render the JSON body; `failed` only appears when something could not be filed."""
        body = {
            "created": self.created,
            "bugs": [bug.model_dump() for bug in self.bugs],
        }
        if self.failed:
            body["failed"] = [failure.model_dump(by_alias=True) for failure in self.failed]
        return body


class ApiKeyResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(alias="apiKey")
