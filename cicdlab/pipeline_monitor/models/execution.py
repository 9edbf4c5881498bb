"""Wire models for pipeline executions returned by the backend API."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from cicdlab.pipeline_monitor.status import is_terminal

ExecutionId = int | str


class _ApiModel(BaseModel):
    """Base for models exchanged with the backend in camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class TestResult(_ApiModel):
    """Outcome of a single test method within an execution."""

    id: ExecutionId | None = Field(default=None, description="Test result ID")
    test_class: str | None = Field(default=None, description="Test class name")
    test_method: str | None = Field(default=None, description="Test method name")
    status: str | None = Field(default=None, description="PASSED, FAILED, SKIPPED")
    duration_ms: int = Field(default=0, ge=0, description="Duration in ms")
    error_message: str | None = Field(default=None, description="Failure details")

    @field_validator("duration_ms", mode="before")
    @classmethod
    def _default_duration(cls, value: object) -> object:
        return 0 if value is None else value


class ExecutionRecord(_ApiModel):
    """One run of the pipeline as reported by the backend."""

    id: ExecutionId = Field(..., description="Server-assigned execution ID")
    build_number: int | None = Field(default=None, description="CI build number")
    student_name: str | None = Field(default=None, description="Who triggered it")
    repository_url: str | None = Field(default=None, description="Repository URL")
    branch_name: str = Field(default="main", description="Branch being built")
    commit_hash: str | None = Field(default=None, description="Commit being built")

    status: str | None = Field(default=None, description="Overall pipeline status")
    current_stage: str | None = Field(default=None, description="Stage in progress")
    build_status: str | None = Field(default=None, description="Build stage status")
    test_status: str | None = Field(default=None, description="Test stage status")
    deployment_status: str | None = Field(
        default=None, description="Deploy stage status"
    )

    total_tests: int | None = Field(default=None, description="Total test count")
    tests_passed: int = Field(default=0, description="Passed test count")
    tests_failed: int = Field(default=0, description="Failed test count")

    started_at: datetime | None = Field(default=None, description="Start time")
    completed_at: datetime | None = Field(default=None, description="End time")
    duration: int | None = Field(default=None, description="Duration in seconds")

    error_message: str | None = Field(default=None, description="Failure details")
    test_results: list[TestResult] = Field(default_factory=list)

    @field_validator("branch_name", mode="before")
    @classmethod
    def _default_branch(cls, value: object) -> object:
        return value or "main"

    @field_validator("tests_passed", "tests_failed", mode="before")
    @classmethod
    def _default_count(cls, value: object) -> object:
        return 0 if value is None else value

    @field_validator("test_results", mode="before")
    @classmethod
    def _default_results(cls, value: object) -> object:
        return [] if value is None else value

    @property
    def display_number(self) -> ExecutionId:
        """Build number when the CI server assigned one, else the ID."""
        return self.build_number if self.build_number is not None else self.id

    @property
    def is_terminal(self) -> bool:
        """Whether the execution reached SUCCESS or FAILED."""
        return is_terminal(self.status)

    @property
    def has_tests(self) -> bool:
        """Whether the backend has recorded any tests for this run."""
        return bool(self.total_tests and self.total_tests > 0)


class TriggerRequest(_ApiModel):
    """Payload for starting a new pipeline execution."""

    student_name: str = Field(default="", description="Who triggers the build")
    repository_url: str = Field(default="", description="Git repository URL")
    branch_name: str = Field(default="main", description="Branch to build")
    commit_hash: str | None = Field(default=None, description="Commit to build")

    def missing_fields(self) -> list[str]:
        """Return the required fields that are empty."""
        missing = []
        if not self.student_name.strip():
            missing.append("studentName")
        if not self.repository_url.strip():
            missing.append("repositoryUrl")
        return missing


class CommitInfo(BaseModel):
    """Recent commit in the tracked repository."""

    sha: str | None = None
    message: str = ""
    author: str = ""
    date: datetime | None = None

    @classmethod
    def from_api(cls, data: dict[str, object]) -> "CommitInfo":
        """Build from a GitHub-style commit object."""
        commit = data.get("commit")
        commit = commit if isinstance(commit, dict) else {}
        author = commit.get("author")
        author = author if isinstance(author, dict) else {}
        sha = data.get("sha")
        return cls(
            sha=sha if isinstance(sha, str) else None,
            message=str(commit.get("message") or ""),
            author=str(author.get("name") or ""),
            date=author.get("date") or None,
        )
