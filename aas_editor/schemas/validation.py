"""
Pydantic models for validation and repair results.
"""

from enum import Enum

from pydantic import BaseModel, Field


class ValidationError(BaseModel):
    """A local validation issue on one element."""

    field: str
    message: str
    code: str | None = None
    submodel: str | None = None
    path: list[str] = Field(default_factory=list)
    nodeId: str | None = None


class LocalValidationResult(BaseModel):
    """Outcome of the local (tree) validation phase."""

    errors: list[ValidationError] = Field(default_factory=list)
    flaggedNodes: list[str] = Field(default_factory=list)
    expandNodes: list[str] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


class SchemaCheckStatus(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    UNAVAILABLE = "unavailable"


class SchemaIssue(BaseModel):
    """One error reported by the remote schema validator."""

    message: str
    line: int | None = None
    pointer: str | None = None
    path: str | None = None
    hint: str | None = None


class SchemaCheckResult(BaseModel):
    """Outcome of one remote schema check."""

    status: SchemaCheckStatus
    errors: list[SchemaIssue] = Field(default_factory=list)
    detail: str | None = None

    @property
    def acceptable(self) -> bool:
        return self.status != SchemaCheckStatus.INVALID


class IssueCounts(BaseModel):
    required: int = 0
    record_schema: int = 0
    markup_schema: int = 0


class ValidationReport(BaseModel):
    """Combined result of both validation phases."""

    valid: bool
    revision: int
    local: LocalValidationResult
    record: SchemaCheckResult
    markup: SchemaCheckResult
    counts: IssueCounts
    warnings: list[str] = Field(default_factory=list)


class RepairResult(BaseModel):
    """Output of the auto-repair engine."""

    markup: str
    changed: bool
    appliedPasses: list[str] = Field(default_factory=list)


class RemediationResponse(BaseModel):
    """Repair followed by exactly one validation run."""

    repair: RepairResult
    report: ValidationReport
