"""Validation result models shared by the advisory validators."""

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Which field or path has the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'percentage_sum', 'unbalanced')"
    )
    message: str = Field(
        ...,
        description="Human-readable description"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="How serious is this issue?"
    )


class ValidationResult(BaseModel):
    """
    Result of an advisory validation run.

    Validators never raise on bad input; callers decide how to surface
    the issues to the user.
    """

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def errors(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]

    @classmethod
    def from_issues(cls, issues: list[ValidationIssue]) -> 'ValidationResult':
        return cls(
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )
