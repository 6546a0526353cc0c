"""
Validation Models

Invalid user input is rejected at the input boundary. Validation
reports issues; it never silently fixes them.
"""

from typing import Optional

from pydantic import BaseModel, Field

from finbot.models.transaction import Transaction


class ValidationIssue(BaseModel):
    """A single validation issue found."""
    
    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'not_numeric', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning)$",
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="How the user can fix the input"
    )


class ValidationResult(BaseModel):
    """Outcome of validating one manual entry."""
    
    issues: list[ValidationIssue] = Field(default_factory=list)
    transaction: Optional[Transaction] = Field(
        default=None,
        description="The accepted transaction, only set when valid"
    )
    
    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)
    
    @property
    def is_valid(self) -> bool:
        return not self.has_errors and self.transaction is not None
