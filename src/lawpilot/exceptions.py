"""
LawPilot Exception Hierarchy

Domain-specific exceptions for the enforcement audit pipeline.
All exceptions include error codes for tracking and logging.

Exception codes follow the pattern: LP_<CATEGORY>_<SPECIFIC>
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class LawPilotError(Exception):
    """
    Base exception for all LawPilot errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (LP_*)
        details: Additional context about the error
        stage: Pipeline stage the error belongs to, if any
    """
    message: str
    code: str = "LP_INTERNAL_ERROR"
    details: dict[str, Any] = field(default_factory=dict)
    stage: Optional[str] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [f"[{self.code}] {self.message}"]
        if self.stage:
            parts.append(f"(stage: {self.stage})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/CLI output."""
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.stage:
            result["stage"] = self.stage
        return result


# =============================================================================
# Rule Table Errors
# =============================================================================

@dataclass
class TableLoadError(LawPilotError):
    """Failed to read or parse a rule table file."""
    code: str = "LP_TABLE_LOAD_ERROR"


@dataclass
class TableValidationError(TableLoadError):
    """Rule table does not match its schema."""
    code: str = "LP_TABLE_VALIDATION_ERROR"


@dataclass
class TableNotFoundError(TableLoadError):
    """Requested rule table file does not exist."""
    code: str = "LP_TABLE_NOT_FOUND"


# =============================================================================
# Stage Errors
# =============================================================================

@dataclass
class MissingPrerequisiteError(LawPilotError):
    """A stage's required upstream artifact is absent from the store."""
    code: str = "LP_MISSING_PREREQUISITE"


@dataclass
class IntakeValidationError(LawPilotError):
    """Intake payload cannot be turned into an IntakeRecord."""
    code: str = "LP_INTAKE_INVALID"


# =============================================================================
# Condition Errors
# =============================================================================

@dataclass
class ConditionError(LawPilotError):
    """Condition string could not be evaluated."""
    code: str = "LP_CONDITION_ERROR"


@dataclass
class ConditionSyntaxError(ConditionError):
    """Condition string does not match the condition grammar."""
    code: str = "LP_CONDITION_SYNTAX"


@dataclass
class UnknownIdentifierError(ConditionError):
    """Condition references a key outside the declared context keys."""
    code: str = "LP_UNKNOWN_IDENTIFIER"


# =============================================================================
# Store Errors
# =============================================================================

@dataclass
class StoreError(LawPilotError):
    """Artifact store could not be written."""
    code: str = "LP_STORE_ERROR"
