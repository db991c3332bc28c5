"""
LawPilot Rule Table Schemas

Pydantic models for validating rule table YAML/JSON files.

One schema per TableName plus StateMapSchema for the per-state statute maps.
Tables may carry free-form metadata (version, description, source notes);
unknown top-level keys are ignored, but individual rule entries reject
unknown fields so a misspelled "add_aplied" fails loudly at load time.

Schema versioning:
- schema_version field tracks breaking changes
- Loaders should check version compatibility
"""
from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# =============================================================================
# Schema Version
# =============================================================================

SCHEMA_VERSION = "1.0.0"


SeverityValue = Literal["low", "medium", "high", "extreme"]

CaseTypeValue = Literal["traffic", "criminal", "civil", "administrative"]

MovementScopeValue = Literal["private", "commercial"]


def _reject_duplicates(ids: list[str], what: str) -> None:
    seen: set[str] = set()
    dupes: set[str] = set()
    for i in ids:
        if i in seen:
            dupes.add(i)
        seen.add(i)
    if dupes:
        raise ValueError(f"Duplicate {what} id(s): {', '.join(sorted(dupes))}")


# =============================================================================
# Doctrines and Rights Tests
# =============================================================================

class DoctrineSchema(BaseModel):
    """Schema for a single doctrine."""
    id: str = Field(..., min_length=1, description="Doctrine code (e.g., 'ultra_vires')")
    label: str = Field(..., description="Display label")
    description: str = Field("", description="One-sentence explanation")


class FederalDoctrinesSchema(BaseModel):
    """Schema for federal_doctrines."""
    schema_version: str = "1.0.0"
    doctrines: list[DoctrineSchema] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "FederalDoctrinesSchema":
        _reject_duplicates([d.id for d in self.doctrines], "doctrine")
        return self


class RightsTestSchema(BaseModel):
    """Schema for a rights test."""
    id: str = Field(..., min_length=1)
    description: str = ""
    doctrine_refs: list[str] = Field(default_factory=list)


class RightsTestsSchema(BaseModel):
    """Schema for rights_tests."""
    schema_version: str = "1.0.0"
    tests: list[RightsTestSchema] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "RightsTestsSchema":
        _reject_duplicates([t.id for t in self.tests], "rights test")
        return self


# =============================================================================
# Funding Programs
# =============================================================================

class FundingProgramSchema(BaseModel):
    """Schema for a funding program."""
    id: str = Field(..., min_length=1)
    name: str = Field(..., description="Program name")
    type: str = Field("", description="Program type (e.g., 'formula_grant')")
    notes: str = ""


class GrantKeywordSchema(BaseModel):
    """Keywords in a grant description that indicate a program."""
    program_id: str = Field(..., min_length=1)
    keywords: list[str] = Field(..., min_length=1)

    @field_validator("keywords")
    @classmethod
    def lowercase_keywords(cls, v: list[str]) -> list[str]:
        return [k.lower() for k in v]


class FundingProgramsSchema(BaseModel):
    """Schema for funding_programs."""
    schema_version: str = "1.0.0"
    programs: list[FundingProgramSchema] = Field(default_factory=list)
    category_to_programs: dict[str, list[str]] = Field(default_factory=dict)
    grant_keywords: list[GrantKeywordSchema] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "FundingProgramsSchema":
        _reject_duplicates([p.id for p in self.programs], "funding program")
        return self


# =============================================================================
# Law Audit Rules
# =============================================================================

class FederalAnchorsSchema(BaseModel):
    anchors: list[str] = Field(default_factory=list)


class CategoryRuleSchema(BaseModel):
    """Schema for one law category's federal sources and nexus requirement."""
    federal_sources: list[str] = Field(default_factory=list)
    commercial_nexus_required: bool = False


class ConstitutionalSchema(BaseModel):
    rights_mapping: dict[str, list[str]] = Field(default_factory=dict)


class LawAuditRulesSchema(BaseModel):
    """Schema for law_audit_rules."""
    schema_version: str = "1.0.0"
    federal: FederalAnchorsSchema = Field(default_factory=FederalAnchorsSchema)
    categories: dict[str, CategoryRuleSchema] = Field(default_factory=dict)
    constitutional: ConstitutionalSchema = Field(default_factory=ConstitutionalSchema)


# =============================================================================
# Preemption Rules
# =============================================================================

class PreemptionTriggersSchema(BaseModel):
    """Trigger filters; omitted filters always pass."""
    case_type: Optional[list[CaseTypeValue]] = None
    movement_scope: Optional[list[MovementScopeValue]] = None
    keywords_in_law_block: Optional[list[str]] = None
    funding_program_ids: Optional[list[str]] = None
    severity_min: Optional[SeverityValue] = None

    model_config = {
        "extra": "forbid",
    }


class PreemptionRuleSchema(BaseModel):
    """Schema for a preemption/authority rule."""
    id: str = Field(..., min_length=1)
    description: str = ""
    triggers: PreemptionTriggersSchema = Field(default_factory=PreemptionTriggersSchema)
    doctrine_refs: list[str] = Field(default_factory=list)


class PreemptionRulesSchema(BaseModel):
    """Schema for preemption_rules."""
    schema_version: str = "1.0.0"
    rules: list[PreemptionRuleSchema] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "PreemptionRulesSchema":
        _reject_duplicates([r.id for r in self.rules], "preemption rule")
        return self


# =============================================================================
# Applicability Rules
# =============================================================================

class ApplicabilityRuleSchema(BaseModel):
    """
    Schema for a condition-driven rule.

    The condition is kept as text; it is parsed by the condition evaluator
    at evaluation time, where a bad condition is logged and treated as false.
    """
    id: Optional[str] = Field(None, description="Rule ID (defaults to its position)")
    condition: str = Field(..., description="Condition expression")
    description: Optional[str] = None
    add_applied: list[str] = Field(default_factory=list)
    add_implicated: list[str] = Field(default_factory=list)
    add_grounds: list[str] = Field(default_factory=list)
    add_hooks: list[str] = Field(default_factory=list)

    model_config = {
        "extra": "forbid",
    }


class DoctrineRulesSchema(BaseModel):
    """Schema for doctrine_rules."""
    schema_version: str = "1.0.0"
    rules: list[ApplicabilityRuleSchema] = Field(default_factory=list)


class ValidityRulesSchema(BaseModel):
    """Schema for validity_rules."""
    schema_version: str = "1.0.0"
    rules: list[ApplicabilityRuleSchema] = Field(default_factory=list)
    constitutional_hooks: dict[str, str] = Field(default_factory=dict)
    grounds_labels: dict[str, str] = Field(default_factory=dict)


# =============================================================================
# State Maps
# =============================================================================

class StateStatuteSchema(BaseModel):
    citation: str = Field(..., min_length=1)
    title: str = ""
    risk_flags: list[str] = Field(default_factory=list)


class StateMapSchema(BaseModel):
    """Schema for a state_map_<STATE> table."""
    schema_version: str = "1.0.0"
    state: str = Field(..., min_length=2)
    statutes: list[StateStatuteSchema] = Field(default_factory=list)

    @field_validator("state")
    @classmethod
    def upper_state(cls, v: str) -> str:
        return v.strip().upper()


# =============================================================================
# Validation Helpers
# =============================================================================

def check_schema_version(data: dict[str, Any]) -> bool:
    """
    Check if a table's schema version is compatible.

    Only the major version has to match.
    """
    table_version = str(data.get("schema_version", SCHEMA_VERSION))
    return table_version.split(".")[0] == SCHEMA_VERSION.split(".")[0]
