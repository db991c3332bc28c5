"""
LawPilot Models

Domain models for the enforcement audit pipeline, organized by category:

    from lawpilot.models import (
        # Enums
        DriverType, LawCategory, Tier1Status, RiskLevel, ValidityStatus,
        # Intake
        IntakeRecord, StatuteRef, build_intake,
        # Stage artifacts
        ClassificationResult, LawAuditResult, FundingAuditResult,
        DoctrineResult, ScorecardResult, ValidityResult,
        # Rule tables
        LawAuditRules, FundingCatalog, DoctrineCatalog, ValidityRuleSet,
    )
"""
from __future__ import annotations

# =============================================================================
# Enums
# =============================================================================
from .enums import (
    COMMERCIAL_CATEGORIES,
    CONSTITUTIONALLY_BAD_STATUSES,
    PREEMPTED_STATUSES,
    UNKNOWN,
    Band,
    CdlStatus,
    DriverType,
    LawCategory,
    RiskLevel,
    Scenario,
    StageKey,
    SuspectedBasis,
    TableName,
    Tier1Status,
    Tier2Status,
    Tier3Status,
    Tier4Status,
    ValidityStatus,
    state_map_name,
)

# =============================================================================
# Intake
# =============================================================================
from .intake import (
    Attachment,
    DriverContext,
    EventInfo,
    IntakeRecord,
    Jurisdiction,
    StatuteRef,
    build_intake,
    parse_statutes,
)

# =============================================================================
# Stage Artifacts
# =============================================================================
from .artifacts import (
    AuditChecks,
    AuthorityAnalysis,
    ClassificationResult,
    DoctrineRef,
    DoctrineResult,
    DoctrineSet,
    FundingAuditResult,
    LawAuditResult,
    LawAuditSummary,
    LawReference,
    PreemptionFinding,
    ProgramRef,
    RightsFlag,
    RiskAssessment,
    ScorecardResult,
    Scores,
    Summary,
    Tier1Check,
    Tier2Check,
    Tier3Check,
    Tier4Check,
    UserProfile,
    ValidityDetermination,
    ValidityResult,
)

# =============================================================================
# Rule Tables
# =============================================================================
from .tables import (
    SEVERITY_ORDER,
    ApplicabilityRule,
    CategoryRule,
    Doctrine,
    DoctrineCatalog,
    DoctrineRuleSet,
    FundingCatalog,
    FundingProgram,
    GrantKeywordRule,
    LawAuditRules,
    PreemptionRule,
    PreemptionRuleSet,
    PreemptionTriggers,
    RightsTest,
    RightsTestCatalog,
    StateMap,
    StateStatute,
    ValidityRuleSet,
)


__all__ = [
    # Enums
    "COMMERCIAL_CATEGORIES",
    "CONSTITUTIONALLY_BAD_STATUSES",
    "PREEMPTED_STATUSES",
    "UNKNOWN",
    "Band",
    "CdlStatus",
    "DriverType",
    "LawCategory",
    "RiskLevel",
    "Scenario",
    "StageKey",
    "SuspectedBasis",
    "TableName",
    "Tier1Status",
    "Tier2Status",
    "Tier3Status",
    "Tier4Status",
    "ValidityStatus",
    "state_map_name",
    # Intake
    "Attachment",
    "DriverContext",
    "EventInfo",
    "IntakeRecord",
    "Jurisdiction",
    "StatuteRef",
    "build_intake",
    "parse_statutes",
    # Stage artifacts
    "AuditChecks",
    "AuthorityAnalysis",
    "ClassificationResult",
    "DoctrineRef",
    "DoctrineResult",
    "DoctrineSet",
    "FundingAuditResult",
    "LawAuditResult",
    "LawAuditSummary",
    "LawReference",
    "PreemptionFinding",
    "ProgramRef",
    "RightsFlag",
    "RiskAssessment",
    "ScorecardResult",
    "Scores",
    "Summary",
    "Tier1Check",
    "Tier2Check",
    "Tier3Check",
    "Tier4Check",
    "UserProfile",
    "ValidityDetermination",
    "ValidityResult",
    # Rule tables
    "SEVERITY_ORDER",
    "ApplicabilityRule",
    "CategoryRule",
    "Doctrine",
    "DoctrineCatalog",
    "DoctrineRuleSet",
    "FundingCatalog",
    "FundingProgram",
    "GrantKeywordRule",
    "LawAuditRules",
    "PreemptionRule",
    "PreemptionRuleSet",
    "PreemptionTriggers",
    "RightsTest",
    "RightsTestCatalog",
    "StateMap",
    "StateStatute",
    "ValidityRuleSet",
]
