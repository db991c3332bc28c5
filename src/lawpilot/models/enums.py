"""
LawPilot Enumerations

All enumeration types used throughout the LawPilot pipeline.
Organized by stage for clarity.

All enums inherit from (str, Enum) for JSON serialization compatibility,
so members compare equal to their plain string values.
"""
from __future__ import annotations

from enum import Enum


# =============================================================================
# Classification
# =============================================================================

class DriverType(str, Enum):
    """How the vehicle was being used at the time of the event."""
    PRIVATE = "private"
    COMMERCIAL_INTRASTATE = "commercial_intrastate"
    COMMERCIAL_INTERSTATE = "commercial_interstate"


class CdlStatus(str, Enum):
    """Whether the driver holds a commercial driver's license."""
    HAS_CDL = "has_cdl"
    NONE = "none"


class Scenario(str, Enum):
    """Procedural setting of the enforcement event."""
    ROUTINE_STOP = "routine_stop"
    CHECKPOINT = "checkpoint"
    HEARING = "hearing"
    CRIMINAL_CASE = "criminal_case"
    CIVIL_CASE = "civil_case"


class SuspectedBasis(str, Enum):
    """Statutory basis suspected from the cited statute text."""
    LICENSING_ONLY = "licensing_only"
    IMPAIRED_DRIVING = "impaired_driving"
    REGISTRATION_INSURANCE = "registration_insurance"
    COMMERCIAL_COMPLIANCE = "commercial_compliance"
    UNKNOWN = "unknown"


# =============================================================================
# Law Audit
# =============================================================================

class LawCategory(str, Enum):
    """Category of law applied, inferred from classification and statute text."""
    DRIVER_LICENSING = "driver_licensing"
    VEHICLE_REGISTRATION = "vehicle_registration"
    INSURANCE = "insurance"
    DWI_DUI_OWI = "dwi_dui_owi"
    COMMERCIAL_TRANSPORT = "commercial_transport"
    FMCSR_ADOPTION = "fmcsr_adoption"
    IMPLIED_CONSENT = "implied_consent"
    OTHER = "other"


# Categories whose rules only reach commercial motor carriers
COMMERCIAL_CATEGORIES = (
    LawCategory.FMCSR_ADOPTION,
    LawCategory.COMMERCIAL_TRANSPORT,
)


class Tier1Status(str, Enum):
    """Federal alignment."""
    ALIGNED = "aligned"
    OVER_BROAD = "over_broad"
    ULTRA_VIRES = "ultra_vires"


class Tier2Status(str, Enum):
    """Scope and commercial nexus."""
    WITHIN_SCOPE = "within_scope"
    BEYOND_SCOPE = "beyond_scope"


class Tier3Status(str, Enum):
    """Federal preemption."""
    NO_PREEMPTION_ISSUE = "no_preemption_issue"
    EXPRESS_PREEMPTED = "express_preempted"
    FIELD_PREEMPTED = "field_preempted"
    CONFLICT_PREEMPTED = "conflict_preempted"
    OBSTACLE_PREEMPTED = "obstacle_preempted"
    UNCLEAR = "unclear"


PREEMPTED_STATUSES = (
    Tier3Status.EXPRESS_PREEMPTED,
    Tier3Status.FIELD_PREEMPTED,
    Tier3Status.CONFLICT_PREEMPTED,
    Tier3Status.OBSTACLE_PREEMPTED,
)


class Tier4Status(str, Enum):
    """Constitutional analysis."""
    TEXT_ALIGNED = "text_aligned"
    OVER_REACH = "over_reach"
    RIGHTS_INFRINGING = "rights_infringing"
    VOID_AB_INITIO = "void_ab_initio"


CONSTITUTIONALLY_BAD_STATUSES = (
    Tier4Status.OVER_REACH,
    Tier4Status.RIGHTS_INFRINGING,
    Tier4Status.VOID_AB_INITIO,
)


# Placeholder for a tier value that an upstream stage did not provide
UNKNOWN = "unknown"


# =============================================================================
# Funding, Scorecard, Validity
# =============================================================================

class RiskLevel(str, Enum):
    """False-Claims-style funding misalignment risk."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    UNKNOWN = "unknown"


class Band(str, Enum):
    """Qualitative band for the divergence score."""
    GREEN = "green"
    YELLOW = "yellow"
    ORANGE = "orange"
    RED = "red"


class ValidityStatus(str, Enum):
    """Terminal validity classification (exactly one per run)."""
    PRESUMPTIVELY_VALID = "presumptively_valid"
    STRUCTURALLY_DEFECTIVE = "structurally_defective"
    VOID_AB_INITIO_CANDIDATE = "void_ab_initio_candidate"
    VOID_AB_INITIO_STRONG = "void_ab_initio_strong"


# =============================================================================
# Infrastructure
# =============================================================================

class StageKey(str, Enum):
    """Store slot owned by each pipeline stage."""
    INTAKE = "intake"
    CLASSIFICATION = "classification"
    LAW_AUDIT = "law_audit"
    FUNDING_AUDIT = "funding_audit"
    DOCTRINE = "doctrine"
    SCORECARD = "scorecard"
    VALIDITY = "validity"


class TableName(str, Enum):
    """Rule table files known to the loader."""
    LAW_AUDIT_RULES = "law_audit_rules"
    PREEMPTION_RULES = "preemption_rules"
    FUNDING_PROGRAMS = "funding_programs"
    FEDERAL_DOCTRINES = "federal_doctrines"
    RIGHTS_TESTS = "rights_tests"
    DOCTRINE_RULES = "doctrine_rules"
    VALIDITY_RULES = "validity_rules"


def state_map_name(state: str) -> str:
    """Table name of the per-state statute map (e.g. 'state_map_TX')."""
    return f"state_map_{state.strip().upper()}"
