"""
Pytest configuration and fixtures for LawPilot tests.

Provides factory helpers for every stage artifact so each stage can be
tested in isolation, plus fixtures for the packaged rule tables.
"""
import pytest

from lawpilot.models import (
    AuditChecks,
    CdlStatus,
    ClassificationResult,
    DoctrineResult,
    DoctrineSet,
    DriverType,
    FundingAuditResult,
    Jurisdiction,
    LawAuditResult,
    LawAuditSummary,
    LawCategory,
    LawReference,
    RiskAssessment,
    RiskLevel,
    Scenario,
    ScorecardResult,
    Summary,
    SuspectedBasis,
    TableName,
    Tier1Check,
    Tier1Status,
    Tier2Check,
    Tier2Status,
    Tier3Check,
    Tier3Status,
    Tier4Check,
    Tier4Status,
    UserProfile,
    build_intake,
)
from lawpilot.engine.scorecard import compute_scores
from lawpilot.store import ArtifactStore
from lawpilot.tables import RuleTableLoader


FIXED_CREATED_AT = "2024-06-10T12:00:00+00:00"

LICENSE_STATUTE = "TX Transp. Code 521.021 - Driver's license required"
FMCSR_STATUTE = "49 CFR 391.11 - FMCSR driver qualification"
SPEED_STATUTE = "TX Transp. Code 545.351 - Maximum speed requirement"
IMPLIED_CONSENT_STATUTE = "TX Transp. Code 724.011 - Implied consent"


# =============================================================================
# Factory Helpers
# =============================================================================

def make_intake(
    state: str = "TX",
    county: str = "Travis",
    event_type: str = "traffic_stop",
    vehicle_use: str = "personal",
    has_cdl: bool = False,
    statutes: str = LICENSE_STATUTE,
    notes: str = "",
    created_at: str = FIXED_CREATED_AT,
):
    """Create an IntakeRecord with a fixed timestamp."""
    return build_intake(
        state=state,
        county=county,
        event_type=event_type,
        event_date="2024-06-10",
        notes=notes,
        vehicle_use=vehicle_use,
        has_cdl=has_cdl,
        officer_agency="Texas DPS",
        statutes=statutes,
        created_at=created_at,
    )


def make_classification(
    driver_type: DriverType = DriverType.PRIVATE,
    cdl_status: CdlStatus = CdlStatus.NONE,
    scenario: Scenario = Scenario.ROUTINE_STOP,
    suspected_basis: SuspectedBasis = SuspectedBasis.UNKNOWN,
    flags: tuple = (),
) -> ClassificationResult:
    """Create a ClassificationResult."""
    return ClassificationResult(
        driver_type=driver_type,
        cdl_status=cdl_status,
        scenario=scenario,
        suspected_basis=suspected_basis,
        flags=frozenset(flags),
        source_intake_created_at=FIXED_CREATED_AT,
    )


def make_law_audit(
    category: LawCategory = LawCategory.OTHER,
    tier1: Tier1Status = Tier1Status.ALIGNED,
    tier2: Tier2Status = Tier2Status.WITHIN_SCOPE,
    tier3: Tier3Status = Tier3Status.NO_PREEMPTION_ISSUE,
    tier4: Tier4Status = Tier4Status.TEXT_ALIGNED,
    state: str = "TX",
    statutes_raw: tuple = (LICENSE_STATUTE,),
    driver_type: str = "private",
) -> LawAuditResult:
    """Create a LawAuditResult with the given tier statuses."""
    checks = AuditChecks(
        tier1_federal_alignment=Tier1Check(status=tier1, notes="tier 1"),
        tier2_scope_and_nexus=Tier2Check(
            scope_status=tier2,
            commercial_nexus_required=tier2 == Tier2Status.BEYOND_SCOPE,
            commercial_nexus_present=False,
            notes="tier 2",
        ),
        tier3_preemption=Tier3Check(status=tier3, notes="tier 3"),
        tier4_constitutional=Tier4Check(status=tier4, notes="tier 4"),
    )
    return LawAuditResult(
        jurisdiction=Jurisdiction(country="United States", state=state, county=""),
        law_reference=LawReference(category=category, statutes_raw=tuple(statutes_raw)),
        user_profile=UserProfile(
            driver_type=driver_type,
            cdl_status="none",
            vehicle_use="personal",
            scenario="routine_stop",
            suspected_basis="unknown",
        ),
        audit_checks=checks,
        summary=LawAuditSummary(user_friendly="", technical="{}"),
    )


def make_funding(
    risk_level: RiskLevel = RiskLevel.LOW,
    category: LawCategory = LawCategory.OTHER,
    grant_program_ids: tuple = (),
    state: str = "TX",
) -> FundingAuditResult:
    """Create a FundingAuditResult with the given risk level."""
    return FundingAuditResult(
        jurisdiction=Jurisdiction(country="United States", state=state, county=""),
        law_category=category,
        programs_considered=(),
        assessment=RiskAssessment(risk_level=risk_level),
        summary=Summary(user_friendly="", technical="{}"),
        grant_program_ids=tuple(grant_program_ids),
    )


def make_doctrine(
    applied: tuple = (),
    implicated: tuple = (),
    category: str = "other",
    state: str = "TX",
) -> DoctrineResult:
    """Create a DoctrineResult with the given doctrine codes."""
    return DoctrineResult(
        jurisdiction=Jurisdiction(country="United States", state=state, county=""),
        law_category=category,
        inputs={},
        doctrines=DoctrineSet(applied=frozenset(applied), implicated=frozenset(implicated)),
        summary=Summary(user_friendly="", technical="{}"),
    )


def make_scorecard(
    inputs: dict = None,
    category: str = "other",
    state: str = "TX",
) -> ScorecardResult:
    """Create a ScorecardResult scored from the given inputs."""
    inputs = inputs or {}
    return ScorecardResult(
        jurisdiction=Jurisdiction(country="United States", state=state, county=""),
        law_category=category,
        inputs=inputs,
        scores=compute_scores(inputs),
        summary=Summary(user_friendly="", technical="{}"),
    )


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def store():
    """An empty in-memory artifact store."""
    return ArtifactStore()


@pytest.fixture
def loader():
    """A loader over the packaged rule tables."""
    return RuleTableLoader()


@pytest.fixture
def law_audit_rules(loader):
    return loader.load(TableName.LAW_AUDIT_RULES)


@pytest.fixture
def funding_catalog(loader):
    return loader.load(TableName.FUNDING_PROGRAMS)


@pytest.fixture
def doctrine_catalog(loader):
    return loader.load(TableName.FEDERAL_DOCTRINES)


@pytest.fixture
def doctrine_rules(loader):
    return loader.load(TableName.DOCTRINE_RULES)


@pytest.fixture
def validity_rules(loader):
    return loader.load(TableName.VALIDITY_RULES)


@pytest.fixture
def preemption_rules(loader):
    return loader.load(TableName.PREEMPTION_RULES)


@pytest.fixture
def rights_tests(loader):
    return loader.load(TableName.RIGHTS_TESTS)
