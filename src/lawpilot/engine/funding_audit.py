"""
LawPilot Funding Audit Stage

Selects the federal funding programs plausibly tied to the law category and
assesses False-Claims-style funding misalignment risk from the law audit.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from ..canon import pretty_json, sorted_codes
from ..models import (
    CONSTITUTIONALLY_BAD_STATUSES,
    PREEMPTED_STATUSES,
    ClassificationResult,
    FundingAuditResult,
    FundingCatalog,
    IntakeRecord,
    LawAuditResult,
    LawCategory,
    ProgramRef,
    RiskAssessment,
    RiskLevel,
    StageKey,
    Summary,
    TableName,
    Tier1Status,
    Tier2Status,
)
from ..store import ArtifactStore
from ..tables import RuleTableLoader


logger = logging.getLogger(__name__)


# Funding program whose certifications only cover commercial motor carriers
COMMERCIAL_CARRIER_PROGRAM = "fmcsr_mcsap"


# =============================================================================
# Program Selection
# =============================================================================

def select_programs(category: LawCategory, catalog: FundingCatalog) -> tuple[ProgramRef, ...]:
    """
    Programs listed for the category, falling back to the "other" list.

    Ids with no program entry are dropped.
    """
    mapping = catalog.category_to_programs
    ids = mapping[category.value] if category.value in mapping else mapping.get("other", ())
    return tuple(catalog.programs[i].to_ref() for i in ids if i in catalog.programs)


def infer_grant_programs(grant_description: str, catalog: FundingCatalog) -> tuple[str, ...]:
    """Program ids whose keywords appear in a free-text grant description."""
    text = (grant_description or "").lower()
    if not text.strip():
        return ()
    found: list[str] = []
    for rule in catalog.grant_keywords:
        if rule.program_id not in found and any(k in text for k in rule.keywords):
            found.append(rule.program_id)
    return tuple(found)


def merge_programs(
    programs: tuple[ProgramRef, ...],
    extra_ids: tuple[str, ...],
    catalog: FundingCatalog,
) -> tuple[ProgramRef, ...]:
    """Append programs for extra_ids after programs, skipping duplicates and unknown ids."""
    seen = {p.id for p in programs}
    merged = list(programs)
    for program_id in extra_ids:
        if program_id in seen or program_id not in catalog.programs:
            continue
        merged.append(catalog.programs[program_id].to_ref())
        seen.add(program_id)
    return tuple(merged)


# =============================================================================
# Risk Assessment
# =============================================================================

@dataclass(frozen=True)
class RiskFacts:
    """The law-audit facts the risk table looks at."""
    uses_carrier_program: bool
    private: bool
    ultra_vires: bool
    beyond_scope: bool
    preempted: bool
    constitutionally_bad: bool

    @classmethod
    def collect(
        cls,
        programs: tuple[ProgramRef, ...],
        law_audit: LawAuditResult,
        classification: ClassificationResult,
    ) -> RiskFacts:
        checks = law_audit.audit_checks
        return cls(
            uses_carrier_program=any(p.id == COMMERCIAL_CARRIER_PROGRAM for p in programs),
            private=classification.is_private,
            ultra_vires=checks.tier1_federal_alignment.status == Tier1Status.ULTRA_VIRES,
            beyond_scope=checks.tier2_scope_and_nexus.scope_status == Tier2Status.BEYOND_SCOPE,
            preempted=checks.tier3_preemption.status in PREEMPTED_STATUSES,
            constitutionally_bad=checks.tier4_constitutional.status in CONSTITUTIONALLY_BAD_STATUSES,
        )


RiskPredicate = Callable[[RiskFacts], bool]

# First matching row wins
RISK_TABLE: tuple[tuple[RiskPredicate, RiskLevel, tuple[str, ...], str], ...] = (
    (
        lambda f: f.uses_carrier_program and f.private and (f.ultra_vires or f.beyond_scope),
        RiskLevel.HIGH,
        ("false_certification", "metrics_inflation"),
        "Commercial FMCSR-style funding appears to be supported by enforcement metrics applied "
        "to a private, non-commercial driver. This raises concern that the state certified "
        "commercial compliance while counting non-commercial events.",
    ),
    (
        lambda f: f.preempted and f.constitutionally_bad,
        RiskLevel.HIGH,
        ("implied_false_certification",),
        "The combination of preemption concerns and constitutional overreach suggests that "
        "funding certifications may not match actual practices.",
    ),
    (
        lambda f: f.beyond_scope or f.constitutionally_bad,
        RiskLevel.MEDIUM,
        ("implied_false_certification",),
        "Enforcement appears structurally over-broad. Funding tied to these practices may be "
        "at risk if certifications assumed narrower, lawful use.",
    ),
    (
        lambda f: f.ultra_vires,
        RiskLevel.MEDIUM,
        ("false_certification",),
        "Enforcement is characterized as ultra vires under the law audit. Funding that depends "
        "on lawful implementation may be subject to challenge.",
    ),
    (
        lambda f: True,
        RiskLevel.LOW,
        ("no_clear_theory",),
        "No strong indication from the law audit that existing funding is being used in a way "
        "that contradicts certifications or statutory intent.",
    ),
)


def assess_risk(
    programs: tuple[ProgramRef, ...],
    law_audit: LawAuditResult,
    classification: ClassificationResult,
) -> RiskAssessment:
    """Funding misalignment risk via RISK_TABLE plus the reverse-false-claim rule."""
    facts = RiskFacts.collect(programs, law_audit, classification)
    for predicate, level, theories, notes in RISK_TABLE:
        if predicate(facts):
            break

    found = set(theories)
    if level == RiskLevel.HIGH and facts.preempted:
        found.add("reverse_false_claim")
    return RiskAssessment(risk_level=level, theories=frozenset(found), notes=notes)


def build_summary(
    state: str,
    category: LawCategory,
    programs: tuple[ProgramRef, ...],
    assessment: RiskAssessment,
) -> Summary:
    user_friendly = (
        f"In {state}, this enforcement pattern appears in the category '{category.value}'. "
        f"Based on the sovereign law audit and the likely funding sources, the False Claims "
        f"Act / funding misalignment risk is assessed as {assessment.risk_level.value.upper()}."
    )
    technical = {
        "law_category": category.value,
        "programs_considered": [p.to_dict() for p in programs],
        "risk_level": assessment.risk_level.value,
        "theories": sorted_codes(assessment.theories),
        "notes": assessment.notes,
    }
    return Summary(user_friendly=user_friendly, technical=pretty_json(technical))


# =============================================================================
# Stage
# =============================================================================

def audit_funding(
    law_audit: LawAuditResult,
    classification: ClassificationResult,
    catalog: FundingCatalog,
    grant_description: str = "",
) -> FundingAuditResult:
    """Run the funding audit. Pure function of its inputs."""
    category = law_audit.category
    grant_ids = infer_grant_programs(grant_description, catalog)
    programs = merge_programs(select_programs(category, catalog), grant_ids, catalog)
    assessment = assess_risk(programs, law_audit, classification)
    return FundingAuditResult(
        jurisdiction=law_audit.jurisdiction,
        law_category=category,
        programs_considered=programs,
        assessment=assessment,
        summary=build_summary(law_audit.jurisdiction.state, category, programs, assessment),
        grant_program_ids=grant_ids,
    )


def run_funding_audit(
    store: ArtifactStore,
    loader: RuleTableLoader,
    grant_description: str = "",
) -> FundingAuditResult:
    """
    Audit funding for the stored law audit and store the result.

    Raises:
        MissingPrerequisiteError: If intake, classification or law audit is missing
        TableLoadError: If the funding program table cannot be loaded
    """
    stage = StageKey.FUNDING_AUDIT
    logger.debug("Funding audit started", extra={"stage": stage.value})
    store.require(StageKey.INTAKE, IntakeRecord, stage)
    classification = store.require(StageKey.CLASSIFICATION, ClassificationResult, stage)
    law_audit = store.require(StageKey.LAW_AUDIT, LawAuditResult, stage)

    catalog = loader.load(TableName.FUNDING_PROGRAMS)
    result = audit_funding(law_audit, classification, catalog, grant_description)
    store.write(stage, result)
    logger.info(
        "Stored funding audit: risk=%s programs=%s",
        result.risk_level.value,
        ",".join(p.id for p in result.programs_considered),
        extra={"stage": stage.value},
    )
    return result
