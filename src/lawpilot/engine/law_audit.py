"""
LawPilot Law Audit Stage

Infers the law category applied and runs the four tier evaluators:

- Tier 1: federal alignment
- Tier 2: scope and commercial nexus
- Tier 3: preemption (heuristic; the preemption table only contributes
  informational candidate rule ids)
- Tier 4: constitutional analysis

The tiers are independent pure functions of (category, rules,
classification); none of them reads another tier's result.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from ..canon import pretty_json
from ..models import (
    COMMERCIAL_CATEGORIES,
    CONSTITUTIONALLY_BAD_STATUSES,
    PREEMPTED_STATUSES,
    AuditChecks,
    ClassificationResult,
    DriverType,
    IntakeRecord,
    Jurisdiction,
    LawAuditResult,
    LawAuditRules,
    LawAuditSummary,
    LawCategory,
    LawReference,
    PreemptionRuleSet,
    StageKey,
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
)
from ..store import ArtifactStore
from ..tables import RuleTableLoader
from .authority_analysis import movement_scope_for


logger = logging.getLogger(__name__)


UNKNOWN_STATE = "Unknown"

COMMERCIAL_VEHICLE_USES = ("intrastate_commercial", "interstate_commercial")


def _humanize(code: str) -> str:
    return code.replace("_", " ")


# =============================================================================
# Category Inference
# =============================================================================

CategoryGuard = Callable[[SuspectedBasis, str], bool]

# First matching guard wins
CATEGORY_GUARDS: tuple[tuple[CategoryGuard, LawCategory], ...] = (
    (lambda basis, text: basis == SuspectedBasis.LICENSING_ONLY, LawCategory.DRIVER_LICENSING),
    (
        lambda basis, text: basis == SuspectedBasis.REGISTRATION_INSURANCE and "registr" in text,
        LawCategory.VEHICLE_REGISTRATION,
    ),
    (
        lambda basis, text: basis == SuspectedBasis.REGISTRATION_INSURANCE and "insur" in text,
        LawCategory.INSURANCE,
    ),
    (lambda basis, text: basis == SuspectedBasis.IMPAIRED_DRIVING, LawCategory.DWI_DUI_OWI),
    (
        lambda basis, text: basis == SuspectedBasis.COMMERCIAL_COMPLIANCE,
        LawCategory.COMMERCIAL_TRANSPORT,
    ),
    (lambda basis, text: "fmcsr" in text or "390." in text, LawCategory.FMCSR_ADOPTION),
    (lambda basis, text: "implied consent" in text, LawCategory.IMPLIED_CONSENT),
)


def infer_category(intake: IntakeRecord, classification: ClassificationResult) -> LawCategory:
    """Law category from the suspected basis and the statute text."""
    text = intake.statutes_text
    for guard, category in CATEGORY_GUARDS:
        if guard(classification.suspected_basis, text):
            return category
    return LawCategory.OTHER


def is_commercial_use(classification: ClassificationResult, vehicle_use: str) -> bool:
    return (
        classification.driver_type != DriverType.PRIVATE
        or vehicle_use in COMMERCIAL_VEHICLE_USES
    )


# =============================================================================
# Tier Evaluators
# =============================================================================

def evaluate_tier1(
    category: LawCategory,
    rules: LawAuditRules,
    classification: ClassificationResult,
) -> Tier1Check:
    """Federal alignment: commercial rules or implied consent reaching private drivers."""
    sources = rules.federal_anchors + rules.category_rule(category.value).federal_sources

    if category in COMMERCIAL_CATEGORIES and classification.is_private:
        return Tier1Check(
            status=Tier1Status.ULTRA_VIRES,
            notes=(
                "FMCSRs and commercial transport rules are being applied to a private driver. "
                "This extends beyond the federal commercial scope in Title 49 and FMCSRs."
            ),
            federal_sources=sources,
        )
    if category == LawCategory.IMPLIED_CONSENT and classification.is_private:
        return Tier1Check(
            status=Tier1Status.OVER_BROAD,
            notes=(
                "Implied consent doctrine is extended to a non-commercial driver without a "
                "clear federal or textual mandate."
            ),
            federal_sources=sources,
        )
    return Tier1Check(
        status=Tier1Status.ALIGNED,
        notes=(
            "No explicit federal statutory anchor found that justifies extending this "
            "framework to the classified driver type."
        ),
        federal_sources=sources,
    )


def evaluate_tier2(
    category: LawCategory,
    rules: LawAuditRules,
    classification: ClassificationResult,
    vehicle_use: str = "",
) -> Tier2Check:
    """Scope and nexus: a category requiring a commercial nexus applied without one."""
    required = rules.category_rule(category.value).commercial_nexus_required
    present = is_commercial_use(classification, vehicle_use)

    if required and not present:
        return Tier2Check(
            scope_status=Tier2Status.BEYOND_SCOPE,
            commercial_nexus_required=True,
            commercial_nexus_present=False,
            notes=(
                "The ruleset being used assumes a commercial nexus, but the intake and "
                "classification show private, non-commercial use."
            ),
        )
    if required:
        notes = "Commercial nexus is present; analysis will hinge on correct FMCSR application."
    else:
        notes = (
            "No explicit commercial nexus requirement for this category; scope must still "
            "respect constitutional limits."
        )
    return Tier2Check(
        scope_status=Tier2Status.WITHIN_SCOPE,
        commercial_nexus_required=required,
        commercial_nexus_present=present,
        notes=notes,
    )


def evaluate_tier3(
    category: LawCategory,
    classification: ClassificationResult,
    preemption_rules: Optional[PreemptionRuleSet] = None,
) -> Tier3Check:
    """
    Preemption heuristic: commercial categories on private drivers are
    obstacle-preempted.

    preemption_rules only feeds candidate_rule_ids; it never changes status.
    """
    scope = movement_scope_for(classification.driver_type)
    candidates: tuple[str, ...] = ()
    if preemption_rules is not None:
        candidates = tuple(r.id for r in preemption_rules.rules if r.admits_scope(scope))

    if category in COMMERCIAL_CATEGORIES and classification.is_private:
        return Tier3Check(
            status=Tier3Status.OBSTACLE_PREEMPTED,
            notes=(
                "State practice obstructs Congress's decision to limit FMCSRs and related "
                "funding conditions to commercial motor carriers."
            ),
            candidate_rule_ids=candidates,
        )
    return Tier3Check(
        status=Tier3Status.NO_PREEMPTION_ISSUE,
        notes="No immediate federal preemption conflict inferred from category and classification alone.",
        candidate_rule_ids=candidates,
    )


Tier4Guard = Callable[[LawCategory, ClassificationResult], bool]
RightsSource = Callable[[LawAuditRules], tuple[str, ...]]

# First matching guard wins
TIER4_GUARDS: tuple[tuple[Tier4Guard, Tier4Status, RightsSource, str], ...] = (
    (
        lambda category, c: category == LawCategory.DRIVER_LICENSING and c.is_private,
        Tier4Status.VOID_AB_INITIO,
        lambda rules: rules.rights_for("driver_licensing_private"),
        "Licensing private, non-commercial movement as a condition of basic travel exceeds "
        "delegated powers and burdens retained rights.",
    ),
    (
        lambda category, c: category == LawCategory.IMPLIED_CONSENT and c.is_private,
        Tier4Status.RIGHTS_INFRINGING,
        lambda rules: rules.rights_for("implied_consent_private"),
        "Implied consent applied to non-commercial drivers raises serious Fourth, Fifth, "
        "Ninth, and Fourteenth Amendment concerns.",
    ),
    (
        lambda category, c: category in COMMERCIAL_CATEGORIES and c.is_private,
        Tier4Status.OVER_REACH,
        lambda rules: (),
        "Importing commercial enforcement tools into private, non-commercial conduct "
        "suggests structural overreach.",
    ),
    (
        lambda category, c: c.suspected_basis == SuspectedBasis.LICENSING_ONLY,
        Tier4Status.OVER_REACH,
        lambda rules: ("Ninth Amendment", "Tenth Amendment", "Fourteenth Amendment"),
        "Licensing-only enforcement on a driver classified as exercising private movement "
        "indicates potential infringement on retained rights.",
    ),
)


def evaluate_tier4(
    category: LawCategory,
    rules: LawAuditRules,
    classification: ClassificationResult,
) -> Tier4Check:
    """Constitutional analysis via the ordered TIER4_GUARDS table."""
    for guard, status, rights, notes in TIER4_GUARDS:
        if guard(category, classification):
            return Tier4Check(status=status, notes=notes, rights_implicated=rights(rules))
    return Tier4Check(
        status=Tier4Status.TEXT_ALIGNED,
        notes=(
            "No immediate constitutional defect categorized at this tier, but detailed "
            "review may still reveal issues."
        ),
    )


# =============================================================================
# Summary
# =============================================================================

def risk_flags_for(checks: AuditChecks) -> frozenset[str]:
    """Roll the four tier records up into summary risk flags."""
    flags: set[str] = set()
    if checks.tier1_federal_alignment.status == Tier1Status.ULTRA_VIRES:
        flags.add("ultra_vires_enforcement")
    tier2 = checks.tier2_scope_and_nexus
    if tier2.commercial_nexus_required and not tier2.commercial_nexus_present:
        flags.update(("no_commercial_nexus", "private_driver_in_commercial_framework"))
    if checks.tier3_preemption.status in PREEMPTED_STATUSES:
        flags.add("likely_preempted")
    tier4 = checks.tier4_constitutional.status
    if tier4 in CONSTITUTIONALLY_BAD_STATUSES:
        flags.add("constitutional_violation")
    if tier4 == Tier4Status.VOID_AB_INITIO:
        flags.add("void_ab_initio_pattern")
    return frozenset(flags)


def build_summary(
    jurisdiction: Jurisdiction,
    user_profile: UserProfile,
    checks: AuditChecks,
) -> LawAuditSummary:
    user_friendly = (
        f"You are classified as a {user_profile.driver_type} driver in {jurisdiction.state}. "
        f"The laws or practices applied appear "
        f"{_humanize(checks.tier1_federal_alignment.status.value)} under federal scope, "
        f"{_humanize(checks.tier2_scope_and_nexus.scope_status.value)} on commercial nexus, "
        f"and {_humanize(checks.tier4_constitutional.status.value)} at the constitutional level."
    )
    return LawAuditSummary(
        user_friendly=user_friendly,
        technical=pretty_json(checks.to_dict()),
        risk_flags=risk_flags_for(checks),
    )


# =============================================================================
# Stage
# =============================================================================

def audit_law(
    intake: IntakeRecord,
    classification: ClassificationResult,
    rules: LawAuditRules,
    preemption_rules: Optional[PreemptionRuleSet] = None,
) -> LawAuditResult:
    """Run the full four-tier audit. Pure function of its inputs."""
    jurisdiction = Jurisdiction(
        country=intake.jurisdiction.country,
        state=intake.jurisdiction.state or UNKNOWN_STATE,
        county=intake.jurisdiction.county,
    )
    category = infer_category(intake, classification)
    vehicle_use = intake.driver_context.vehicle_use

    user_profile = UserProfile(
        driver_type=classification.driver_type.value,
        cdl_status=classification.cdl_status.value,
        vehicle_use=vehicle_use,
        scenario=classification.scenario.value,
        suspected_basis=classification.suspected_basis.value,
    )
    checks = AuditChecks(
        tier1_federal_alignment=evaluate_tier1(category, rules, classification),
        tier2_scope_and_nexus=evaluate_tier2(category, rules, classification, vehicle_use),
        tier3_preemption=evaluate_tier3(category, classification, preemption_rules),
        tier4_constitutional=evaluate_tier4(category, rules, classification),
    )
    return LawAuditResult(
        jurisdiction=jurisdiction,
        law_reference=LawReference(
            category=category,
            statutes_raw=tuple(s.raw for s in intake.statutes),
        ),
        user_profile=user_profile,
        audit_checks=checks,
        summary=build_summary(jurisdiction, user_profile, checks),
    )


def run_law_audit(store: ArtifactStore, loader: RuleTableLoader) -> LawAuditResult:
    """
    Audit the stored intake/classification and store the result.

    Raises:
        MissingPrerequisiteError: If intake or classification is missing
        TableLoadError: If the law audit rules cannot be loaded
    """
    stage = StageKey.LAW_AUDIT
    logger.debug("Law audit started", extra={"stage": stage.value})
    intake = store.require(StageKey.INTAKE, IntakeRecord, stage)
    classification = store.require(StageKey.CLASSIFICATION, ClassificationResult, stage)

    tables = loader.load_many(
        [TableName.LAW_AUDIT_RULES],
        optional=[TableName.PREEMPTION_RULES],
    )
    result = audit_law(
        intake,
        classification,
        tables[TableName.LAW_AUDIT_RULES.value],
        tables[TableName.PREEMPTION_RULES.value],
    )
    store.write(stage, result)
    logger.info(
        "Stored law audit: category=%s flags=%s",
        result.category.value,
        ",".join(sorted(result.summary.risk_flags)),
        extra={"stage": stage.value},
    )
    return result
