"""
LawPilot Validity Engine

Determines the terminal validity status of the scenario:

    void_ab_initio_strong > void_ab_initio_candidate
        > structurally_defective > presumptively_valid

Validity rules contribute grounds and constitutional hooks; the status is
then chosen by an ordered cascade (first match wins) over the tier
statuses, funding risk, divergence score, doctrine codes and grounds.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..canon import pretty_json, sorted_codes
from ..models import (
    UNKNOWN,
    ClassificationResult,
    DoctrineResult,
    FundingAuditResult,
    Jurisdiction,
    LawAuditResult,
    RiskLevel,
    ScorecardResult,
    StageKey,
    Summary,
    TableName,
    ValidityDetermination,
    ValidityResult,
    ValidityRuleSet,
    ValidityStatus,
)
from ..store import ArtifactStore
from ..tables import RuleTableLoader
from .condition_evaluator import VALIDITY_CONTEXT_KEYS, ConditionEvaluator


logger = logging.getLogger(__name__)


# =============================================================================
# Context
# =============================================================================

def build_context(
    law_audit: LawAuditResult,
    scorecard: ScorecardResult,
    classification: Optional[ClassificationResult] = None,
    funding: Optional[FundingAuditResult] = None,
) -> dict[str, Any]:
    """Flat condition context; absent optional artifacts read as "unknown"."""
    checks = law_audit.audit_checks
    return {
        "tier1_status": checks.tier1_federal_alignment.status.value,
        "tier2_scope_status": checks.tier2_scope_and_nexus.scope_status.value,
        "tier3_preemption_status": checks.tier3_preemption.status.value,
        "tier4_const_status": checks.tier4_constitutional.status.value,
        "funding_risk": funding.risk_level.value if funding else UNKNOWN,
        "divergence_score": scorecard.scores.divergence_score,
        "fidelity_score": scorecard.scores.fidelity_score,
        "driver_type": classification.driver_type.value if classification else UNKNOWN,
        "law_category": law_audit.category.value,
    }


def match_grounds(
    rules: ValidityRuleSet,
    context: dict[str, Any],
    evaluator: ConditionEvaluator,
) -> tuple[frozenset[str], frozenset[str]]:
    """Union of add_grounds / add_hooks over every rule that holds."""
    grounds: set[str] = set()
    hooks: set[str] = set()
    for rule in rules.rules:
        if not rule.condition.strip():
            continue
        if evaluator.evaluate(rule.condition, context, rule_id=rule.id):
            grounds.update(rule.add_grounds)
            hooks.update(rule.add_hooks)
    return frozenset(grounds), frozenset(hooks)


# =============================================================================
# Status Cascade
# =============================================================================

@dataclass(frozen=True)
class ValidityFacts:
    """Everything the status cascade looks at."""
    tier1: str
    tier2: str
    tier3: str
    tier4: str
    funding_risk: str
    divergence: int
    doctrines: frozenset[str]
    grounds: frozenset[str]

    def has_doctrine(self, code: str) -> bool:
        return code in self.doctrines


StatusPredicate = Callable[[ValidityFacts], bool]

_OVERREACH_OR_RIGHTS = ("over_reach", "rights_infringing")

# First matching row wins; presumptively_valid is the fallthrough
STATUS_CASCADE: tuple[tuple[StatusPredicate, ValidityStatus], ...] = (
    (
        lambda f: (
            f.tier4 == "void_ab_initio"
            or (
                f.tier4 == "rights_infringing"
                and (f.tier3 != "no_preemption_issue" or f.tier1 == "ultra_vires")
            )
            or (f.has_doctrine("supremacy_preemption") and f.has_doctrine("ultra_vires"))
            or (f.divergence >= 75 and f.tier4 in _OVERREACH_OR_RIGHTS)
        ),
        ValidityStatus.VOID_AB_INITIO_STRONG,
    ),
    (
        lambda f: (
            f.tier4 in _OVERREACH_OR_RIGHTS
            or f.tier1 == "ultra_vires"
            or f.tier2 == "beyond_scope"
            or f.tier3 != "no_preemption_issue"
            or f.funding_risk == "high"
            or f.divergence >= 55
        ),
        ValidityStatus.VOID_AB_INITIO_CANDIDATE,
    ),
    (
        lambda f: (
            bool(f.grounds)
            or f.has_doctrine("supremacy_preemption")
            or f.has_doctrine("police_power_overreach")
            or f.divergence >= 35
        ),
        ValidityStatus.STRUCTURALLY_DEFECTIVE,
    ),
)


def compute_status(facts: ValidityFacts) -> ValidityStatus:
    for predicate, status in STATUS_CASCADE:
        if predicate(facts):
            return status
    return ValidityStatus.PRESUMPTIVELY_VALID


# =============================================================================
# Recommended Actions
# =============================================================================

RECOMMENDED_ACTIONS: dict[str, tuple[str, ...]] = {
    ValidityStatus.PRESUMPTIVELY_VALID.value: (
        "Document the scenario for your records.",
        "Monitor for any pattern of escalation or repeat misuse.",
    ),
    ValidityStatus.STRUCTURALLY_DEFECTIVE.value: (
        "Consult with counsel about raising statutory and constitutional objections.",
        "Consider requesting written justification from the enforcing agency.",
        "Preserve all records, citations, and communications.",
    ),
    ValidityStatus.VOID_AB_INITIO_CANDIDATE.value: (
        "Consult with constitutional or civil rights counsel about a void ab initio challenge.",
        "Preserve all court filings, transcripts, and evidence.",
        "Consider coordinating with others affected to show pattern and practice.",
    ),
    ValidityStatus.VOID_AB_INITIO_STRONG.value: (
        "Seek specialized constitutional/civil rights counsel as soon as possible.",
        "Treat this as a potential void ab initio case: the law or application may be "
        "invalid from the outset.",
        "Preserve every piece of documentation and evidence, including bodycam, dashcam, "
        "and court records.",
    ),
}

FALLBACK_ACTION = "Gather more information and seek legal advice if possible."

# (status, funding risks that trigger it, extra action)
FUNDING_ACTIONS: tuple[tuple[ValidityStatus, tuple[str, ...], str], ...] = (
    (
        ValidityStatus.VOID_AB_INITIO_CANDIDATE,
        (RiskLevel.MEDIUM.value, RiskLevel.HIGH.value),
        "Consider speaking with counsel familiar with False Claims Act or funding misuse.",
    ),
    (
        ValidityStatus.VOID_AB_INITIO_STRONG,
        (RiskLevel.HIGH.value,),
        "Strongly consider consulting with False Claims Act / whistleblower counsel regarding "
        "systemic funding misuse.",
    ),
)


def recommended_actions(status: ValidityStatus, funding_risk: str) -> tuple[str, ...]:
    actions = list(RECOMMENDED_ACTIONS.get(status.value, (FALLBACK_ACTION,)))
    for action_status, risks, action in FUNDING_ACTIONS:
        if status == action_status and funding_risk in risks:
            actions.append(action)
    return tuple(actions)


# =============================================================================
# Summary
# =============================================================================

def build_summary(
    jurisdiction: Jurisdiction,
    category: str,
    determination: ValidityDetermination,
    inputs: dict[str, Any],
    rules: ValidityRuleSet,
) -> Summary:
    parts = [
        f"In {jurisdiction.state}, this '{category}' enforcement pattern is assessed as: "
        f"{determination.status.value.replace('_', ' ')}."
    ]
    if determination.grounds:
        labels = "; ".join(rules.ground_label(g) for g in sorted(determination.grounds))
        parts.append(f"Key grounds: {labels}.")
    if determination.constitutional_hooks:
        labels = "; ".join(rules.hook_label(h) for h in sorted(determination.constitutional_hooks))
        parts.append(f"Constitutional hooks: {labels}.")

    technical = {
        "jurisdiction": jurisdiction.to_dict(),
        "law_category": category,
        "inputs": inputs,
        "validity": determination.to_dict(),
    }
    return Summary(user_friendly=" ".join(parts), technical=pretty_json(technical))


# =============================================================================
# Stage
# =============================================================================

def determine_validity(
    law_audit: LawAuditResult,
    scorecard: ScorecardResult,
    rules: ValidityRuleSet,
    classification: Optional[ClassificationResult] = None,
    funding: Optional[FundingAuditResult] = None,
    doctrine: Optional[DoctrineResult] = None,
    evaluator: Optional[ConditionEvaluator] = None,
) -> ValidityResult:
    """Build the validity artifact. Pure apart from the evaluator's failure log."""
    evaluator = evaluator or ConditionEvaluator(keys=VALIDITY_CONTEXT_KEYS)
    context = build_context(law_audit, scorecard, classification, funding)

    failures_before = len(evaluator.failures)
    grounds, hooks = match_grounds(rules, context, evaluator)
    skipped = len(evaluator.failures) - failures_before

    applied = doctrine.doctrines.applied if doctrine else frozenset()
    implicated = doctrine.doctrines.implicated if doctrine else frozenset()

    facts = ValidityFacts(
        tier1=context["tier1_status"],
        tier2=context["tier2_scope_status"],
        tier3=context["tier3_preemption_status"],
        tier4=context["tier4_const_status"],
        funding_risk=context["funding_risk"],
        divergence=context["divergence_score"],
        doctrines=applied | implicated,
        grounds=grounds,
    )
    status = compute_status(facts)

    notes = ""
    if skipped:
        notes = f"{skipped} validity rule(s) could not be evaluated and were skipped."

    determination = ValidityDetermination(
        status=status,
        grounds=grounds,
        constitutional_hooks=hooks,
        recommended_actions=recommended_actions(status, facts.funding_risk),
        notes=notes,
    )
    inputs = dict(context)
    inputs["doctrines_applied"] = sorted_codes(applied)
    inputs["doctrines_implicated"] = sorted_codes(implicated)

    category = law_audit.category.value
    return ValidityResult(
        jurisdiction=law_audit.jurisdiction,
        law_category=category,
        inputs=inputs,
        validity=determination,
        summary=build_summary(law_audit.jurisdiction, category, determination, inputs, rules),
    )


def run_validity(
    store: ArtifactStore,
    loader: RuleTableLoader,
    evaluator: Optional[ConditionEvaluator] = None,
) -> ValidityResult:
    """
    Determine validity from the stored artifacts and store the result.

    Raises:
        MissingPrerequisiteError: If the law audit or scorecard is missing
        TableLoadError: If the validity rules cannot be loaded
    """
    stage = StageKey.VALIDITY
    logger.debug("Validity determination started", extra={"stage": stage.value})
    law_audit = store.require(StageKey.LAW_AUDIT, LawAuditResult, stage)
    scorecard = store.require(StageKey.SCORECARD, ScorecardResult, stage)
    classification = store.read(StageKey.CLASSIFICATION, ClassificationResult)
    funding = store.read(StageKey.FUNDING_AUDIT, FundingAuditResult)
    doctrine = store.read(StageKey.DOCTRINE, DoctrineResult)

    rules = loader.load(TableName.VALIDITY_RULES)
    result = determine_validity(
        law_audit,
        scorecard,
        rules,
        classification=classification,
        funding=funding,
        doctrine=doctrine,
        evaluator=evaluator,
    )
    store.write(stage, result)
    logger.info(
        "Stored validity: %s", result.status.value, extra={"stage": stage.value}
    )
    return result
