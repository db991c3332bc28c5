"""
LawPilot Doctrine Engine

Matches doctrine rules against a flat context built from the law audit,
classification and (optional) funding audit, and attaches the authority
analysis.

Every rule whose condition is true contributes its add_applied and
add_implicated codes; a rule whose condition cannot be evaluated contributes
nothing and is recorded by the evaluator.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from ..canon import pretty_json, sorted_codes
from ..models import (
    UNKNOWN,
    AuthorityAnalysis,
    ClassificationResult,
    DoctrineCatalog,
    DoctrineResult,
    DoctrineRuleSet,
    DoctrineSet,
    FundingAuditResult,
    LawAuditResult,
    StageKey,
    Summary,
    TableName,
    state_map_name,
)
from ..store import ArtifactStore
from ..tables import RuleTableLoader
from .authority_analysis import AuthorityAnalyzer, case_type_for, movement_scope_for
from .condition_evaluator import DOCTRINE_CONTEXT_KEYS, ConditionEvaluator


logger = logging.getLogger(__name__)


def build_context(
    law_audit: LawAuditResult,
    classification: Optional[ClassificationResult] = None,
    funding: Optional[FundingAuditResult] = None,
) -> dict[str, Any]:
    """Flat condition context; absent upstream values read as "unknown"."""
    checks = law_audit.audit_checks
    return {
        "tier1_status": checks.tier1_federal_alignment.status.value,
        "tier2_scope_status": checks.tier2_scope_and_nexus.scope_status.value,
        "tier3_preemption_status": checks.tier3_preemption.status.value,
        "tier4_const_status": checks.tier4_constitutional.status.value,
        "funding_risk": funding.risk_level.value if funding else UNKNOWN,
        "driver_type": classification.driver_type.value if classification else UNKNOWN,
        "law_category": law_audit.category.value,
    }


def match_doctrines(
    rules: DoctrineRuleSet,
    context: dict[str, Any],
    evaluator: ConditionEvaluator,
) -> tuple[frozenset[str], frozenset[str]]:
    """Union of add_applied / add_implicated over every rule that holds."""
    applied: set[str] = set()
    implicated: set[str] = set()
    for rule in rules.rules:
        if not rule.condition.strip():
            continue
        if evaluator.evaluate(rule.condition, context, rule_id=rule.id):
            applied.update(rule.add_applied)
            implicated.update(rule.add_implicated)
    return frozenset(applied), frozenset(implicated)


def render_notes(
    applied: frozenset[str],
    implicated: frozenset[str],
    catalog: DoctrineCatalog,
) -> str:
    """One "Label: description" line per described doctrine; implicated lines are marked."""
    lines = []
    for prefix, codes in (("", applied), ("(Implicated) ", implicated)):
        for code in sorted(codes):
            doctrine = catalog.get(code)
            if doctrine and doctrine.description:
                lines.append(f"{prefix}{doctrine.label}: {doctrine.description}")
    return "\n".join(lines)


def build_summary(
    state: str,
    category: str,
    context: dict[str, Any],
    applied: frozenset[str],
    implicated: frozenset[str],
    catalog: DoctrineCatalog,
) -> Summary:
    parts = [
        f"In {state}, your scenario in the '{category}' category raises the following "
        f"doctrinal picture."
    ]
    if applied:
        labels = ", ".join(catalog.label(c) for c in sorted(applied))
        parts.append(f"Directly applied doctrines: {labels}.")
    else:
        parts.append("No clear doctrine is firmly applied by the current ruleset.")
    if implicated:
        labels = ", ".join(catalog.label(c) for c in sorted(implicated))
        parts.append(f"Doctrines implicated or suggested by the pattern: {labels}.")

    technical = {
        "context": context,
        "doctrines_applied": sorted_codes(applied),
        "doctrines_implicated": sorted_codes(implicated),
    }
    return Summary(user_friendly=" ".join(parts), technical=pretty_json(technical))


def derive_doctrines(
    law_audit: LawAuditResult,
    classification: ClassificationResult,
    rules: DoctrineRuleSet,
    catalog: DoctrineCatalog,
    funding: Optional[FundingAuditResult] = None,
    analysis: Optional[AuthorityAnalysis] = None,
    evaluator: Optional[ConditionEvaluator] = None,
) -> DoctrineResult:
    """Build the doctrine artifact. Pure apart from the evaluator's failure log."""
    evaluator = evaluator or ConditionEvaluator(keys=DOCTRINE_CONTEXT_KEYS)
    context = build_context(law_audit, classification, funding)
    applied, implicated = match_doctrines(rules, context, evaluator)
    category = law_audit.category.value
    return DoctrineResult(
        jurisdiction=law_audit.jurisdiction,
        law_category=category,
        inputs=context,
        doctrines=DoctrineSet(
            applied=applied,
            implicated=implicated,
            notes=render_notes(applied, implicated, catalog),
        ),
        summary=build_summary(
            law_audit.jurisdiction.state, category, context, applied, implicated, catalog
        ),
        analysis=analysis,
    )


def analyze_authority(
    law_audit: LawAuditResult,
    classification: ClassificationResult,
    analyzer: AuthorityAnalyzer,
    funding: Optional[FundingAuditResult] = None,
    severity: str = "medium",
) -> AuthorityAnalysis:
    return analyzer.analyze(
        state=law_audit.jurisdiction.state,
        case_type=case_type_for(classification.scenario),
        movement_scope=movement_scope_for(classification.driver_type),
        severity=severity,
        laws_text=" ".join(law_audit.law_reference.statutes_raw),
        funding_program_ids=funding.grant_program_ids if funding else (),
    )


def run_doctrine(
    store: ArtifactStore,
    loader: RuleTableLoader,
    severity: str = "medium",
    evaluator: Optional[ConditionEvaluator] = None,
) -> DoctrineResult:
    """
    Match doctrines for the stored law audit and store the result.

    The funding audit is optional (funding_risk reads "unknown" without it).
    The authority analysis is skipped when its tables are unavailable, and
    rights flags are skipped when the state has no statute map.

    Raises:
        MissingPrerequisiteError: If classification or law audit is missing
        TableLoadError: If the doctrine rules or doctrine table cannot be loaded
    """
    stage = StageKey.DOCTRINE
    logger.debug("Doctrine matching started", extra={"stage": stage.value})
    classification = store.require(StageKey.CLASSIFICATION, ClassificationResult, stage)
    law_audit = store.require(StageKey.LAW_AUDIT, LawAuditResult, stage)
    funding = store.read(StageKey.FUNDING_AUDIT, FundingAuditResult)

    state_table = state_map_name(law_audit.jurisdiction.state)
    tables = loader.load_many(
        [TableName.DOCTRINE_RULES, TableName.FEDERAL_DOCTRINES],
        optional=[TableName.PREEMPTION_RULES, TableName.RIGHTS_TESTS, state_table],
    )
    catalog = tables[TableName.FEDERAL_DOCTRINES.value]
    preemption_rules = tables[TableName.PREEMPTION_RULES.value]
    rights_tests = tables[TableName.RIGHTS_TESTS.value]

    analysis = None
    if preemption_rules is not None and rights_tests is not None:
        analyzer = AuthorityAnalyzer(
            doctrines=catalog,
            preemption_rules=preemption_rules,
            rights_tests=rights_tests,
            state_map=tables[state_table],
        )
        analysis = analyze_authority(law_audit, classification, analyzer, funding, severity)
    else:
        logger.warning("Authority analysis skipped: tables unavailable", extra={"stage": stage.value})

    result = derive_doctrines(
        law_audit,
        classification,
        tables[TableName.DOCTRINE_RULES.value],
        catalog,
        funding=funding,
        analysis=analysis,
        evaluator=evaluator,
    )
    store.write(stage, result)
    logger.info(
        "Stored doctrines: applied=%s implicated=%s",
        ",".join(sorted(result.doctrines.applied)),
        ",".join(sorted(result.doctrines.implicated)),
        extra={"stage": stage.value},
    )
    return result
