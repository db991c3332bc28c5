"""
LawPilot Engine

The derivation stages and their orchestration.

Stages (each reads earlier artifacts from the store and writes one):
- classify: driver type, CDL status, scenario, suspected basis, flags
- law_audit: four-tier audit of the statutes against federal structure
- funding_audit: funding programs and misalignment risk
- doctrine: doctrine rules plus the authority analysis
- scorecard: divergence / fidelity scores and band
- validity: terminal validity status and recommended actions

Usage:
    from lawpilot.engine import Pipeline
    from lawpilot.store import ArtifactStore

    pipeline = Pipeline(ArtifactStore())
    report = pipeline.run(intake)
"""
from __future__ import annotations

from .authority_analysis import (
    AuthorityAnalyzer,
    case_type_for,
    movement_scope_for,
    severity_rank,
)
from .classify import (
    classify_intake,
    driver_type_for,
    run_classification,
    scenario_for,
    suspected_basis_for,
)
from .condition_evaluator import (
    DOCTRINE_CONTEXT_KEYS,
    VALIDITY_CONTEXT_KEYS,
    ConditionEvaluator,
    ConditionFailure,
    evaluate_condition,
    parse_condition,
    tokenize,
)
from .doctrine import derive_doctrines, run_doctrine
from .funding_audit import (
    assess_risk,
    audit_funding,
    infer_grant_programs,
    run_funding_audit,
    select_programs,
)
from .law_audit import (
    audit_law,
    evaluate_tier1,
    evaluate_tier2,
    evaluate_tier3,
    evaluate_tier4,
    infer_category,
    run_law_audit,
)
from .pipeline import Pipeline, PipelineReport, StageOutcome
from .scorecard import band_for, compute_scores, run_scorecard, score_scenario
from .validity import compute_status, determine_validity, recommended_actions, run_validity

__all__ = [
    # Condition Evaluator
    "ConditionEvaluator",
    "ConditionFailure",
    "DOCTRINE_CONTEXT_KEYS",
    "VALIDITY_CONTEXT_KEYS",
    "evaluate_condition",
    "parse_condition",
    "tokenize",
    # Classification
    "classify_intake",
    "driver_type_for",
    "scenario_for",
    "suspected_basis_for",
    "run_classification",
    # Law Audit
    "audit_law",
    "infer_category",
    "evaluate_tier1",
    "evaluate_tier2",
    "evaluate_tier3",
    "evaluate_tier4",
    "run_law_audit",
    # Funding Audit
    "audit_funding",
    "assess_risk",
    "infer_grant_programs",
    "select_programs",
    "run_funding_audit",
    # Authority Analysis
    "AuthorityAnalyzer",
    "case_type_for",
    "movement_scope_for",
    "severity_rank",
    # Doctrine
    "derive_doctrines",
    "run_doctrine",
    # Scorecard
    "band_for",
    "compute_scores",
    "score_scenario",
    "run_scorecard",
    # Validity
    "compute_status",
    "determine_validity",
    "recommended_actions",
    "run_validity",
    # Pipeline
    "Pipeline",
    "PipelineReport",
    "StageOutcome",
]
