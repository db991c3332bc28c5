"""
LawPilot - Enforcement Scenario Audit Pipeline

LawPilot walks a single traffic or licensing enforcement scenario through a
chain of derivation stages and records an artifact for each:

    intake -> classification -> law_audit -> funding_audit
        -> doctrine -> scorecard -> validity

It produces an ADVISORY assessment, not legal advice. Every conclusion is
driven by static rule tables that can be replaced without code changes.

Key Features:
- Four-tier law audit (federal alignment, scope/nexus, preemption, constitutional)
- Funding misalignment risk from the federal programs tied to the law category
- Doctrine and validity rules in a small sandboxed condition language
- Divergence / fidelity scorecard with qualitative bands
- Deterministic canonical JSON artifacts

Quick Start:
    from lawpilot import ArtifactStore, Pipeline, build_intake, StageKey, ValidityResult

    intake = build_intake(
        state="TX",
        event_type="traffic_stop",
        vehicle_use="personal",
        statutes="TX Transp. Code 521.021 - Driver's license required",
    )
    pipeline = Pipeline(ArtifactStore())
    pipeline.run(intake)
    validity = pipeline.store.read(StageKey.VALIDITY, ValidityResult)

Version: 0.1.0
"""
from __future__ import annotations

__version__ = "0.1.0"

from .config import Settings, configure_logging
from .engine import Pipeline, PipelineReport, StageOutcome
from .exceptions import LawPilotError, MissingPrerequisiteError
from .models import (
    ClassificationResult,
    DoctrineResult,
    FundingAuditResult,
    IntakeRecord,
    LawAuditResult,
    ScorecardResult,
    StageKey,
    ValidityResult,
    ValidityStatus,
    build_intake,
)
from .store import ArtifactStore, JsonFileStore
from .tables import RuleTableLoader

__all__ = [
    "__version__",
    # Pipeline
    "Pipeline",
    "PipelineReport",
    "StageOutcome",
    "ArtifactStore",
    "JsonFileStore",
    "RuleTableLoader",
    # Configuration
    "Settings",
    "configure_logging",
    # Models
    "IntakeRecord",
    "build_intake",
    "ClassificationResult",
    "LawAuditResult",
    "FundingAuditResult",
    "DoctrineResult",
    "ScorecardResult",
    "ValidityResult",
    "ValidityStatus",
    "StageKey",
    # Errors
    "LawPilotError",
    "MissingPrerequisiteError",
]
