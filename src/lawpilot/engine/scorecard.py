"""
LawPilot Scorecard Stage

Converts the categorical outputs of the earlier stages into a 0-100
divergence score, its complementary fidelity score, and a qualitative band.

Each tier status and the funding risk map through a fixed ordinal scale;
values a scale does not list (including "unknown") take its default.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from ..canon import pretty_json, sorted_codes
from ..models import (
    UNKNOWN,
    Band,
    DoctrineResult,
    FundingAuditResult,
    LawAuditResult,
    ScorecardResult,
    Scores,
    StageKey,
    Summary,
    Tier3Status,
)
from ..store import ArtifactStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrdinalScale:
    """Point values for a categorical input, with a default for anything else."""
    points: dict[str, int] = field(default_factory=dict)
    default: int = 0

    def score(self, value: Optional[str]) -> int:
        return self.points.get(value or UNKNOWN, self.default)


TIER1_SCALE = OrdinalScale({"aligned": 0, "over_broad": 15, "ultra_vires": 25}, default=5)

TIER2_SCALE = OrdinalScale({"within_scope": 0, "beyond_scope": 20}, default=5)

TIER3_SCALE = OrdinalScale(
    {
        Tier3Status.NO_PREEMPTION_ISSUE.value: 0,
        Tier3Status.EXPRESS_PREEMPTED.value: 20,
        Tier3Status.FIELD_PREEMPTED.value: 20,
        Tier3Status.CONFLICT_PREEMPTED.value: 20,
        Tier3Status.OBSTACLE_PREEMPTED.value: 20,
    },
    default=10,
)

TIER4_SCALE = OrdinalScale(
    {"text_aligned": 0, "over_reach": 25, "rights_infringing": 30, "void_ab_initio": 40},
    default=10,
)

FUNDING_SCALE = OrdinalScale({"none": 0, "low": 5, "medium": 15, "high": 25}, default=5)

APPLIED_DOCTRINE_POINTS = 5
IMPLICATED_DOCTRINE_POINTS = 3
DOCTRINE_POINTS_CAP = 30

# Inclusive upper bounds on divergence; anything above the last is red
BANDS: tuple[tuple[int, Band, str], ...] = (
    (20, Band.GREEN, "Constitutionally sound (low divergence)"),
    (40, Band.YELLOW, "Mixed, caution warranted"),
    (65, Band.ORANGE, "High concern, probable overreach"),
)
RED_BAND_LABEL = "Severe constitutional failure"

# Tier 3 reads as clear when no status was recorded
NO_PREEMPTION = Tier3Status.NO_PREEMPTION_ISSUE.value


def doctrine_points(applied: Iterable[str], implicated: Iterable[str]) -> int:
    raw = (
        APPLIED_DOCTRINE_POINTS * len(set(applied))
        + IMPLICATED_DOCTRINE_POINTS * len(set(implicated))
    )
    return min(raw, DOCTRINE_POINTS_CAP)


def band_for(divergence: int) -> tuple[Band, str]:
    for upper, band, label in BANDS:
        if divergence <= upper:
            return band, label
    return Band.RED, RED_BAND_LABEL


def compute_scores(inputs: dict[str, Any]) -> Scores:
    """
    Score a scorecard input snapshot.

    Expects the keys produced by build_inputs(); missing keys take the
    scale defaults.
    """
    total = (
        TIER1_SCALE.score(inputs.get("tier1_status"))
        + TIER2_SCALE.score(inputs.get("tier2_scope_status"))
        + TIER3_SCALE.score(inputs.get("tier3_preemption_status", NO_PREEMPTION))
        + TIER4_SCALE.score(inputs.get("tier4_const_status"))
        + FUNDING_SCALE.score(inputs.get("funding_risk"))
        + doctrine_points(
            inputs.get("doctrines_applied") or (),
            inputs.get("doctrines_implicated") or (),
        )
    )
    divergence = max(0, min(100, total))
    band, label = band_for(divergence)
    return Scores(divergence_score=divergence, band=band, band_label=label)


def build_inputs(
    law_audit: LawAuditResult,
    funding: Optional[FundingAuditResult] = None,
    doctrine: Optional[DoctrineResult] = None,
) -> dict[str, Any]:
    checks = law_audit.audit_checks
    return {
        "tier1_status": checks.tier1_federal_alignment.status.value,
        "tier2_scope_status": checks.tier2_scope_and_nexus.scope_status.value,
        "tier3_preemption_status": checks.tier3_preemption.status.value,
        "tier4_const_status": checks.tier4_constitutional.status.value,
        "funding_risk": funding.risk_level.value if funding else UNKNOWN,
        "doctrines_applied": sorted_codes(doctrine.doctrines.applied) if doctrine else [],
        "doctrines_implicated": sorted_codes(doctrine.doctrines.implicated) if doctrine else [],
    }


def build_summary(state: str, category: str, scores: Scores, inputs: dict[str, Any]) -> Summary:
    user_friendly = (
        f"In {state}, this '{category}' scenario has a constitutional fidelity score of "
        f"{scores.fidelity_score} out of 100. Divergence score {scores.divergence_score} "
        f"places it in the {scores.band_label} band."
    )
    technical = {
        "law_category": category,
        "inputs": inputs,
        "scores": scores.to_dict(),
    }
    return Summary(user_friendly=user_friendly, technical=pretty_json(technical))


def score_scenario(
    law_audit: LawAuditResult,
    funding: Optional[FundingAuditResult] = None,
    doctrine: Optional[DoctrineResult] = None,
) -> ScorecardResult:
    """Build the scorecard artifact. Pure function of its inputs."""
    inputs = build_inputs(law_audit, funding, doctrine)
    scores = compute_scores(inputs)
    category = law_audit.category.value
    return ScorecardResult(
        jurisdiction=law_audit.jurisdiction,
        law_category=category,
        inputs=inputs,
        scores=scores,
        summary=build_summary(law_audit.jurisdiction.state, category, scores, inputs),
    )


def run_scorecard(store: ArtifactStore) -> ScorecardResult:
    """
    Score the stored law audit (plus funding and doctrine, when present).

    Raises:
        MissingPrerequisiteError: If the law audit is missing
    """
    stage = StageKey.SCORECARD
    logger.debug("Scorecard started", extra={"stage": stage.value})
    law_audit = store.require(StageKey.LAW_AUDIT, LawAuditResult, stage)
    funding = store.read(StageKey.FUNDING_AUDIT, FundingAuditResult)
    doctrine = store.read(StageKey.DOCTRINE, DoctrineResult)

    result = score_scenario(law_audit, funding, doctrine)
    store.write(stage, result)
    logger.info(
        "Stored scorecard: divergence=%d band=%s",
        result.scores.divergence_score,
        result.scores.band.value,
        extra={"stage": stage.value},
    )
    return result
