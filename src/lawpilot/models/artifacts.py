"""
LawPilot Stage Artifacts

One immutable record per pipeline stage. Each stage writes exactly one of
these to the store and never edits an artifact written by another stage.

Every artifact round-trips through to_dict()/from_dict(). from_dict() is
strict about shape (raises KeyError/ValueError/TypeError on malformed input)
so the store can treat a malformed value as missing.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..canon import sorted_codes
from .enums import (
    Band,
    CdlStatus,
    DriverType,
    LawCategory,
    RiskLevel,
    Scenario,
    SuspectedBasis,
    Tier1Status,
    Tier2Status,
    Tier3Status,
    Tier4Status,
    ValidityStatus,
)
from .intake import Jurisdiction


def _codes(values: Any) -> frozenset[str]:
    if values is None:
        return frozenset()
    if isinstance(values, str):
        raise TypeError("expected a list of codes, got a string")
    return frozenset(str(v) for v in values)


def _strings(values: Any) -> tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        raise TypeError("expected a list of strings, got a string")
    return tuple(str(v) for v in values)


# =============================================================================
# Summaries
# =============================================================================

@dataclass(frozen=True)
class Summary:
    """Plain-language text plus an indented JSON dump for technical readers."""
    user_friendly: str
    technical: str

    def to_dict(self) -> dict[str, Any]:
        return {"user_friendly": self.user_friendly, "technical": self.technical}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Summary:
        return cls(user_friendly=str(data["user_friendly"]), technical=str(data["technical"]))


@dataclass(frozen=True)
class LawAuditSummary(Summary):
    """Law audit summary with the rolled-up risk flags."""
    risk_flags: frozenset[str] = frozenset()

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["risk_flags"] = sorted_codes(self.risk_flags)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LawAuditSummary:
        return cls(
            user_friendly=str(data["user_friendly"]),
            technical=str(data["technical"]),
            risk_flags=_codes(data.get("risk_flags")),
        )


# =============================================================================
# Classification
# =============================================================================

@dataclass(frozen=True)
class ClassificationResult:
    """
    Normalized classification of an intake.

    Attributes:
        driver_type: private / commercial_intrastate / commercial_interstate
        cdl_status: has_cdl / none
        scenario: procedural setting
        suspected_basis: statutory basis from the first matching keyword group
        flags: advisory flags (all matching rules fire)
        source_intake_created_at: echo of IntakeRecord.created_at
    """
    driver_type: DriverType
    cdl_status: CdlStatus
    scenario: Scenario
    suspected_basis: SuspectedBasis
    flags: frozenset[str] = frozenset()
    source_intake_created_at: Optional[str] = None

    @property
    def is_private(self) -> bool:
        return self.driver_type == DriverType.PRIVATE

    def to_dict(self) -> dict[str, Any]:
        return {
            "driver_type": self.driver_type.value,
            "cdl_status": self.cdl_status.value,
            "scenario": self.scenario.value,
            "suspected_basis": self.suspected_basis.value,
            "flags": sorted_codes(self.flags),
            "source_intake_created_at": self.source_intake_created_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ClassificationResult:
        return cls(
            driver_type=DriverType(data["driver_type"]),
            cdl_status=CdlStatus(data["cdl_status"]),
            scenario=Scenario(data["scenario"]),
            suspected_basis=SuspectedBasis(data["suspected_basis"]),
            flags=_codes(data.get("flags")),
            source_intake_created_at=data.get("source_intake_created_at"),
        )


# =============================================================================
# Law Audit
# =============================================================================

@dataclass(frozen=True)
class LawReference:
    """The law category applied and the statutes it was inferred from."""
    category: LawCategory
    statutes_raw: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"category": self.category.value, "statutes_raw": list(self.statutes_raw)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LawReference:
        return cls(
            category=LawCategory(data["category"]),
            statutes_raw=_strings(data.get("statutes_raw")),
        )


@dataclass(frozen=True)
class UserProfile:
    """Echo of the classification fields the audit relied on."""
    driver_type: str
    cdl_status: str
    vehicle_use: str
    scenario: str
    suspected_basis: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "driver_type": self.driver_type,
            "cdl_status": self.cdl_status,
            "vehicle_use": self.vehicle_use,
            "scenario": self.scenario,
            "suspected_basis": self.suspected_basis,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UserProfile:
        return cls(
            driver_type=str(data["driver_type"]),
            cdl_status=str(data["cdl_status"]),
            vehicle_use=str(data["vehicle_use"]),
            scenario=str(data["scenario"]),
            suspected_basis=str(data["suspected_basis"]),
        )


@dataclass(frozen=True)
class Tier1Check:
    """Tier 1: federal alignment."""
    status: Tier1Status
    notes: str
    federal_sources: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "notes": self.notes,
            "federal_sources": list(self.federal_sources),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Tier1Check:
        return cls(
            status=Tier1Status(data["status"]),
            notes=str(data.get("notes", "")),
            federal_sources=_strings(data.get("federal_sources")),
        )


@dataclass(frozen=True)
class Tier2Check:
    """Tier 2: scope and commercial nexus."""
    scope_status: Tier2Status
    commercial_nexus_required: bool
    commercial_nexus_present: bool
    notes: str

    @property
    def status(self) -> Tier2Status:
        return self.scope_status

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope_status": self.scope_status.value,
            "commercial_nexus_required": self.commercial_nexus_required,
            "commercial_nexus_present": self.commercial_nexus_present,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Tier2Check:
        return cls(
            scope_status=Tier2Status(data["scope_status"]),
            commercial_nexus_required=bool(data["commercial_nexus_required"]),
            commercial_nexus_present=bool(data["commercial_nexus_present"]),
            notes=str(data.get("notes", "")),
        )


@dataclass(frozen=True)
class Tier3Check:
    """
    Tier 3: preemption.

    candidate_rule_ids lists preemption rules a reader may want to consult;
    it never influences status.
    """
    status: Tier3Status
    notes: str
    candidate_rule_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "notes": self.notes,
            "candidate_rule_ids": list(self.candidate_rule_ids),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Tier3Check:
        return cls(
            status=Tier3Status(data["status"]),
            notes=str(data.get("notes", "")),
            candidate_rule_ids=_strings(data.get("candidate_rule_ids")),
        )


@dataclass(frozen=True)
class Tier4Check:
    """Tier 4: constitutional analysis."""
    status: Tier4Status
    notes: str
    rights_implicated: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "notes": self.notes,
            "rights_implicated": list(self.rights_implicated),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Tier4Check:
        return cls(
            status=Tier4Status(data["status"]),
            notes=str(data.get("notes", "")),
            rights_implicated=_strings(data.get("rights_implicated")),
        )


@dataclass(frozen=True)
class AuditChecks:
    """The four tier records. Always all four."""
    tier1_federal_alignment: Tier1Check
    tier2_scope_and_nexus: Tier2Check
    tier3_preemption: Tier3Check
    tier4_constitutional: Tier4Check

    def to_dict(self) -> dict[str, Any]:
        return {
            "tier1_federal_alignment": self.tier1_federal_alignment.to_dict(),
            "tier2_scope_and_nexus": self.tier2_scope_and_nexus.to_dict(),
            "tier3_preemption": self.tier3_preemption.to_dict(),
            "tier4_constitutional": self.tier4_constitutional.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AuditChecks:
        return cls(
            tier1_federal_alignment=Tier1Check.from_dict(data["tier1_federal_alignment"]),
            tier2_scope_and_nexus=Tier2Check.from_dict(data["tier2_scope_and_nexus"]),
            tier3_preemption=Tier3Check.from_dict(data["tier3_preemption"]),
            tier4_constitutional=Tier4Check.from_dict(data["tier4_constitutional"]),
        )


@dataclass(frozen=True)
class LawAuditResult:
    """Output of the four-tier law audit."""
    jurisdiction: Jurisdiction
    law_reference: LawReference
    user_profile: UserProfile
    audit_checks: AuditChecks
    summary: LawAuditSummary

    @property
    def category(self) -> LawCategory:
        return self.law_reference.category

    def to_dict(self) -> dict[str, Any]:
        return {
            "jurisdiction": self.jurisdiction.to_dict(),
            "law_reference": self.law_reference.to_dict(),
            "user_profile": self.user_profile.to_dict(),
            "audit_checks": self.audit_checks.to_dict(),
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LawAuditResult:
        return cls(
            jurisdiction=Jurisdiction.from_dict(data["jurisdiction"]),
            law_reference=LawReference.from_dict(data["law_reference"]),
            user_profile=UserProfile.from_dict(data["user_profile"]),
            audit_checks=AuditChecks.from_dict(data["audit_checks"]),
            summary=LawAuditSummary.from_dict(data["summary"]),
        )


# =============================================================================
# Funding Audit
# =============================================================================

@dataclass(frozen=True)
class ProgramRef:
    """A funding program considered for the law category."""
    id: str
    name: str
    type: str = ""
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "type": self.type, "notes": self.notes}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProgramRef:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            type=str(data.get("type", "")),
            notes=str(data.get("notes", "")),
        )


@dataclass(frozen=True)
class RiskAssessment:
    """Funding misalignment risk and the legal theories behind it."""
    risk_level: RiskLevel
    theories: frozenset[str] = frozenset()
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "risk_level": self.risk_level.value,
            "theories": sorted_codes(self.theories),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RiskAssessment:
        return cls(
            risk_level=RiskLevel(data["risk_level"]),
            theories=_codes(data.get("theories")),
            notes=str(data.get("notes", "")),
        )


@dataclass(frozen=True)
class FundingAuditResult:
    """Output of the funding audit."""
    jurisdiction: Jurisdiction
    law_category: LawCategory
    programs_considered: tuple[ProgramRef, ...]
    assessment: RiskAssessment
    summary: Summary
    grant_program_ids: tuple[str, ...] = ()

    @property
    def risk_level(self) -> RiskLevel:
        return self.assessment.risk_level

    def to_dict(self) -> dict[str, Any]:
        return {
            "jurisdiction": self.jurisdiction.to_dict(),
            "law_category": self.law_category.value,
            "programs_considered": [p.to_dict() for p in self.programs_considered],
            "grant_program_ids": list(self.grant_program_ids),
            "assessment": self.assessment.to_dict(),
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FundingAuditResult:
        return cls(
            jurisdiction=Jurisdiction.from_dict(data["jurisdiction"]),
            law_category=LawCategory(data["law_category"]),
            programs_considered=tuple(ProgramRef.from_dict(p) for p in data["programs_considered"]),
            assessment=RiskAssessment.from_dict(data["assessment"]),
            summary=Summary.from_dict(data["summary"]),
            grant_program_ids=_strings(data.get("grant_program_ids")),
        )


# =============================================================================
# Doctrine
# =============================================================================

@dataclass(frozen=True)
class DoctrineRef:
    """A resolved doctrine attached to an authority-analysis finding."""
    id: str
    label: str
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "label": self.label, "description": self.description}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DoctrineRef:
        return cls(
            id=str(data["id"]),
            label=str(data.get("label", data["id"])),
            description=str(data.get("description", "")),
        )


@dataclass(frozen=True)
class PreemptionFinding:
    """A preemption rule whose triggers all matched."""
    rule_id: str
    description: str
    doctrines: tuple[DoctrineRef, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "description": self.description,
            "doctrines": [d.to_dict() for d in self.doctrines],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PreemptionFinding:
        return cls(
            rule_id=str(data["rule_id"]),
            description=str(data.get("description", "")),
            doctrines=tuple(DoctrineRef.from_dict(d) for d in data.get("doctrines") or []),
        )


@dataclass(frozen=True)
class RightsFlag:
    """A state statute flagged by a rights test."""
    statute: str
    rights_test_id: str
    description: str
    doctrines: tuple[DoctrineRef, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "statute": self.statute,
            "rights_test_id": self.rights_test_id,
            "description": self.description,
            "doctrines": [d.to_dict() for d in self.doctrines],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RightsFlag:
        return cls(
            statute=str(data["statute"]),
            rights_test_id=str(data["rights_test_id"]),
            description=str(data.get("description", "")),
            doctrines=tuple(DoctrineRef.from_dict(d) for d in data.get("doctrines") or []),
        )


@dataclass(frozen=True)
class AuthorityAnalysis:
    """Preemption-rule walk and state statute rights flags."""
    state: str
    case_type: str
    severity: str
    movement_scope: str
    funding_program_ids: tuple[str, ...] = ()
    preemption_findings: tuple[PreemptionFinding, ...] = ()
    rights_flags: tuple[RightsFlag, ...] = ()
    state_map_found: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state,
            "case_type": self.case_type,
            "severity": self.severity,
            "movement_scope": self.movement_scope,
            "funding_program_ids": list(self.funding_program_ids),
            "preemption_findings": [f.to_dict() for f in self.preemption_findings],
            "rights_flags": [f.to_dict() for f in self.rights_flags],
            "state_map_found": self.state_map_found,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AuthorityAnalysis:
        return cls(
            state=str(data["state"]),
            case_type=str(data["case_type"]),
            severity=str(data["severity"]),
            movement_scope=str(data["movement_scope"]),
            funding_program_ids=_strings(data.get("funding_program_ids")),
            preemption_findings=tuple(
                PreemptionFinding.from_dict(f) for f in data.get("preemption_findings") or []
            ),
            rights_flags=tuple(RightsFlag.from_dict(f) for f in data.get("rights_flags") or []),
            state_map_found=bool(data.get("state_map_found", False)),
        )


@dataclass(frozen=True)
class DoctrineSet:
    """Applied and implicated doctrine codes with rendered notes."""
    applied: frozenset[str] = frozenset()
    implicated: frozenset[str] = frozenset()
    notes: str = ""

    def includes(self, code: str) -> bool:
        """True when the code is applied or implicated."""
        return code in self.applied or code in self.implicated

    def to_dict(self) -> dict[str, Any]:
        return {
            "applied": sorted_codes(self.applied),
            "implicated": sorted_codes(self.implicated),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DoctrineSet:
        return cls(
            applied=_codes(data.get("applied")),
            implicated=_codes(data.get("implicated")),
            notes=str(data.get("notes", "")),
        )


@dataclass(frozen=True)
class DoctrineResult:
    """Output of the doctrine engine."""
    jurisdiction: Jurisdiction
    law_category: str
    inputs: dict[str, Any]
    doctrines: DoctrineSet
    summary: Summary
    analysis: Optional[AuthorityAnalysis] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "jurisdiction": self.jurisdiction.to_dict(),
            "law_category": self.law_category,
            "inputs": dict(self.inputs),
            "doctrines": self.doctrines.to_dict(),
            "analysis": self.analysis.to_dict() if self.analysis else None,
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DoctrineResult:
        analysis = data.get("analysis")
        return cls(
            jurisdiction=Jurisdiction.from_dict(data["jurisdiction"]),
            law_category=str(data["law_category"]),
            inputs=dict(data["inputs"]),
            doctrines=DoctrineSet.from_dict(data["doctrines"]),
            summary=Summary.from_dict(data["summary"]),
            analysis=AuthorityAnalysis.from_dict(analysis) if analysis else None,
        )


# =============================================================================
# Scorecard
# =============================================================================

@dataclass(frozen=True)
class Scores:
    """
    Divergence and fidelity.

    fidelity_score is defined as 100 - divergence_score.
    """
    divergence_score: int
    band: Band
    band_label: str

    @property
    def fidelity_score(self) -> int:
        return 100 - self.divergence_score

    def to_dict(self) -> dict[str, Any]:
        return {
            "fidelity_score": self.fidelity_score,
            "divergence_score": self.divergence_score,
            "band": self.band.value,
            "band_label": self.band_label,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Scores:
        divergence = int(data["divergence_score"])
        if not 0 <= divergence <= 100:
            raise ValueError(f"divergence_score out of range: {divergence}")
        return cls(
            divergence_score=divergence,
            band=Band(data["band"]),
            band_label=str(data.get("band_label", "")),
        )


@dataclass(frozen=True)
class ScorecardResult:
    """Output of the scorecard stage."""
    jurisdiction: Jurisdiction
    law_category: str
    inputs: dict[str, Any]
    scores: Scores
    summary: Summary

    def to_dict(self) -> dict[str, Any]:
        return {
            "jurisdiction": self.jurisdiction.to_dict(),
            "law_category": self.law_category,
            "inputs": dict(self.inputs),
            "scores": self.scores.to_dict(),
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ScorecardResult:
        return cls(
            jurisdiction=Jurisdiction.from_dict(data["jurisdiction"]),
            law_category=str(data["law_category"]),
            inputs=dict(data["inputs"]),
            scores=Scores.from_dict(data["scores"]),
            summary=Summary.from_dict(data["summary"]),
        )


# =============================================================================
# Validity
# =============================================================================

@dataclass(frozen=True)
class ValidityDetermination:
    """Terminal status, matched grounds/hooks and recommended actions."""
    status: ValidityStatus
    grounds: frozenset[str] = frozenset()
    constitutional_hooks: frozenset[str] = frozenset()
    recommended_actions: tuple[str, ...] = ()
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "grounds": sorted_codes(self.grounds),
            "constitutional_hooks": sorted_codes(self.constitutional_hooks),
            "recommended_actions": list(self.recommended_actions),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ValidityDetermination:
        return cls(
            status=ValidityStatus(data["status"]),
            grounds=_codes(data.get("grounds")),
            constitutional_hooks=_codes(data.get("constitutional_hooks")),
            recommended_actions=_strings(data.get("recommended_actions")),
            notes=str(data.get("notes", "")),
        )


@dataclass(frozen=True)
class ValidityResult:
    """Output of the validity engine."""
    jurisdiction: Jurisdiction
    law_category: str
    inputs: dict[str, Any]
    validity: ValidityDetermination
    summary: Summary = field(default_factory=lambda: Summary("", ""))

    @property
    def status(self) -> ValidityStatus:
        return self.validity.status

    def to_dict(self) -> dict[str, Any]:
        return {
            "jurisdiction": self.jurisdiction.to_dict(),
            "law_category": self.law_category,
            "inputs": dict(self.inputs),
            "validity": self.validity.to_dict(),
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ValidityResult:
        return cls(
            jurisdiction=Jurisdiction.from_dict(data["jurisdiction"]),
            law_category=str(data["law_category"]),
            inputs=dict(data["inputs"]),
            validity=ValidityDetermination.from_dict(data["validity"]),
            summary=Summary.from_dict(data["summary"]),
        )
