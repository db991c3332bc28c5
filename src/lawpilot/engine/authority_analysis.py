"""
LawPilot Authority Analysis

Walks the preemption/authority rules against the scenario and flags state
statutes through the rights tests.

A preemption rule fires when every trigger it declares passes:
- case_type: the scenario's case type is listed
- movement_scope: the driver's movement scope is listed
- keywords_in_law_block: any keyword occurs in the lower-cased statute text
- funding_program_ids: any listed program was inferred from the grant text
- severity_min: the configured severity is at least the minimum

Rights flags come from the per-state statute map, when one exists: each
statute risk flag naming a known rights test becomes a RightsFlag.

The analysis is informational; it does not feed the doctrine sets, the
scores, or the tier-3 status.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from ..models import (
    SEVERITY_ORDER,
    AuthorityAnalysis,
    DoctrineCatalog,
    DriverType,
    PreemptionFinding,
    PreemptionRule,
    PreemptionRuleSet,
    RightsFlag,
    RightsTestCatalog,
    Scenario,
    StateMap,
)


logger = logging.getLogger(__name__)


PRIVATE_SCOPE = "private"
COMMERCIAL_SCOPE = "commercial"

DEFAULT_CASE_TYPE = "traffic"

SCENARIO_CASE_TYPES: dict[str, str] = {
    Scenario.CRIMINAL_CASE.value: "criminal",
    Scenario.CIVIL_CASE.value: "civil",
    Scenario.HEARING.value: "administrative",
}


def movement_scope_for(driver_type: DriverType) -> str:
    return PRIVATE_SCOPE if driver_type == DriverType.PRIVATE else COMMERCIAL_SCOPE


def case_type_for(scenario: Scenario) -> str:
    return SCENARIO_CASE_TYPES.get(scenario.value, DEFAULT_CASE_TYPE)


def severity_rank(severity: Optional[str]) -> int:
    """Position in SEVERITY_ORDER; -1 for an unrecognized level."""
    try:
        return SEVERITY_ORDER.index((severity or "").lower())
    except ValueError:
        return -1


@dataclass(frozen=True)
class AuthorityAnalyzer:
    """
    Evaluates preemption rules and state statute rights flags.

    Usage:
        analyzer = AuthorityAnalyzer(doctrines, preemption_rules, rights_tests, state_map)
        analysis = analyzer.analyze(
            state="TX",
            case_type="traffic",
            movement_scope="private",
            severity="medium",
            laws_text="tx transp. code 521.021 - driver's license required",
            funding_program_ids=("nhtsa_402",),
        )
    """

    doctrines: DoctrineCatalog
    preemption_rules: PreemptionRuleSet
    rights_tests: RightsTestCatalog
    state_map: Optional[StateMap] = None

    def rule_matches(
        self,
        rule: PreemptionRule,
        *,
        case_type: str,
        movement_scope: str,
        laws_text: str,
        funding_program_ids: Iterable[str],
        severity: str,
    ) -> bool:
        t = rule.triggers
        if t.case_type is not None and case_type not in t.case_type:
            return False
        if t.movement_scope is not None and movement_scope not in t.movement_scope:
            return False
        if t.keywords_in_law_block is not None:
            if not any(k in laws_text for k in t.keywords_in_law_block):
                return False
        if t.funding_program_ids is not None:
            if not set(t.funding_program_ids) & set(funding_program_ids):
                return False
        if t.severity_min is not None:
            if severity_rank(severity) < severity_rank(t.severity_min):
                return False
        return True

    def preemption_findings(
        self,
        *,
        case_type: str,
        movement_scope: str,
        laws_text: str,
        funding_program_ids: Iterable[str],
        severity: str,
    ) -> tuple[PreemptionFinding, ...]:
        program_ids = tuple(funding_program_ids)
        findings = []
        for rule in self.preemption_rules.rules:
            if self.rule_matches(
                rule,
                case_type=case_type,
                movement_scope=movement_scope,
                laws_text=laws_text,
                funding_program_ids=program_ids,
                severity=severity,
            ):
                findings.append(PreemptionFinding(
                    rule_id=rule.id,
                    description=rule.description,
                    doctrines=self.doctrines.resolve(rule.doctrine_refs),
                ))
        return tuple(findings)

    def rights_flags(self) -> tuple[RightsFlag, ...]:
        """Rights flags for every state statute risk flag that names a known rights test."""
        if self.state_map is None:
            return ()
        flags = []
        for statute in self.state_map.statutes:
            for flag_id in statute.risk_flags:
                test = self.rights_tests.get(flag_id)
                if test is None:
                    logger.debug("Unknown rights test %s on %s", flag_id, statute.citation)
                    continue
                flags.append(RightsFlag(
                    statute=statute.citation,
                    rights_test_id=test.id,
                    description=test.description,
                    doctrines=self.doctrines.resolve(test.doctrine_refs),
                ))
        return tuple(flags)

    def analyze(
        self,
        *,
        state: str,
        case_type: str = DEFAULT_CASE_TYPE,
        movement_scope: str = PRIVATE_SCOPE,
        severity: str = "medium",
        laws_text: str = "",
        funding_program_ids: Iterable[str] = (),
    ) -> AuthorityAnalysis:
        program_ids = tuple(funding_program_ids)
        text = laws_text.lower()
        return AuthorityAnalysis(
            state=state.strip().upper(),
            case_type=case_type,
            severity=severity,
            movement_scope=movement_scope,
            funding_program_ids=program_ids,
            preemption_findings=self.preemption_findings(
                case_type=case_type,
                movement_scope=movement_scope,
                laws_text=text,
                funding_program_ids=program_ids,
                severity=severity,
            ),
            rights_flags=self.rights_flags(),
            state_map_found=self.state_map is not None,
        )
