"""
LawPilot Classification Stage

Turns an IntakeRecord into a ClassificationResult: driver type, CDL status,
procedural scenario, suspected statutory basis and advisory flags.

Every input field has a default, so classification cannot fail once an
intake exists.
"""
from __future__ import annotations

import logging
from typing import Callable

from ..models import (
    CdlStatus,
    ClassificationResult,
    DriverType,
    IntakeRecord,
    Scenario,
    StageKey,
    SuspectedBasis,
)
from ..store import ArtifactStore


logger = logging.getLogger(__name__)


VEHICLE_USE_DRIVER_TYPES: dict[str, DriverType] = {
    "intrastate_commercial": DriverType.COMMERCIAL_INTRASTATE,
    "interstate_commercial": DriverType.COMMERCIAL_INTERSTATE,
}

EVENT_TYPE_SCENARIOS: dict[str, Scenario] = {
    "checkpoint": Scenario.CHECKPOINT,
    "hearing": Scenario.HEARING,
    "criminal_case": Scenario.CRIMINAL_CASE,
    "civil_case": Scenario.CIVIL_CASE,
}

# Scanned in order over the lower-cased statute text; first group with a hit wins
BASIS_KEYWORDS: tuple[tuple[SuspectedBasis, tuple[str, ...]], ...] = (
    (SuspectedBasis.LICENSING_ONLY, ("licens",)),
    (SuspectedBasis.IMPAIRED_DRIVING, ("owi", "dwi", "dui", "intoxicat")),
    (SuspectedBasis.REGISTRATION_INSURANCE, ("registration", "insurance")),
    (SuspectedBasis.COMMERCIAL_COMPLIANCE, ("commercial", "fmcsr", "motor carrier")),
)

FlagPredicate = Callable[[DriverType, CdlStatus, SuspectedBasis], bool]

# Every matching rule contributes its flags
FLAG_RULES: tuple[tuple[FlagPredicate, tuple[str, ...]], ...] = (
    (
        lambda driver, cdl, basis: (
            driver == DriverType.PRIVATE and basis == SuspectedBasis.COMMERCIAL_COMPLIANCE
        ),
        ("private_driver_in_commercial_framework", "possible_fmcsr_misapplication"),
    ),
    (
        lambda driver, cdl, basis: cdl == CdlStatus.HAS_CDL and driver == DriverType.PRIVATE,
        ("cdl_holder_private_use",),
    ),
    (
        lambda driver, cdl, basis: basis == SuspectedBasis.LICENSING_ONLY,
        ("high_value_constitutional_issue",),
    ),
)


def driver_type_for(vehicle_use: str) -> DriverType:
    return VEHICLE_USE_DRIVER_TYPES.get(vehicle_use, DriverType.PRIVATE)


def scenario_for(event_type: str) -> Scenario:
    return EVENT_TYPE_SCENARIOS.get(event_type, Scenario.ROUTINE_STOP)


def suspected_basis_for(statutes_text: str) -> SuspectedBasis:
    """First keyword group found in the (lower-cased) statute text."""
    for basis, keywords in BASIS_KEYWORDS:
        if any(keyword in statutes_text for keyword in keywords):
            return basis
    return SuspectedBasis.UNKNOWN


def classify_intake(intake: IntakeRecord) -> ClassificationResult:
    """Classify an intake. Pure function of the intake."""
    driver_type = driver_type_for(intake.driver_context.vehicle_use)
    cdl_status = CdlStatus.HAS_CDL if intake.driver_context.has_cdl else CdlStatus.NONE
    basis = suspected_basis_for(intake.statutes_text)

    flags: set[str] = set()
    for predicate, rule_flags in FLAG_RULES:
        if predicate(driver_type, cdl_status, basis):
            flags.update(rule_flags)

    return ClassificationResult(
        driver_type=driver_type,
        cdl_status=cdl_status,
        scenario=scenario_for(intake.event.type),
        suspected_basis=basis,
        flags=frozenset(flags),
        source_intake_created_at=intake.created_at or None,
    )


def run_classification(store: ArtifactStore) -> ClassificationResult:
    """
    Classify the stored intake and store the result.

    Raises:
        MissingPrerequisiteError: If no intake is stored
    """
    logger.debug("Classification started", extra={"stage": StageKey.CLASSIFICATION.value})
    intake = store.require(StageKey.INTAKE, IntakeRecord, StageKey.CLASSIFICATION)
    result = classify_intake(intake)
    store.write(StageKey.CLASSIFICATION, result)
    logger.info(
        "Stored classification: %s / %s",
        result.driver_type.value,
        result.suspected_basis.value,
        extra={"stage": StageKey.CLASSIFICATION.value},
    )
    return result
