"""
Tests for the law audit stage.

Validates:
- Category inference cascade
- Each tier evaluator in isolation
- Summary text and risk flags
- Stage runner prerequisites and optional preemption table
"""
import json

import pytest

from lawpilot.engine.law_audit import (
    UNKNOWN_STATE,
    audit_law,
    evaluate_tier1,
    evaluate_tier2,
    evaluate_tier3,
    evaluate_tier4,
    infer_category,
    run_law_audit,
)
from lawpilot.exceptions import MissingPrerequisiteError, TableNotFoundError
from lawpilot.models import (
    DriverType,
    LawAuditResult,
    LawCategory,
    StageKey,
    SuspectedBasis,
    Tier1Status,
    Tier2Status,
    Tier3Status,
    Tier4Status,
)
from lawpilot.tables import RuleTableLoader

from tests.conftest import (
    FMCSR_STATUTE,
    IMPLIED_CONSENT_STATUTE,
    SPEED_STATUTE,
    make_classification,
    make_intake,
)


PRIVATE = make_classification()
COMMERCIAL = make_classification(driver_type=DriverType.COMMERCIAL_INTRASTATE)


# =============================================================================
# Category Inference
# =============================================================================

class TestInferCategory:
    """The category cascade: first matching guard wins."""

    @pytest.mark.parametrize("basis,statutes,expected", [
        (SuspectedBasis.LICENSING_ONLY, "TC 1 - license", LawCategory.DRIVER_LICENSING),
        (SuspectedBasis.REGISTRATION_INSURANCE, "TC 1 - registration", LawCategory.VEHICLE_REGISTRATION),
        (SuspectedBasis.REGISTRATION_INSURANCE, "TC 1 - insurance", LawCategory.INSURANCE),
        (SuspectedBasis.IMPAIRED_DRIVING, "PC 49.04 - DWI", LawCategory.DWI_DUI_OWI),
        (SuspectedBasis.COMMERCIAL_COMPLIANCE, "TC 1 - commercial", LawCategory.COMMERCIAL_TRANSPORT),
        (SuspectedBasis.UNKNOWN, "49 CFR 390.5 - definitions", LawCategory.FMCSR_ADOPTION),
        (SuspectedBasis.UNKNOWN, IMPLIED_CONSENT_STATUTE, LawCategory.IMPLIED_CONSENT),
        (SuspectedBasis.UNKNOWN, SPEED_STATUTE, LawCategory.OTHER),
    ])
    def test_category(self, basis, statutes, expected):
        intake = make_intake(statutes=statutes)
        classification = make_classification(suspected_basis=basis)
        assert infer_category(intake, classification) == expected

    def test_registration_outranks_insurance(self):
        intake = make_intake(statutes="TC 1 - registration and insurance")
        classification = make_classification(suspected_basis=SuspectedBasis.REGISTRATION_INSURANCE)
        assert infer_category(intake, classification) == LawCategory.VEHICLE_REGISTRATION


# =============================================================================
# Tier Evaluators
# =============================================================================

class TestTier1:
    """Federal alignment."""

    @pytest.mark.parametrize("category", [
        LawCategory.FMCSR_ADOPTION,
        LawCategory.COMMERCIAL_TRANSPORT,
    ])
    def test_commercial_category_on_private_driver_is_ultra_vires(self, category, law_audit_rules):
        check = evaluate_tier1(category, law_audit_rules, PRIVATE)
        assert check.status == Tier1Status.ULTRA_VIRES

    def test_commercial_category_on_commercial_driver_is_aligned(self, law_audit_rules):
        check = evaluate_tier1(LawCategory.FMCSR_ADOPTION, law_audit_rules, COMMERCIAL)
        assert check.status == Tier1Status.ALIGNED

    def test_implied_consent_on_private_driver_is_over_broad(self, law_audit_rules):
        check = evaluate_tier1(LawCategory.IMPLIED_CONSENT, law_audit_rules, PRIVATE)
        assert check.status == Tier1Status.OVER_BROAD

    def test_federal_sources_are_anchors_plus_category(self, law_audit_rules):
        check = evaluate_tier1(LawCategory.DRIVER_LICENSING, law_audit_rules, PRIVATE)
        assert check.federal_sources[:3] == law_audit_rules.federal_anchors
        assert check.federal_sources[-1].startswith("49 U.S.C. 31308")

    def test_unknown_category_sources_fall_back_to_anchors(self, law_audit_rules):
        check = evaluate_tier1(LawCategory.OTHER, law_audit_rules, PRIVATE)
        assert check.federal_sources == law_audit_rules.federal_anchors


class TestTier2:
    """Scope and commercial nexus."""

    def test_nexus_required_but_absent(self, law_audit_rules):
        check = evaluate_tier2(LawCategory.COMMERCIAL_TRANSPORT, law_audit_rules, PRIVATE, "personal")
        assert check.scope_status == Tier2Status.BEYOND_SCOPE
        assert check.commercial_nexus_required is True
        assert check.commercial_nexus_present is False

    def test_nexus_present_through_vehicle_use(self, law_audit_rules):
        check = evaluate_tier2(
            LawCategory.FMCSR_ADOPTION, law_audit_rules, PRIVATE, "interstate_commercial"
        )
        assert check.scope_status == Tier2Status.WITHIN_SCOPE
        assert check.commercial_nexus_present is True

    def test_nexus_present_through_driver_type(self, law_audit_rules):
        check = evaluate_tier2(LawCategory.FMCSR_ADOPTION, law_audit_rules, COMMERCIAL, "personal")
        assert check.scope_status == Tier2Status.WITHIN_SCOPE

    def test_no_nexus_requirement(self, law_audit_rules):
        check = evaluate_tier2(LawCategory.DRIVER_LICENSING, law_audit_rules, PRIVATE, "personal")
        assert check.scope_status == Tier2Status.WITHIN_SCOPE
        assert check.commercial_nexus_required is False


class TestTier3:
    """Preemption heuristic."""

    def test_commercial_category_on_private_driver(self):
        check = evaluate_tier3(LawCategory.FMCSR_ADOPTION, PRIVATE)
        assert check.status == Tier3Status.OBSTACLE_PREEMPTED

    def test_no_issue_otherwise(self):
        assert evaluate_tier3(LawCategory.DRIVER_LICENSING, PRIVATE).status == Tier3Status.NO_PREEMPTION_ISSUE
        assert evaluate_tier3(LawCategory.FMCSR_ADOPTION, COMMERCIAL).status == Tier3Status.NO_PREEMPTION_ISSUE

    def test_candidate_rules_by_movement_scope(self, preemption_rules):
        private = evaluate_tier3(LawCategory.OTHER, PRIVATE, preemption_rules)
        assert private.candidate_rule_ids == (
            "fmcsr_applied_to_private_travel",
            "mcsap_funded_private_enforcement",
            "licensing_private_travel",
            "implied_consent_escalation",
        )
        commercial = evaluate_tier3(LawCategory.OTHER, COMMERCIAL, preemption_rules)
        assert commercial.candidate_rule_ids == (
            "implied_consent_escalation",
            "commercial_scope_check",
        )

    def test_candidates_never_change_status(self, preemption_rules):
        check = evaluate_tier3(LawCategory.OTHER, PRIVATE, preemption_rules)
        assert check.status == Tier3Status.NO_PREEMPTION_ISSUE


class TestTier4:
    """Constitutional analysis cascade."""

    def test_private_licensing_is_void(self, law_audit_rules):
        check = evaluate_tier4(LawCategory.DRIVER_LICENSING, law_audit_rules, PRIVATE)
        assert check.status == Tier4Status.VOID_AB_INITIO
        assert check.rights_implicated == (
            "Right to travel", "Ninth Amendment", "Tenth Amendment", "Fourteenth Amendment",
        )

    def test_private_implied_consent_is_rights_infringing(self, law_audit_rules):
        check = evaluate_tier4(LawCategory.IMPLIED_CONSENT, law_audit_rules, PRIVATE)
        assert check.status == Tier4Status.RIGHTS_INFRINGING
        assert "Fourth Amendment" in check.rights_implicated

    def test_commercial_category_on_private_driver_is_over_reach(self, law_audit_rules):
        check = evaluate_tier4(LawCategory.COMMERCIAL_TRANSPORT, law_audit_rules, PRIVATE)
        assert check.status == Tier4Status.OVER_REACH
        assert check.rights_implicated == ()

    def test_licensing_basis_fallback(self, law_audit_rules):
        # Commercial driver, licensing statute: only the basis guard matches
        classification = make_classification(
            driver_type=DriverType.COMMERCIAL_INTERSTATE,
            suspected_basis=SuspectedBasis.LICENSING_ONLY,
        )
        check = evaluate_tier4(LawCategory.DRIVER_LICENSING, law_audit_rules, classification)
        assert check.status == Tier4Status.OVER_REACH
        assert check.rights_implicated == ("Ninth Amendment", "Tenth Amendment", "Fourteenth Amendment")

    def test_category_guard_outranks_basis_guard(self, law_audit_rules):
        classification = make_classification(suspected_basis=SuspectedBasis.LICENSING_ONLY)
        check = evaluate_tier4(LawCategory.DRIVER_LICENSING, law_audit_rules, classification)
        assert check.status == Tier4Status.VOID_AB_INITIO

    def test_text_aligned_otherwise(self, law_audit_rules):
        check = evaluate_tier4(LawCategory.OTHER, law_audit_rules, PRIVATE)
        assert check.status == Tier4Status.TEXT_ALIGNED


# =============================================================================
# Full Audit
# =============================================================================

class TestAuditLaw:
    """Tests for audit_law()."""

    def test_fmcsr_on_private_driver(self, law_audit_rules):
        intake = make_intake(statutes=FMCSR_STATUTE)
        classification = make_classification(suspected_basis=SuspectedBasis.COMMERCIAL_COMPLIANCE)
        result = audit_law(intake, classification, law_audit_rules)

        assert result.category == LawCategory.COMMERCIAL_TRANSPORT
        assert result.summary.risk_flags == frozenset({
            "ultra_vires_enforcement",
            "no_commercial_nexus",
            "private_driver_in_commercial_framework",
            "likely_preempted",
            "constitutional_violation",
        })

    def test_void_pattern_flag(self, law_audit_rules):
        classification = make_classification(suspected_basis=SuspectedBasis.LICENSING_ONLY)
        result = audit_law(make_intake(), classification, law_audit_rules)
        assert result.summary.risk_flags == frozenset({
            "constitutional_violation",
            "void_ab_initio_pattern",
        })

    def test_summary_text(self, law_audit_rules):
        classification = make_classification(suspected_basis=SuspectedBasis.LICENSING_ONLY)
        result = audit_law(make_intake(), classification, law_audit_rules)
        assert result.summary.user_friendly == (
            "You are classified as a private driver in TX. The laws or practices applied "
            "appear aligned under federal scope, within scope on commercial nexus, and "
            "void ab initio at the constitutional level."
        )
        technical = json.loads(result.summary.technical)
        assert technical["tier4_constitutional"]["status"] == "void_ab_initio"

    def test_missing_state_reads_unknown(self, law_audit_rules):
        result = audit_law(make_intake(state=""), PRIVATE, law_audit_rules)
        assert result.jurisdiction.state == UNKNOWN_STATE

    def test_statute_order_preserved(self, law_audit_rules):
        intake = make_intake(statutes="B 2 - Second\nA 1 - First")
        result = audit_law(intake, PRIVATE, law_audit_rules)
        assert result.law_reference.statutes_raw == ("B 2 - Second", "A 1 - First")

    def test_user_profile(self, law_audit_rules):
        result = audit_law(make_intake(), PRIVATE, law_audit_rules)
        assert result.user_profile.driver_type == "private"
        assert result.user_profile.vehicle_use == "personal"


class TestRunLawAudit:
    """Tests for the stage runner."""

    def test_requires_classification(self, store, loader):
        store.write(StageKey.INTAKE, make_intake())
        with pytest.raises(MissingPrerequisiteError) as exc_info:
            run_law_audit(store, loader)
        assert exc_info.value.details["missing"] == "classification"
        assert not store.has(StageKey.LAW_AUDIT)

    def test_writes_result(self, store, loader):
        store.write(StageKey.INTAKE, make_intake())
        store.write(StageKey.CLASSIFICATION, make_classification(
            suspected_basis=SuspectedBasis.LICENSING_ONLY,
        ))
        result = run_law_audit(store, loader)
        assert store.read(StageKey.LAW_AUDIT, LawAuditResult) == result
        assert result.audit_checks.tier3_preemption.candidate_rule_ids

    def test_missing_rules_table_aborts_stage(self, store, tmp_path):
        store.write(StageKey.INTAKE, make_intake())
        store.write(StageKey.CLASSIFICATION, PRIVATE)
        with pytest.raises(TableNotFoundError):
            run_law_audit(store, RuleTableLoader(tmp_path))
        assert not store.has(StageKey.LAW_AUDIT)
