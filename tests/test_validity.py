"""
Tests for the validity stage.

Validates:
- Grounds/hooks matching over the validity context
- The ordered status cascade (first match wins)
- Recommended actions, including the funding-driven extras
- Summary text and the stage runner
"""
import json

import pytest

from lawpilot.engine.condition_evaluator import VALIDITY_CONTEXT_KEYS, ConditionEvaluator
from lawpilot.engine.validity import (
    FALLBACK_ACTION,
    RECOMMENDED_ACTIONS,
    ValidityFacts,
    build_context,
    compute_status,
    determine_validity,
    match_grounds,
    recommended_actions,
    run_validity,
)
from lawpilot.exceptions import MissingPrerequisiteError
from lawpilot.models import (
    ApplicabilityRule,
    LawCategory,
    RiskLevel,
    StageKey,
    Tier1Status,
    Tier4Status,
    ValidityResult,
    ValidityRuleSet,
    ValidityStatus,
)

from tests.conftest import (
    make_classification,
    make_doctrine,
    make_funding,
    make_law_audit,
    make_scorecard,
)


PRIVATE = make_classification()

SCENARIO_ONE_INPUTS = {
    "tier1_status": "aligned",
    "tier2_scope_status": "within_scope",
    "tier3_preemption_status": "no_preemption_issue",
    "tier4_const_status": "void_ab_initio",
    "funding_risk": "medium",
    "doctrines_applied": ["retained_rights"],
    "doctrines_implicated": ["false_claims", "police_power_overreach", "spending_clause_conditions"],
}


def _facts(**overrides) -> ValidityFacts:
    values = dict(
        tier1="aligned",
        tier2="within_scope",
        tier3="no_preemption_issue",
        tier4="text_aligned",
        funding_risk="low",
        divergence=5,
        doctrines=frozenset(),
        grounds=frozenset(),
    )
    values.update(overrides)
    return ValidityFacts(**values)


@pytest.fixture
def evaluator():
    return ConditionEvaluator(keys=VALIDITY_CONTEXT_KEYS)


# =============================================================================
# Context and Grounds
# =============================================================================

class TestBuildContext:
    """Tests for build_context()."""

    def test_keys_match_evaluator_keys(self):
        context = build_context(make_law_audit(), make_scorecard())
        assert set(context) == set(VALIDITY_CONTEXT_KEYS)

    def test_scores_and_defaults(self):
        context = build_context(make_law_audit(), make_scorecard(SCENARIO_ONE_INPUTS))
        assert context["divergence_score"] == 69
        assert context["fidelity_score"] == 31
        assert context["funding_risk"] == "unknown"
        assert context["driver_type"] == "unknown"


class TestMatchGrounds:
    """Tests for match_grounds()."""

    def test_private_licensing_scenario(self, validity_rules, evaluator):
        law_audit = make_law_audit(
            category=LawCategory.DRIVER_LICENSING,
            tier4=Tier4Status.VOID_AB_INITIO,
        )
        context = build_context(
            law_audit,
            make_scorecard(SCENARIO_ONE_INPUTS),
            PRIVATE,
            make_funding(risk_level=RiskLevel.MEDIUM),
        )
        grounds, hooks = match_grounds(validity_rules, context, evaluator)
        assert grounds == frozenset({"rights_infringement", "severe_divergence"})
        assert hooks == frozenset({"ninth_amendment", "fourteenth_amendment"})
        assert evaluator.failures == []

    def test_implied_consent_hooks(self, validity_rules, evaluator):
        law_audit = make_law_audit(
            category=LawCategory.IMPLIED_CONSENT,
            tier1=Tier1Status.OVER_BROAD,
            tier4=Tier4Status.RIGHTS_INFRINGING,
        )
        context = build_context(law_audit, make_scorecard(), PRIVATE)
        _, hooks = match_grounds(validity_rules, context, evaluator)
        assert {"fourth_amendment", "fifth_amendment"} <= hooks

    def test_bad_rule_recorded(self, evaluator):
        rules = ValidityRuleSet(rules=(
            ApplicabilityRule(id="bad", condition="tier1_status >= 3", add_grounds=("x",)),
            ApplicabilityRule(id="good", condition="divergence_score < 50", add_grounds=("y",)),
        ))
        context = build_context(make_law_audit(), make_scorecard())
        grounds, _ = match_grounds(rules, context, evaluator)
        assert grounds == frozenset({"y"})
        assert evaluator.failures[0].rule_id == "bad"


# =============================================================================
# Status Cascade
# =============================================================================

class TestComputeStatus:
    """The ordered status cascade."""

    @pytest.mark.parametrize("overrides", [
        {"tier4": "void_ab_initio"},
        {"tier4": "rights_infringing", "tier3": "obstacle_preempted"},
        {"tier4": "rights_infringing", "tier1": "ultra_vires"},
        {"doctrines": frozenset({"supremacy_preemption", "ultra_vires"})},
        {"divergence": 75, "tier4": "over_reach"},
    ])
    def test_strong(self, overrides):
        assert compute_status(_facts(**overrides)) == ValidityStatus.VOID_AB_INITIO_STRONG

    @pytest.mark.parametrize("overrides", [
        {"tier4": "over_reach"},
        {"tier4": "rights_infringing"},
        {"tier1": "ultra_vires"},
        {"tier2": "beyond_scope"},
        {"tier3": "field_preempted"},
        {"funding_risk": "high"},
        {"divergence": 55},
        {"divergence": 74, "tier4": "over_reach"},
    ])
    def test_candidate(self, overrides):
        assert compute_status(_facts(**overrides)) == ValidityStatus.VOID_AB_INITIO_CANDIDATE

    @pytest.mark.parametrize("overrides", [
        {"grounds": frozenset({"severe_divergence"})},
        {"doctrines": frozenset({"supremacy_preemption"})},
        {"doctrines": frozenset({"police_power_overreach"})},
        {"divergence": 35},
        {"divergence": 54},
    ])
    def test_structurally_defective(self, overrides):
        assert compute_status(_facts(**overrides)) == ValidityStatus.STRUCTURALLY_DEFECTIVE

    @pytest.mark.parametrize("overrides", [
        {},
        {"divergence": 34},
        {"tier1": "over_broad", "funding_risk": "medium"},
        {"tier1": "unknown", "tier2": "unknown", "tier4": "unknown", "divergence": 25},
        {"doctrines": frozenset({"false_claims", "retained_rights"})},
    ])
    def test_presumptively_valid(self, overrides):
        assert compute_status(_facts(**overrides)) == ValidityStatus.PRESUMPTIVELY_VALID


# =============================================================================
# Recommended Actions
# =============================================================================

class TestRecommendedActions:
    """Tests for recommended_actions()."""

    def test_every_status_has_actions(self):
        for status in ValidityStatus:
            assert status.value in RECOMMENDED_ACTIONS

    def test_valid(self):
        actions = recommended_actions(ValidityStatus.PRESUMPTIVELY_VALID, "high")
        assert actions == RECOMMENDED_ACTIONS["presumptively_valid"]
        assert len(actions) == 2

    @pytest.mark.parametrize("risk,extra", [
        ("low", False),
        ("medium", True),
        ("high", True),
        ("unknown", False),
    ])
    def test_candidate_funding_action(self, risk, extra):
        actions = recommended_actions(ValidityStatus.VOID_AB_INITIO_CANDIDATE, risk)
        assert len(actions) == (4 if extra else 3)
        if extra:
            assert "False Claims Act" in actions[-1]

    @pytest.mark.parametrize("risk,extra", [
        ("medium", False),
        ("high", True),
    ])
    def test_strong_funding_action(self, risk, extra):
        actions = recommended_actions(ValidityStatus.VOID_AB_INITIO_STRONG, risk)
        assert len(actions) == (4 if extra else 3)
        if extra:
            assert "whistleblower" in actions[-1]

    def test_structurally_defective_has_no_extra(self):
        actions = recommended_actions(ValidityStatus.STRUCTURALLY_DEFECTIVE, "high")
        assert len(actions) == 3
        assert FALLBACK_ACTION not in actions


# =============================================================================
# Stage
# =============================================================================

class TestDetermineValidity:
    """Tests for determine_validity()."""

    def test_private_licensing_scenario(self, validity_rules):
        law_audit = make_law_audit(
            category=LawCategory.DRIVER_LICENSING,
            tier4=Tier4Status.VOID_AB_INITIO,
        )
        result = determine_validity(
            law_audit,
            make_scorecard(SCENARIO_ONE_INPUTS, category="driver_licensing"),
            validity_rules,
            classification=PRIVATE,
            funding=make_funding(risk_level=RiskLevel.MEDIUM),
            doctrine=make_doctrine(
                applied=("retained_rights",),
                implicated=("police_power_overreach", "spending_clause_conditions", "false_claims"),
            ),
        )
        assert result.status == ValidityStatus.VOID_AB_INITIO_STRONG
        assert len(result.validity.recommended_actions) == 3
        assert result.validity.notes == ""
        assert result.inputs["doctrines_implicated"] == [
            "false_claims", "police_power_overreach", "spending_clause_conditions",
        ]
        assert result.summary.user_friendly == (
            "In TX, this 'driver_licensing' enforcement pattern is assessed as: "
            "void ab initio strong. "
            "Key grounds: Infringement of retained or protected rights; "
            "Severe divergence from lawful baseline. "
            "Constitutional hooks: Fourteenth Amendment (due process and privileges or "
            "immunities); Ninth Amendment (retained rights)."
        )
        technical = json.loads(result.summary.technical)
        assert technical["validity"]["status"] == "void_ab_initio_strong"

    def test_clean_scenario(self, validity_rules):
        result = determine_validity(
            make_law_audit(),
            make_scorecard({
                "tier1_status": "aligned",
                "tier2_scope_status": "within_scope",
                "tier3_preemption_status": "no_preemption_issue",
                "tier4_const_status": "text_aligned",
                "funding_risk": "low",
            }),
            validity_rules,
            classification=PRIVATE,
            funding=make_funding(),
        )
        assert result.status == ValidityStatus.PRESUMPTIVELY_VALID
        assert result.validity.grounds == frozenset()
        assert result.summary.user_friendly == (
            "In TX, this 'other' enforcement pattern is assessed as: presumptively valid."
        )

    def test_skipped_rules_noted(self):
        rules = ValidityRuleSet(rules=(
            ApplicabilityRule(id="bad", condition="county == 'Travis'", add_grounds=("x",)),
        ))
        evaluator = ConditionEvaluator(keys=VALIDITY_CONTEXT_KEYS)
        result = determine_validity(make_law_audit(), make_scorecard(), rules, evaluator=evaluator)
        assert result.validity.notes == "1 validity rule(s) could not be evaluated and were skipped."
        assert len(evaluator.failures) == 1

    def test_unlabelled_codes_render_as_codes(self):
        rules = ValidityRuleSet(rules=(
            ApplicabilityRule(
                id="r", condition='law_category == "other"',
                add_grounds=("odd_ground",), add_hooks=("odd_hook",),
            ),
        ))
        result = determine_validity(make_law_audit(), make_scorecard(), rules)
        assert "Key grounds: odd_ground." in result.summary.user_friendly
        assert "Constitutional hooks: odd_hook." in result.summary.user_friendly


class TestRunValidity:
    """Tests for the stage runner."""

    def test_requires_scorecard(self, store, loader):
        store.write(StageKey.LAW_AUDIT, make_law_audit())
        with pytest.raises(MissingPrerequisiteError) as exc_info:
            run_validity(store, loader)
        assert exc_info.value.stage == "validity"
        assert exc_info.value.details["missing"] == "scorecard"

    def test_optional_artifacts_absent(self, store, loader):
        store.write(StageKey.LAW_AUDIT, make_law_audit())
        store.write(StageKey.SCORECARD, make_scorecard())
        result = run_validity(store, loader)
        assert result.inputs["funding_risk"] == "unknown"
        assert result.inputs["doctrines_applied"] == []
        assert store.read(StageKey.VALIDITY, ValidityResult) == result
