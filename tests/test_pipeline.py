"""
End-to-end tests for the pipeline.

Validates:
- Whole-scenario outcomes for private, commercial and neutral intakes
- Missing-prerequisite cascade and degraded runs without optional tables
- Byte-identical reruns
- Condition failures surfaced on the report
"""
import json
import shutil

import pytest

from lawpilot.config import Settings
from lawpilot.engine import Pipeline, PipelineReport, StageOutcome
from lawpilot.engine.pipeline import SKIPPED, STAGE_ORDER, STORED
from lawpilot.exceptions import IntakeValidationError, MissingPrerequisiteError
from lawpilot.models import (
    Band,
    DoctrineResult,
    FundingAuditResult,
    LawAuditResult,
    LawCategory,
    RiskLevel,
    ScorecardResult,
    StageKey,
    ValidityResult,
    ValidityStatus,
)
from lawpilot.store import ArtifactStore, JsonFileStore
from lawpilot.tables import DEFAULT_TABLES_DIR, RuleTableLoader

from tests.conftest import FMCSR_STATUTE, SPEED_STATUTE, make_intake


ALL_STAGES = [stage.value for stage in STAGE_ORDER]


@pytest.fixture
def pipeline(store, loader):
    return Pipeline(store, loader)


@pytest.fixture
def tables_copy(tmp_path):
    """A writable copy of the packaged rule tables."""
    target = tmp_path / "tables"
    shutil.copytree(DEFAULT_TABLES_DIR, target)
    return target


# =============================================================================
# Scenarios
# =============================================================================

class TestPrivateLicensingScenario:
    """Private driver stopped under a licensing statute."""

    @pytest.fixture
    def report(self, pipeline):
        return pipeline.run(make_intake())

    def test_every_stage_stored(self, report, store):
        assert report.completed is True
        assert report.stored == ALL_STAGES
        assert report.skipped == []
        assert report.condition_failures == []
        assert store.keys() == sorted(ALL_STAGES + ["intake"])

    def test_law_audit(self, report, store):
        law_audit = store.read(StageKey.LAW_AUDIT, LawAuditResult)
        assert law_audit.category == LawCategory.DRIVER_LICENSING
        assert law_audit.audit_checks.tier4_constitutional.status.value == "void_ab_initio"

    def test_funding_and_doctrines(self, report, store):
        funding = store.read(StageKey.FUNDING_AUDIT, FundingAuditResult)
        assert funding.risk_level == RiskLevel.MEDIUM
        assert funding.assessment.theories == frozenset({"implied_false_certification"})

        doctrine = store.read(StageKey.DOCTRINE, DoctrineResult)
        assert doctrine.doctrines.applied == frozenset({"retained_rights"})
        assert doctrine.doctrines.implicated == frozenset({
            "police_power_overreach", "spending_clause_conditions", "false_claims",
        })
        assert doctrine.analysis.state_map_found is True

    def test_scores(self, report, store):
        scores = store.read(StageKey.SCORECARD, ScorecardResult).scores
        assert scores.divergence_score == 69
        assert scores.fidelity_score == 31
        assert scores.band == Band.RED

    def test_validity(self, report, store):
        validity = store.read(StageKey.VALIDITY, ValidityResult).validity
        assert validity.status == ValidityStatus.VOID_AB_INITIO_STRONG
        assert validity.grounds == frozenset({"rights_infringement", "severe_divergence"})
        assert validity.constitutional_hooks == frozenset({"ninth_amendment", "fourteenth_amendment"})
        assert len(validity.recommended_actions) == 3


class TestCommercialScenario:
    """Interstate CDL holder cited under the FMCSRs."""

    def test_presumptively_valid(self, pipeline, store):
        report = pipeline.run(make_intake(
            vehicle_use="interstate_commercial",
            has_cdl=True,
            statutes=FMCSR_STATUTE,
        ))
        assert report.completed

        law_audit = store.read(StageKey.LAW_AUDIT, LawAuditResult)
        assert law_audit.category == LawCategory.COMMERCIAL_TRANSPORT
        assert law_audit.summary.risk_flags == frozenset()

        funding = store.read(StageKey.FUNDING_AUDIT, FundingAuditResult)
        assert funding.risk_level == RiskLevel.LOW

        doctrine = store.read(StageKey.DOCTRINE, DoctrineResult)
        assert doctrine.doctrines.applied == frozenset()
        assert doctrine.doctrines.implicated == frozenset()

        scores = store.read(StageKey.SCORECARD, ScorecardResult).scores
        assert scores.divergence_score == 5
        assert scores.band == Band.GREEN

        validity = store.read(StageKey.VALIDITY, ValidityResult)
        assert validity.status == ValidityStatus.PRESUMPTIVELY_VALID


class TestPrivateDriverUnderCommercialRules:
    """Private driver cited under the FMCSRs, with carrier grant funding."""

    def test_high_risk_and_strong_status(self, pipeline, store):
        report = pipeline.run(
            make_intake(statutes=FMCSR_STATUTE),
            grant_description="MCSAP high-visibility enforcement",
        )
        assert report.completed

        funding = store.read(StageKey.FUNDING_AUDIT, FundingAuditResult)
        assert funding.risk_level == RiskLevel.HIGH
        assert "reverse_false_claim" in funding.assessment.theories

        doctrine = store.read(StageKey.DOCTRINE, DoctrineResult)
        assert {"supremacy_preemption", "ultra_vires"} <= doctrine.doctrines.applied

        validity = store.read(StageKey.VALIDITY, ValidityResult).validity
        assert validity.status == ValidityStatus.VOID_AB_INITIO_STRONG
        # Strong status with high funding risk adds the whistleblower action
        assert len(validity.recommended_actions) == 4


class TestNeutralScenario:
    """A speed statute with no structural issue."""

    def test_presumptively_valid(self, pipeline, store):
        report = pipeline.run(make_intake(statutes=SPEED_STATUTE))
        assert report.completed
        assert store.read(StageKey.LAW_AUDIT, LawAuditResult).category == LawCategory.OTHER
        assert store.read(StageKey.SCORECARD, ScorecardResult).scores.divergence_score == 5
        validity = store.read(StageKey.VALIDITY, ValidityResult)
        assert validity.status == ValidityStatus.PRESUMPTIVELY_VALID
        assert len(validity.validity.recommended_actions) == 2


# =============================================================================
# Failure Handling
# =============================================================================

class TestMissingInputs:
    """Stages that cannot run write nothing and are reported as skipped."""

    def test_no_intake_skips_everything(self, pipeline, store):
        report = pipeline.run()
        assert report.stored == []
        assert report.skipped == ALL_STAGES
        assert report.completed is False
        assert store.keys() == []

        outcome = report.outcome(StageKey.CLASSIFICATION)
        assert outcome.status == SKIPPED
        assert isinstance(outcome.error, MissingPrerequisiteError)
        assert outcome.error.stage == "classification"

    def test_stored_intake_is_used(self, pipeline, store):
        pipeline.submit_intake(make_intake())
        assert pipeline.run().completed

    def test_missing_tables_directory(self, store, tmp_path):
        report = Pipeline(store, RuleTableLoader(tmp_path)).run(make_intake())
        assert report.stored == ["classification"]
        assert report.outcome(StageKey.LAW_AUDIT).error.code == "LP_TABLE_NOT_FOUND"
        assert report.outcome(StageKey.VALIDITY).error.code == "LP_MISSING_PREREQUISITE"
        assert not store.has(StageKey.LAW_AUDIT)

    def test_missing_funding_table_degrades(self, store, tables_copy):
        (tables_copy / "funding_programs.json").unlink()
        report = Pipeline(store, RuleTableLoader(tables_copy)).run(make_intake())

        assert report.skipped == ["funding_audit"]
        assert report.completed is True
        doctrine = store.read(StageKey.DOCTRINE, DoctrineResult)
        assert doctrine.inputs["funding_risk"] == "unknown"
        scores = store.read(StageKey.SCORECARD, ScorecardResult).scores
        # 40 (void) + 5 (unknown funding) + 5 applied + 3 implicated
        assert scores.divergence_score == 53
        assert store.read(StageKey.VALIDITY, ValidityResult).status == ValidityStatus.VOID_AB_INITIO_STRONG

    def test_invalid_intake_raises(self, pipeline):
        with pytest.raises(IntakeValidationError):
            pipeline.run(["not", "a", "mapping"])


class TestConditionFailures:
    """Bad rule conditions are skipped and surfaced on the report."""

    def test_failures_reported(self, store, tables_copy):
        rules = json.loads((tables_copy / "doctrine_rules.json").read_text(encoding="utf-8"))
        rules["rules"].append({
            "id": "county_rule",
            "condition": 'county == "Travis"',
            "add_applied": ["ultra_vires"],
        })
        (tables_copy / "doctrine_rules.json").write_text(json.dumps(rules), encoding="utf-8")

        report = Pipeline(store, RuleTableLoader(tables_copy)).run(make_intake())
        assert report.completed
        assert [f["rule_id"] for f in report.condition_failures] == ["county_rule"]
        assert report.condition_failures[0]["code"] == "LP_UNKNOWN_IDENTIFIER"
        doctrine = store.read(StageKey.DOCTRINE, DoctrineResult)
        assert "ultra_vires" not in doctrine.doctrines.applied


# =============================================================================
# Determinism and Configuration
# =============================================================================

class TestDeterminism:
    """Reruns with unchanged inputs and tables are byte-identical."""

    def test_rerun_is_byte_identical(self, pipeline, store):
        pipeline.run(make_intake())
        first = {key: store.get_raw(key) for key in store.keys()}
        pipeline.run(make_intake())
        second = {key: store.get_raw(key) for key in store.keys()}
        assert first == second

    def test_dict_intake_matches_record(self, loader):
        from_record, from_dict = ArtifactStore(), ArtifactStore()
        Pipeline(from_record, loader).run(make_intake())
        Pipeline(from_dict, loader).run(make_intake().to_dict())
        assert from_record.snapshot() == from_dict.snapshot()

    def test_tables_reloaded_each_run(self, store, tables_copy):
        pipeline = Pipeline(store, RuleTableLoader(tables_copy))
        pipeline.run(make_intake())
        (tables_copy / "validity_rules.json").unlink()
        report = pipeline.run(make_intake())
        assert report.outcome(StageKey.VALIDITY).error.code == "LP_TABLE_NOT_FOUND"
        assert not store.has(StageKey.VALIDITY)


class TestRerun:
    """A rerun supersedes every stage artifact of the previous run."""

    def test_skipped_funding_reads_as_unknown(self, store, tables_copy):
        pipeline = Pipeline(store, RuleTableLoader(tables_copy))
        pipeline.run(make_intake(statutes=FMCSR_STATUTE), grant_description="MCSAP")
        assert store.read(StageKey.FUNDING_AUDIT, FundingAuditResult).risk_level == RiskLevel.HIGH

        (tables_copy / "funding_programs.json").unlink()
        report = pipeline.run(make_intake(statutes=SPEED_STATUTE))

        assert report.skipped == ["funding_audit"]
        assert not store.has(StageKey.FUNDING_AUDIT)
        doctrine = store.read(StageKey.DOCTRINE, DoctrineResult)
        assert doctrine.inputs["funding_risk"] == "unknown"
        scorecard = store.read(StageKey.SCORECARD, ScorecardResult)
        assert scorecard.inputs["funding_risk"] == "unknown"

    def test_skipped_validity_leaves_slot_empty(self, store, tables_copy):
        pipeline = Pipeline(store, RuleTableLoader(tables_copy))
        pipeline.run(make_intake())
        assert store.read(StageKey.VALIDITY, ValidityResult).status == ValidityStatus.VOID_AB_INITIO_STRONG

        (tables_copy / "validity_rules.json").unlink()
        report = pipeline.run(make_intake(statutes=SPEED_STATUTE))

        assert report.completed is False
        assert not store.has(StageKey.VALIDITY)
        assert store.read(StageKey.LAW_AUDIT, LawAuditResult).category == LawCategory.OTHER

    def test_file_store_drops_previous_artifacts(self, tmp_path, tables_copy):
        path = tmp_path / "artifacts.json"
        Pipeline(JsonFileStore(path), RuleTableLoader(tables_copy)).run(make_intake())

        (tables_copy / "validity_rules.json").unlink()
        Pipeline(JsonFileStore(path), RuleTableLoader(tables_copy)).run(make_intake())

        data = json.loads(path.read_text(encoding="utf-8"))
        assert "validity" not in data
        assert "scorecard" in data

    def test_stored_intake_rerun_clears_stages(self, store, tmp_path):
        Pipeline(store, RuleTableLoader()).run(make_intake())
        report = Pipeline(store, RuleTableLoader(tmp_path)).run()

        assert report.stored == ["classification"]
        assert store.keys() == ["classification", "intake"]


class TestPipelineConfiguration:
    """Tests for settings-driven construction."""

    def test_loader_from_settings(self, store, tmp_path):
        settings = Settings.from_env({"LP_TABLES_DIR": str(tmp_path), "LP_TABLE_WORKERS": "2"})
        pipeline = Pipeline(store, settings=settings)
        assert pipeline.loader.tables_dir == tmp_path
        assert pipeline.loader.max_workers == 2

    def test_default_severity_from_settings(self, store):
        settings = Settings.from_env({"LP_DEFAULT_SEVERITY": "extreme"})
        Pipeline(store, settings=settings).run(make_intake())
        assert store.read(StageKey.DOCTRINE, DoctrineResult).analysis.severity == "extreme"


class TestReport:
    """Tests for PipelineReport and StageOutcome."""

    def test_to_dict(self):
        error = MissingPrerequisiteError(
            message="Missing prerequisite artifact 'intake'",
            details={"missing": "intake"},
            stage="classification",
        )
        report = PipelineReport(outcomes=[
            StageOutcome(stage=StageKey.CLASSIFICATION, status=SKIPPED, error=error),
            StageOutcome(stage=StageKey.LAW_AUDIT, status=STORED),
        ])
        data = report.to_dict()
        assert data["outcomes"][0]["error"]["code"] == "LP_MISSING_PREREQUISITE"
        assert "error" not in data["outcomes"][1]
        assert report.completed is False
        assert report.outcome(StageKey.VALIDITY) is None
