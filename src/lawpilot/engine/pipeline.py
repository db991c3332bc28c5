"""
LawPilot Pipeline

Runs the derivation stages in order against one artifact store:

    classification -> law_audit -> funding_audit -> doctrine -> scorecard -> validity

A stage that fails with a LawPilotError writes nothing and is recorded as
skipped; the run continues so later stages either degrade (optional inputs)
or fail in turn on the missing prerequisite.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from ..config import Settings
from ..exceptions import LawPilotError
from ..models import IntakeRecord, StageKey
from ..store import ArtifactStore
from ..tables import RuleTableLoader
from .classify import run_classification
from .condition_evaluator import DOCTRINE_CONTEXT_KEYS, VALIDITY_CONTEXT_KEYS, ConditionEvaluator
from .doctrine import run_doctrine
from .funding_audit import run_funding_audit
from .law_audit import run_law_audit
from .scorecard import run_scorecard
from .validity import run_validity


logger = logging.getLogger(__name__)


STAGE_ORDER: tuple[StageKey, ...] = (
    StageKey.CLASSIFICATION,
    StageKey.LAW_AUDIT,
    StageKey.FUNDING_AUDIT,
    StageKey.DOCTRINE,
    StageKey.SCORECARD,
    StageKey.VALIDITY,
)

STORED = "stored"
SKIPPED = "skipped"


@dataclass(frozen=True)
class StageOutcome:
    """What happened to one stage during a run."""
    stage: StageKey
    status: str
    error: Optional[LawPilotError] = None

    @property
    def stored(self) -> bool:
        return self.status == STORED

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"stage": self.stage.value, "status": self.status}
        if self.error is not None:
            result["error"] = self.error.to_dict()
        return result


@dataclass
class PipelineReport:
    """Per-stage outcomes of one run, in stage order."""
    outcomes: list[StageOutcome] = field(default_factory=list)
    condition_failures: list[dict[str, Any]] = field(default_factory=list)

    def outcome(self, stage: StageKey) -> Optional[StageOutcome]:
        for outcome in self.outcomes:
            if outcome.stage == stage:
                return outcome
        return None

    @property
    def stored(self) -> list[str]:
        return [o.stage.value for o in self.outcomes if o.stored]

    @property
    def skipped(self) -> list[str]:
        return [o.stage.value for o in self.outcomes if not o.stored]

    @property
    def completed(self) -> bool:
        """True when the terminal validity stage stored its artifact."""
        final = self.outcome(StageKey.VALIDITY)
        return final is not None and final.stored

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcomes": [o.to_dict() for o in self.outcomes],
            "condition_failures": list(self.condition_failures),
        }


class Pipeline:
    """
    Orchestrates one scenario through every stage.

    Usage:
        pipeline = Pipeline(ArtifactStore(), RuleTableLoader())
        report = pipeline.run(intake, grant_description="MCSAP grant")
        validity = pipeline.store.read(StageKey.VALIDITY, ValidityResult)
    """

    def __init__(
        self,
        store: ArtifactStore,
        loader: Optional[RuleTableLoader] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings.from_env()
        self.store = store
        self.loader = loader or RuleTableLoader(
            tables_dir=self.settings.tables_dir,
            max_workers=self.settings.table_workers,
        )

    def submit_intake(self, intake: Union[IntakeRecord, dict[str, Any]]) -> IntakeRecord:
        """
        Store an intake record under the intake key.

        Raises:
            IntakeValidationError: If a dict intake is not a mapping of the right shape
        """
        record = intake if isinstance(intake, IntakeRecord) else IntakeRecord.from_dict(intake)
        self.store.write(StageKey.INTAKE, record)
        logger.info("Stored intake", extra={"stage": StageKey.INTAKE.value})
        return record

    def _stages(
        self,
        grant_description: str,
        severity: str,
        doctrine_evaluator: ConditionEvaluator,
        validity_evaluator: ConditionEvaluator,
    ) -> list[tuple[StageKey, Callable[[], Any]]]:
        store, loader = self.store, self.loader
        runners: dict[str, Callable[[], Any]] = {
            StageKey.CLASSIFICATION.value: lambda: run_classification(store),
            StageKey.LAW_AUDIT.value: lambda: run_law_audit(store, loader),
            StageKey.FUNDING_AUDIT.value: lambda: run_funding_audit(
                store, loader, grant_description
            ),
            StageKey.DOCTRINE.value: lambda: run_doctrine(
                store, loader, severity=severity, evaluator=doctrine_evaluator
            ),
            StageKey.SCORECARD.value: lambda: run_scorecard(store),
            StageKey.VALIDITY.value: lambda: run_validity(
                store, loader, evaluator=validity_evaluator
            ),
        }
        return [(stage, runners[stage.value]) for stage in STAGE_ORDER]

    def run(
        self,
        intake: Optional[Union[IntakeRecord, dict[str, Any]]] = None,
        grant_description: str = "",
        severity: Optional[str] = None,
    ) -> PipelineReport:
        """
        Run every stage in order.

        Stage artifacts from an earlier run are removed first, so a stage that
        is skipped this time reads as missing downstream.

        Args:
            intake: Intake to store first; when None the stored intake is used
            grant_description: Free-text grant description for program inference
            severity: Authority-analysis severity (default: settings.default_severity)

        Returns:
            PipelineReport with one outcome per stage
        """
        if intake is not None:
            self.submit_intake(intake)

        # Drop the previous run's stage artifacts
        for stage in STAGE_ORDER:
            self.store.delete(stage)

        # Tables are cached for one run only
        self.loader.clear()
        doctrine_evaluator = ConditionEvaluator(keys=DOCTRINE_CONTEXT_KEYS)
        validity_evaluator = ConditionEvaluator(keys=VALIDITY_CONTEXT_KEYS)
        level = severity or self.settings.default_severity

        report = PipelineReport()
        for stage, run_stage in self._stages(
            grant_description, level, doctrine_evaluator, validity_evaluator
        ):
            try:
                run_stage()
            except LawPilotError as e:
                logger.warning("Stage skipped: %s", e, extra={"stage": stage.value})
                report.outcomes.append(StageOutcome(stage=stage, status=SKIPPED, error=e))
                continue
            report.outcomes.append(StageOutcome(stage=stage, status=STORED))

        report.condition_failures = [
            f.to_dict() for f in doctrine_evaluator.failures + validity_evaluator.failures
        ]
        logger.info(
            "Pipeline finished: stored=%s skipped=%s",
            ",".join(report.stored) or "-",
            ",".join(report.skipped) or "-",
        )
        return report
