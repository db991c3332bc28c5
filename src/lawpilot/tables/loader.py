"""
LawPilot Rule Table Loader

Loads and validates rule tables from YAML or JSON files.

Converts Pydantic schema models to LawPilot domain models. Tables are cached
per loader until clear() is called; the pipeline clears the cache at the
start of every run so edited tables are picked up.
"""
from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

import yaml
from pydantic import BaseModel, ValidationError

from ..exceptions import TableLoadError, TableNotFoundError, TableValidationError
from ..models import (
    ApplicabilityRule,
    CategoryRule,
    Doctrine,
    DoctrineCatalog,
    DoctrineRuleSet,
    FundingCatalog,
    FundingProgram,
    GrantKeywordRule,
    LawAuditRules,
    PreemptionRule,
    PreemptionRuleSet,
    PreemptionTriggers,
    RightsTest,
    RightsTestCatalog,
    StateMap,
    StateStatute,
    TableName,
    ValidityRuleSet,
    state_map_name,
)
from .schema import (
    SCHEMA_VERSION,
    ApplicabilityRuleSchema,
    DoctrineRulesSchema,
    FederalDoctrinesSchema,
    FundingProgramsSchema,
    LawAuditRulesSchema,
    PreemptionRulesSchema,
    RightsTestsSchema,
    StateMapSchema,
    ValidityRulesSchema,
    check_schema_version,
)


logger = logging.getLogger(__name__)

DEFAULT_TABLES_DIR = Path(__file__).parent / "data"

TABLE_SUFFIXES = (".json", ".yaml", ".yml")

STATE_MAP_PREFIX = "state_map_"

TableRef = Union[TableName, str]


def _table_key(name: TableRef) -> str:
    return name.value if isinstance(name, TableName) else str(name)


def _optional_tuple(values: Optional[list[str]]) -> Optional[tuple[str, ...]]:
    return tuple(values) if values is not None else None


# =============================================================================
# Schema to Model Converters
# =============================================================================

def _convert_doctrines(schema: FederalDoctrinesSchema) -> DoctrineCatalog:
    """Convert FederalDoctrinesSchema to DoctrineCatalog."""
    return DoctrineCatalog(doctrines={
        d.id: Doctrine(id=d.id, label=d.label, description=d.description)
        for d in schema.doctrines
    })


def _convert_rights_tests(schema: RightsTestsSchema) -> RightsTestCatalog:
    """Convert RightsTestsSchema to RightsTestCatalog."""
    return RightsTestCatalog(tests={
        t.id: RightsTest(id=t.id, description=t.description, doctrine_refs=tuple(t.doctrine_refs))
        for t in schema.tests
    })


def _convert_funding_programs(schema: FundingProgramsSchema) -> FundingCatalog:
    """Convert FundingProgramsSchema to FundingCatalog."""
    return FundingCatalog(
        programs={
            p.id: FundingProgram(id=p.id, name=p.name, type=p.type, notes=p.notes)
            for p in schema.programs
        },
        category_to_programs={
            category: tuple(ids) for category, ids in schema.category_to_programs.items()
        },
        grant_keywords=tuple(
            GrantKeywordRule(program_id=g.program_id, keywords=tuple(g.keywords))
            for g in schema.grant_keywords
        ),
    )


def _convert_law_audit_rules(schema: LawAuditRulesSchema) -> LawAuditRules:
    """Convert LawAuditRulesSchema to LawAuditRules."""
    return LawAuditRules(
        federal_anchors=tuple(schema.federal.anchors),
        categories={
            category: CategoryRule(
                federal_sources=tuple(rule.federal_sources),
                commercial_nexus_required=rule.commercial_nexus_required,
            )
            for category, rule in schema.categories.items()
        },
        rights_mapping={
            key: tuple(rights) for key, rights in schema.constitutional.rights_mapping.items()
        },
    )


def _convert_preemption_rules(schema: PreemptionRulesSchema) -> PreemptionRuleSet:
    """Convert PreemptionRulesSchema to PreemptionRuleSet."""
    rules = []
    for rule in schema.rules:
        t = rule.triggers
        rules.append(PreemptionRule(
            id=rule.id,
            description=rule.description,
            triggers=PreemptionTriggers(
                case_type=_optional_tuple(t.case_type),
                movement_scope=_optional_tuple(t.movement_scope),
                keywords_in_law_block=_optional_tuple(
                    [k.lower() for k in t.keywords_in_law_block]
                    if t.keywords_in_law_block is not None else None
                ),
                funding_program_ids=_optional_tuple(t.funding_program_ids),
                severity_min=t.severity_min,
            ),
            doctrine_refs=tuple(rule.doctrine_refs),
        ))
    return PreemptionRuleSet(rules=tuple(rules))


def _convert_applicability_rule(schema: ApplicabilityRuleSchema, index: int) -> ApplicabilityRule:
    """Convert ApplicabilityRuleSchema to ApplicabilityRule."""
    return ApplicabilityRule(
        id=schema.id or f"rule_{index}",
        condition=schema.condition,
        add_applied=tuple(schema.add_applied),
        add_implicated=tuple(schema.add_implicated),
        add_grounds=tuple(schema.add_grounds),
        add_hooks=tuple(schema.add_hooks),
    )


def _convert_doctrine_rules(schema: DoctrineRulesSchema) -> DoctrineRuleSet:
    return DoctrineRuleSet(rules=tuple(
        _convert_applicability_rule(r, i) for i, r in enumerate(schema.rules)
    ))


def _convert_validity_rules(schema: ValidityRulesSchema) -> ValidityRuleSet:
    return ValidityRuleSet(
        rules=tuple(_convert_applicability_rule(r, i) for i, r in enumerate(schema.rules)),
        constitutional_hooks=dict(schema.constitutional_hooks),
        grounds_labels=dict(schema.grounds_labels),
    )


def _convert_state_map(schema: StateMapSchema) -> StateMap:
    return StateMap(
        state=schema.state,
        statutes=tuple(
            StateStatute(citation=s.citation, title=s.title, risk_flags=tuple(s.risk_flags))
            for s in schema.statutes
        ),
    )


# Table name -> (schema, converter)
_TABLE_TYPES: dict[str, tuple[type[BaseModel], Callable[[Any], Any]]] = {
    TableName.LAW_AUDIT_RULES.value: (LawAuditRulesSchema, _convert_law_audit_rules),
    TableName.PREEMPTION_RULES.value: (PreemptionRulesSchema, _convert_preemption_rules),
    TableName.FUNDING_PROGRAMS.value: (FundingProgramsSchema, _convert_funding_programs),
    TableName.FEDERAL_DOCTRINES.value: (FederalDoctrinesSchema, _convert_doctrines),
    TableName.RIGHTS_TESTS.value: (RightsTestsSchema, _convert_rights_tests),
    TableName.DOCTRINE_RULES.value: (DoctrineRulesSchema, _convert_doctrine_rules),
    TableName.VALIDITY_RULES.value: (ValidityRulesSchema, _convert_validity_rules),
}


def _table_type(name: str) -> tuple[type[BaseModel], Callable[[Any], Any]]:
    if name.startswith(STATE_MAP_PREFIX):
        return StateMapSchema, _convert_state_map
    try:
        return _TABLE_TYPES[name]
    except KeyError:
        raise TableNotFoundError(
            message=f"Unknown rule table: {name}",
            details={"table": name, "known": sorted(_TABLE_TYPES)},
        ) from None


# =============================================================================
# Rule Table Loader
# =============================================================================

class RuleTableLoader:
    """
    Loads rule tables from a directory of YAML or JSON files.

    Usage:
        loader = RuleTableLoader()
        rules = loader.load(TableName.LAW_AUDIT_RULES)
        tables = loader.load_many([TableName.FEDERAL_DOCTRINES, TableName.DOCTRINE_RULES])
        state_map = loader.load_state_map("TX")  # None when absent
    """

    def __init__(
        self,
        tables_dir: Optional[Union[str, Path]] = None,
        strict_version: bool = True,
        max_workers: int = 4,
    ):
        """
        Initialize the loader.

        Args:
            tables_dir: Directory holding the table files (default: packaged tables)
            strict_version: If True, reject tables with incompatible schema versions
            max_workers: Thread pool size for load_many()
        """
        self.tables_dir = Path(tables_dir) if tables_dir else DEFAULT_TABLES_DIR
        self.strict_version = strict_version
        self.max_workers = max(1, max_workers)

        self._cache: dict[str, Any] = {}
        self._lock = threading.Lock()

    def path_for(self, name: TableRef) -> Optional[Path]:
        """First existing file for the table name, trying .json then .yaml/.yml."""
        key = _table_key(name)
        for suffix in TABLE_SUFFIXES:
            candidate = self.tables_dir / f"{key}{suffix}"
            if candidate.is_file():
                return candidate
        return None

    def load(self, name: TableRef) -> Any:
        """
        Load a rule table, converted to its domain model.

        Raises:
            TableNotFoundError: If no file exists for the table
            TableLoadError: If the file cannot be read or parsed
            TableValidationError: If the content fails schema validation
        """
        key = _table_key(name)
        with self._lock:
            if key in self._cache:
                return self._cache[key]

        schema_cls, convert = _table_type(key)

        path = self.path_for(key)
        if path is None:
            raise TableNotFoundError(
                message=f"Rule table not found: {key}",
                details={"table": key, "tables_dir": str(self.tables_dir)},
            )

        # Load raw data
        try:
            data = self._load_file(path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise TableLoadError(
                message=f"Failed to load rule table: {e}",
                details={"table": key, "path": str(path), "error": str(e)},
            ) from e

        if not isinstance(data, dict):
            raise TableLoadError(
                message=f"Rule table {key} must contain a mapping at the top level",
                details={"table": key, "path": str(path), "type": type(data).__name__},
            )

        # Check schema version
        if self.strict_version and not check_schema_version(data):
            raise TableValidationError(
                message=(
                    f"Schema version mismatch: table has {data.get('schema_version')}, "
                    f"expected {SCHEMA_VERSION}"
                ),
                details={"table": key, "path": str(path)},
            )

        # Validate against schema
        try:
            schema = schema_cls.model_validate(data)
        except ValidationError as e:
            raise TableValidationError(
                message=f"Rule table {key} validation failed: {e.error_count()} errors",
                details={
                    "table": key,
                    "path": str(path),
                    "errors": e.errors(include_url=False, include_context=False, include_input=False),
                },
            ) from e

        table = convert(schema)
        logger.debug("Loaded rule table %s from %s", key, path, extra={"table": key})

        with self._lock:
            self._cache[key] = table
        return table

    def load_optional(self, name: TableRef) -> Optional[Any]:
        """Load a table, returning None (and logging) when it cannot be loaded."""
        key = _table_key(name)
        try:
            return self.load(key)
        except TableLoadError as e:
            logger.warning(
                "Optional rule table %s unavailable: %s", key, e.message, extra={"table": key}
            )
            return None

    def load_many(
        self,
        names: Iterable[TableRef],
        optional: Iterable[TableRef] = (),
    ) -> dict[str, Any]:
        """
        Load several tables concurrently; returns once all have resolved.

        Required tables that fail raise the first failure (in request order)
        after every fetch has finished. Optional tables that fail map to None.

        Returns:
            Table name -> domain model (or None for a failed optional table)
        """
        required_keys = [_table_key(n) for n in names]
        optional_keys = [_table_key(n) for n in optional if _table_key(n) not in required_keys]

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            required_futures = {key: pool.submit(self.load, key) for key in required_keys}
            optional_futures = {key: pool.submit(self.load_optional, key) for key in optional_keys}

        result: dict[str, Any] = {}
        for key, future in required_futures.items():
            result[key] = future.result()
        for key, future in optional_futures.items():
            result[key] = future.result()
        return result

    def load_state_map(self, state: str) -> Optional[StateMap]:
        """Per-state statute map, or None when the state has no map."""
        if not state or not state.strip():
            return None
        return self.load_optional(state_map_name(state))

    def clear(self) -> None:
        """Drop every cached table."""
        with self._lock:
            self._cache.clear()

    def _load_file(self, path: Path) -> Any:
        """Load data from YAML or JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in {".yaml", ".yml"}:
                return yaml.safe_load(f)
            return json.load(f)


# =============================================================================
# Convenience Functions
# =============================================================================

def load_table(name: TableRef, tables_dir: Optional[Union[str, Path]] = None) -> Any:
    """
    Load a single rule table.

    Convenience function that creates a temporary loader.
    """
    return RuleTableLoader(tables_dir).load(name)


def load_table_from_string(name: TableRef, content: str, format: str = "yaml") -> Any:
    """
    Load a rule table from a string.

    Args:
        name: Table name (selects the schema)
        content: YAML or JSON string
        format: "yaml" or "json"
    """
    key = _table_key(name)
    data = json.loads(content) if format.lower() == "json" else yaml.safe_load(content)
    schema_cls, convert = _table_type(key)
    try:
        schema = schema_cls.model_validate(data)
    except ValidationError as e:
        raise TableValidationError(
            message=f"Rule table {key} validation failed: {e.error_count()} errors",
            details={
                "table": key,
                "errors": e.errors(include_url=False, include_context=False, include_input=False),
            },
        ) from e
    return convert(schema)
