"""
LawPilot Rule Tables

Schema validation and loading for the static rule tables.

Rule tables are YAML or JSON files, one per TableName, plus optional
per-state statute maps named state_map_<STATE>. The packaged defaults live
in lawpilot/tables/data; point the loader elsewhere to use your own.

Usage:
    from lawpilot.tables import RuleTableLoader
    from lawpilot.models import TableName

    loader = RuleTableLoader("path/to/tables")
    rules = loader.load(TableName.LAW_AUDIT_RULES)
"""
from __future__ import annotations

from .loader import (
    DEFAULT_TABLES_DIR,
    RuleTableLoader,
    load_table,
    load_table_from_string,
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


__all__ = [
    # Loader
    "DEFAULT_TABLES_DIR",
    "RuleTableLoader",
    "load_table",
    "load_table_from_string",
    # Schemas
    "SCHEMA_VERSION",
    "ApplicabilityRuleSchema",
    "DoctrineRulesSchema",
    "FederalDoctrinesSchema",
    "FundingProgramsSchema",
    "LawAuditRulesSchema",
    "PreemptionRulesSchema",
    "RightsTestsSchema",
    "StateMapSchema",
    "ValidityRulesSchema",
    "check_schema_version",
]
