"""
LawPilot Rule Table Models

Domain models for the static rule tables. The loader validates the raw
YAML/JSON against the pydantic schemas in lawpilot.tables.schema and then
converts to these frozen dataclasses, which is all the stages ever see.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .artifacts import DoctrineRef, ProgramRef


# =============================================================================
# Doctrines and Rights Tests
# =============================================================================

@dataclass(frozen=True)
class Doctrine:
    """A named legal doctrine with a display label."""
    id: str
    label: str
    description: str = ""

    def to_ref(self) -> DoctrineRef:
        return DoctrineRef(id=self.id, label=self.label, description=self.description)


@dataclass(frozen=True)
class DoctrineCatalog:
    """Doctrine table indexed by code."""
    doctrines: dict[str, Doctrine] = field(default_factory=dict)

    def get(self, code: str) -> Optional[Doctrine]:
        return self.doctrines.get(code)

    def label(self, code: str) -> str:
        """Display label for a code; unknown codes render as the code itself."""
        doctrine = self.doctrines.get(code)
        return doctrine.label if doctrine and doctrine.label else code

    def resolve(self, codes: tuple[str, ...]) -> tuple[DoctrineRef, ...]:
        """Resolve codes to refs, silently dropping unknown ones."""
        return tuple(self.doctrines[c].to_ref() for c in codes if c in self.doctrines)


@dataclass(frozen=True)
class RightsTest:
    id: str
    description: str
    doctrine_refs: tuple[str, ...] = ()


@dataclass(frozen=True)
class RightsTestCatalog:
    tests: dict[str, RightsTest] = field(default_factory=dict)

    def get(self, test_id: str) -> Optional[RightsTest]:
        return self.tests.get(test_id)


# =============================================================================
# Funding Programs
# =============================================================================

@dataclass(frozen=True)
class FundingProgram:
    """A federal funding program enforcement may be tied to."""
    id: str
    name: str
    type: str = ""
    notes: str = ""

    def to_ref(self) -> ProgramRef:
        return ProgramRef(id=self.id, name=self.name, type=self.type, notes=self.notes)


@dataclass(frozen=True)
class GrantKeywordRule:
    """Grant-description keywords that point to one program."""
    program_id: str
    keywords: tuple[str, ...] = ()


@dataclass(frozen=True)
class FundingCatalog:
    """
    Funding program table.

    category_to_programs keeps each category's program order; the "other"
    entry is the fallback for unlisted categories.
    """
    programs: dict[str, FundingProgram] = field(default_factory=dict)
    category_to_programs: dict[str, tuple[str, ...]] = field(default_factory=dict)
    grant_keywords: tuple[GrantKeywordRule, ...] = ()

    def get(self, program_id: str) -> Optional[FundingProgram]:
        return self.programs.get(program_id)


# =============================================================================
# Law Audit Rules
# =============================================================================

@dataclass(frozen=True)
class CategoryRule:
    """Federal sources and nexus requirement for one law category."""
    federal_sources: tuple[str, ...] = ()
    commercial_nexus_required: bool = False


@dataclass(frozen=True)
class LawAuditRules:
    federal_anchors: tuple[str, ...] = ()
    categories: dict[str, CategoryRule] = field(default_factory=dict)
    rights_mapping: dict[str, tuple[str, ...]] = field(default_factory=dict)

    def category_rule(self, category: str) -> CategoryRule:
        """Rule for the category, falling back to "other", then to an empty rule."""
        rule = self.categories.get(category) or self.categories.get("other")
        return rule or CategoryRule()

    def rights_for(self, key: str) -> tuple[str, ...]:
        return self.rights_mapping.get(key, ())


# =============================================================================
# Preemption Rules
# =============================================================================

SEVERITY_ORDER = ("low", "medium", "high", "extreme")


@dataclass(frozen=True)
class PreemptionTriggers:
    """
    Trigger filters of a preemption rule.

    None means "no filter". A rule fires only when every present filter passes.
    """
    case_type: Optional[tuple[str, ...]] = None
    movement_scope: Optional[tuple[str, ...]] = None
    keywords_in_law_block: Optional[tuple[str, ...]] = None
    funding_program_ids: Optional[tuple[str, ...]] = None
    severity_min: Optional[str] = None


@dataclass(frozen=True)
class PreemptionRule:
    id: str
    description: str
    triggers: PreemptionTriggers = field(default_factory=PreemptionTriggers)
    doctrine_refs: tuple[str, ...] = ()

    def admits_scope(self, movement_scope: str) -> bool:
        scopes = self.triggers.movement_scope
        return scopes is None or movement_scope in scopes


@dataclass(frozen=True)
class PreemptionRuleSet:
    rules: tuple[PreemptionRule, ...] = ()


# =============================================================================
# Applicability Rules (doctrine and validity tables)
# =============================================================================

@dataclass(frozen=True)
class ApplicabilityRule:
    """
    A condition plus the codes it contributes when true.

    Doctrine rules use add_applied/add_implicated; validity rules use
    add_grounds/add_hooks.
    """
    id: str
    condition: str
    add_applied: tuple[str, ...] = ()
    add_implicated: tuple[str, ...] = ()
    add_grounds: tuple[str, ...] = ()
    add_hooks: tuple[str, ...] = ()


@dataclass(frozen=True)
class DoctrineRuleSet:
    rules: tuple[ApplicabilityRule, ...] = ()


@dataclass(frozen=True)
class ValidityRuleSet:
    """Validity rules plus display labels for grounds and hooks."""
    rules: tuple[ApplicabilityRule, ...] = ()
    constitutional_hooks: dict[str, str] = field(default_factory=dict)
    grounds_labels: dict[str, str] = field(default_factory=dict)

    def hook_label(self, code: str) -> str:
        return self.constitutional_hooks.get(code) or code

    def ground_label(self, code: str) -> str:
        return self.grounds_labels.get(code) or code


# =============================================================================
# State Maps
# =============================================================================

@dataclass(frozen=True)
class StateStatute:
    citation: str
    title: str = ""
    risk_flags: tuple[str, ...] = ()


@dataclass(frozen=True)
class StateMap:
    """Per-state statutes annotated with rights-test risk flags."""
    state: str
    statutes: tuple[StateStatute, ...] = ()
