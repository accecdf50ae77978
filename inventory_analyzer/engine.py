"""
Rule-based classification engine.

Responsibilities:
- snapshot the active rule sets once per analysis run
- exclusion stage: first matching exclusion rule drops an entry as noise
- mapping stage: first matching mapping rule folds an entry into a
  canonical aggregate, no match routes it to the unmapped bucket
- post-processing: device totals, deterministic output ordering

Every non-blank entry lands in exactly one of excluded, included, unmapped.
Rule order is the stored order; it is never re-indexed or re-ranked.
"""

from __future__ import annotations

import logging
import math
import re
import unicodedata
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .dispositions import enrich
from .errors import RuleStoreError, StoreError
from .matcher import matches
from .models import (
    AnalysisResult,
    CanonicalAggregate,
    Classification,
    ExcludedEntry,
    ExclusionRule,
    InventoryEntry,
    MappingRule,
    UnmappedEntry,
)
from .rules import DEFAULT_CATEGORY, DEFAULT_DEPLOYMENT_TYPE
from .store import DispositionStore, RuleSource

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class RuleSnapshot:
    """
    Read-only view of the active rules for one analysis run.

    Administrative edits made while a run is in flight land in the store,
    not in a snapshot that has already been taken.
    """

    exclusion_rules: Tuple[ExclusionRule, ...] = ()
    mapping_rules: Tuple[MappingRule, ...] = ()

    @classmethod
    def of(cls, exclusion_rules: Iterable[ExclusionRule], mapping_rules: Iterable[MappingRule]) -> "RuleSnapshot":
        return cls(tuple(exclusion_rules), tuple(mapping_rules))


@dataclass(frozen=True)
class ExclusionDecision:
    excluded: bool
    rule: Optional[ExclusionRule] = None


def load_snapshot(source: RuleSource) -> RuleSnapshot:
    """
    Load both active rule sets from source.

    Raises:
        RuleStoreError: if either rule set cannot be loaded. A run never
        classifies against a partial rule set.
    """
    try:
        exclusion_rules = source.load_exclusion_rules()
        mapping_rules = source.load_mapping_rules()
    except RuleStoreError:
        raise
    except StoreError as exc:
        raise RuleStoreError(f"could not load rules: {exc}") from exc

    snapshot = RuleSnapshot.of(
        (r for r in exclusion_rules if r.is_active),
        (r for r in mapping_rules if r.is_active),
    )
    logger.info(
        "Loaded rule snapshot: %d exclusion rules, %d mapping rules",
        len(snapshot.exclusion_rules),
        len(snapshot.mapping_rules),
    )
    return snapshot


def parse_device_count(value, default: int) -> int:
    """
    Read an integer device count the way spreadsheet exports tend to carry it.

    Leading integers are honoured ("12 devices" -> 12, 3.7 -> 3); anything
    without one yields default.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return default
        return int(value)
    m = _LEADING_INT.match(str(value))
    if not m:
        return default
    return int(m.group(1))


def device_contribution(value) -> int:
    """Devices one entry adds to an aggregate total; never less than 1."""
    count = parse_device_count(value, default=1)
    return count if count >= 1 else 1


def classify_exclusion(name: str, rules: Iterable[ExclusionRule]) -> ExclusionDecision:
    """Return the first exclusion rule matching name, in stored order."""
    for rule in rules:
        if matches(name, rule.pattern_value, rule.pattern_type):
            return ExclusionDecision(excluded=True, rule=rule)
    return ExclusionDecision(excluded=False)


def find_mapping(name: str, rules: Iterable[MappingRule]) -> Optional[MappingRule]:
    """Return the first mapping rule matching name, in stored order."""
    for rule in rules:
        if matches(name, rule.original_pattern, rule.pattern_type):
            return rule
    return None


def _new_aggregate(rule: MappingRule) -> CanonicalAggregate:
    return CanonicalAggregate(
        canonical_name=rule.canonical_name,
        category=rule.category or DEFAULT_CATEGORY,
        deployment_type=rule.deployment_type or DEFAULT_DEPLOYMENT_TYPE,
        description=rule.description or "",
    )


def resolve_and_aggregate(
    entries: Iterable[InventoryEntry],
    rules: Iterable[MappingRule],
) -> Tuple[Dict[str, CanonicalAggregate], List[UnmappedEntry]]:
    """
    Fold entries into aggregates keyed by canonical name.

    The rule that first creates an aggregate fixes its category, deployment
    type and description; later entries arriving through other rules with
    the same canonical name only append themselves.
    """
    rules = tuple(rules)
    aggregates: Dict[str, CanonicalAggregate] = {}
    unmapped: List[UnmappedEntry] = []

    for entry in entries:
        name = (entry.name or "").strip()
        rule = find_mapping(name, rules)
        if rule is None:
            unmapped.append(
                UnmappedEntry(name=name, publisher=entry.publisher, device_count=entry.device_count)
            )
            continue

        aggregate = aggregates.get(rule.canonical_name)
        if aggregate is None:
            aggregate = _new_aggregate(rule)
            aggregates[rule.canonical_name] = aggregate
        aggregate.original_entries.append(
            InventoryEntry(name=name, publisher=entry.publisher, device_count=entry.device_count)
        )

    for aggregate in aggregates.values():
        aggregate.original_count = len(aggregate.original_entries)
        aggregate.total_devices = sum(device_contribution(e.device_count) for e in aggregate.original_entries)

    return aggregates, unmapped


def _canonical_sort_key(aggregate: CanonicalAggregate):
    # Accents and case are secondary: "Écran" sorts between "Adobe" and "Zoom".
    name = aggregate.canonical_name
    decomposed = unicodedata.normalize("NFKD", name)
    base = "".join(c for c in decomposed if not unicodedata.combining(c))
    return base.casefold(), name.casefold(), name


def _coerce_entry(item: Union[InventoryEntry, dict]) -> InventoryEntry:
    if isinstance(item, InventoryEntry):
        return item
    return InventoryEntry.model_validate(item)


def analyze(entries: Iterable[Union[InventoryEntry, dict]], snapshot: RuleSnapshot) -> Classification:
    """
    Classify entries against a rule snapshot.

    Entries whose name is missing or blank are skipped and counted nowhere.
    Output ordering:
    included by canonical name, excluded in input order, unmapped by
    device count descending (missing or unparseable counts as 0).
    """
    excluded: List[ExcludedEntry] = []
    surviving: List[InventoryEntry] = []

    for item in entries:
        entry = _coerce_entry(item)
        name = (entry.name or "").strip()
        if not name:
            continue

        decision = classify_exclusion(name, snapshot.exclusion_rules)
        if decision.excluded:
            excluded.append(
                ExcludedEntry(name=name, reason=decision.rule.category, rule_reason=decision.rule.reason)
            )
            continue
        surviving.append(entry)

    aggregates, unmapped = resolve_and_aggregate(surviving, snapshot.mapping_rules)

    included = sorted(aggregates.values(), key=_canonical_sort_key)
    unmapped.sort(key=lambda u: parse_device_count(u.device_count, default=0), reverse=True)

    return Classification(included=included, excluded=excluded, unmapped=unmapped)


def run_analysis(
    entries: Iterable[Union[InventoryEntry, dict]],
    rule_source: RuleSource,
    disposition_store: DispositionStore,
) -> AnalysisResult:
    """
    One full analysis run: snapshot rules, classify, enrich with dispositions.

    Raises:
        RuleStoreError: rules could not be loaded; nothing is classified
    """
    snapshot = load_snapshot(rule_source)
    classification = analyze(entries, snapshot)
    included = enrich(classification.included, disposition_store)
    return AnalysisResult(
        included=included,
        excluded=classification.excluded,
        unmapped=classification.unmapped,
    )
