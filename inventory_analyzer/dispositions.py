"""
Disposition enrichment.

Joins canonical aggregates against the disposition store and lazily creates
a "pending" record for every canonical name seen for the first time.
Existing records are never modified here. Store failures degrade to the
default disposition instead of failing the run.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from .errors import DispositionStoreError
from .models import CanonicalAggregate, DispositionRecord, EnrichedAggregate
from .rules import DEFAULT_DISPOSITION

logger = logging.getLogger(__name__)


def _fetch_existing(store, names: List[str]) -> Dict[str, DispositionRecord]:
    try:
        records = store.fetch_dispositions(set(names))
    except DispositionStoreError as exc:
        logger.warning("Could not fetch dispositions: %s", exc)
        return {}
    return {r.canonical_name: r for r in records}


def _create_missing(store, names: List[str], known: Dict[str, DispositionRecord]) -> None:
    for name in names:
        if name in known:
            continue
        try:
            # Insert-if-absent; a concurrent run may already have created it.
            known[name] = store.upsert_pending_disposition(name)
        except DispositionStoreError as exc:
            logger.warning("Could not create pending disposition for %r: %s", name, exc)


def _merge(aggregate: CanonicalAggregate, record) -> EnrichedAggregate:
    data = aggregate.model_dump()
    if record is None:
        return EnrichedAggregate(**data, disposition=DEFAULT_DISPOSITION)
    return EnrichedAggregate(
        **data,
        disposition=record.disposition or DEFAULT_DISPOSITION,
        replacement_id=record.approved_software_id,
        replacement_name=record.replacement_name,
        disposition_notes=record.notes,
    )


def enrich(aggregates: Iterable[CanonicalAggregate], store) -> List[EnrichedAggregate]:
    """
    Attach disposition fields to each aggregate, preserving input order.

    store must provide fetch_dispositions(names) and
    upsert_pending_disposition(name); see store.DispositionStore.
    """
    aggregates = list(aggregates)
    names = [a.canonical_name for a in aggregates]
    if not names:
        return []

    known = _fetch_existing(store, names)
    _create_missing(store, names, known)
    return [_merge(a, known.get(a.canonical_name)) for a in aggregates]
