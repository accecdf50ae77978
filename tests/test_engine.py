import logging

import pytest

from inventory_analyzer.engine import (
    RuleSnapshot,
    analyze,
    classify_exclusion,
    device_contribution,
    load_snapshot,
    parse_device_count,
    resolve_and_aggregate,
    run_analysis,
)
from inventory_analyzer.errors import RuleStoreError, StoreError
from inventory_analyzer.models import ExclusionRule, InventoryEntry, MappingRule


class StaticRules:
    def __init__(self, exclusion_rules=(), mapping_rules=()):
        self.exclusion_rules = list(exclusion_rules)
        self.mapping_rules = list(mapping_rules)

    def load_exclusion_rules(self):
        return self.exclusion_rules

    def load_mapping_rules(self):
        return self.mapping_rules


class BrokenRules:
    def __init__(self, exc):
        self.exc = exc

    def load_exclusion_rules(self):
        raise self.exc

    def load_mapping_rules(self):
        return []


class MemoryDispositions:
    def __init__(self):
        self.records = {}

    def fetch_dispositions(self, names):
        return [self.records[n] for n in names if n in self.records]

    def upsert_pending_disposition(self, name):
        from inventory_analyzer.models import DispositionRecord

        return self.records.setdefault(name, DispositionRecord(canonical_name=name, disposition="pending"))


def _excl(pattern_type, value, category="Noise", reason=""):
    return ExclusionRule(pattern_type=pattern_type, pattern_value=value, category=category, reason=reason)


def _map(pattern_type, pattern, canonical, category=None, deployment_type=None, description=None):
    return MappingRule(
        pattern_type=pattern_type,
        original_pattern=pattern,
        canonical_name=canonical,
        category=category,
        deployment_type=deployment_type,
        description=description,
    )


def test_kb_update_is_excluded_as_windows_update(default_snapshot):
    result = analyze([{"name": "Security Update for Microsoft Office (KB123)"}], default_snapshot)

    assert result.included == []
    assert result.unmapped == []
    assert len(result.excluded) == 1
    assert result.excluded[0].reason == "Windows Updates"
    assert result.excluded[0].rule_reason == "Microsoft security patches - not business applications"


def test_ams360_revisions_fold_into_one_aggregate(default_snapshot):
    result = analyze(
        [{"name": "AMS360 Client Rev 9"}, {"name": "AMS360 Client Rev 10"}],
        default_snapshot,
    )

    assert [a.canonical_name for a in result.included] == ["AMS360"]
    aggregate = result.included[0]
    assert aggregate.original_count == 2
    assert aggregate.category == "Industry / LOB"
    assert aggregate.deployment_type == "Both"
    assert [e.name for e in aggregate.original_entries] == ["AMS360 Client Rev 9", "AMS360 Client Rev 10"]


def test_unknown_name_is_unmapped(default_snapshot):
    result = analyze([{"name": "TotallyUnknownApp", "publisher": "Acme", "deviceCount": 4}], default_snapshot)

    assert result.included == []
    assert result.excluded == []
    assert len(result.unmapped) == 1
    assert result.unmapped[0].name == "TotallyUnknownApp"
    assert result.unmapped[0].publisher == "Acme"
    assert result.unmapped[0].device_count == 4


def test_case_variants_share_a_startswith_mapping(default_snapshot):
    result = analyze(
        [{"name": "GOOGLE CHROME"}, {"name": "Google Chrome"}, {"name": "google chrome"}],
        default_snapshot,
    )
    assert len(result.included) == 1
    assert result.included[0].canonical_name == "Google Chrome"
    assert result.included[0].original_count == 3


def test_first_exclusion_rule_in_stored_order_wins():
    early = _excl("contains", "Tool", category="Early")
    late = _excl("startswith", "Acme", category="Late")

    assert classify_exclusion("Acme Tool", [early, late]).rule is early
    assert classify_exclusion("Acme Tool", [late, early]).rule is late
    assert not classify_exclusion("Other", [early, late]).excluded


def test_exclusion_runs_before_mapping():
    snapshot = RuleSnapshot.of([_excl("contains", "Driver")], [_map("startswith", "Realtek", "Realtek")])
    result = analyze([{"name": "Realtek Audio Driver"}], snapshot)
    assert [e.name for e in result.excluded] == ["Realtek Audio Driver"]
    assert result.included == []


def test_first_rule_seeds_aggregate_metadata():
    rules = [
        _map("startswith", "Foxit Reader", "Foxit PDF", category="Office", deployment_type="Desktop", description="reader"),
        _map("startswith", "Foxit Phantom", "Foxit PDF", category="PDF Tools", deployment_type="SaaS", description="editor"),
    ]
    snapshot = RuleSnapshot.of([], rules)

    forward = analyze([{"name": "Foxit Reader 12"}, {"name": "Foxit PhantomPDF"}], snapshot).included[0]
    assert (forward.category, forward.deployment_type, forward.description) == ("Office", "Desktop", "reader")
    assert forward.original_count == 2

    # Entry processing order decides, not rule order.
    reverse = analyze([{"name": "Foxit PhantomPDF"}, {"name": "Foxit Reader 12"}], snapshot).included[0]
    assert (reverse.category, reverse.deployment_type, reverse.description) == ("PDF Tools", "SaaS", "editor")


def test_aggregate_defaults_when_rule_metadata_missing():
    aggregates, unmapped = resolve_and_aggregate(
        [InventoryEntry(name="Widget Pro")],
        [_map("exact", "widget pro", "Widget")],
    )
    assert unmapped == []
    widget = aggregates["Widget"]
    assert widget.category == "Uncategorized"
    assert widget.deployment_type == "Desktop"
    assert widget.description == ""


def test_canonical_names_are_case_sensitive_keys():
    rules = [_map("exact", "a", "Widget"), _map("exact", "b", "widget")]
    aggregates, _ = resolve_and_aggregate([InventoryEntry(name="a"), InventoryEntry(name="b")], rules)
    assert sorted(aggregates) == ["Widget", "widget"]


@pytest.mark.parametrize(
    "raw, expected",
    [("abc", 1), (None, 1), ("", 1), ("0", 1), ("7", 7), (3, 3), (2.9, 2), ("12 devices", 12)],
)
def test_device_count_fallback(raw, expected):
    assert device_contribution(raw) == expected


def test_total_devices_counts_unparseable_as_one():
    snapshot = RuleSnapshot.of([], [_map("startswith", "Zoom", "Zoom")])
    result = analyze(
        [
            {"name": "Zoom Workplace", "deviceCount": "abc"},
            {"name": "Zoom Rooms", "deviceCount": "10"},
            {"name": "Zoom Plugin"},
        ],
        snapshot,
    )
    assert result.included[0].total_devices == 1 + 10 + 1


def test_unmapped_sorted_by_device_count_descending():
    entries = [
        {"name": "a", "deviceCount": 2},
        {"name": "b", "deviceCount": "10"},
        {"name": "c", "deviceCount": None},
        {"name": "d", "deviceCount": "abc"},
        {"name": "e", "deviceCount": 5},
    ]
    result = analyze(entries, RuleSnapshot())
    assert [u.name for u in result.unmapped] == ["b", "e", "a", "c", "d"]
    assert parse_device_count(None, default=0) == 0


def test_included_sorted_by_canonical_name():
    rules = [_map("exact", n, n) for n in ["zoom", "Adobe", "beta"]]
    result = analyze([{"name": n} for n in ["zoom", "beta", "Adobe"]], RuleSnapshot.of([], rules))
    assert [a.canonical_name for a in result.included] == ["Adobe", "beta", "zoom"]


def test_blank_names_are_skipped_everywhere(default_snapshot):
    result = analyze([{"name": "   "}, {"name": None}, {"publisher": "x"}, {"name": " Dropbox "}], default_snapshot)
    assert result.excluded == []
    assert result.unmapped == []
    assert [a.canonical_name for a in result.included] == ["Dropbox"]
    assert result.included[0].original_entries[0].name == "Dropbox"


def test_every_entry_lands_in_exactly_one_bucket(default_snapshot):
    names = [
        "Security Update for Microsoft Excel (KB1)",
        "Dell Command Update",
        "Microsoft Teams",
        "Microsoft Teams Meeting Add-in",
        "Notepad++ (64-bit x64)",
        "Unknown Thing",
        "Another Unknown",
        "Microsoft 365 - fr-fr",
        "Intel(R) Wireless Bluetooth(R)",
        "7-Zip 23.01",
    ]
    result = analyze([{"name": n} for n in names], default_snapshot)

    excluded = [e.name for e in result.excluded]
    included = [e.name for a in result.included for e in a.original_entries]
    unmapped = [u.name for u in result.unmapped]

    assert sorted(excluded + included + unmapped) == sorted(names)
    assert len(set(excluded) | set(included) | set(unmapped)) == len(names)


def test_invalid_regex_rule_does_not_block_later_rules(caplog):
    snapshot = RuleSnapshot.of([_excl("regex", "([", category="Broken"), _excl("contains", "Tool", category="Tools")], [])
    with caplog.at_level(logging.WARNING):
        result = analyze([{"name": "Some Tool"}], snapshot)
    assert result.excluded[0].reason == "Tools"
    assert "Invalid regex pattern" in caplog.text


def test_load_snapshot_drops_inactive_rules():
    active = _excl("exact", "a")
    inactive = ExclusionRule(pattern_type="exact", pattern_value="b", category="x", is_active=False)
    snapshot = load_snapshot(StaticRules([active, inactive], []))
    assert snapshot.exclusion_rules == (active,)


def test_rule_store_failure_is_fatal_to_the_run():
    with pytest.raises(RuleStoreError):
        run_analysis([{"name": "x"}], BrokenRules(RuleStoreError("down")), MemoryDispositions())

    with pytest.raises(RuleStoreError):
        run_analysis([{"name": "x"}], BrokenRules(StoreError("disk gone")), MemoryDispositions())


def test_run_analysis_enriches_new_names_as_pending():
    store = MemoryDispositions()
    rules = StaticRules([], [_map("startswith", "Dropbox", "Dropbox")])

    result = run_analysis([{"name": "Dropbox"}, {"name": "Mystery"}], rules, store)

    assert [a.canonical_name for a in result.included] == ["Dropbox"]
    assert result.included[0].disposition == "pending"
    assert result.included[0].replacement_id is None
    assert [u.name for u in result.unmapped] == ["Mystery"]
    assert "Dropbox" in store.records


def test_included_sort_treats_accented_names_by_base_letter():
    names = ["Zoom", "Écran Manager", "Adobe", "ecran lite"]
    rules = [_map("exact", n, n) for n in names]
    result = analyze([{"name": n} for n in names], RuleSnapshot.of([], rules))
    assert [a.canonical_name for a in result.included] == ["Adobe", "ecran lite", "Écran Manager", "Zoom"]
