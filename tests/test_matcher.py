import logging

import pytest

from inventory_analyzer.matcher import matches


@pytest.mark.parametrize("name", ["GOOGLE CHROME", "Google Chrome", "google chrome"])
def test_startswith_is_case_insensitive(name):
    assert matches(name, "Google Chrome", "startswith")


def test_exact_requires_full_string():
    assert matches("Microsoft Edge", "microsoft edge", "exact")
    assert not matches("Microsoft Edge WebView2 Runtime", "Microsoft Edge", "exact")


def test_contains_and_endswith():
    assert matches("Security Update for Office (KB5002)", "(kb", "contains")
    assert matches("Microsoft 365 - es-ES", "- es-es", "endswith")
    assert not matches("Microsoft 365 - es-ES Extra", "- es-es", "endswith")


def test_regex_uses_search_and_ignores_case():
    assert matches("Zoom Workplace (64-bit)", r"zoom\s+workplace", "regex")
    assert not matches("Zoom", r"^teams$", "regex")


def test_invalid_regex_fails_closed_and_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="inventory_analyzer.matcher"):
        assert not matches("anything", "([unclosed", "regex")
    assert any("Invalid regex pattern" in r.getMessage() for r in caplog.records)


def test_unknown_pattern_type_never_matches():
    assert not matches("Google Chrome", "Google Chrome", "fuzzy")


def test_invalid_regex_warns_once_per_pattern(caplog):
    with caplog.at_level(logging.WARNING, logger="inventory_analyzer.matcher"):
        for name in ["Zoom", "Slack", "Teams", "Webex"]:
            assert not matches(name, "(?P<bad", "regex")
    warnings = [r for r in caplog.records if "Invalid regex pattern" in r.getMessage()]
    assert len(warnings) == 1
