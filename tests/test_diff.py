#!/usr/bin/env python3
"""
Tests for snapshot differencing and the daily report.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from processing.diff import Diff, diff_entities
from processing.registry import RegistryEntity
from processing.report import generate_markdown_report, generate_text_summary


ALPHA = {"id": "100", "name": "Alpha"}
BETA = {"id": "200", "name": "Beta"}


def test_added_entity():
    previous = [ALPHA]
    current = previous + [BETA]

    diff = diff_entities(current, previous)

    assert diff.added == [BETA]
    assert diff.removed == []


def test_removed_entity():
    diff = diff_entities([ALPHA], [ALPHA, BETA])

    assert diff.added == []
    assert diff.removed == [BETA]


def test_no_change_is_empty():
    for entities in ([], [ALPHA], [ALPHA, BETA]):
        diff = diff_entities(entities, list(entities))
        assert diff.added == []
        assert diff.removed == []
        assert diff.is_empty


def test_order_follows_inputs():
    current = [{"name": "Zeta"}, {"name": "Alpha"}, {"name": "Mu"}]
    previous = [{"name": "Omega"}, {"name": "Beta"}]

    diff = diff_entities(current, previous)

    assert [e["name"] for e in diff.added] == ["Zeta", "Alpha", "Mu"]
    assert [e["name"] for e in diff.removed] == ["Omega", "Beta"]


def test_registry_id_survives_rename():
    """With ids on both sides, a renamed entity is the same entity."""
    diff = diff_entities([{"id": "100", "name": "Alpha Renamed"}], [ALPHA])
    assert diff.is_empty


def test_falls_back_to_name_when_any_id_missing():
    previous = [{"id": "100", "name": "Alpha"}]
    current = [{"name": "Alpha"}, {"id": "300", "name": "Gamma"}]

    diff = diff_entities(current, previous)

    assert [e["name"] for e in diff.added] == ["Gamma"]
    assert diff.removed == []


def test_field_changes_are_not_tracked():
    previous = [RegistryEntity(name="Alpha", fid="1", address="1 Old Road SINGAPORE 000001")]
    current = [RegistryEntity(name="Alpha", fid="1", address="2 New Road SINGAPORE 000002")]

    assert diff_entities(current, previous).is_empty


def test_registry_entities_keyed_by_fid():
    previous = [RegistryEntity(name="Alpha", fid="1"), RegistryEntity(name="Beta", fid="2")]
    current = [RegistryEntity(name="Alpha", fid="1"), RegistryEntity(name="Gamma", fid="3")]

    diff = diff_entities(current, previous)

    assert [e.name for e in diff.added] == ["Gamma"]
    assert [e.name for e in diff.removed] == ["Beta"]


# =============================================================================
# Report
# =============================================================================

def _entity(name, **kwargs):
    kwargs.setdefault("license_types", {"Major Payment Institution"})
    return RegistryEntity(name=name, **kwargs)


def test_markdown_report_lists_changes():
    diff = Diff(
        added=[_entity(
            "Alpha Pte Ltd",
            address="1 Raffles Place SINGAPORE 048616",
            website="https://alpha.sg",
            activities={"Cross-border money transfer service"},
        )],
        removed=[_entity("Beta Pte Ltd")],
    )

    report = generate_markdown_report(diff, "2025-03-04T01:00:00+00:00", 120)

    assert "# Registry Scout Daily Report - 04 March 2025" in report
    assert "Institutions monitored: 120" in report
    assert "## New License Holders" in report
    assert "### Alpha Pte Ltd" in report
    assert "- **Website:** https://alpha.sg" in report
    assert "Cross-border money transfer service" in report
    assert "## Removed Institutions" in report
    assert "- Beta Pte Ltd (Major Payment Institution)" in report
    assert "No changes today" not in report


def test_markdown_report_no_changes():
    report = generate_markdown_report(Diff(), "not-a-date", 5)

    assert "not-a-date" in report
    assert "No changes today." in report


def test_text_summary():
    assert "no new license holders" in generate_text_summary(Diff())

    summary = generate_text_summary(Diff(added=[_entity("Alpha"), _entity("Gamma")]))
    assert "2 new license holder(s)" in summary
    assert "* Alpha (Major Payment Institution)" in summary
