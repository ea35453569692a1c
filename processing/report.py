"""
Human-readable output for a registry diff.
"""

from datetime import datetime

from processing.diff import Diff
from processing.registry import RegistryEntity


def _licenses(entity: RegistryEntity) -> str:
    return ", ".join(sorted(entity.license_types)) or "Unknown"


def generate_markdown_report(diff: Diff, timestamp: str, count: int) -> str:
    """
    Daily markdown report of newly listed and removed institutions.

    Args:
        diff: Result of diff_entities
        timestamp: ISO-8601 capture time of the current snapshot
        count: Number of entities in the current snapshot
    """
    try:
        day = datetime.fromisoformat(timestamp).strftime("%d %B %Y")
    except ValueError:
        day = timestamp

    lines = [
        f"# Registry Scout Daily Report - {day}",
        "",
        f"Institutions monitored: {count}",
        f"Added: {len(diff.added)} | Removed: {len(diff.removed)}",
        "",
    ]

    if diff.added:
        lines.append("## New License Holders")
        lines.append("")
        for entity in diff.added:
            lines.append(f"### {entity.name}")
            lines.append(f"- **License type:** {_licenses(entity)}")
            if entity.activities:
                lines.append(f"- **Activities:** {', '.join(sorted(entity.activities))}")
            if entity.address:
                lines.append(f"- **Address:** {entity.address}")
            if entity.website:
                lines.append(f"- **Website:** {entity.website}")
            if entity.phone:
                lines.append(f"- **Phone:** {entity.phone}")
            if entity.detail_url:
                lines.append(f"- **FID link:** {entity.detail_url}")
            lines.append("")

    if diff.removed:
        lines.append("## Removed Institutions")
        lines.append("")
        for entity in diff.removed:
            lines.append(f"- {entity.name} ({_licenses(entity)})")
        lines.append("")

    if diff.is_empty:
        lines.append("> No changes today.")
        lines.append("")

    return "\n".join(lines)


def generate_text_summary(diff: Diff) -> str:
    """Plain-text summary for notifications."""
    if diff.is_empty:
        return "Registry Scout: no new license holders today."

    parts = []
    if diff.added:
        parts.append(f"{len(diff.added)} new license holder(s):")
        for entity in diff.added:
            parts.append(f"  * {entity.name} ({_licenses(entity)})")
    if diff.removed:
        parts.append(f"{len(diff.removed)} removed:")
        for entity in diff.removed:
            parts.append(f"  * {entity.name}")

    return "Registry Scout Daily Report\n" + "\n".join(parts)
