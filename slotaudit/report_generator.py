"""
slotaudit - Markdown Report Generator
Layout tables for a single contract and upgrade reports for a version pair.
"""

from datetime import datetime

from . import __version__
from .models import SlotMapping, StorageVariable, UpgradeAnalysis
from .storage_summary import generate_summary


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _severity_emoji(severity: str) -> str:
    return {
        "critical": "🔴", "warning": "🟡", "safe": "🟢",
    }.get(severity.lower(), "ℹ️")


def _level_emoji(level: str) -> str:
    return {
        "safe": "🟢", "caution": "🟡", "unsafe": "🟠", "critical": "🔴",
    }.get(level.lower(), "")


def _byte_range(var: StorageVariable) -> str:
    return f"{var.offset}-{var.end - 1}"


def _layout_table(mapping: SlotMapping) -> list[str]:
    s = ["| Slot | Bytes | Name | Type | Size | Packed |",
         "|------|-------|------|------|------|--------|"]
    for var in sorted(mapping.variables, key=lambda v: (v.slot, v.offset)):
        packed = "yes" if var.packed else ""
        s.append(
            f"| {var.slot} | {_byte_range(var)} | `{var.name}` | `{var.type}` | {var.size} | {packed} |"
        )
    if not mapping.variables:
        s.append("| - | - | *no storage variables* | - | - | - |")
    s.append("")
    return s


# ---------------------------------------------------------------------------
# Single layout
# ---------------------------------------------------------------------------


def generate_layout_report(mapping: SlotMapping) -> str:
    """Markdown storage layout of one contract."""
    summary = generate_summary(mapping)
    s: list[str] = []

    s.append(f"# Storage Layout: {mapping.contract_name}\n")
    s.append(f"**Variables:** {summary.total_variables}  ")
    s.append(f"**Slots:** {summary.total_slots}  ")
    s.append(f"**Packed slots:** {len(mapping.packed_slots)}  ")
    s.append(f"**Efficiency:** {summary.efficiency:.2f}%\n")

    s.append("## Layout\n")
    s.extend(_layout_table(mapping))

    if summary.packing_opportunities:
        s.append("## Packing Opportunities\n")
        for opp in summary.packing_opportunities:
            current = ", ".join(f"`{n}`" for n in opp.current_variables)
            suggested = ", ".join(f"`{n}`" for n in opp.suggested_packing)
            s.append(f"- Slot {opp.slot} ({current}) could hold {suggested}")
        s.append("")

    s.append("---")
    s.append(f"*Generated by slotaudit v{__version__}*")
    return "\n".join(s)


# ---------------------------------------------------------------------------
# Upgrade
# ---------------------------------------------------------------------------


def _change_location(change) -> str:
    old = getattr(change, "old_variable", None)
    new = change.variable
    if old is not None and (old.slot, old.offset) != (new.slot, new.offset):
        return f"{old.slot}:{old.offset} → {new.slot}:{new.offset}"
    return f"{new.slot}:{new.offset}"


def generate_upgrade_report(analysis: UpgradeAnalysis, v1: SlotMapping, v2: SlotMapping) -> str:
    """Markdown upgrade report for a pair of layouts."""
    today = datetime.now().strftime("%B %d, %Y")
    compat = analysis.compatibility
    growth = analysis.storage_growth
    s: list[str] = []

    s.append(f"# Storage Upgrade Report: {analysis.contract_name}\n")
    s.append(f"**Generated:** {today}  ")
    s.append(f"**Compatibility:** {_level_emoji(compat.level)} {compat.score}/100 ({compat.level.upper()})\n")
    s.append(f"{compat.description}\n")

    # Summary table
    s.append("## Summary\n")
    s.append("| | V1 | V2 |")
    s.append("|---|----|----|")
    s.append(f"| Slots | {analysis.v1_summary.total_slots} | {analysis.v2_summary.total_slots} |")
    s.append(f"| Variables | {analysis.v1_summary.variables} | {analysis.v2_summary.variables} |")
    s.append(f"| Packed slots | {analysis.v1_summary.packed_slots} | {analysis.v2_summary.packed_slots} |")
    s.append("")
    s.append(f"**Storage growth:** {growth.slots_added:+d} slot(s), "
             f"{growth.bytes_wasted:+d} wasted byte(s), "
             f"{growth.efficiency_change:+.2f}% efficiency\n")

    # Changes
    s.append("## Changes\n")
    if analysis.changes:
        s.append("| Severity | Change | Variable | Slot:Offset | Description |")
        s.append("|----------|--------|----------|-------------|-------------|")
        for change in analysis.changes:
            s.append(
                f"| {_severity_emoji(change.severity)} {change.severity} | {change.kind} "
                f"| `{change.variable.name}` | {_change_location(change)} | {change.description} |"
            )
        s.append("")
    else:
        s.append("**No storage layout changes.**\n")

    # Collisions in detail
    collisions = analysis.collision_report.collisions
    if collisions:
        s.append("## Collisions\n")
        for c in collisions:
            s.append(
                f"- Slot {c.slot}, bytes {c.range[0]}-{c.range[1]}: "
                f"`{c.v1.name}` ({c.v1.type}) → `{c.v2.name}` ({c.v2.type}): {c.reason}"
            )
        s.append("")

    s.append("## Recommendations\n")
    for rec in analysis.recommendations:
        s.append(f"- {rec}")
    s.append("")

    s.append("<details>\n<summary>V1 layout</summary>\n")
    s.extend(_layout_table(v1))
    s.append("</details>\n")
    s.append("<details>\n<summary>V2 layout</summary>\n")
    s.extend(_layout_table(v2))
    s.append("</details>\n")

    s.append("---")
    s.append(f"*Generated by slotaudit v{__version__}*")
    return "\n".join(s)
