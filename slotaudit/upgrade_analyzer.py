"""
slotaudit - Upgrade Analyzer
Turns a layout diff into severity-rated changes, a 0-100 compatibility
score, storage growth metrics and deployment recommendations.
"""

import logging

from .collision_detector import compare
from .models import (
    AddedChange,
    CollisionChange,
    CollisionReport,
    LayoutSummary,
    MovedChange,
    RemovedChange,
    SlotMapping,
    StorageGrowth,
    TypeChangedChange,
    UpgradeAnalysis,
    UpgradeChange,
    UpgradeCompatibility,
)
from .slot_calculator import packing_efficiency

log = logging.getLogger(__name__)

CRITICAL_PENALTY = 40
WARNING_PENALTY = 15
UNSAFE_WARNING_COUNT = 2
EFFICIENCY_DROP_THRESHOLD = 10
SLOT_GROWTH_THRESHOLD = 5


# ---------------------------------------------------------------------------
# Changes
# ---------------------------------------------------------------------------


def _identify_changes(v1: SlotMapping, v2: SlotMapping, report: CollisionReport) -> list[UpgradeChange]:
    changes: list[UpgradeChange] = []
    v1_by_key = {v.key: v for v in v1.variables}

    for collision in report.collisions:
        changes.append(CollisionChange(
            variable=collision.v2,
            old_variable=collision.v1,
            collision=collision,
            severity="critical",
            description=f"Storage collision: {collision.reason}",
            recommendation="This collision will corrupt storage. Consider adding new variables at the end instead.",
        ))

    for variable in report.moved:
        old = v1_by_key.get(variable.key)
        old_slot = old.slot if old else "?"
        changes.append(MovedChange(
            variable=variable,
            old_variable=old,
            severity="critical",
            description=f'Variable "{variable.name}" moved from slot {old_slot} to slot {variable.slot}',
            recommendation="Moving variables breaks storage layout. Add new variables at the end instead.",
        ))

    for variable in report.removed:
        changes.append(RemovedChange(
            variable=variable,
            severity="warning",
            description=f'Variable "{variable.name}" removed from storage',
            recommendation="Removing variables can break dependent contracts. Consider deprecation instead.",
        ))

    for variable in report.added:
        changes.append(AddedChange(
            variable=variable,
            severity="safe",
            description=f'New variable "{variable.name}" added at slot {variable.slot}',
            recommendation="Adding variables at the end is safe for upgrades.",
        ))

    # Same name, different type. Reported even when the slot diff above
    # already shows it as a removal plus an addition, or as a collision.
    v1_by_name = {v.name: v for v in v1.variables}
    v2_by_name = {v.name: v for v in v2.variables}
    for name, new_var in v2_by_name.items():
        old_var = v1_by_name.get(name)
        if old_var is not None and old_var.type != new_var.type:
            changes.append(TypeChangedChange(
                variable=new_var,
                old_variable=old_var,
                severity="critical",
                description=f'Variable "{name}" type changed from {old_var.type} to {new_var.type}',
                recommendation="Type changes can corrupt data. Use a new variable name instead.",
            ))

    return changes


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def _assess_compatibility(changes: list[UpgradeChange], settings: dict) -> UpgradeCompatibility:
    critical = sum(1 for c in changes if c.severity == "critical")
    warnings = sum(1 for c in changes if c.severity == "warning")

    score = 100
    score -= critical * settings.get("critical_penalty", CRITICAL_PENALTY)
    score -= warnings * settings.get("warning_penalty", WARNING_PENALTY)
    score = max(0, score)

    if critical > 0:
        level = "critical"
        description = "Critical storage layout conflicts detected. Upgrade will likely fail or corrupt data."
    elif warnings > settings.get("unsafe_warning_count", UNSAFE_WARNING_COUNT):
        level = "unsafe"
        description = "Multiple warnings detected. Upgrade may cause issues."
    elif warnings > 0:
        level = "caution"
        description = "Some warnings detected. Review carefully before upgrading."
    else:
        level = "safe"
        description = "Storage layout is upgrade-safe. Only new variables added."

    return UpgradeCompatibility(score=score, level=level, description=description)


def _storage_growth(v1: SlotMapping, v2: SlotMapping) -> StorageGrowth:
    v1_wasted = v1.allocated_bytes - v1.used_bytes
    v2_wasted = v2.allocated_bytes - v2.used_bytes
    return StorageGrowth(
        slots_added=v2.total_slots - v1.total_slots,
        bytes_wasted=v2_wasted - v1_wasted,
        efficiency_change=round(packing_efficiency(v2) - packing_efficiency(v1), 2),
    )


def _recommendations(changes: list[UpgradeChange], v1: SlotMapping, v2: SlotMapping, settings: dict) -> list[str]:
    recs: list[str] = []
    critical = [c for c in changes if c.severity == "critical"]
    warnings = [c for c in changes if c.severity == "warning"]

    if critical:
        recs.append(f"CRITICAL: Do not deploy this upgrade. {len(critical)} critical issue(s) found.")
        recs.append("Consider creating a new contract with proper storage layout instead of upgrading.")

    if warnings:
        recs.append(f"{len(warnings)} warning(s) detected. Test thoroughly before deployment.")

    drop = packing_efficiency(v1) - packing_efficiency(v2)
    if drop > settings.get("efficiency_drop_threshold", EFFICIENCY_DROP_THRESHOLD):
        recs.append(f"Storage efficiency decreased by {int(drop + 0.5)}%. Consider variable reordering.")

    growth = v2.total_slots - v1.total_slots
    if growth > settings.get("slot_growth_threshold", SLOT_GROWTH_THRESHOLD):
        recs.append(f"Storage grew by {growth} slots. Consider gas cost implications for users.")

    if not recs:
        recs.append("Upgrade appears safe. All new variables added at the end.")

    return recs


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def analyze(v1: SlotMapping, v2: SlotMapping, config: dict | None = None) -> UpgradeAnalysis:
    """Analyze the upgrade from layout `v1` to layout `v2`."""
    settings = (config or {}).get("upgrade", {})

    report = compare(v1, v2)
    changes = _identify_changes(v1, v2, report)
    compatibility = _assess_compatibility(changes, settings)

    log.debug(
        f"Upgrade {v1.contract_name}: {len(changes)} change(s), "
        f"score {compatibility.score} ({compatibility.level})"
    )

    return UpgradeAnalysis(
        contract_name=v1.contract_name,
        v1_summary=LayoutSummary.of(v1),
        v2_summary=LayoutSummary.of(v2),
        changes=changes,
        compatibility=compatibility,
        recommendations=_recommendations(changes, v1, v2, settings),
        collision_report=report,
        storage_growth=_storage_growth(v1, v2),
    )
