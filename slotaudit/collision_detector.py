"""
slotaudit - Storage Collision Detection
Diffs two layouts of the same contract and flags byte ranges that change
owner between versions. Also carries a sanity check for a single layout
whose slots are over-filled.
"""

import logging

from .models import (
    Collision,
    CollisionReport,
    ContractModel,
    SlotMapping,
    StorageCollision,
    StorageVariable,
)
from .slot_calculator import SLOT_SIZE, calculate_slots

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Version diff
# ---------------------------------------------------------------------------


def _collision_reason(a: StorageVariable, b: StorageVariable) -> str:
    if a.name != b.name:
        return f"different variables occupy same bytes ({a.name} vs {b.name})"
    return f"same variable has different type ({a.type} vs {b.type})"


def compare(old: SlotMapping, new: SlotMapping) -> CollisionReport:
    """Classify variables as moved/added/removed and find cross-version overlaps."""
    old_keys = {v.key: v for v in old.variables}
    new_keys = {v.key: v for v in new.variables}

    moved: list[StorageVariable] = []
    removed: list[StorageVariable] = []
    added: list[StorageVariable] = []

    for key, var1 in old_keys.items():
        var2 = new_keys.get(key)
        if var2 is None:
            removed.append(var1)
        elif (var2.slot, var2.offset) != (var1.slot, var1.offset):
            moved.append(var2)

    for key, var2 in new_keys.items():
        if key not in old_keys:
            added.append(var2)

    # A moved variable vacates its old bytes; don't flag it a second time
    moved_keys = {v.key for v in moved}

    occ1 = old.occupancy()
    occ2 = new.occupancy()
    collisions: list[Collision] = []

    for slot in sorted(set(occ1) | set(occ2)):
        for a in occ1.get(slot, []):
            for b in occ2.get(slot, []):
                if a.key in moved_keys or b.key in moved_keys:
                    continue
                if not a.overlaps(b):
                    continue
                if a.name == b.name and a.type == b.type:
                    continue
                collisions.append(Collision(
                    slot=slot,
                    range=(max(a.offset, b.offset), min(a.end, b.end) - 1),
                    v1=a,
                    v2=b,
                    reason=_collision_reason(a, b),
                ))

    return CollisionReport(
        contract=old.contract_name,
        collisions=collisions,
        moved=moved,
        added=added,
        removed=removed,
        safe=not moved and not collisions,
    )


# ---------------------------------------------------------------------------
# Single-layout overlap check
# ---------------------------------------------------------------------------


def _overlap_severity(variables: list[StorageVariable], total_size: int) -> str:
    if total_size > 64:
        return "critical"
    if total_size > 48:
        return "high"
    if len(variables) > 3:
        return "medium"
    return "low"


IMPACT_BY_SEVERITY = {
    "critical": "Critical storage corruption risk",
    "high": "High risk of data corruption",
    "medium": "Potential storage conflicts",
    "low": "Minor storage inefficiency",
}


def detect_overlaps(mapping: SlotMapping) -> list[StorageCollision]:
    """Slots whose variables add up to more than 32 bytes.

    Layouts produced by calculate_slots never trigger this; it exists for
    hand-built or externally supplied mappings.
    """
    found: list[StorageCollision] = []

    for slot, variables in sorted(mapping.occupancy().items()):
        if len(variables) <= 1:
            continue
        total_size = sum(v.size for v in variables)
        if total_size <= SLOT_SIZE:
            continue

        severity = _overlap_severity(variables, total_size)
        found.append(StorageCollision(
            id=f"collision_slot_{slot}",
            type="variable_overlap",
            severity=severity,
            slot=slot,
            variables=list(variables),
            description=f"Multiple variables overlap in slot {slot}",
            impact=IMPACT_BY_SEVERITY[severity],
            recommendation=(
                "Reorganize variables to prevent slot overlap. Consider using smaller "
                "data types or packing variables efficiently."
            ),
        ))

    return found


def detect_collisions(contracts: list[ContractModel]) -> list[StorageCollision]:
    """Run the layout calculator and the overlap check over many contracts."""
    results: list[StorageCollision] = []
    for contract in contracts:
        for collision in detect_overlaps(calculate_slots(contract)):
            collision.description = f"Storage collision in {contract.name}: {collision.description}"
            results.append(collision)

    log.info(f"Overlap check: {len(results)} collision(s) in {len(contracts)} contract(s)")
    return results
