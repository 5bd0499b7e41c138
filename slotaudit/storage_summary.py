"""
slotaudit - Storage Summary
Per-slot utilisation and packing hints for a single layout.
"""

from dataclasses import dataclass, field

from .models import SlotMapping
from .slot_calculator import SLOT_SIZE


@dataclass
class SlotUtilization:
    slot: int
    used_bytes: int
    available_bytes: int
    utilization_percent: float
    variables: list[str]

    def to_dict(self) -> dict:
        return {
            "slot": self.slot,
            "usedBytes": self.used_bytes,
            "availableBytes": self.available_bytes,
            "utilizationPercent": self.utilization_percent,
            "variables": list(self.variables),
        }


@dataclass
class PackingOpportunity:
    slot: int
    current_variables: list[str]
    suggested_packing: list[str]

    def to_dict(self) -> dict:
        return {
            "slot": self.slot,
            "currentVariables": list(self.current_variables),
            "suggestedPacking": list(self.suggested_packing),
        }


@dataclass
class StorageSummary:
    total_variables: int
    total_slots: int
    total_size: int
    efficiency: float
    utilization_by_slot: list[SlotUtilization] = field(default_factory=list)
    packing_opportunities: list[PackingOpportunity] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalVariables": self.total_variables,
            "totalSlots": self.total_slots,
            "totalSize": self.total_size,
            "efficiency": self.efficiency,
            "utilizationBySlot": [u.to_dict() for u in self.utilization_by_slot],
            "packingOpportunities": [p.to_dict() for p in self.packing_opportunities],
        }


def slot_utilization(mapping: SlotMapping) -> list[SlotUtilization]:
    """Bytes used per occupied slot, ascending by slot."""
    result = []
    for slot, variables in sorted(mapping.occupancy().items()):
        used = sum(v.size for v in variables)
        result.append(SlotUtilization(
            slot=slot,
            used_bytes=used,
            available_bytes=SLOT_SIZE - used,
            utilization_percent=round(used / SLOT_SIZE * 100, 2),
            variables=[v.name for v in variables],
        ))
    return result


def _packing_opportunities(mapping: SlotMapping, utilization: list[SlotUtilization]) -> list[PackingOpportunity]:
    opportunities = []
    for util in utilization:
        if util.utilization_percent >= 75 or util.available_bytes < 4:
            continue
        candidates = [
            v.name for v in mapping.variables
            if v.size <= util.available_bytes and v.slot != util.slot
        ]
        if candidates:
            opportunities.append(PackingOpportunity(
                slot=util.slot,
                current_variables=list(util.variables),
                suggested_packing=util.variables + candidates[:2],
            ))
    return opportunities


def generate_summary(mapping: SlotMapping) -> StorageSummary:
    """Summarize slot usage for one layout."""
    utilization = slot_utilization(mapping)
    total_size = mapping.used_bytes
    efficiency = total_size / mapping.allocated_bytes * 100 if mapping.total_slots else 0.0

    return StorageSummary(
        total_variables=len(mapping.variables),
        total_slots=mapping.total_slots,
        total_size=total_size,
        efficiency=round(efficiency, 2),
        utilization_by_slot=utilization,
        packing_opportunities=_packing_opportunities(mapping, utilization),
    )
