"""
slotaudit - Storage Slot Calculator
Assigns every state variable of a contract to a (slot, offset, size) triple
using the compiler's packing rules for 32-byte slots.
"""

import re

from .models import ContractModel, SlotMapping, StorageVariable

SLOT_SIZE = 32

# Types whose size cannot be derived from the name pattern
FIXED_SIZES = {
    "bool": 1,
    "address": 20,
    "address payable": 20,
    "uint": 32,
    "int": 32,
}

INT_TYPE = re.compile(r"^u?int(\d+)$")
FIXED_BYTES_TYPE = re.compile(r"^bytes(\d+)$")

# Internal function pointers are a code offset; external ones an address plus selector
INTERNAL_FUNCTION_SIZE = 8
EXTERNAL_FUNCTION_SIZE = 24


def _function_type_size(type_name: str) -> int:
    depth = 0
    for i, ch in enumerate(type_name):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                attributes = type_name[i + 1:].split("returns", 1)[0].split()
                if "external" in attributes:
                    return EXTERNAL_FUNCTION_SIZE
                return INTERNAL_FUNCTION_SIZE
    return SLOT_SIZE


def type_size(type_name: str) -> int:
    """Bytes occupied in the declaring slot by a variable of `type_name`.

    Mappings, arrays, ``string`` and dynamic ``bytes`` only keep a 32-byte
    header in their slot. Function types pack as 8 bytes (internal) or 24
    bytes (external). Unknown types (structs, enums, contract types)
    conservatively take a full slot.
    """
    t = " ".join(type_name.split())

    if t.startswith("function(") and not t.endswith("]"):
        return _function_type_size(t)
    if "[" in t or t.startswith("mapping"):
        return SLOT_SIZE
    if t in FIXED_SIZES:
        return FIXED_SIZES[t]

    m = INT_TYPE.match(t)
    if m:
        bits = int(m.group(1))
        if 8 <= bits <= 256 and bits % 8 == 0:
            return bits // 8
        return SLOT_SIZE

    m = FIXED_BYTES_TYPE.match(t)
    if m:
        width = int(m.group(1))
        if 1 <= width <= SLOT_SIZE:
            return width

    return SLOT_SIZE


def _place(entries: list[tuple[str, str, int]]) -> list[StorageVariable]:
    """Lay out (name, type, size) entries in order, packing where they fit."""
    placed: list[StorageVariable] = []
    slot = 0
    offset = 0

    for name, type_name, size in entries:
        if offset + size > SLOT_SIZE:
            slot += 1
            offset = 0

        placed.append(StorageVariable(
            name=name,
            type=type_name,
            slot=slot,
            offset=offset,
            size=size,
            is_state_variable=True,
            packed=offset > 0 or offset + size < SLOT_SIZE,
        ))

        offset += size
        if offset >= SLOT_SIZE:
            slot += 1
            offset = 0

    return placed


def calculate_slots(contract: ContractModel) -> SlotMapping:
    """Compute the storage layout of a contract in declaration order."""
    variables = _place([
        (v.name, v.type_name, type_size(v.type_name))
        for v in contract.storage_variables
    ])

    total_slots = max(v.slot for v in variables) + 1 if variables else 0

    counts: dict[int, int] = {}
    for var in variables:
        counts[var.slot] = counts.get(var.slot, 0) + 1
    packed_slots = sorted(slot for slot, count in counts.items() if count > 1)

    return SlotMapping(
        contract_name=contract.name,
        variables=variables,
        total_slots=total_slots,
        packed_slots=packed_slots,
    )


# ---------------------------------------------------------------------------
# Packing helpers
# ---------------------------------------------------------------------------


def packing_efficiency(mapping: SlotMapping) -> float:
    """Percentage of allocated bytes that hold variable data."""
    if mapping.total_slots == 0:
        return 100.0
    return mapping.used_bytes / mapping.allocated_bytes * 100


def can_pack_together(var1: StorageVariable, var2: StorageVariable) -> bool:
    return var1.size + var2.size <= SLOT_SIZE


def _packing_suggestions(variable: StorageVariable, available: int) -> list[str]:
    suggestions = []
    if available >= 20 and variable.size <= 12:
        suggestions.append("Consider packing with an address variable (20 bytes)")
    if available >= 4 and variable.size <= 28:
        suggestions.append("Consider packing with uint32 or smaller integer types")
    if available >= 1 and variable.size <= 31:
        suggestions.append("Consider packing with bool variables (1 byte each)")
    return suggestions


def find_packing_opportunities(mapping: SlotMapping) -> list[dict]:
    """Slots holding a single undersized variable, most wasted bytes first."""
    opportunities = []

    for slot, variables in sorted(mapping.occupancy().items()):
        used = sum(v.size for v in variables)
        wasted = SLOT_SIZE - used
        if wasted <= 0 or len(variables) != 1:
            continue
        suggestions = _packing_suggestions(variables[0], wasted)
        if suggestions:
            opportunities.append({
                "slot": slot,
                "wastedBytes": wasted,
                "suggestions": suggestions,
            })

    opportunities.sort(key=lambda o: (-o["wastedBytes"], o["slot"]))
    return opportunities


def optimize_slot_arrangement(variables: list[StorageVariable]) -> list[StorageVariable]:
    """Re-lay out variables largest first. Advisory only; never applied to a contract."""
    ordered = sorted(variables, key=lambda v: -v.size)
    return _place([(v.name, v.type, v.size) for v in ordered])
