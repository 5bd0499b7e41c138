"""Builders shared by the test modules."""

from slotaudit.models import ContractModel, DeclaredVariable, SlotMapping, StorageVariable
from slotaudit.slot_calculator import calculate_slots


def contract(name: str, *decls: tuple[str, str]) -> ContractModel:
    """Contract from (type, name) pairs in declaration order."""
    return ContractModel(
        name=name,
        variables=[DeclaredVariable(name=n, type_name=t) for t, n in decls],
    )


def layout(name: str, *decls: tuple[str, str]) -> SlotMapping:
    return calculate_slots(contract(name, *decls))


def var(name: str, type_: str, slot: int, offset: int = 0, size: int = 32) -> StorageVariable:
    return StorageVariable(
        name=name, type=type_, slot=slot, offset=offset, size=size,
        packed=offset > 0 or offset + size < 32,
    )


def mapping(name: str, *variables: StorageVariable) -> SlotMapping:
    """Hand-built mapping; bypasses the calculator."""
    slots = sorted({v.slot for v in variables})
    counts = {s: sum(1 for v in variables if v.slot == s) for s in slots}
    return SlotMapping(
        contract_name=name,
        variables=list(variables),
        total_slots=max(slots) + 1 if slots else 0,
        packed_slots=[s for s in slots if counts[s] > 1],
    )
