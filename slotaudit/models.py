"""
slotaudit - Data Models
Contract models, storage layouts, diff reports and upgrade analysis results.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, Optional, Union


# ---------------------------------------------------------------------------
# Contract model (input)
# ---------------------------------------------------------------------------


@dataclass
class DeclaredVariable:
    """A state variable as declared in source, in declaration order"""
    name: str
    type_name: str
    visibility: str = "internal"
    is_constant: bool = False
    is_immutable: bool = False
    initial_value: Optional[str] = None

    @property
    def occupies_storage(self) -> bool:
        return not (self.is_constant or self.is_immutable)


@dataclass
class ContractModel:
    """A contract and its declared state variables"""
    name: str
    variables: list[DeclaredVariable] = field(default_factory=list)
    base_contracts: list[str] = field(default_factory=list)
    kind: str = "contract"              # contract, library, interface
    is_abstract: bool = False
    file_path: str = ""

    @property
    def storage_variables(self) -> list[DeclaredVariable]:
        """Variables that are assigned a storage slot"""
        return [v for v in self.variables if v.occupies_storage]


# ---------------------------------------------------------------------------
# Storage layout
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StorageVariable:
    """A variable placed at (slot, offset) with a byte size"""
    name: str
    type: str
    slot: int
    offset: int
    size: int
    is_state_variable: bool = True
    packed: bool = False

    @property
    def key(self) -> str:
        """Identity across versions: same name and same declared type"""
        return f"{self.name}|{self.type}"

    @property
    def end(self) -> int:
        return self.offset + self.size

    def overlaps(self, other: "StorageVariable") -> bool:
        return self.offset < other.end and other.offset < self.end

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.type,
            "slot": self.slot,
            "offset": self.offset,
            "size": self.size,
            "isStateVariable": self.is_state_variable,
            "packed": self.packed,
        }


@dataclass
class SlotMapping:
    """Storage layout of one contract"""
    contract_name: str
    variables: list[StorageVariable] = field(default_factory=list)
    total_slots: int = 0
    packed_slots: list[int] = field(default_factory=list)

    @property
    def used_bytes(self) -> int:
        return sum(v.size for v in self.variables)

    @property
    def allocated_bytes(self) -> int:
        return self.total_slots * 32

    def occupancy(self) -> dict[int, list[StorageVariable]]:
        """Group variables by slot, keeping declaration order within a slot"""
        occ: dict[int, list[StorageVariable]] = {}
        for var in self.variables:
            occ.setdefault(var.slot, []).append(var)
        return occ

    def to_dict(self) -> dict:
        return {
            "contractName": self.contract_name,
            "variables": [v.to_dict() for v in self.variables],
            "totalSlots": self.total_slots,
            "packedSlots": list(self.packed_slots),
        }


# ---------------------------------------------------------------------------
# Version diff
# ---------------------------------------------------------------------------


@dataclass
class Collision:
    """Two variables from different versions sharing bytes of one slot"""
    slot: int
    range: tuple[int, int]              # first and last overlapping byte, inclusive
    v1: StorageVariable
    v2: StorageVariable
    reason: str

    def to_dict(self) -> dict:
        return {
            "slot": self.slot,
            "range": list(self.range),
            "v1": self.v1.to_dict(),
            "v2": self.v2.to_dict(),
            "reason": self.reason,
        }


@dataclass
class CollisionReport:
    contract: str
    collisions: list[Collision] = field(default_factory=list)
    moved: list[StorageVariable] = field(default_factory=list)
    added: list[StorageVariable] = field(default_factory=list)
    removed: list[StorageVariable] = field(default_factory=list)
    safe: bool = True

    def to_dict(self) -> dict:
        return {
            "contract": self.contract,
            "collisions": [c.to_dict() for c in self.collisions],
            "moved": [v.to_dict() for v in self.moved],
            "added": [v.to_dict() for v in self.added],
            "removed": [v.to_dict() for v in self.removed],
            "safe": self.safe,
        }


@dataclass
class StorageCollision:
    """Result of the single-layout overlap check"""
    id: str
    type: str
    severity: str                       # low, medium, high, critical
    slot: int
    variables: list[StorageVariable]
    description: str
    impact: str
    recommendation: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "severity": self.severity,
            "slot": self.slot,
            "variables": [
                {"name": v.name, "type": v.type, "size": v.size, "offset": v.offset}
                for v in self.variables
            ],
            "description": self.description,
            "impact": self.impact,
            "recommendation": self.recommendation,
        }


# ---------------------------------------------------------------------------
# Upgrade changes (tagged union)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Change:
    kind: ClassVar[str] = ""

    variable: StorageVariable
    severity: str                       # safe, warning, critical
    description: str
    recommendation: str = ""

    def to_dict(self) -> dict:
        data = {
            "type": self.kind,
            "variable": self.variable.to_dict(),
            "severity": self.severity,
            "description": self.description,
            "recommendation": self.recommendation,
        }
        old = getattr(self, "old_variable", None)
        if old is not None:
            data["oldVariable"] = old.to_dict()
        return data


@dataclass(frozen=True)
class AddedChange(_Change):
    kind: ClassVar[str] = "added"


@dataclass(frozen=True)
class RemovedChange(_Change):
    kind: ClassVar[str] = "removed"


@dataclass(frozen=True)
class MovedChange(_Change):
    kind: ClassVar[str] = "moved"

    old_variable: Optional[StorageVariable] = None


@dataclass(frozen=True)
class TypeChangedChange(_Change):
    kind: ClassVar[str] = "typeChanged"

    old_variable: Optional[StorageVariable] = None


@dataclass(frozen=True)
class CollisionChange(_Change):
    kind: ClassVar[str] = "collision"

    old_variable: Optional[StorageVariable] = None
    collision: Optional[Collision] = None


UpgradeChange = Union[AddedChange, RemovedChange, MovedChange, TypeChangedChange, CollisionChange]


@dataclass
class UpgradeCompatibility:
    score: int
    level: str                          # safe, caution, unsafe, critical
    description: str

    def to_dict(self) -> dict:
        return {"score": self.score, "level": self.level, "description": self.description}


@dataclass
class LayoutSummary:
    total_slots: int
    variables: int
    packed_slots: int

    @classmethod
    def of(cls, mapping: SlotMapping) -> "LayoutSummary":
        return cls(
            total_slots=mapping.total_slots,
            variables=len(mapping.variables),
            packed_slots=len(mapping.packed_slots),
        )

    def to_dict(self) -> dict:
        return {
            "totalSlots": self.total_slots,
            "variables": self.variables,
            "packedSlots": self.packed_slots,
        }


@dataclass
class StorageGrowth:
    slots_added: int
    bytes_wasted: int
    efficiency_change: float

    def to_dict(self) -> dict:
        return {
            "slotsAdded": self.slots_added,
            "bytesWasted": self.bytes_wasted,
            "efficiencyChange": self.efficiency_change,
        }


@dataclass
class UpgradeAnalysis:
    """Everything known about moving from one layout version to the next"""
    contract_name: str
    v1_summary: LayoutSummary
    v2_summary: LayoutSummary
    changes: list[UpgradeChange]
    compatibility: UpgradeCompatibility
    recommendations: list[str]
    collision_report: CollisionReport
    storage_growth: StorageGrowth

    def changes_with_severity(self, severity: str) -> list[UpgradeChange]:
        return [c for c in self.changes if c.severity == severity]

    @property
    def has_critical(self) -> bool:
        return any(c.severity == "critical" for c in self.changes)

    def to_dict(self) -> dict:
        return {
            "contractName": self.contract_name,
            "v1Summary": self.v1_summary.to_dict(),
            "v2Summary": self.v2_summary.to_dict(),
            "changes": [c.to_dict() for c in self.changes],
            "compatibility": self.compatibility.to_dict(),
            "recommendations": list(self.recommendations),
            "collisionReport": self.collision_report.to_dict(),
            "storageGrowth": self.storage_growth.to_dict(),
        }


# ---------------------------------------------------------------------------
# Findings
# ---------------------------------------------------------------------------


@dataclass
class Finding:
    """Represents a reportable storage layout issue"""
    id: str
    title: str
    severity: str                       # critical, high, medium, low, informational
    file: str
    line: int
    tool: str
    description: str = ""
    suggested_fix: str = ""
    contract: str = ""
    source_module: str = ""             # "upgrade", "layout"
    raw: dict = field(default_factory=dict)

    @property
    def contract_name(self) -> str:
        """Contract name, falling back to the file stem"""
        if self.contract:
            return self.contract
        return Path(self.file).stem if self.file else "Unknown"

    @property
    def severity_rank(self) -> int:
        """Numeric rank for sorting (higher = more severe)"""
        ranks = {
            "critical": 5,
            "high": 4,
            "medium": 3,
            "low": 2,
            "informational": 1
        }
        return ranks.get(self.severity.lower(), 0)

    def dedup_key(self) -> str:
        """Generate key for deduplication"""
        return f"{self.file}:{self.contract_name}:{self.id}:{self.title}"


@dataclass
class AuditReport:
    """Findings of one run and the tools that produced them"""
    findings: list[Finding]
    tools_run: list[str] = field(default_factory=list)

    def severity_counts(self) -> dict[str, int]:
        """Number of findings per severity, most severe first"""
        counts: dict[str, int] = {}
        for finding in sorted(self.findings, key=lambda f: -f.severity_rank):
            sev = finding.severity.lower()
            counts[sev] = counts.get(sev, 0) + 1
        return counts

    @property
    def total(self) -> int:
        return len(self.findings)

    @property
    def has_critical(self) -> bool:
        return any(f.severity.lower() == "critical" for f in self.findings)
