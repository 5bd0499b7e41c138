"""
slotaudit - Solidity Storage Layout & Upgrade Safety
Computes the slot layout of a contract's state variables and checks whether
an upgrade from one version to the next keeps that layout intact.
"""

__version__ = "1.0.0"

from .models import (
    AddedChange,
    AuditReport,
    Collision,
    CollisionChange,
    CollisionReport,
    ContractModel,
    DeclaredVariable,
    Finding,
    MovedChange,
    RemovedChange,
    SlotMapping,
    StorageVariable,
    TypeChangedChange,
    UpgradeAnalysis,
    UpgradeChange,
)
from .collision_detector import compare, detect_collisions, detect_overlaps
from .config import load_config
from .errors import ConfigError, SlotAuditError, SourceError
from .report_generator import generate_layout_report, generate_upgrade_report
from .sarif_generator import generate_sarif, save_sarif
from .slot_calculator import calculate_slots, packing_efficiency, type_size
from .source_parser import parse_file, parse_source
from .storage_summary import generate_summary
from .upgrade_analyzer import analyze
from .upgrade_safety import analyze_upgrades, findings_from_analysis

__all__ = [
    "AddedChange",
    "AuditReport",
    "Collision",
    "CollisionChange",
    "CollisionReport",
    "ConfigError",
    "ContractModel",
    "DeclaredVariable",
    "Finding",
    "MovedChange",
    "RemovedChange",
    "SlotAuditError",
    "SlotMapping",
    "SourceError",
    "StorageVariable",
    "TypeChangedChange",
    "UpgradeAnalysis",
    "UpgradeChange",
    "analyze",
    "analyze_upgrades",
    "calculate_slots",
    "compare",
    "detect_collisions",
    "detect_overlaps",
    "findings_from_analysis",
    "generate_layout_report",
    "generate_sarif",
    "generate_summary",
    "generate_upgrade_report",
    "load_config",
    "packing_efficiency",
    "parse_file",
    "parse_source",
    "save_sarif",
    "type_size",
]
