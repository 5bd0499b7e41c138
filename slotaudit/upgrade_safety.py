"""
slotaudit - Upgrade Safety Checks
Compares the storage layout of every contract present in both an old and a
new version of the sources and reports layout-breaking changes as findings:
  - Variables moved to a different slot or offset
  - Bytes reused by a different variable
  - Same-name variables whose type changed
  - Removed and added variables
"""

import logging
from pathlib import Path

from .errors import SourceError
from .models import ContractModel, Finding, UpgradeAnalysis
from .slot_calculator import calculate_slots
from .source_parser import parse_file
from .upgrade_analyzer import analyze

log = logging.getLogger(__name__)

TOOL_NAME = "slotaudit-upgrade"

CHANGE_SEVERITY = {
    "critical": "critical",
    "warning": "medium",
    "safe": "informational",
}

CHANGE_TITLES = {
    "added": ("storage-variable-added", "Storage Variable Added"),
    "removed": ("storage-variable-removed", "Storage Variable Removed"),
    "moved": ("storage-variable-moved", "Storage Variable Moved"),
    "typeChanged": ("storage-type-changed", "Storage Variable Type Changed"),
    "collision": ("storage-collision", "Storage Collision Between Versions"),
}


def findings_from_analysis(analysis: UpgradeAnalysis, file_path: str) -> list[Finding]:
    """One finding per upgrade change."""
    findings = []
    for change in analysis.changes:
        rule_id, title = CHANGE_TITLES[change.kind]
        findings.append(Finding(
            id=rule_id,
            title=f"{title}: {change.variable.name}",
            severity=CHANGE_SEVERITY[change.severity],
            file=file_path,
            line=0,
            tool=TOOL_NAME,
            description=change.description,
            suggested_fix=change.recommendation,
            contract=analysis.contract_name,
            source_module="upgrade",
            raw=change.to_dict(),
        ))
    return findings


# ---------------------------------------------------------------------------
# Source loading
# ---------------------------------------------------------------------------


def _load_contracts(path: str, exclude_paths: list[str]) -> list[ContractModel]:
    """Parse a single .sol file, or every .sol file under a directory."""
    root = Path(path)
    if not root.is_dir():
        return parse_file(path)

    contracts: list[ContractModel] = []
    for sol in sorted(root.rglob("*.sol")):
        # Match exclusions below the root so a root like test/v1 still scans
        rel = sol.relative_to(root).as_posix()
        if any(excl in rel for excl in exclude_paths):
            continue
        try:
            contracts.extend(parse_file(str(sol)))
        except SourceError as e:
            log.warning(f"Upgrade analyzer: {e}")
    return contracts


def pair_contracts(
    old: list[ContractModel], new: list[ContractModel], name: str = "",
) -> list[tuple[ContractModel, ContractModel]]:
    """Match old and new contracts by name, in old-version order."""
    new_by_name = {c.name: c for c in new if c.kind == "contract"}
    pairs = []
    for contract in old:
        if contract.kind != "contract" or (name and contract.name != name):
            continue
        match = new_by_name.get(contract.name)
        if match is None:
            log.info(f"Upgrade analyzer: {contract.name} not present in new version")
            continue
        pairs.append((contract, match))
    return pairs


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def analyze_upgrades(config: dict) -> list[Finding]:
    """Run upgrade layout analysis between the configured old and new sources."""
    upgrade = config.get("upgrade", {})
    old_path = upgrade.get("old_path", "")
    new_path = upgrade.get("new_path", "")
    exclude_paths = config.get("contracts", {}).get("exclude_paths", [])

    if not old_path or not new_path:
        log.info("Upgrade analysis: old_path/new_path not configured, skipping")
        return []

    try:
        old_contracts = _load_contracts(old_path, exclude_paths)
        new_contracts = _load_contracts(new_path, exclude_paths)
    except SourceError as e:
        log.warning(f"Upgrade analyzer: {e}")
        return []

    all_findings: list[Finding] = []
    for old, new in pair_contracts(old_contracts, new_contracts, upgrade.get("contract", "")):
        analysis = analyze(calculate_slots(old), calculate_slots(new), config)
        all_findings.extend(findings_from_analysis(analysis, new.file_path or new_path))
        log.info(
            f"  {old.name}: score {analysis.compatibility.score}/100 "
            f"({analysis.compatibility.level}), {len(analysis.changes)} change(s)"
        )

    all_findings.sort(key=lambda f: -f.severity_rank)
    log.info(f"Upgrade safety analysis: {len(all_findings)} finding(s)")
    return all_findings
