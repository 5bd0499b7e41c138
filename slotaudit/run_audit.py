"""
slotaudit - Command Line
  slotaudit map <file.sol>            storage layout of a contract
  slotaudit diff <v1.sol> <v2.sol>    upgrade safety between two versions
  slotaudit scan                      upgrade findings for the configured paths
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .collision_detector import detect_overlaps
from .config import load_config
from .errors import SlotAuditError
from .models import AuditReport, ContractModel
from .report_generator import generate_layout_report, generate_upgrade_report
from .sarif_generator import generate_sarif
from .slither_loader import load_contracts
from .slot_calculator import calculate_slots
from .source_parser import find_contract, parse_file
from .storage_summary import generate_summary
from .upgrade_analyzer import analyze
from .upgrade_safety import analyze_upgrades, findings_from_analysis, TOOL_NAME

log = logging.getLogger("slotaudit")


def _load(path: str, use_slither: bool) -> list[ContractModel]:
    if use_slither:
        return load_contracts(path)
    return parse_file(path)


def _select(path: str, name: str | None, use_slither: bool, preferred: str = "") -> ContractModel:
    contracts = _load(path, use_slither)
    if not contracts:
        raise SlotAuditError(f"No contracts found in {path}")
    contract = find_contract(contracts, name)
    if not name and preferred:
        contract = find_contract(contracts, preferred) or contract
    if contract is None:
        raise SlotAuditError(f"Contract {name} not found in {path}")
    return contract


def _emit(content: str, output: str | None) -> None:
    if not output:
        print(content)
        return
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    log.info(f"Report saved to {path}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_map(args, config: dict) -> int:
    contract = _select(args.file, args.contract, args.slither)
    mapping = calculate_slots(contract)

    for overlap in detect_overlaps(mapping):
        log.warning(overlap.description)

    fmt = args.format or config.get("output", {}).get("format", "json")
    if fmt == "markdown":
        content = generate_layout_report(mapping)
    else:
        content = json.dumps({
            "layout": mapping.to_dict(),
            "summary": generate_summary(mapping).to_dict(),
        }, indent=2)

    _emit(content, args.output)
    return 0


def cmd_diff(args, config: dict) -> int:
    v1_contract = _select(args.v1, args.contract1, args.slither)
    v2_contract = _select(args.v2, args.contract2, args.slither, preferred=v1_contract.name)

    v1 = calculate_slots(v1_contract)
    v2 = calculate_slots(v2_contract)
    analysis = analyze(v1, v2, config)

    compat = analysis.compatibility
    log.info(f"Analysis complete for {analysis.contract_name}")
    log.info(f"Compatibility score: {compat.score}/100 ({compat.level.upper()})")
    log.info(f"Changes detected: {len(analysis.changes)}")
    for rec in analysis.recommendations[:3]:
        log.info(f"  {rec}")

    fmt = args.format or config.get("output", {}).get("format", "json")
    if fmt == "markdown":
        content = generate_upgrade_report(analysis, v1, v2)
    elif fmt == "sarif":
        findings = findings_from_analysis(analysis, args.v2)
        content = generate_sarif(AuditReport(findings=findings, tools_run=[TOOL_NAME]))
    else:
        content = json.dumps(analysis.to_dict(), indent=2)
    _emit(content, args.output)

    # Keep stdout a single JSON document when the report is printed there
    if args.json_summary:
        stream = sys.stdout if args.output else sys.stderr
        print(json.dumps({
            "compatibility": compat.to_dict(),
            "changes": len(analysis.changes),
            "breakdown": {
                sev: len(analysis.changes_with_severity(sev))
                for sev in ("critical", "warning", "safe")
            },
            "growth": analysis.storage_growth.to_dict(),
        }, indent=2), file=stream)

    return 1 if analysis.has_critical else 0


def cmd_scan(args, config: dict) -> int:
    upgrade = config.setdefault("upgrade", {})
    if args.old:
        upgrade["old_path"] = args.old
    if args.new:
        upgrade["new_path"] = args.new

    report = AuditReport(findings=analyze_upgrades(config), tools_run=[TOOL_NAME])
    log.info(f"Scan complete: {report.total} finding(s)")
    for sev, count in report.severity_counts().items():
        log.info(f"  {sev}: {count}")
    output = args.output or config.get("output", {}).get("path") or None
    _emit(generate_sarif(report), output)
    return 1 if report.has_critical else 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slotaudit",
        description="Storage layout and upgrade safety analysis for Solidity contracts",
    )
    parser.add_argument("--config", help="Path to YAML config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_map = sub.add_parser("map", help="Show the storage layout of a contract")
    p_map.add_argument("file", help="Solidity file")
    p_map.add_argument("-c", "--contract", help="Contract name (default: first contract)")
    p_map.add_argument("-f", "--format", choices=["json", "markdown"])
    p_map.add_argument("-o", "--output", help="Write the report to a file")
    p_map.add_argument("--slither", action="store_true", help="Load contracts through slither")
    p_map.set_defaults(func=cmd_map)

    p_diff = sub.add_parser("diff", help="Analyze upgrade safety between two versions")
    p_diff.add_argument("v1", help="Current version (.sol)")
    p_diff.add_argument("v2", help="New version (.sol)")
    p_diff.add_argument("--contract1", help="Contract name in v1")
    p_diff.add_argument("--contract2", help="Contract name in v2 (default: same name as v1)")
    p_diff.add_argument("-f", "--format", choices=["json", "markdown", "sarif"])
    p_diff.add_argument("-o", "--output", help="Write the report to a file")
    p_diff.add_argument("--json-summary", action="store_true", help="Print a JSON summary")
    p_diff.add_argument("--slither", action="store_true", help="Load contracts through slither")
    p_diff.set_defaults(func=cmd_diff)

    p_scan = sub.add_parser("scan", help="Upgrade findings for the configured old/new sources")
    p_scan.add_argument("--old", help="Old version file or directory")
    p_scan.add_argument("--new", help="New version file or directory")
    p_scan.add_argument("-o", "--output", help="Write SARIF to a file")
    p_scan.set_defaults(func=cmd_scan)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    try:
        config = load_config(args.config)
        return args.func(args, config)
    except SlotAuditError as e:
        log.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
