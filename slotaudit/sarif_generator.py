"""
slotaudit - SARIF Output Generator
Converts storage layout findings to SARIF v2.1.0 for GitHub Security Tab integration.
"""

import json
from datetime import datetime, timezone
from pathlib import Path

from . import __version__
from .models import AuditReport, Finding


SARIF_SCHEMA = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/main/sarif-2.1/schema/sarif-schema-2.1.0.json"
SARIF_VERSION = "2.1.0"

SEVERITY_TO_SARIF_LEVEL = {
    "critical": "error",
    "high": "error",
    "medium": "warning",
    "low": "note",
    "informational": "note",
}

SEVERITY_TO_SECURITY_SEVERITY = {
    "critical": "9.5",
    "high": "8.0",
    "medium": "5.5",
    "low": "3.0",
    "informational": "1.0",
}


def _build_rule(finding: Finding) -> dict:
    """Build a SARIF reporting descriptor (rule) from a finding."""
    short = finding.title.split(":", 1)[0]
    rule: dict = {
        "id": finding.id,
        "name": short.replace(" ", ""),
        "shortDescription": {"text": short},
        "properties": {
            "tags": ["storage-layout", "upgradeability", "smart-contract"],
            "security-severity": SEVERITY_TO_SECURITY_SEVERITY.get(
                finding.severity.lower(), "3.0"
            ),
        },
    }
    if finding.suggested_fix:
        rule["help"] = {
            "text": finding.suggested_fix,
            "markdown": f"**Fix:** {finding.suggested_fix}",
        }
    return rule


def _build_result(finding: Finding, rule_index: int) -> dict:
    """Build a SARIF result from a finding."""
    level = SEVERITY_TO_SARIF_LEVEL.get(finding.severity.lower(), "note")

    message_parts = [finding.title]
    if finding.description:
        message_parts.append(finding.description)

    result: dict = {
        "ruleId": finding.id,
        "ruleIndex": rule_index,
        "level": level,
        "message": {"text": " - ".join(message_parts)},
        "locations": [
            {
                "physicalLocation": {
                    "artifactLocation": {
                        "uri": finding.file,
                        "uriBaseId": "%SRCROOT%",
                    },
                    "region": {
                        "startLine": max(finding.line, 1),
                    },
                },
                "logicalLocations": [
                    {"name": finding.contract_name, "kind": "type"},
                ],
            }
        ],
        "properties": {
            "severity": finding.severity,
            "tool": finding.tool,
            "contract": finding.contract_name,
        },
        # Fingerprint for deduplication
        "fingerprints": {
            "slotaudit/v1": finding.dedup_key(),
        },
    }
    if finding.raw:
        result["properties"]["change"] = finding.raw

    return result


def generate_sarif(report: AuditReport) -> str:
    """Generate SARIF v2.1.0 JSON string from a report."""
    # Build rules (deduplicated by rule ID)
    rule_map: dict[str, int] = {}
    rules: list[dict] = []
    for finding in report.findings:
        if finding.id not in rule_map:
            rule_map[finding.id] = len(rules)
            rules.append(_build_rule(finding))

    results = [_build_result(f, rule_map[f.id]) for f in report.findings]

    sarif = {
        "$schema": SARIF_SCHEMA,
        "version": SARIF_VERSION,
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": "slotaudit",
                        "semanticVersion": __version__,
                        "rules": rules,
                    }
                },
                "results": results,
                "invocations": [
                    {
                        "executionSuccessful": True,
                        "endTimeUtc": datetime.now(timezone.utc).isoformat(),
                    }
                ],
                "properties": {
                    "toolsRun": report.tools_run,
                    "totalFindings": report.total,
                    "severityCounts": report.severity_counts(),
                },
            }
        ],
    }

    return json.dumps(sarif, indent=2)


def save_sarif(report: AuditReport, output_path: str = "results/slotaudit.sarif") -> str:
    """Generate and save SARIF report to file. Returns the file path."""
    sarif_json = generate_sarif(report)
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(sarif_json, encoding="utf-8")
    return str(path)
