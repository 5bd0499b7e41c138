import logging

from slotaudit.upgrade_analyzer import analyze
from slotaudit.upgrade_safety import analyze_upgrades, findings_from_analysis, pair_contracts
from slotaudit.source_parser import parse_source

from helpers import layout

V1 = """
contract Vault {
    address public owner;
    uint256 public totalDeposits;
}
contract Helper { uint256 x; }
"""

V2_SWAPPED = """
contract Vault {
    uint256 public totalDeposits;
    address public owner;
}
"""

V2_APPENDED = """
contract Vault {
    address public owner;
    uint256 public totalDeposits;
    bool public paused;
}
"""


def _write(tmp_path, name, content):
    path = tmp_path / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_findings_from_analysis():
    v1 = layout("C", ("uint256", "a"), ("uint256", "b"))
    v2 = layout("C", ("uint256", "a"))
    analysis = analyze(v1, layout("C", ("uint256", "b"), ("uint256", "a"), ("bool", "c")))
    findings = findings_from_analysis(analysis, "src/C.sol")

    assert [(f.id, f.severity) for f in findings] == [
        ("storage-variable-moved", "critical"),
        ("storage-variable-moved", "critical"),
        ("storage-variable-added", "informational"),
    ]
    assert findings[0].title == "Storage Variable Moved: a"
    assert findings[0].contract_name == "C"
    assert findings[0].tool == "slotaudit-upgrade"
    assert findings[0].source_module == "upgrade"
    assert findings[0].suggested_fix.startswith("Moving variables breaks storage layout")
    assert findings[0].raw["type"] == "moved"

    removed = findings_from_analysis(analyze(v1, v2), "src/C.sol")
    assert [(f.id, f.severity) for f in removed] == [("storage-variable-removed", "medium")]


def test_pair_contracts_by_name():
    old = parse_source(V1)
    new = parse_source(V2_SWAPPED)
    pairs = pair_contracts(old, new)
    assert [(a.name, b.name) for a, b in pairs] == [("Vault", "Vault")]
    assert pair_contracts(old, new, name="Helper") == []


def test_analyze_upgrades_files(tmp_path):
    config = {"upgrade": {
        "old_path": _write(tmp_path, "v1/Vault.sol", V1),
        "new_path": _write(tmp_path, "v2/Vault.sol", V2_SWAPPED),
    }}
    findings = analyze_upgrades(config)

    assert [f.id for f in findings] == ["storage-variable-moved", "storage-variable-moved"]
    assert all(f.file.endswith("v2/Vault.sol") for f in findings)


def test_analyze_upgrades_directories(tmp_path):
    _write(tmp_path, "v1/src/Vault.sol", V1)
    _write(tmp_path, "v2/src/Vault.sol", V2_APPENDED)
    _write(tmp_path, "v2/lib/Vault.sol", V2_SWAPPED)
    config = {
        "contracts": {"exclude_paths": ["lib/"]},
        "upgrade": {"old_path": str(tmp_path / "v1"), "new_path": str(tmp_path / "v2")},
    }
    findings = analyze_upgrades(config)

    assert [(f.id, f.severity) for f in findings] == [("storage-variable-added", "informational")]


def test_analyze_upgrades_not_configured():
    assert analyze_upgrades({}) == []


def test_analyze_upgrades_unreadable_file(tmp_path, caplog):
    config = {"upgrade": {
        "old_path": str(tmp_path / "missing.sol"),
        "new_path": _write(tmp_path, "Vault.sol", V1),
    }}
    with caplog.at_level(logging.WARNING):
        assert analyze_upgrades(config) == []
    assert "Could not read" in caplog.text


def test_analyze_upgrades_most_severe_first(tmp_path):
    old = "contract Pool {\n    uint256 a;\n    uint128 x;\n}\n"
    new = "contract Pool {\n    uint128 x;\n    uint64 a;\n}\n"
    config = {"upgrade": {
        "old_path": _write(tmp_path, "v1/Pool.sol", old),
        "new_path": _write(tmp_path, "v2/Pool.sol", new),
    }}
    findings = analyze_upgrades(config)

    # critical changes first, in analyzer order within the same severity
    assert [(f.id, f.severity) for f in findings] == [
        ("storage-collision", "critical"),
        ("storage-variable-moved", "critical"),
        ("storage-type-changed", "critical"),
        ("storage-variable-removed", "medium"),
        ("storage-variable-added", "informational"),
    ]
