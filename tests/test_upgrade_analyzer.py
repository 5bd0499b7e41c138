import json

from slotaudit.upgrade_analyzer import analyze

from helpers import layout


def test_identical_versions():
    m = layout("Token", ("address", "owner"), ("uint256", "supply"))
    analysis = analyze(m, m)

    assert analysis.changes == []
    assert analysis.compatibility.score == 100
    assert analysis.compatibility.level == "safe"
    assert analysis.recommendations == ["Upgrade appears safe. All new variables added at the end."]
    assert analysis.collision_report.safe


def test_appended_variable():
    v1 = layout("C", ("address", "owner"), ("uint256", "value"))
    v2 = layout("C", ("address", "owner"), ("uint256", "value"), ("uint256", "newVar"))
    analysis = analyze(v1, v2)

    assert [(c.kind, c.severity) for c in analysis.changes] == [("added", "safe")]
    assert analysis.changes[0].description == 'New variable "newVar" added at slot 2'
    assert analysis.compatibility.score == 100
    assert analysis.compatibility.level == "safe"
    assert not analysis.has_critical


def test_swapped_variables():
    v1 = layout("C", ("address", "owner"), ("uint256", "value"))
    v2 = layout("C", ("uint256", "value"), ("address", "owner"))
    analysis = analyze(v1, v2)

    assert [c.kind for c in analysis.changes] == ["moved", "moved"]
    moved_owner = analysis.changes[0]
    assert moved_owner.old_variable.slot == 0
    assert moved_owner.variable.slot == 1
    assert moved_owner.description == 'Variable "owner" moved from slot 0 to slot 1'
    assert analysis.compatibility.score == 20
    assert analysis.compatibility.level == "critical"
    assert analysis.recommendations[0].startswith("CRITICAL: Do not deploy this upgrade. 2 critical")
    assert analysis.has_critical


def test_type_change_in_place_is_reported_twice():
    v1 = layout("C", ("uint256", "x"))
    v2 = layout("C", ("int256", "x"))
    analysis = analyze(v1, v2)

    assert [c.kind for c in analysis.changes] == ["collision", "removed", "added", "typeChanged"]
    type_changed = analysis.changes[-1]
    assert type_changed.severity == "critical"
    assert type_changed.old_variable.type == "uint256"
    assert type_changed.variable.type == "int256"
    # two critical, one warning
    assert analysis.compatibility.score == 5
    assert analysis.compatibility.level == "critical"


def test_type_change_detected_by_name_even_after_move():
    v1 = layout("C", ("uint256", "a"), ("uint128", "x"))
    v2 = layout("C", ("uint128", "x"), ("uint64", "a"))
    analysis = analyze(v1, v2)

    type_changes = [c for c in analysis.changes if c.kind == "typeChanged"]
    assert [(c.variable.name, c.old_variable.type, c.variable.type) for c in type_changes] == [
        ("a", "uint256", "uint64"),
    ]
    assert [v.name for v in analysis.collision_report.moved] == ["x"]


def test_removed_variables_scale_warning_level():
    base = [("uint256", n) for n in ("a", "b", "c", "d")]
    one_removed = analyze(layout("C", *base), layout("C", *base[:3]))
    three_removed = analyze(layout("C", *base), layout("C", *base[:1]))

    assert one_removed.compatibility.score == 85
    assert one_removed.compatibility.level == "caution"
    assert one_removed.recommendations == ["1 warning(s) detected. Test thoroughly before deployment."]

    assert three_removed.compatibility.score == 55
    assert three_removed.compatibility.level == "unsafe"


def test_score_clamped_at_zero():
    names = [f"v{i}" for i in range(4)]
    v1 = layout("C", *[("uint256", n) for n in names])
    v2 = layout("C", *[("uint256", n) for n in reversed(names)])
    analysis = analyze(v1, v2)

    assert len(analysis.changes) == 4
    assert analysis.compatibility.score == 0


def test_storage_growth_and_efficiency_recommendation():
    v1 = layout("C", ("uint256", "a"))
    v2 = layout("C", ("uint256", "a"), ("address", "b"))
    analysis = analyze(v1, v2)

    growth = analysis.storage_growth
    assert growth.slots_added == 1
    assert growth.bytes_wasted == 12
    assert growth.efficiency_change == -18.75
    assert analysis.recommendations == [
        "Storage efficiency decreased by 19%. Consider variable reordering."
    ]


def test_large_slot_growth_recommendation():
    v1 = layout("C", ("uint256", "a"))
    v2 = layout("C", ("uint256", "a"), *[("uint256", f"n{i}") for i in range(6)])
    analysis = analyze(v1, v2)

    assert analysis.storage_growth.slots_added == 6
    assert analysis.storage_growth.efficiency_change == 0.0
    assert analysis.recommendations == [
        "Storage grew by 6 slots. Consider gas cost implications for users."
    ]


def test_empty_versions():
    analysis = analyze(layout("Empty"), layout("Empty"))

    assert analysis.compatibility.score == 100
    assert analysis.storage_growth.slots_added == 0
    assert analysis.storage_growth.bytes_wasted == 0
    assert analysis.storage_growth.efficiency_change == 0.0


def test_config_overrides_penalties():
    v1 = layout("C", ("address", "owner"), ("uint256", "value"))
    v2 = layout("C", ("uint256", "value"), ("address", "owner"))
    analysis = analyze(v1, v2, {"upgrade": {"critical_penalty": 10}})

    assert analysis.compatibility.score == 80


def test_summaries():
    v1 = layout("C", ("address", "owner"), ("bool", "paused"))
    v2 = layout("C", ("address", "owner"), ("bool", "paused"), ("uint256", "fee"))
    analysis = analyze(v1, v2)

    assert analysis.contract_name == "C"
    assert (analysis.v1_summary.total_slots, analysis.v1_summary.variables, analysis.v1_summary.packed_slots) == (1, 2, 1)
    assert (analysis.v2_summary.total_slots, analysis.v2_summary.variables, analysis.v2_summary.packed_slots) == (2, 3, 1)


def test_serialization():
    v1 = layout("C", ("address", "owner"), ("uint256", "value"))
    v2 = layout("C", ("uint256", "value"), ("address", "owner"))
    data = json.loads(json.dumps(analyze(v1, v2).to_dict()))

    assert set(data) == {
        "contractName", "v1Summary", "v2Summary", "changes", "compatibility",
        "recommendations", "collisionReport", "storageGrowth",
    }
    assert data["changes"][0]["type"] == "moved"
    assert data["changes"][0]["oldVariable"]["slot"] == 0
    assert data["changes"][0]["variable"]["isStateVariable"] is True
    assert data["collisionReport"]["safe"] is False
    assert data["storageGrowth"] == {"slotsAdded": 0, "bytesWasted": 0, "efficiencyChange": 0.0}
    assert data["v1Summary"] == {"totalSlots": 2, "variables": 2, "packedSlots": 0}


def test_analysis_is_deterministic():
    v1 = layout("C", ("address", "a"), ("uint256", "b"), ("bool", "c"))
    v2 = layout("C", ("bool", "c"), ("uint128", "b"), ("address", "d"))
    assert analyze(v1, v2).to_dict() == analyze(v1, v2).to_dict()
