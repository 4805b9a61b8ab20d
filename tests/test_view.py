from __future__ import annotations

from cyphalmon.models.heartbeat import HealthColor, HeartbeatRecord, NodeHealth, NodeMode, health_color
from cyphalmon.state.registry import NodeRegistry
from cyphalmon.sync.protocol import SnapshotMessage, build_snapshot
from cyphalmon.view.console import render_table
from cyphalmon.view.live import LiveView
from cyphalmon.view.reducer import ViewState, reduce_snapshot, reduce_theme


def _snapshot(registry: NodeRegistry, node_id: int, **fields: object) -> SnapshotMessage:
    values: dict[str, object] = {
        "source_node_id": node_id,
        "transfer_id": 3,
        "priority": "nominal",
        "uptime": 120,
        "health": 0,
        "mode": 0,
        "vendor_specific_status_code": 0,
        "ts_system": 100,
        "ts_monotonic": 50,
    }
    values.update(fields)
    registry.upsert(HeartbeatRecord.model_validate(values))
    return build_snapshot(registry.snapshot())


class TestCodeMapping:
    def test_known_codes(self) -> None:
        assert [NodeHealth(code).name for code in range(4)] == ["NOMINAL", "ADVISORY", "CAUTION", "WARNING"]
        assert [health_color(code) for code in range(4)] == [
            HealthColor.GREEN,
            HealthColor.AMBER,
            HealthColor.ORANGE,
            HealthColor.RED,
        ]
        assert [NodeMode(code).name for code in range(4)] == [
            "OPERATIONAL",
            "INITIALIZATION",
            "MAINTENANCE",
            "SOFTWARE_UPDATE",
        ]

    def test_unknown_codes_fall_back(self) -> None:
        assert NodeHealth(7) == NodeHealth.WARNING
        assert health_color(7) == HealthColor.RED
        assert NodeMode(9) == NodeMode.SOFTWARE_UPDATE


def test_new_rows_are_appended_with_derived_labels() -> None:
    registry = NodeRegistry()
    state = reduce_snapshot(ViewState(), _snapshot(registry, 11, health=7, mode=9))

    (row,) = state.rows
    assert row.key == 0
    assert row.source == 11
    assert row.priority == "NOMINAL"
    assert row.health_label == "WARNING"
    assert row.health_color == HealthColor.RED
    assert row.mode_label == "SOFTWARE_UPDATE"


def test_existing_row_is_updated_in_place() -> None:
    registry = NodeRegistry()
    state = reduce_snapshot(ViewState(), _snapshot(registry, 11))
    state = reduce_snapshot(state, _snapshot(registry, 11, uptime=125, health=2))

    (row,) = state.rows
    assert row.key == 0
    assert row.uptime == 125
    assert row.health_label == "CAUTION"
    assert row.health_color == HealthColor.ORANGE


def test_rows_follow_insertion_order() -> None:
    registry = NodeRegistry()
    state = ViewState()
    for node_id in (11, 42, 11, 7):
        state = reduce_snapshot(state, _snapshot(registry, node_id))

    assert [row.source for row in state.rows] == [11, 42, 7]
    assert [row.key for row in state.rows] == [0, 1, 2]


def test_rows_are_never_deleted_by_a_shorter_snapshot() -> None:
    registry = NodeRegistry()
    _snapshot(registry, 1)
    state = reduce_snapshot(ViewState(), _snapshot(registry, 2))

    state = reduce_snapshot(state, SnapshotMessage())

    assert [row.source for row in state.rows] == [1, 2]


def test_malformed_snapshot_keeps_last_good_state() -> None:
    registry = NodeRegistry()
    good = reduce_snapshot(ViewState(), _snapshot(registry, 1))
    broken = SnapshotMessage(source=(1, 2), health=(0,))

    assert reduce_snapshot(good, broken) is good


def test_unchanged_snapshot_returns_same_state() -> None:
    registry = NodeRegistry()
    message = _snapshot(registry, 1)
    state = reduce_snapshot(ViewState(), message)

    assert reduce_snapshot(state, message) is state


def test_theme_applies_to_existing_and_future_rows() -> None:
    registry = NodeRegistry()
    state = reduce_snapshot(ViewState(), _snapshot(registry, 1))

    state = reduce_theme(state, True)
    assert state.theme_light
    assert all(row.light for row in state.rows)

    state = reduce_snapshot(state, _snapshot(registry, 2))
    assert [row.light for row in state.rows] == [True, True]

    state = reduce_theme(state, False)
    assert not any(row.light for row in state.rows)


def test_live_view_renders_only_on_change() -> None:
    renders: list[ViewState] = []
    view = LiveView(render=renders.append)
    registry = NodeRegistry()
    message = _snapshot(registry, 1)

    view.on_snapshot(message)
    view.on_snapshot(message)
    assert len(renders) == 1

    assert view.toggle_theme() is True
    assert len(renders) == 2
    assert view.state.rows[0].light


def test_render_table_lists_rows_in_column_order() -> None:
    registry = NodeRegistry()
    _snapshot(registry, 11)
    state = reduce_snapshot(ViewState(), _snapshot(registry, 42, health=1, mode=2))

    lines = render_table(state).splitlines()

    assert lines[0].split() == [
        "source_node_id",
        "transfer_id",
        "priority",
        "uptime",
        "health",
        "mode",
        "vendor_specific_status_code",
        "ts_system",
        "ts_monotonic",
    ]
    assert lines[2].split() == ["11", "3", "NOMINAL", "120", "NOMINAL", "OPERATIONAL", "0", "100", "50"]
    assert lines[3].split() == ["42", "3", "NOMINAL", "120", "ADVISORY", "MAINTENANCE", "0", "100", "50"]
