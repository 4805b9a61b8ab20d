"""Live view reducer.

Pure functions from ``(previous view state, input)`` to the next view
state, independent of the rendering technology. Rows are keyed by the
node's insertion-order index; they are updated in place or appended,
never deleted.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict

from cyphalmon.exceptions import ProtocolViolation
from cyphalmon.models.heartbeat import HealthColor, NodeHealth, NodeMode, health_color
from cyphalmon.sync.protocol import Scalar, SnapshotMessage

_logger = logging.getLogger(__name__)


class RowState(BaseModel):
    """Render state of one table row."""

    model_config = ConfigDict(frozen=True)

    key: int
    source: Scalar
    transfer: Scalar
    priority: Scalar
    uptime: Scalar
    health_label: str
    health_color: HealthColor
    mode_label: str
    vendor_status: Scalar
    system_ts: Scalar
    monotonic_ts: Scalar
    light: bool = False


class ViewState(BaseModel):
    model_config = ConfigDict(frozen=True)

    rows: tuple[RowState, ...] = ()
    theme_light: bool = False


def _code(value: Scalar) -> int | None:
    if isinstance(value, int):
        return value
    return None


def _build_row(index: int, snapshot: SnapshotMessage, *, light: bool) -> RowState:
    health = _code(snapshot.health[index])
    mode = _code(snapshot.mode[index])
    return RowState(
        key=index,
        source=snapshot.source[index],
        transfer=snapshot.transfer[index],
        priority=snapshot.priority[index],
        uptime=snapshot.uptime[index],
        health_label=NodeHealth(health).name,
        health_color=health_color(health),
        mode_label=NodeMode(mode).name,
        vendor_status=snapshot.vendor_status[index],
        system_ts=snapshot.system_ts[index],
        monotonic_ts=snapshot.monotonic_ts[index],
        light=light,
    )


def reduce_snapshot(previous: ViewState, snapshot: SnapshotMessage) -> ViewState:
    """Apply a snapshot to the view state.

    A snapshot whose arrays differ in length is rejected as a whole and
    *previous* is returned unchanged.
    """
    try:
        count = snapshot.row_count()
    except ProtocolViolation as exc:
        _logger.warning("Rejected snapshot: %s", exc)
        return previous

    rows = list(previous.rows)
    positions = {row.key: position for position, row in enumerate(rows)}
    for index in range(count):
        row = _build_row(index, snapshot, light=previous.theme_light)
        position = positions.get(index)
        if position is None:
            positions[index] = len(rows)
            rows.append(row)
        else:
            rows[position] = row

    next_rows = tuple(rows)
    if next_rows == previous.rows:
        return previous
    return ViewState(rows=next_rows, theme_light=previous.theme_light)


def reduce_theme(previous: ViewState, theme_light: bool) -> ViewState:
    """Apply a theme to every rendered row and to rows rendered later."""
    if previous.theme_light == theme_light and all(row.light == theme_light for row in previous.rows):
        return previous
    rows = tuple(row.model_copy(update={"light": theme_light}) for row in previous.rows)
    return ViewState(rows=rows, theme_light=theme_light)
