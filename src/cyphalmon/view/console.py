"""Plain-text table renderer used by ``cyphalmon watch``."""

from __future__ import annotations

from cyphalmon.view.reducer import RowState, ViewState

COLUMNS: tuple[str, ...] = (
    "source_node_id",
    "transfer_id",
    "priority",
    "uptime",
    "health",
    "mode",
    "vendor_specific_status_code",
    "ts_system",
    "ts_monotonic",
)


def _cell(value: object) -> str:
    return "" if value is None else str(value)


def _cells(row: RowState) -> list[str]:
    return [
        _cell(row.source),
        _cell(row.transfer),
        _cell(row.priority),
        _cell(row.uptime),
        row.health_label,
        row.mode_label,
        _cell(row.vendor_status),
        _cell(row.system_ts),
        _cell(row.monotonic_ts),
    ]


def render_table(state: ViewState) -> str:
    """Format *state* as a fixed-width table in display order."""
    body = [_cells(row) for row in state.rows]
    widths = [len(name) for name in COLUMNS]
    for cells in body:
        widths = [max(width, len(cell)) for width, cell in zip(widths, cells, strict=True)]

    def line(cells: list[str] | tuple[str, ...]) -> str:
        return "  ".join(cell.ljust(width) for cell, width in zip(cells, widths, strict=True)).rstrip()

    lines = [line(COLUMNS), line(tuple("-" * width for width in widths))]
    lines.extend(line(cells) for cells in body)
    return "\n".join(lines)
