"""View layer: render state derived from sync snapshots."""

from cyphalmon.view.live import LiveView
from cyphalmon.view.reducer import RowState, ViewState, reduce_snapshot, reduce_theme

__all__ = ["LiveView", "RowState", "ViewState", "reduce_snapshot", "reduce_theme"]
