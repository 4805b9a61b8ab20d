"""Stateful holder for the current view state."""

from __future__ import annotations

from collections.abc import Callable

from cyphalmon.sync.protocol import SnapshotMessage
from cyphalmon.view.reducer import ViewState, reduce_snapshot, reduce_theme

RenderCallback = Callable[[ViewState], None]


class LiveView:
    """Keeps the last good view state and re-renders on change.

    ``on_snapshot`` is shaped to be bound directly as a
    :class:`cyphalmon.sync.SyncChannel` snapshot consumer.
    """

    def __init__(self, render: RenderCallback | None = None, *, state: ViewState | None = None) -> None:
        self._render = render
        self._state = state or ViewState()

    @property
    def state(self) -> ViewState:
        return self._state

    def on_snapshot(self, message: SnapshotMessage) -> None:
        self._commit(reduce_snapshot(self._state, message))

    def set_theme(self, theme_light: bool) -> None:
        self._commit(reduce_theme(self._state, theme_light))

    def toggle_theme(self) -> bool:
        """Flip the theme and return the new ``theme_light`` value."""
        self.set_theme(not self._state.theme_light)
        return self._state.theme_light

    def _commit(self, state: ViewState) -> None:
        if state is self._state:
            return
        self._state = state
        if self._render is not None:
            self._render(state)
