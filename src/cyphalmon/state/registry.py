"""Deterministic in-memory node registry.

This is the only component allowed to merge decoded heartbeats. Identity
is the source node id, not message arrival: the registry holds exactly
one entry per node, refreshed in place, never a log of raw events.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field

from cyphalmon.models.heartbeat import HeartbeatRecord

_logger = logging.getLogger(__name__)


class NodeRegistryEntry(BaseModel):
    """Latest heartbeat of one node and its first-seen position."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    insertion_order: int = Field(..., ge=0, frozen=True)
    record: HeartbeatRecord

    @property
    def node_id(self) -> int:
        return self.record.source_node_id


class NodeRegistry:
    """Upsert store keyed by source node id.

    Given the same sequence of records the registry produces the same
    snapshots. Entries are only removed by :meth:`reset`, and the
    insertion counter is never reused within a session.
    """

    def __init__(self) -> None:
        self._entries: dict[int, NodeRegistryEntry] = {}
        self._next_order = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._entries

    def upsert(self, record: HeartbeatRecord) -> NodeRegistryEntry:
        """Insert a node on first sight, otherwise overwrite its record.

        Returns a copy of the stored entry.
        """
        entry = self._entries.get(record.source_node_id)
        if entry is None:
            entry = NodeRegistryEntry(insertion_order=self._next_order, record=record)
            self._entries[record.source_node_id] = entry
            self._next_order += 1
            _logger.debug(
                "Registered node id=%s insertion_order=%s",
                record.source_node_id,
                entry.insertion_order,
            )
        else:
            entry.record = record
        return entry.model_copy()

    def get(self, node_id: int) -> NodeRegistryEntry | None:
        entry = self._entries.get(node_id)
        return entry.model_copy() if entry is not None else None

    def snapshot(self) -> list[NodeRegistryEntry]:
        """Return every entry ordered by ascending ``insertion_order``.

        This order is the sole authority for display order and does not
        depend on how recently a node was updated.
        """
        ordered = sorted(self._entries.values(), key=lambda entry: entry.insertion_order)
        return [entry.model_copy() for entry in ordered]

    def reset(self) -> None:
        """Drop all entries and restart the insertion counter."""
        self._entries.clear()
        self._next_order = 0
