"""Sync channel message schema.

A snapshot is the full registry serialized as index-aligned field
arrays, one slot per node in insertion order. It is always sent whole,
never as a diff. Wire keys are the ones the node GUI webview
expects (``sourceList``, ``healthList``, ...).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cyphalmon.exceptions import ProtocolViolation
from cyphalmon.state.registry import NodeRegistryEntry

Scalar = int | float | str | None


class SnapshotMessage(BaseModel):
    """Full registry snapshot as nine parallel arrays."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    source: tuple[Scalar, ...] = Field(default=(), alias="sourceList")
    transfer: tuple[Scalar, ...] = Field(default=(), alias="transferList")
    priority: tuple[Scalar, ...] = Field(default=(), alias="priorityList")
    uptime: tuple[Scalar, ...] = Field(default=(), alias="uptimeList")
    health: tuple[Scalar, ...] = Field(default=(), alias="healthList")
    mode: tuple[Scalar, ...] = Field(default=(), alias="modeList")
    vendor_status: tuple[Scalar, ...] = Field(default=(), alias="vsscList")
    system_ts: tuple[Scalar, ...] = Field(default=(), alias="systemList")
    monotonic_ts: tuple[Scalar, ...] = Field(default=(), alias="monotonicList")

    def columns(self) -> dict[str, tuple[Scalar, ...]]:
        return {name: getattr(self, name) for name in type(self).model_fields}

    def row_count(self) -> int:
        """Return the number of nodes in the snapshot.

        Raises
        ------
        ProtocolViolation
            If the arrays do not all have the same length.
        """
        lengths = {name: len(values) for name, values in self.columns().items()}
        distinct = set(lengths.values())
        if len(distinct) > 1:
            raise ProtocolViolation(f"Snapshot arrays have mismatched lengths: {lengths}")
        return distinct.pop() if distinct else 0

    def to_wire(self) -> dict[str, list[Scalar]]:
        return {key: list(values) for key, values in self.model_dump(by_alias=True).items()}

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> SnapshotMessage:
        """Parse and shape-check a wire payload.

        Raises
        ------
        ProtocolViolation
            If the payload does not validate or its arrays differ in length.
        """
        try:
            message = cls.model_validate(payload)
        except ValidationError as exc:
            raise ProtocolViolation(f"Invalid snapshot payload: {exc}") from exc
        message.row_count()
        return message


def build_snapshot(entries: Iterable[NodeRegistryEntry]) -> SnapshotMessage:
    """Serialize registry entries, assumed to be in insertion order."""
    records = [entry.record for entry in entries]
    return SnapshotMessage(
        source=tuple(record.source_node_id for record in records),
        transfer=tuple(record.transfer_id for record in records),
        priority=tuple(record.priority for record in records),
        uptime=tuple(record.uptime for record in records),
        health=tuple(record.health for record in records),
        mode=tuple(record.mode for record in records),
        vendor_status=tuple(record.vendor_specific_status_code for record in records),
        system_ts=tuple(record.ts_system for record in records),
        monotonic_ts=tuple(record.ts_monotonic for record in records),
    )


class IntentCommand(StrEnum):
    TOGGLED = "Toggled"
    INTERFACE_RECEIVED = "InterfaceReceived"


class IntentMessage(BaseModel):
    """A UI-intent event sent from the view to the core.

    ``Toggled`` carries no payload. ``InterfaceReceived`` carries the
    submitted network interface in ``text``.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    command: IntentCommand
    text: str | None = None

    def to_wire(self) -> dict[str, str]:
        return self.model_dump(mode="json", exclude_none=True)


def parse_intent(payload: Mapping[str, Any]) -> IntentMessage:
    """Parse a view-to-core message.

    Raises
    ------
    ProtocolViolation
        For unknown commands, or an interface submission without text.
    """
    try:
        intent = IntentMessage.model_validate(payload)
    except ValidationError as exc:
        raise ProtocolViolation(f"Invalid intent payload: {exc}") from exc
    if intent.command == IntentCommand.INTERFACE_RECEIVED and not (intent.text or "").strip():
        raise ProtocolViolation("InterfaceReceived requires a non-empty interface")
    return intent
