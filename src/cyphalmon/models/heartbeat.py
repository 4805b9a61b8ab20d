"""Heartbeat record model.

Field meanings follow ``uavcan.node.Heartbeat.1.0`` as emitted by
``yakut sub --with-metadata``.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator

from cyphalmon.models._base import CodeEnum

# ------------------------------------------------------------------
# Enums
# ------------------------------------------------------------------


class NodeHealth(CodeEnum):
    """Node health as reported in the heartbeat.

    Codes outside ``0..3`` are shown as ``WARNING``.
    """

    NOMINAL = 0
    ADVISORY = 1
    CAUTION = 2
    WARNING = 3

    @classmethod
    def _fallback(cls) -> NodeHealth:
        return cls.WARNING


class NodeMode(CodeEnum):
    """Node operating mode.

    Codes outside ``0..3`` are shown as ``SOFTWARE_UPDATE``.
    """

    OPERATIONAL = 0
    INITIALIZATION = 1
    MAINTENANCE = 2
    SOFTWARE_UPDATE = 3

    @classmethod
    def _fallback(cls) -> NodeMode:
        return cls.SOFTWARE_UPDATE


class HealthColor(StrEnum):
    """Cell color for a health value."""

    GREEN = "green"
    AMBER = "amber"
    ORANGE = "orange"
    RED = "red"


HEALTH_COLORS: dict[NodeHealth, HealthColor] = {
    NodeHealth.NOMINAL: HealthColor.GREEN,
    NodeHealth.ADVISORY: HealthColor.AMBER,
    NodeHealth.CAUTION: HealthColor.ORANGE,
    NodeHealth.WARNING: HealthColor.RED,
}


def health_color(code: int | None) -> HealthColor:
    """Return the cell color for a raw health code."""
    return HEALTH_COLORS[NodeHealth(code)]


# ------------------------------------------------------------------
# Record
# ------------------------------------------------------------------


class HeartbeatRecord(BaseModel):
    """One decoded heartbeat.

    Parameters
    ----------
    source_node_id : int
        Node identity. The registry keys on this value.
    transfer_id : int or None
        Cyphal transfer id of the message.
    priority : str or None
        Transfer priority, upper-cased (e.g. ``"NOMINAL"``).
    uptime : int or None
        Node uptime in seconds.
    health : int
        Raw health code, expected ``0..3``.
    mode : int
        Raw mode code, expected ``0..3``.
    vendor_specific_status_code : int or None
        Opaque vendor status.
    ts_system : int or float or None
        Wall-clock reception timestamp.
    ts_monotonic : int or float or None
        Monotonic reception timestamp.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    source_node_id: int
    transfer_id: int | None = None
    priority: str | None = None
    uptime: int | None = None
    health: int
    mode: int
    vendor_specific_status_code: int | None = None
    ts_system: int | float | None = None
    ts_monotonic: int | float | None = None

    @field_validator("priority", mode="before")
    @classmethod
    def _upper_priority(cls, value: object) -> object:
        if isinstance(value, str):
            return value.upper()
        return value

    @property
    def health_state(self) -> NodeHealth:
        return NodeHealth(self.health)

    @property
    def mode_state(self) -> NodeMode:
        return NodeMode(self.mode)
