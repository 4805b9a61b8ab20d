"""Heartbeat data models."""

from cyphalmon.models._base import CodeEnum
from cyphalmon.models.heartbeat import (
    HEALTH_COLORS,
    HealthColor,
    HeartbeatRecord,
    NodeHealth,
    NodeMode,
    health_color,
)

__all__ = [
    "HEALTH_COLORS",
    "CodeEnum",
    "HealthColor",
    "HeartbeatRecord",
    "NodeHealth",
    "NodeMode",
    "health_color",
]
