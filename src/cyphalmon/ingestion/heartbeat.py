"""Heartbeat decoding.

The acquisition process prints one JSON object per heartbeat, keyed by
the subject/message-type identifier::

    {"7509": {"_meta_": {"ts_system": 1700000000.5, "ts_monotonic": 512.25,
                         "source_node_id": 11, "transfer_id": 3,
                         "priority": "nominal"},
              "uptime": 120, "health": {"value": 0}, "mode": {"value": 0},
              "vendor_specific_status_code": 0}}

Decoding is pure: no state is retained between calls.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cyphalmon.exceptions import DecodeError
from cyphalmon.ingestion.normalize import safe_int, safe_number, safe_str
from cyphalmon.models.heartbeat import HeartbeatRecord

_logger = logging.getLogger(__name__)

_META_KEY = "_meta_"


class _HeartbeatMeta(BaseModel):
    """Transfer metadata block added by ``--with-metadata``."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    source_node_id: int
    transfer_id: int | None = None
    priority: str | None = None
    ts_system: int | float | None = None
    ts_monotonic: int | float | None = None

    @field_validator("transfer_id", mode="before")
    @classmethod
    def _coerce_transfer_id(cls, value: Any) -> int | None:
        return safe_int(value)

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("ts_system", "ts_monotonic", mode="before")
    @classmethod
    def _coerce_timestamps(cls, value: Any) -> int | float | None:
        return safe_number(value)


class _CodeValue(BaseModel):
    """DSDL enum wrapper, e.g. ``{"value": 2}``."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    value: int


class _HeartbeatBody(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    meta: _HeartbeatMeta = Field(..., validation_alias=_META_KEY)
    uptime: int | None = None
    health: _CodeValue
    mode: _CodeValue
    vendor_specific_status_code: int | None = None

    @field_validator("uptime", "vendor_specific_status_code", mode="before")
    @classmethod
    def _coerce_optional_ints(cls, value: Any) -> int | None:
        return safe_int(value)


def _load(raw: str | bytes | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(raw, Mapping):
        return raw
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    try:
        parsed = json.loads(raw)
    except ValueError as exc:
        raise DecodeError(f"Heartbeat is not valid JSON: {exc}", raw=raw) from exc
    if not isinstance(parsed, dict):
        raise DecodeError("Heartbeat is not a JSON object", raw=raw)
    return parsed


def _describe(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location or 'message'}: {first.get('msg', 'invalid')}"


def decode_heartbeat(raw: str | bytes | Mapping[str, Any]) -> HeartbeatRecord:
    """Decode one heartbeat message.

    Parameters
    ----------
    raw
        A JSON line as printed by the acquisition process, or the already
        parsed object.

    Raises
    ------
    DecodeError
        If the line is not a JSON object, the message body or its
        ``_meta_`` envelope is missing, ``source_node_id`` is absent, or
        health/mode are not numeric.
    """
    parsed = _load(raw)
    if not parsed:
        raise DecodeError("Heartbeat object is empty", raw=raw)

    # The single top-level key is the message type identifier.
    body = next(iter(parsed.values()))
    if not isinstance(body, Mapping):
        raise DecodeError("Heartbeat body is not an object", raw=raw)

    meta = body.get(_META_KEY)
    if not isinstance(meta, Mapping):
        raise DecodeError("Heartbeat is missing its metadata envelope", raw=raw)
    if meta.get("source_node_id") is None:
        raise DecodeError("Heartbeat metadata has no source_node_id", raw=raw)

    try:
        decoded = _HeartbeatBody.model_validate(body)
    except ValidationError as exc:
        raise DecodeError(f"Malformed heartbeat ({_describe(exc)})", raw=raw) from exc

    return HeartbeatRecord(
        source_node_id=decoded.meta.source_node_id,
        transfer_id=decoded.meta.transfer_id,
        priority=decoded.meta.priority,
        uptime=decoded.uptime,
        health=decoded.health.value,
        mode=decoded.mode.value,
        vendor_specific_status_code=decoded.vendor_specific_status_code,
        ts_system=decoded.meta.ts_system,
        ts_monotonic=decoded.meta.ts_monotonic,
    )


def iter_heartbeats(lines: Iterable[str | bytes]) -> Iterator[HeartbeatRecord]:
    """Decode a stream of lines, skipping blank and malformed ones."""
    for line in lines:
        text = line.decode("utf-8", errors="replace") if isinstance(line, bytes) else line
        if not text.strip():
            continue
        try:
            yield decode_heartbeat(text)
        except DecodeError as exc:
            _logger.debug("Skipping undecodable heartbeat line: %s", exc)
