"""Base enum for Cyphal status codes.

Heartbeat codes are small integers with a documented domain. Nodes can
still publish values outside of it, so every status enum names a
fallback member and a ``_missing_`` hook resolves unmapped codes to it
instead of raising ``ValueError``.
"""

from __future__ import annotations

import enum


class CodeEnum(enum.IntEnum):
    """Base for heartbeat status enums.

    Subclasses override :meth:`_fallback`; without an override the
    highest-valued member is used.
    """

    @classmethod
    def _fallback(cls) -> CodeEnum:
        return max(cls)

    @classmethod
    def _missing_(cls, value: object) -> CodeEnum:
        return cls._fallback()

