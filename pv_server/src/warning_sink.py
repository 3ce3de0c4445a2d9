"""
Append-only in-memory store for detector warnings.

The session engine appends warnings as detectors raise them; readers get
copies, either as TelemetryWarning records or as the formatted strings
returned to clients. The sink is cleared only when the owner asks for it
(at session start under the default reset policy).

CHANGELOG:
- 2026-10-12: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

from pv_server.src.models import TelemetryWarning


class WarningSink:
    """Ordered, append-only collection of warnings.

    Not thread-safe on its own; the session engine serialises access.
    """

    def __init__(self) -> None:
        self._entries: list[TelemetryWarning] = []

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, warning: TelemetryWarning) -> None:
        self._entries.append(warning)

    def entries(self) -> list[TelemetryWarning]:
        """Return a copy of the stored warnings, oldest first."""
        return list(self._entries)

    def formatted(self) -> list[str]:
        """Return the stored warnings as ``[<Type>] Row <n>: <message>`` lines."""
        return [w.format() for w in self._entries]

    def clear(self) -> None:
        self._entries.clear()
