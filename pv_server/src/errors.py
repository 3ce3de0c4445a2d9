"""
Exceptions raised inside the session engine.

The engine signals expected failure conditions by raising these; the
service facade converts each one into a structured result with the matching
ErrorKind so nothing escapes the transport boundary.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

from pv_server.src.models import ErrorKind


class SessionError(Exception):
    """Base class for engine failures that map onto an ErrorKind."""

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR


class InvalidInputError(SessionError):
    """A required argument (meta or sample) was missing."""

    kind = ErrorKind.INVALID_INPUT


class ProtocolViolationError(SessionError):
    """The operation is not allowed in the current session state."""

    kind = ErrorKind.PROTOCOL_VIOLATION


class StorageError(SessionError):
    """A session log could not be opened, written, or closed."""

    kind = ErrorKind.STORAGE_FAILURE
