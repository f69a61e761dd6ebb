"""Exceptions raised by the recording layer.

Admission rejections are never exceptions; these cover malformed input
and lookups of unknown sessions.
"""


class RecordForgeError(Exception):
    """Base class for RecordForge errors."""


class SessionNotFoundError(RecordForgeError):
    """No recording session is registered under the given id."""

    def __init__(self, session_id: str):
        super().__init__(f"Recording session not found: {session_id}")
        self.session_id = session_id


class EnvelopeDecodeError(RecordForgeError):
    """A wire envelope could not be decoded."""


class UnknownEventKindError(EnvelopeDecodeError):
    """A payload carries a type discriminant outside the known event kinds."""

    def __init__(self, kind: str):
        super().__init__(f"Unknown event type: {kind!r}")
        self.kind = kind
