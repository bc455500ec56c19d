"""Exceptions raised by the native host."""


class HostError(Exception):
    """Base class for all native host errors."""


class PeerDisconnected(HostError):
    """The browser closed its end of the stream."""


class MessageTooLarge(HostError):
    """A frame exceeds the maximum allowed message size."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"message size {size} exceeds maximum allowed size of {limit}")
        self.size = size
        self.limit = limit


class DecodeFailure(HostError):
    """Malformed JSON on the wire or malformed plist content on disk."""


class IOFailure(HostError):
    """A file or stream operation failed."""


class StructureMismatch(HostError):
    """A document value is not of the variant an operation expects."""


class MissingParameter(HostError):
    """A required request field is absent or has the wrong type."""
