class ChainMirrorError(Exception):
    """Base class for all errors raised by the mirror"""


class TransportError(ChainMirrorError):
    """Connection refused, socket dropped or subscription rejected by the node"""

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        self.reason = reason


class DecodeError(ChainMirrorError):
    """Call data does not match any function of the stored ABI"""


class NotFoundError(ChainMirrorError):
    """An expected resource (artifact file, contract, ABI) is absent"""


class MalformedInputError(ChainMirrorError):
    """Artifact file could not be parsed or is missing a required field"""


class PersistenceError(ChainMirrorError):
    """The storage backend rejected a read or a write"""
