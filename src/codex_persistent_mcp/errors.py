class BridgeError(Exception):
    """Base class for failures that are reported back to the tool caller."""


class MissingInputError(BridgeError):
    pass


class InvalidInputError(BridgeError, ValueError):
    pass


class InvocationError(BridgeError):
    """The codex process could not be started, exited non-zero or timed out."""


class ProtocolError(BridgeError):
    """The codex process exited cleanly but its output was unusable."""
