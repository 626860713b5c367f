from importlib.metadata import PackageNotFoundError, version

from codex_persistent_mcp.errors import (
    BridgeError,
    InvalidInputError,
    InvocationError,
    MissingInputError,
    ProtocolError,
)
from codex_persistent_mcp.models import CallRequest, CallResult
from codex_persistent_mcp.service import CodexBridge

try:
    __version__ = version("codex-persistent-mcp")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "BridgeError",
    "CallRequest",
    "CallResult",
    "CodexBridge",
    "InvalidInputError",
    "InvocationError",
    "MissingInputError",
    "ProtocolError",
    "__version__",
]
