"""
toolpod server module.

Provides the ``Pod`` facade and the stdio JSON-RPC transport it serves on.
"""

from toolpod.server.pod import PROTOCOL_VERSION, Pod
from toolpod.server.transport import StdioServerTransport, TransportError

__all__ = ["PROTOCOL_VERSION", "Pod", "StdioServerTransport", "TransportError"]
