"""
Bridge MCP stdio: lecture de lignes, routage JSON-RPC, schémas d'outils.
"""

from .line_reader import LineFramer, LineReader, connect_stdin_source
from .diagnostics import DiagnosticsSink
from .schema import ToolDescriptor, build_tool_descriptor, build_tool_descriptors
from .invoker import ToolCallResult, ToolInvoker, build_invocation_payload
from .dispatcher import MessageDispatcher, encode_message
from .server import run_bridge, serve_stdio

__all__ = [
    "LineFramer",
    "LineReader",
    "connect_stdin_source",
    "DiagnosticsSink",
    "ToolDescriptor",
    "build_tool_descriptor",
    "build_tool_descriptors",
    "ToolCallResult",
    "ToolInvoker",
    "build_invocation_payload",
    "MessageDispatcher",
    "encode_message",
    "run_bridge",
    "serve_stdio",
]
