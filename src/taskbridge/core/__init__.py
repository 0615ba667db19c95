"""
Cœur de taskbridge.
Modules indépendants sans dépendances externes au package.
"""

from .exceptions import (
    TaskbridgeError,
    ConfigurationError,
    TaskDefinitionError,
    CommandNotFoundError,
    InvalidInvocationError,
    HttpDownloadError,
    JsonRpcError,
)
from .constants import (
    JSONRPC_VERSION,
    MCP_PROTOCOL_VERSION,
    DEFAULT_SERVER_NAME,
    JSONRPC_APPLICATION_ERROR,
    JSONRPC_METHOD_NOT_FOUND,
    JSONRPC_INVALID_PARAMS,
    NO_DESCRIPTION,
    MCP_SERVER_COMMAND,
)

__all__ = [
    # Exceptions
    "TaskbridgeError",
    "ConfigurationError",
    "TaskDefinitionError",
    "CommandNotFoundError",
    "InvalidInvocationError",
    "HttpDownloadError",
    "JsonRpcError",
    # Constants
    "JSONRPC_VERSION",
    "MCP_PROTOCOL_VERSION",
    "DEFAULT_SERVER_NAME",
    "JSONRPC_APPLICATION_ERROR",
    "JSONRPC_METHOD_NOT_FOUND",
    "JSONRPC_INVALID_PARAMS",
    "NO_DESCRIPTION",
    "MCP_SERVER_COMMAND",
]
