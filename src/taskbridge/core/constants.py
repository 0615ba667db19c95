"""
Constantes globales pour taskbridge.
"""

# ============================================================================
# PROTOCOLE MCP / JSON-RPC
# ============================================================================
JSONRPC_VERSION = "2.0"
MCP_PROTOCOL_VERSION = "2024-11-05"
DEFAULT_SERVER_NAME = "TaskbridgeMcpServer"

# Codes d'erreur JSON-RPC 2.0
JSONRPC_APPLICATION_ERROR = -32000
JSONRPC_METHOD_NOT_FOUND = -32601
JSONRPC_INVALID_PARAMS = -32602

# Méthodes reconnues par le dispatcher
METHOD_INITIALIZE = "initialize"
METHOD_TOOLS_LIST = "tools/list"
METHOD_TOOLS_CALL = "tools/call"
METHOD_INITIALIZED = "notifications/initialized"

# ============================================================================
# SCHÉMAS DES OUTILS
# ============================================================================
JSON_SCHEMA_DRAFT_07 = "http://json-schema.org/draft-07/schema#"
NO_DESCRIPTION = "No description available"
TOOL_ERROR_PREFIX = "Error executing tool: "

# ============================================================================
# COMMANDES INTÉGRÉES
# ============================================================================
MCP_SERVER_COMMAND = "run-mcp-server"
LIST_COMMAND = "list"
HTTP_DOWNLOAD_COMMAND = "http:download"

# ============================================================================
# CONFIGURATION PAR DÉFAUT
# ============================================================================
CONFIG_FILE = "taskbridge.toml"
DEFAULT_TASKS_FILE = "tasks.py"
DEFAULT_LOG_FILE = "taskbridge-mcp.log"
DEFAULT_POLL_INTERVAL_MS = 1
DEFAULT_STREAM_LIMIT = 8 * 1024 * 1024  # 8 MiB
MIN_STREAM_LIMIT = 64 * 1024
MAX_STREAM_LIMIT = 64 * 1024 * 1024

DEFAULT_HTTP_TIMEOUT_S = 60.0
DEFAULT_PROGRESS_INTERVAL_S = 2.0
