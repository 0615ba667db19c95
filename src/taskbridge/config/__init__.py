"""
Configuration de taskbridge.
"""

from .loader import (
    load_config,
    reload_config,
    BridgeConfig,
    HttpConfig,
    get_bridge_config,
    get_http_config,
    get_tasks_file,
)

__all__ = [
    "load_config",
    "reload_config",
    "BridgeConfig",
    "HttpConfig",
    "get_bridge_config",
    "get_http_config",
    "get_tasks_file",
]
