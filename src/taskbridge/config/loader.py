"""taskbridge.config.loader

Chargement de la configuration TOML (`taskbridge.toml`).

Règle de priorité:
- options CLI > env > toml > défauts
- les options CLI sont appliquées au point de consommation (`__main__`).
"""
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional

from ..core.constants import (
    CONFIG_FILE,
    DEFAULT_HTTP_TIMEOUT_S,
    DEFAULT_LOG_FILE,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_PROGRESS_INTERVAL_S,
    DEFAULT_SERVER_NAME,
    DEFAULT_STREAM_LIMIT,
    DEFAULT_TASKS_FILE,
    MAX_STREAM_LIMIT,
    MIN_STREAM_LIMIT,
)
from ..core.exceptions import ConfigurationError

# Cache global de configuration
_config_cache: Optional[Dict[str, Any]] = None


def _expand_env_vars(obj: Any) -> Any:
    """
    Récursivement étend les variables d'environnement ${VAR} dans la config.

    Args:
        obj: Valeur à traiter (str, dict, list)

    Returns:
        Valeur avec variables d'environnement expansées
    """
    if isinstance(obj, str):
        def replace_env_var(match):
            var_name = match.group(1)
            return os.environ.get(var_name, match.group(0))
        return re.sub(r'\$\{([^}]+)\}', replace_env_var, obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    return obj


def _env_int(name: str, *, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _clamp_int(value: object, *, default: int, min_value: int, max_value: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        v = value
    elif isinstance(value, float):
        v = int(value)
    else:
        return default
    return min(max_value, max(min_value, v))


def _positive_float(value: object, *, default: float) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        return float(value)
    return default


def _clear_config_cache():
    """Vide le cache de configuration."""
    global _config_cache
    _config_cache = None


def _load_toml(path: Path) -> Dict[str, Any]:
    try:
        import tomllib
    except ImportError:
        import tomli as tomllib

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(
            message=f"Configuration TOML invalide ({path}): {e}",
            config_key="config_path"
        ) from e


def load_config(config_path: str = None) -> Dict[str, Any]:
    """
    Charge la configuration depuis taskbridge.toml.

    Sans chemin explicite, cherche `$TASKBRIDGE_CONFIG` puis `taskbridge.toml`
    dans le répertoire courant; l'absence de fichier donne une config vide.

    Args:
        config_path: Chemin vers le fichier config (optionnel)

    Returns:
        Dictionnaire de configuration

    Raises:
        ConfigurationError: Si le fichier explicite n'existe pas ou est invalide
    """
    global _config_cache

    if _config_cache is not None:
        return _config_cache

    explicit = config_path or os.getenv("TASKBRIDGE_CONFIG")
    path = Path(explicit) if explicit else Path.cwd() / CONFIG_FILE

    if not path.exists():
        if explicit:
            raise ConfigurationError(
                message=f"Fichier de configuration non trouvé: {path}",
                config_key="config_path"
            )
        _config_cache = {}
        return _config_cache

    _config_cache = _expand_env_vars(_load_toml(path))
    return _config_cache


def reload_config(config_path: str = None) -> Dict[str, Any]:
    """
    Recharge la configuration depuis le fichier.

    Returns:
        Nouvelle configuration chargée
    """
    _clear_config_cache()
    return load_config(config_path)


@dataclass(frozen=True)
class BridgeConfig:
    """Configuration du bridge MCP stdio (`[bridge]`)."""

    log_file: str = DEFAULT_LOG_FILE
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    server_name: str = DEFAULT_SERVER_NAME
    stream_limit: int = DEFAULT_STREAM_LIMIT

    @property
    def poll_interval_s(self) -> float:
        return self.poll_interval_ms / 1000.0


@dataclass(frozen=True)
class HttpConfig:
    """Configuration du helper de téléchargement (`[http]`)."""

    timeout_s: float = DEFAULT_HTTP_TIMEOUT_S
    progress_interval_s: float = DEFAULT_PROGRESS_INTERVAL_S


def get_bridge_config(config: Dict[str, Any]) -> BridgeConfig:
    """Charge la section `[bridge]` avec fallback robuste et surcharges env."""

    defaults = BridgeConfig()
    obj = config.get("bridge")
    if not isinstance(obj, dict):
        obj = {}

    log_file = obj.get("log_file")
    if not isinstance(log_file, str) or not log_file.strip():
        log_file = defaults.log_file
    log_file = os.getenv("TASKBRIDGE_LOG_FILE") or log_file

    server_name = obj.get("server_name")
    if not isinstance(server_name, str) or not server_name.strip():
        server_name = defaults.server_name

    poll_interval_ms = _clamp_int(
        obj.get("poll_interval_ms", defaults.poll_interval_ms),
        default=defaults.poll_interval_ms,
        min_value=1,
        max_value=1000,
    )
    poll_interval_ms = _clamp_int(
        _env_int("TASKBRIDGE_POLL_INTERVAL_MS", default=poll_interval_ms),
        default=poll_interval_ms,
        min_value=1,
        max_value=1000,
    )

    stream_limit = _clamp_int(
        obj.get("stream_limit", defaults.stream_limit),
        default=defaults.stream_limit,
        min_value=MIN_STREAM_LIMIT,
        max_value=MAX_STREAM_LIMIT,
    )
    configured = _env_int("TASKBRIDGE_STREAM_LIMIT", default=stream_limit)
    if configured > 0:
        stream_limit = min(MAX_STREAM_LIMIT, max(MIN_STREAM_LIMIT, configured))

    return BridgeConfig(
        log_file=log_file,
        poll_interval_ms=poll_interval_ms,
        server_name=server_name,
        stream_limit=stream_limit,
    )


def get_http_config(config: Dict[str, Any]) -> HttpConfig:
    """Charge la section `[http]`."""

    defaults = HttpConfig()
    obj = config.get("http")
    if not isinstance(obj, dict):
        return defaults

    return HttpConfig(
        timeout_s=_positive_float(obj.get("timeout_s"), default=defaults.timeout_s),
        progress_interval_s=_positive_float(
            obj.get("progress_interval_s"), default=defaults.progress_interval_s
        ),
    )


def get_tasks_file(config: Dict[str, Any]) -> str:
    """Chemin du fichier de tâches: env > `[tasks].file` > `tasks.py`."""

    env_value = os.getenv("TASKBRIDGE_TASKS_FILE")
    if env_value:
        return env_value

    obj = config.get("tasks")
    if isinstance(obj, dict):
        value = obj.get("file")
        if isinstance(value, str) and value.strip():
            return value
    return DEFAULT_TASKS_FILE
