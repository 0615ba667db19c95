"""
Point d'entrée pour `python -m taskbridge`.
"""
import logging
import sys
from pathlib import Path

from . import __version__
from .cli import parse_command_tokens
from .config.loader import get_bridge_config, get_http_config, get_tasks_file, load_config
from .core.constants import DEFAULT_TASKS_FILE, LIST_COMMAND
from .core.exceptions import TaskbridgeError
from .registry.builtins import build_registry

logger = logging.getLogger("taskbridge")


def setup_logging(verbose: bool = False) -> None:
    """Logs sur stderr uniquement: stdout appartient aux tâches et au protocole MCP."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def _resolve_tasks_file(explicit, config):
    if explicit:
        return explicit
    path = get_tasks_file(config)
    if path == DEFAULT_TASKS_FILE and not Path(path).is_file():
        logger.debug("Aucun %s dans %s, commandes intégrées uniquement", path, Path.cwd())
        return None
    return path


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="taskbridge",
        description="Exécuteur de tâches et bridge MCP stdio",
    )
    parser.add_argument("-f", "--tasks-file", help="Fichier de tâches (défaut: tasks.py)")
    parser.add_argument("--config", help="Fichier de configuration (défaut: taskbridge.toml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Logs DEBUG sur stderr")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("command", nargs="?", default=LIST_COMMAND, help="Tâche à exécuter (défaut: list)")
    parser.add_argument("command_args", nargs=argparse.REMAINDER, help="Arguments et options de la tâche")
    return parser


def main(argv=None) -> int:
    """Fonction principale."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = load_config(args.config)
        registry = build_registry(
            _resolve_tasks_file(args.tasks_file, config),
            bridge_config=get_bridge_config(config),
            http_config=get_http_config(config),
        )
        command = registry.find_command(args.command)
        arguments, options = parse_command_tokens(command, args.command_args)
        _, status = registry.invoke(command, arguments, options, capture=False)
    except TaskbridgeError as e:
        logger.debug("Échec de %s", args.command, exc_info=True)
        print(f"Erreur: {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130

    return status


if __name__ == "__main__":
    sys.exit(main())
