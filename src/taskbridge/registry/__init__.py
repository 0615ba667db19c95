"""
Registre de commandes: modèles, découverte des tâches, commandes intégrées.
"""

from .models import Argument, Option, Command, CommandHandler
from .registry import CommandRegistry
from .discovery import task, arg, opt, command_from_function, load_tasks_file
from .builtins import build_registry

__all__ = [
    "Argument",
    "Option",
    "Command",
    "CommandHandler",
    "CommandRegistry",
    "task",
    "arg",
    "opt",
    "command_from_function",
    "load_tasks_file",
    "build_registry",
]
