"""
taskbridge: exécuteur de tâches et bridge MCP stdio.

Les tâches se déclarent dans `tasks.py`:

    from taskbridge import task

    @task(description="Dit bonjour")
    def hello(name: str = "world"):
        print(f"Hello {name}")
"""

__version__ = "1.0.0"

from .registry.discovery import task, arg, opt

__all__ = ["__version__", "task", "arg", "opt"]
