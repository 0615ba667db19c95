"""Exemple de fichier de tâches.

    taskbridge -f examples/tasks.py list
    taskbridge -f examples/tasks.py hello Ada --shout
    taskbridge -f examples/tasks.py run-mcp-server --log-file /tmp/taskbridge-mcp.log
"""

from typing import Annotated

from taskbridge import arg, opt, task
from taskbridge.http import http_download


@task(description="Dit bonjour")
def hello(
    name: Annotated[str, arg("Qui saluer")] = "world",
    *,
    shout: Annotated[bool, opt("En majuscules", shortcut="s")] = False,
):
    message = f"Hello {name}"
    print(message.upper() if shout else message)


@task(description="Affiche les arguments reçus")
def args(
    word: Annotated[str, arg("Premier argument, obligatoire")],
    option: Annotated[str, arg("Second argument, optionnel")] = "default",
):
    print(f"word={word} option={option}")


@task(namespace="release", name="fetch", description="Télécharge une archive de release")
def fetch_release(version: str, *, output: str = None):
    url = f"https://example.com/releases/app-{version}.tar.gz"
    result = http_download(url, output)
    print(f"Saved {result.path}")
