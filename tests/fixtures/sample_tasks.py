"""Tâches de test chargées par `load_tasks_file` (unitaires et e2e)."""

import asyncio
import subprocess
import sys
from typing import Annotated

from taskbridge import arg, opt, task


@task(description="Greet someone")
def greet(
    x: Annotated[str, arg("Who to greet")],
    *,
    verbose: Annotated[bool, opt("Louder greeting", shortcut="v")] = False,
):
    print(f"Hello {x}!" if verbose else f"Hello {x}")


@task
def echo_args(first: str, second: str = "two", *, suffix: str = ""):
    """Print positional arguments.

    The second line is not part of the description.
    """
    print(f"{first} {second}{suffix}")


@task(description="Join words")
def concat(words: list[str], *, tag: Annotated[list[str], opt("Tags", shortcut="t")] = ()):
    print(" ".join(words) + "".join(f" #{t}" for t in tag))


@task(description="Print then fail")
def fail():
    print("something went wrong")
    return 1


@task(description="Raise an exception")
def explode():
    raise RuntimeError("kaboom")


@task(description="Exit through sys.exit")
def quit_early(code: str = "3"):
    sys.exit(int(code))


@task(description="Requires a level value")
def level(*, level: str):
    print(f"level={level}")


@task(namespace="db", name="migrate", aliases=("migrate",), description="Run migrations")
def db_migrate(*, dry_run: bool = False):
    print("dry run" if dry_run else "migrated")


@task(hidden=True, description="Not listed")
def secret():
    print("hidden")


@task(description="Run a child process writing to stdout")
def shell_echo(text: str = "from child"):
    print("before")
    subprocess.run([sys.executable, "-c", "import sys; print(sys.argv[1])", text], check=True)


@task(description="Add two numbers inside an event loop")
def async_sum(a: str, b: str):
    async def add():
        await asyncio.sleep(0)
        return int(a) + int(b)

    print(asyncio.run(add()))
