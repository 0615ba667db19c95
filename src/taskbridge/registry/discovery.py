"""taskbridge.registry.discovery

Découverte des tâches déclarées dans un fichier Python (`tasks.py`).

Une tâche est une fonction décorée par `@task`. Sa signature donne la
définition de la commande:
- paramètres positionnels -> arguments (obligatoires s'ils n'ont pas de défaut)
- paramètres keyword-only -> options (`bool` -> flag, `list[...]` -> tableau)
- `Annotated[..., arg(...)]` / `Annotated[..., opt(...)]` -> description, nom,
  raccourci

Exemple:

    from typing import Annotated
    from taskbridge import arg, opt, task

    @task(description="Dit bonjour")
    def hello(name: Annotated[str, arg("Qui saluer")], *, shout: bool = False):
        print(name.upper() if shout else name)
"""

from __future__ import annotations

import hashlib
import importlib.util
import inspect
import sys
import typing
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable

from ..core.exceptions import ConfigurationError, TaskDefinitionError
from .models import Argument, Command, Option

TASK_ATTRIBUTE = "__taskbridge_task__"


@dataclass(frozen=True)
class ArgMeta:
    description: str = ""
    name: str | None = None


@dataclass(frozen=True)
class OptMeta:
    description: str = ""
    shortcut: str | None = None
    name: str | None = None


@dataclass(frozen=True)
class TaskMeta:
    name: str | None = None
    description: str = ""
    namespace: str | None = None
    aliases: tuple[str, ...] = ()
    hidden: bool = False


def arg(description: str = "", *, name: str | None = None) -> ArgMeta:
    return ArgMeta(description=description, name=name)


def opt(description: str = "", *, shortcut: str | None = None, name: str | None = None) -> OptMeta:
    return OptMeta(description=description, shortcut=shortcut, name=name)


def task(
    func: Callable[..., Any] | None = None,
    *,
    name: str | None = None,
    description: str = "",
    namespace: str | None = None,
    aliases: Iterable[str] = (),
    hidden: bool = False,
):
    """Marque une fonction comme tâche. Utilisable avec ou sans parenthèses."""

    meta = TaskMeta(
        name=name,
        description=description,
        namespace=namespace,
        aliases=tuple(aliases),
        hidden=hidden,
    )

    def decorator(f: Callable[..., Any]) -> Callable[..., Any]:
        setattr(f, TASK_ATTRIBUTE, meta)
        return f

    if func is not None:
        return decorator(func)
    return decorator


def slugify(value: str) -> str:
    return value.strip().replace("_", "-").lower()


def _split_annotated(hint: Any) -> tuple[Any, tuple[Any, ...]]:
    if typing.get_origin(hint) is typing.Annotated:
        return hint.__origin__, tuple(hint.__metadata__)
    return hint, ()


def _is_list_hint(hint: Any) -> bool:
    return hint is list or typing.get_origin(hint) is list


def _find_meta(metadata: tuple[Any, ...], kind: type) -> Any:
    for item in metadata:
        if isinstance(item, kind):
            return item
    return None


def command_from_function(func: Callable[..., Any]) -> Command:
    """Construit un `Command` à partir d'une fonction décorée par `@task`."""

    meta: TaskMeta | None = getattr(func, TASK_ATTRIBUTE, None)
    if meta is None:
        raise TaskDefinitionError(f"{func.__qualname__} n'est pas une tâche", task=func.__qualname__)

    task_name = meta.name or slugify(func.__name__)
    if meta.namespace:
        task_name = f"{meta.namespace}:{task_name}"

    try:
        hints = typing.get_type_hints(func, include_extras=True)
    except (NameError, TypeError) as e:
        raise TaskDefinitionError(f"Annotations illisibles: {e}", task=task_name) from e

    arguments: list[Argument] = []
    options: list[Option] = []
    positional: list[str] = []
    keyword: dict[str, str] = {}

    for param in inspect.signature(func).parameters.values():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            raise TaskDefinitionError(
                f"Paramètre variadique non supporté: {param.name}", task=task_name
            )

        base, metadata = _split_annotated(hints.get(param.name, param.annotation))
        has_default = param.default is not inspect.Parameter.empty
        default = param.default if has_default else None

        if param.kind == param.KEYWORD_ONLY:
            if _find_meta(metadata, ArgMeta) is not None:
                raise TaskDefinitionError(
                    f"arg() sur le paramètre keyword-only {param.name}", task=task_name
                )
            o_meta = _find_meta(metadata, OptMeta) or OptMeta()
            if base is bool or isinstance(default, bool):
                kind = "boolean"
            elif _is_list_hint(base):
                kind = "array"
            else:
                kind = "string"
            option = Option(
                name=o_meta.name or slugify(param.name),
                kind=kind,
                description=o_meta.description,
                required=kind != "boolean" and not has_default,
                default=default,
                shortcut=o_meta.shortcut,
            )
            options.append(option)
            keyword[param.name] = option.name
            continue

        if _find_meta(metadata, OptMeta) is not None:
            raise TaskDefinitionError(
                f"opt() sur le paramètre positionnel {param.name}", task=task_name
            )
        a_meta = _find_meta(metadata, ArgMeta) or ArgMeta()
        argument = Argument(
            name=a_meta.name or param.name,
            kind="array" if _is_list_hint(base) else "string",
            description=a_meta.description,
            required=not has_default,
            default=default,
        )
        arguments.append(argument)
        positional.append(argument.name)

    _check_argument_order(arguments, task_name)

    def handler(args: dict[str, Any], opts: dict[str, Any]) -> Any:
        call_args = [args[name] for name in positional]
        call_kwargs = {param_name: opts[opt_name] for param_name, opt_name in keyword.items()}
        return func(*call_args, **call_kwargs)

    return Command(
        name=task_name,
        handler=handler,
        description=meta.description or (inspect.getdoc(func) or "").split("\n", 1)[0],
        arguments=tuple(arguments),
        options=tuple(options),
        aliases=meta.aliases,
        hidden=meta.hidden,
    )


def _check_argument_order(arguments: list[Argument], task_name: str) -> None:
    # Un argument tableau ne peut être suivi d'aucun autre argument.
    for argument in arguments[:-1]:
        if argument.is_array:
            raise TaskDefinitionError(
                f'L\'argument tableau "{argument.name}" doit être le dernier', task=task_name
            )


def _import_tasks_module(path: Path):
    digest = hashlib.sha256(str(path).encode("utf-8")).hexdigest()[:12]
    module_name = f"taskbridge_tasks_{digest}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise TaskDefinitionError(f"Impossible de charger {path}")

    # Le module doit être présent dans sys.modules AVANT exec_module,
    # sinon dataclasses peut échouer (référence sys.modules[__module__]).
    sys.modules.pop(module_name, None)
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise TaskDefinitionError(f"Erreur au chargement de {path}: {e}") from e
    return module


def load_tasks_file(path: str | Path) -> list[Command]:
    """Importe `path` et retourne ses tâches dans l'ordre de définition."""

    tasks_path = Path(path).expanduser().resolve(strict=False)
    if not tasks_path.is_file():
        raise ConfigurationError(
            message=f"Fichier de tâches non trouvé: {tasks_path}",
            config_key="tasks_file",
        )

    module = _import_tasks_module(tasks_path)

    commands: list[Command] = []
    seen: set[int] = set()
    for value in list(vars(module).values()):
        if not callable(value) or not hasattr(value, TASK_ATTRIBUTE):
            continue
        if id(value) in seen:
            continue
        seen.add(id(value))
        commands.append(command_from_function(value))
    return commands
