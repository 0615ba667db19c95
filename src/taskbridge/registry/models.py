"""
Dataclasses du registre de commandes.

Un `Command` est la forme exécutable d'une tâche: nom, description, arguments
ordonnés, options ordonnées et le handler appelé par `CommandRegistry.invoke`.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Literal, Optional, Tuple

ArgumentKind = Literal["string", "array"]
OptionKind = Literal["string", "array", "boolean"]

# handler(arguments, options) -> code de sortie (None = 0)
CommandHandler = Callable[[Dict[str, Any], Dict[str, Any]], Optional[int]]


@dataclass(frozen=True)
class Argument:
    """Argument positionnel d'une commande."""
    name: str
    kind: ArgumentKind = "string"
    description: str = ""
    required: bool = False
    default: Any = None

    @property
    def is_array(self) -> bool:
        return self.kind == "array"


@dataclass(frozen=True)
class Option:
    """Option nommée (`--name`) d'une commande.

    `required` signifie qu'une valeur est obligatoire quand l'option est
    fournie, pas que l'option elle-même est obligatoire.
    """
    name: str
    kind: OptionKind = "boolean"
    description: str = ""
    required: bool = False
    default: Any = None
    shortcut: Optional[str] = None

    @property
    def accepts_value(self) -> bool:
        return self.kind != "boolean"

    @property
    def is_array(self) -> bool:
        return self.kind == "array"


@dataclass(frozen=True)
class Command:
    """Commande invocable exposée par le registre."""
    name: str
    handler: CommandHandler = field(compare=False, repr=False)
    description: str = ""
    arguments: Tuple[Argument, ...] = ()
    options: Tuple[Option, ...] = ()
    aliases: Tuple[str, ...] = ()
    hidden: bool = False

    def get_argument(self, name: str) -> Optional[Argument]:
        for argument in self.arguments:
            if argument.name == name:
                return argument
        return None

    def get_option(self, name: str) -> Optional[Option]:
        for option in self.options:
            if option.name == name or (option.shortcut is not None and option.shortcut == name):
                return option
        return None
