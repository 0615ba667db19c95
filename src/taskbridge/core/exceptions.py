"""
Exceptions personnalisées pour taskbridge.
"""


class TaskbridgeError(Exception):
    """Exception de base pour toutes les erreurs de taskbridge."""

    def __init__(self, message: str, code: str = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code or "unknown_error"
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"[{self.code}] {self.message} - Détails: {self.details}"
        return f"[{self.code}] {self.message}"


class ConfigurationError(TaskbridgeError):
    """Erreur de configuration (fichier manquant, valeur invalide)."""

    def __init__(self, message: str, config_key: str = None):
        super().__init__(
            message=message,
            code="config_error",
            details={"key": config_key} if config_key else {}
        )


class TaskDefinitionError(TaskbridgeError):
    """Déclaration de tâche invalide détectée à la découverte."""

    def __init__(self, message: str, task: str = None):
        super().__init__(
            message=message,
            code="task_definition_error",
            details={"task": task} if task else {}
        )


class CommandNotFoundError(TaskbridgeError):
    """Commande absente du registre."""

    def __init__(self, name: str):
        super().__init__(
            message=f'Command "{name}" is not defined.',
            code="command_not_found",
            details={"command": name}
        )
        self.name = name


class InvalidInvocationError(TaskbridgeError):
    """Arguments/options incompatibles avec la définition de la commande."""

    def __init__(self, message: str, command: str = None):
        super().__init__(
            message=message,
            code="invalid_invocation",
            details={"command": command} if command else {}
        )


class HttpDownloadError(TaskbridgeError):
    """Erreur lors d'un téléchargement HTTP."""

    def __init__(self, message: str, url: str = None, status_code: int = None):
        details = {}
        if url:
            details["url"] = url
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(
            message=message,
            code="http_download_error",
            details=details
        )
        self.status_code = status_code


class JsonRpcError(Exception):
    """Erreur de protocole JSON-RPC (méthode inconnue, paramètres invalides).

    Distincte de `TaskbridgeError`: elle est convertie en objet `error` dans
    l'enveloppe de réponse, jamais en résultat d'outil.
    """

    def __init__(self, code: int, message: str, data: object = None):
        super().__init__(message)
        self.code = int(code)
        self.message = message
        self.data = data

    def to_error(self) -> dict[str, object]:
        error: dict[str, object] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error
