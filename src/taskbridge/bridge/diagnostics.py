"""taskbridge.bridge.diagnostics

Journal de diagnostic du bridge MCP.

Important:
- Ne jamais écrire sur stdout (sinon corruption JSON-RPC).
- Format: une ligne par événement, `[YYYY-MM-DD HH:MM:SS] message`.
- Chaque événement est aussi transmis au logger `taskbridge.bridge` (DEBUG,
  préfixe `[MCP]`).
- L'ouverture du fichier est la seule erreur fatale (au démarrage); ensuite
  les erreurs d'écriture sont comptées et désactivent l'écriture.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, TextIO

from ..core.exceptions import ConfigurationError

bridge_logger = logging.getLogger("taskbridge.bridge")


class DiagnosticsSink:
    def __init__(
        self,
        log_path: str | Path | None,
        *,
        name: str = "MCP",
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._log_path = Path(log_path).expanduser() if log_path else None
        self._name = name
        self._logger = logger or bridge_logger
        self._clock = clock
        self._fh: TextIO | None = None

        self.lines_written_total: int = 0
        self.log_write_errors_total: int = 0
        self.log_write_disabled: bool = False
        self.log_last_error: str | None = None

    @property
    def log_path(self) -> Path | None:
        return self._log_path

    def open(self) -> None:
        if self._log_path is None or self._fh is not None:
            return
        try:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self._log_path.open("a", encoding="utf-8", errors="backslashreplace")
        except OSError as e:
            raise ConfigurationError(
                message=f"Impossible d'ouvrir le journal {self._log_path}: {e}",
                config_key="log_file",
            ) from e

    def close(self) -> None:
        fh = self._fh
        self._fh = None
        if fh is None:
            return
        try:
            fh.close()
        except OSError:
            pass

    def __enter__(self) -> DiagnosticsSink:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def format_line(self, message: str) -> str:
        return f"[{self._clock():%Y-%m-%d %H:%M:%S}] {message}"

    def log(self, message: str) -> None:
        self._logger.debug("[%s] %s", self._name, message)

        if self._fh is None or self.log_write_disabled:
            return
        try:
            self._fh.write(self.format_line(message) + "\n")
            self._fh.flush()
            self.lines_written_total += 1
        except (OSError, ValueError) as e:
            self.log_write_errors_total += 1
            self.log_write_disabled = True
            self.log_last_error = str(e)

    def get_summary(self) -> dict[str, object]:
        return {
            "log_path": str(self._log_path) if self._log_path is not None else None,
            "lines_written_total": int(self.lines_written_total),
            "log_write_errors_total": int(self.log_write_errors_total),
            "log_write_disabled": bool(self.log_write_disabled),
            "log_last_error": self.log_last_error,
        }
