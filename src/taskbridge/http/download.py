"""taskbridge.http.download

Téléchargement HTTP avec suivi de progression (httpx).

Objectifs:
- Télécharger une URL vers un fichier, en streaming (chunks) ou en une fois.
- Déduire le nom du fichier (Content-Disposition, puis chemin de l'URL).
- Journaliser la progression via `logging` (jamais sur stdout).

Notes:
- Client synchrone: les tâches sont exécutées de façon bloquante par le
  registre, y compris via le bridge MCP.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from ..core.constants import DEFAULT_HTTP_TIMEOUT_S, DEFAULT_PROGRESS_INTERVAL_S
from ..core.exceptions import HttpDownloadError

logger = logging.getLogger(__name__)

_FILENAME_RE = re.compile(r'filename="([^"]+)"')
_SIZE_UNITS = ("KB", "MB", "GB", "TB")


@dataclass(frozen=True)
class DownloadResult:
    path: Path
    size: int
    status_code: int


def format_size(num_bytes: int) -> str:
    if num_bytes < 1024:
        return f"{num_bytes} B"
    size = float(num_bytes)
    unit = -1
    while size >= 1024 and unit < len(_SIZE_UNITS) - 1:
        size /= 1024
        unit += 1
    return f"{size:.2f} {_SIZE_UNITS[unit]}"


def format_time(seconds: float) -> str:
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    minutes, seconds = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {seconds}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m {seconds}s"


def resolve_filename(url: str, content_disposition: str | None) -> str:
    """Nom de fichier: Content-Disposition, sinon dernier segment de l'URL."""

    if content_disposition:
        match = _FILENAME_RE.search(content_disposition)
        if match:
            return Path(match.group(1)).name
    name = Path(unquote(urlparse(url).path)).name
    return name or "download"


class _ProgressReporter:
    def __init__(self, *, url: str, total_size: int, interval_s: float) -> None:
        self._url = url
        self._total = total_size
        self._interval_s = interval_s
        self._start = time.monotonic()
        self._last_log = self._start
        self.final_logged = False

    def update(self, downloaded: int) -> None:
        now = time.monotonic()
        elapsed = now - self._start
        speed = downloaded / elapsed if elapsed > 0 else 0.0

        if self._total > 0:
            percentage = round(downloaded / self._total * 100, 2)
            remaining = (self._total - downloaded) / speed if speed > 0 else 0
            message = (
                f"Download progress: {format_size(downloaded)}/{format_size(self._total)} "
                f"({percentage:.2f}%) at {format_size(int(speed))}/s, ETA: {format_time(remaining)}"
            )
        else:
            percentage = 0.0
            message = f"Download progress: {format_size(downloaded)} at {format_size(int(speed))}/s"

        # 100% n'est journalisé qu'une fois, même si des données continuent d'arriver.
        due = now - self._last_log >= self._interval_s and percentage < 100
        if due or (percentage >= 100 and not self.final_logged):
            logger.info(message, extra={"url": self._url})
            self._last_log = now
            if percentage >= 100:
                self.final_logged = True


def http_download(
    url: str,
    file_path: str | Path | None = None,
    *,
    method: str = "GET",
    stream: bool = True,
    client: httpx.Client | None = None,
    timeout_s: float = DEFAULT_HTTP_TIMEOUT_S,
    progress_interval_s: float = DEFAULT_PROGRESS_INTERVAL_S,
) -> DownloadResult:
    """Télécharge `url` vers `file_path` (ou un nom déduit de la réponse).

    Raises:
        HttpDownloadError: statut HTTP >= 400, erreur de transport ou
            fichier destination impossible à ouvrir.
    """

    logger.info("Starting http download: %s", url)
    owns_client = client is None
    http_client = client or httpx.Client(timeout=timeout_s, follow_redirects=True)

    try:
        with http_client.stream(method, url) as response:
            if response.status_code >= 400:
                raise HttpDownloadError(
                    f"HTTP {response.status_code} pour {url}",
                    url=url,
                    status_code=response.status_code,
                )

            total_size = int(response.headers.get("content-length") or 0)
            if total_size == 0:
                logger.info("Could not determine file size for http download: %s", url)

            if file_path is None:
                filename = resolve_filename(url, response.headers.get("content-disposition"))
                target = Path.cwd() / filename
                logger.info("Filename determined for http download: %s", filename)
            else:
                target = Path(file_path)

            try:
                fh = target.open("wb")
            except OSError as e:
                raise HttpDownloadError(
                    f'Cannot open file "{target}" for writing.', url=url
                ) from e

            with fh:
                if not stream:
                    content = response.read()
                    fh.write(content)
                    logger.info("Download finished: %s -> %s (%s)", url, target, format_size(len(content)))
                    return DownloadResult(path=target, size=len(content), status_code=response.status_code)

                reporter = _ProgressReporter(url=url, total_size=total_size, interval_s=progress_interval_s)
                downloaded = 0
                for chunk in response.iter_bytes():
                    fh.write(chunk)
                    downloaded += len(chunk)
                    reporter.update(downloaded)

            if not reporter.final_logged:
                logger.info("Download finished: %s -> %s (%s)", url, target, format_size(downloaded))
            return DownloadResult(path=target, size=downloaded, status_code=response.status_code)
    except httpx.HTTPError as e:
        raise HttpDownloadError(f"Erreur de transport pour {url}: {e}", url=url) from e
    finally:
        if owns_client:
            http_client.close()
