"""Download of driver package archives."""
from __future__ import annotations

import http.client
import logging
import shutil
import urllib.request
from pathlib import Path
from typing import Any, Callable

from services.errors import NetworkError

_LOGGER = logging.getLogger(__name__)

USER_AGENT = "PrintDriverUpgrader/1.0"


class ArtifactFetcher:
    """Fetches a single archive per call; retries are left to the scheduler."""

    def __init__(
        self,
        *,
        timeout: float | None = None,
        opener: Callable[..., Any] | None = None,
    ) -> None:
        self._timeout = timeout
        self._open = opener or urllib.request.urlopen

    def fetch(self, url: str, destination: Path) -> Path:
        destination = Path(destination)
        temp_path = destination.with_suffix(destination.suffix + ".download")
        request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
        _LOGGER.info("Downloading %s to %s", url, destination)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            kwargs = {} if self._timeout is None else {"timeout": self._timeout}
            with self._open(request, **kwargs) as response:
                status = getattr(response, "status", None)
                if status is not None and not 200 <= status < 300:
                    raise NetworkError(f"Download failed for {url}: HTTP {status}")
                with temp_path.open("wb") as handle:
                    shutil.copyfileobj(response, handle)
            temp_path.replace(destination)
        except NetworkError:
            _discard(temp_path)
            raise
        except (OSError, http.client.HTTPException) as exc:
            _discard(temp_path)
            raise NetworkError(f"Download failed for {url}: {exc}") from exc
        _LOGGER.info("Downloaded %s (%d bytes)", destination.name, destination.stat().st_size)
        return destination


def _discard(path: Path) -> None:
    try:
        if path.exists():
            path.unlink()
    except OSError as exc:
        _LOGGER.warning("Unable to remove partial download %s: %s", path, exc)
