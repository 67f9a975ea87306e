"""HTTP download adapter with connect and total time budgets."""

from __future__ import annotations

import logging
import time
from pathlib import Path

import requests

from dmg2linux.errors import ResolutionExhausted

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1 << 20


class HttpDownloader:
    """Stream a URL to disk, following redirects.

    Parameters
    ----------
    connect_timeout : float
        Seconds allowed to establish the connection.
    total_timeout : float
        Seconds allowed for the whole transfer unless overridden per call.
    """

    def __init__(self, connect_timeout: float = 30.0, total_timeout: float = 600.0) -> None:
        self.connect_timeout = connect_timeout
        self.total_timeout = total_timeout

    def fetch(self, url: str, dest: Path, *, total_timeout: float | None = None) -> Path:
        """Download ``url`` to ``dest``; a partial file is removed on failure."""
        budget = total_timeout or self.total_timeout
        deadline = time.monotonic() + budget
        partial = dest.with_name(dest.name + ".part")
        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            with requests.get(
                url,
                stream=True,
                allow_redirects=True,
                timeout=(self.connect_timeout, self.connect_timeout),
            ) as response:
                response.raise_for_status()
                with partial.open("wb") as handle:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if time.monotonic() > deadline:
                            raise ResolutionExhausted(
                                f"Download of {url} exceeded {budget:.0f}s budget"
                            )
                        if chunk:
                            handle.write(chunk)
        except requests.RequestException as exc:
            partial.unlink(missing_ok=True)
            raise ResolutionExhausted(f"Download failed: {url}: {exc}") from exc
        except BaseException:
            partial.unlink(missing_ok=True)
            raise

        partial.replace(dest)
        logger.debug("downloaded %s -> %s (%d bytes)", url, dest, dest.stat().st_size)
        return dest
