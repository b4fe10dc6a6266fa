# scriptdeps/http/client.py
from __future__ import annotations
import logging
import random
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Callable

import httpx

from scriptdeps.config.settings import RemoteSettings
from scriptdeps.core.errors import RemoteScriptError
from scriptdeps.core.fileio import atomicWriteBytes
from scriptdeps.core.hashing import sha256Text
from scriptdeps.core.logging import componentLogger
from scriptdeps.core.redaction import redactText

__all__ = ["fetch", "RemoteScriptDownloader"]



def _parseRetryAfter(value: str | None) -> float | None:
    """Return seconds suggested by Retry-After header, if parsable."""
    if not value:
        return None
    # Retry-After: seconds
    try:
        secondsF = float(value)
        if secondsF >= 0:
            return secondsF
    except ValueError:
        pass
    # Retry-After: HTTP-date
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    now = datetime.now(timezone.utc).timestamp()
    return max(0.0, dt.timestamp() - now)



def _shouldRetry(status: int) -> bool:
    # Typical transient HTTP errors upon which retry makes sense
    return status in (408, 429, 500, 502, 503, 504)



def _backoffSeconds(attempt: int, backoffBaseMs: int, backoffMaxMs: int) -> float:
    # Exponential backoff with jitter
    base = min(backoffMaxMs, backoffBaseMs * (2 ** attempt))
    jitter = base * 0.25
    return max(0.0, base + random.uniform(-jitter, jitter)) / 1000.0



def fetch(
    client: httpx.Client,
    url: str,
    *,
    retries: int = 2,
    backoffBaseMs: int = 250,
    backoffMaxMs: int = 1_000,
    sleep: Callable[[float], None] = time.sleep,
    logger: logging.Logger | None = None,
) -> bytes:
    """
    GET `url` with retries on 408/429/5xx and transport errors.

    Returns the body of a 2xx response. Raises RemoteScriptError for any other
    final status or when retries are exhausted.
    """
    log = componentLogger("http.client", logger)
    retries = max(0, retries)
    attempt = 0
    safeUrl = redactText(url)

    while True:
        try:
            resp = client.get(url, follow_redirects=True)
        except httpx.HTTPError as err:
            if attempt >= retries:
                raise RemoteScriptError(f"Failed to download '{safeUrl}': {err}", url=url) from err
            delay = _backoffSeconds(attempt, backoffBaseMs, backoffMaxMs)
            attempt += 1
            log.debug("Transport error for '%s' (%s); retry %d in %.2fs", safeUrl, err, attempt, delay)
            sleep(delay)
            continue

        status = resp.status_code
        if _shouldRetry(status) and attempt < retries:
            delay = _parseRetryAfter(resp.headers.get("Retry-After"))
            if delay is None:
                delay = _backoffSeconds(attempt, backoffBaseMs, backoffMaxMs)
            attempt += 1
            log.debug("HTTP %d for '%s'; retry %d in %.2fs", status, safeUrl, attempt, delay)
            sleep(delay)
            continue

        if 200 <= status < 300:
            return resp.content
        raise RemoteScriptError(f"Failed to download '{safeUrl}': HTTP {status}", url=url, status=status)



class RemoteScriptDownloader:
    """
    Downloads remote `#load` targets into `<cacheRoot>/remote/<sha256(url)>.csx`.

    A script already downloaded in this process is not fetched again.
    """

    def __init__(
        self,
        cacheRoot: str | Path,
        settings: RemoteSettings | None = None,
        *,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings if settings is not None else RemoteSettings()
        self._dir = Path(cacheRoot) / "remote"
        self._log = componentLogger("http.remote", logger)
        self._sleep = sleep
        self._ownsClient = client is None
        timeoutMs = max(1, self._settings.timeoutMs)
        self._client = client if client is not None else httpx.Client(timeout=httpx.Timeout(timeoutMs / 1_000))
        self._downloaded: dict[str, Path] = {}

    def targetPathFor(self, url: str) -> Path:
        return self._dir / f"{sha256Text(url)}.csx"

    def download(self, url: str) -> Path:
        cached = self._downloaded.get(url)
        if cached is not None and cached.is_file():
            return cached

        body = fetch(
            self._client,
            url,
            retries=self._settings.retries,
            backoffBaseMs=self._settings.backoffBaseMs,
            backoffMaxMs=self._settings.backoffMaxMs,
            sleep=self._sleep,
            logger=self._log,
        )
        target = self.targetPathFor(url)
        atomicWriteBytes(target, body)
        self._downloaded[url] = target
        self._log.info("Downloaded remote script '%s' (%d bytes)", redactText(url), len(body))
        return target

    def close(self) -> None:
        if self._ownsClient:
            self._client.close()

    def __enter__(self) -> RemoteScriptDownloader:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
