"""RubyGems.org client: version listing, cached downloads and artifact extraction."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import List, Optional

import requests
from loguru import logger
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from gemdeps.ingestion.errors import ExtractionError, FetchError, NotFoundError, TransientFetchError
from gemdeps.ingestion.gem_archive import RawArtifact, read_gem_archive
from gemdeps.utils.config import FetcherConfig

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class GemFetcher:
    """Fetch gem metadata and the README/extconf.rb text of a gem version.

    Downloads are cached on disk under ``<cache_dir>/<name>-<version>.gem`` so
    repeated runs never download the same archive twice.

    Example:
        >>> fetcher = GemFetcher()
        >>> versions = fetcher.list_versions("pg")
        >>> artifact = fetcher.fetch("pg", versions[0])
    """

    def __init__(
        self,
        config: Optional[FetcherConfig] = None,
        *,
        cache_dir: Optional[str | Path] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or FetcherConfig()
        self.cache_dir = Path(cache_dir) if cache_dir else Path(self.config.cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.session = session or requests.Session()
        self.session.max_redirects = self.config.max_retries
        self.session.headers.update({"User-Agent": self.config.user_agent})

        self._retrying = Retrying(
            stop=stop_after_attempt(self.config.max_retries + 1),
            wait=wait_incrementing(
                start=self.config.backoff_seconds,
                increment=self.config.backoff_seconds,
            ),
            retry=retry_if_exception_type(TransientFetchError),
            before_sleep=self._log_retry,
            reraise=True,
        )

    def list_versions(self, gem_name: str) -> List[str]:
        """Return the version numbers of a gem, newest first as served upstream.

        Raises:
            NotFoundError: If the gem is unknown or has no versions.
            FetchError: If the API could not be reached.
        """
        logger.debug("Fetching versions for {}...", gem_name)
        url = f"{self.config.api_base}/versions/{gem_name}.json"
        response = self._get(url)

        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(f"Invalid versions payload for {gem_name}: {exc}") from exc

        if not isinstance(payload, list):
            raise FetchError(f"Invalid versions payload for {gem_name}: expected a list")

        versions = [entry["number"] for entry in payload if isinstance(entry, dict) and entry.get("number")]
        if not versions:
            raise NotFoundError(f"No versions found for {gem_name}")

        logger.debug("Found {} versions for {}", len(versions), gem_name)
        return versions

    def cache_path(self, gem_name: str, version: str) -> Path:
        return self.cache_dir / f"{gem_name}-{version}.gem"

    def fetch(self, gem_name: str, version: str) -> RawArtifact:
        """Download (or reuse) a gem archive and pull out its README and extconf.rb.

        An unreadable archive is not an error: it yields an empty artifact.

        Raises:
            NotFoundError: If the archive does not exist upstream.
            FetchError: If the download failed after all retries.
        """
        cached = self.cache_path(gem_name, version)
        if cached.exists():
            logger.debug("Using cached {}", cached.name)
        else:
            logger.debug("Downloading {} {}...", gem_name, version)
            self._download(gem_name, version, cached)

        try:
            return read_gem_archive(cached)
        except ExtractionError as exc:
            logger.warning("Error extracting files from {} {}: {}", gem_name, version, exc)
            return RawArtifact()

    def _download(self, gem_name: str, version: str, target: Path) -> None:
        url = f"{self.config.gem_base}/{gem_name}-{version}.gem"
        response = self._get(url)

        # Write beside the target and rename so a partial download is never cached.
        fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, suffix=".part")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(response.content)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug("Downloaded {} {} ({} bytes)", gem_name, version, len(response.content))

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.debug("Retry {}/{} after: {}", retry_state.attempt_number, self.config.max_retries, exc)

    def _get(self, url: str) -> requests.Response:
        return self._retrying(self._get_once, url)

    def _get_once(self, url: str) -> requests.Response:
        try:
            response = self.session.get(url, timeout=self.config.timeout, allow_redirects=True)
        except requests.TooManyRedirects as exc:
            raise FetchError(f"Too many redirects for {url}") from exc
        except (
            requests.ConnectionError,
            requests.Timeout,
            requests.exceptions.ChunkedEncodingError,
            requests.exceptions.ContentDecodingError,
        ) as exc:
            raise TransientFetchError(f"Request to {url} failed: {exc}") from exc
        except requests.RequestException as exc:
            raise FetchError(f"Request to {url} failed: {exc}") from exc

        status = response.status_code
        if status == 404:
            raise NotFoundError(f"Not found: {url}")
        if status in RETRYABLE_STATUS:
            raise TransientFetchError(f"HTTP {status} from {url}")
        if status >= 400:
            raise FetchError(f"HTTP {status} from {url}")
        return response
