"""
HTTP transport for fetching toolchain artifacts.

This module provides a thin, explicitly scoped wrapper around
``requests.Session`` with:
- Manual redirect following (hop limit and cycle detection)
- HEAD existence probes that tolerate hosts answering 400 instead of 404
- Single-attempt streaming downloads (no retries at this layer)

requests speaks HTTP/1.1 only, which is what the generator relies on: some
hosts answer HEAD requests over HTTP/2 with 400 instead of 404.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Tuple
from urllib.parse import urljoin, urlparse

import requests
from requests.exceptions import RequestException

from swiftsdkgen.core.exceptions import (
    ArtifactNotFoundError,
    FetchError,
    RedirectCycleError,
    TooManyRedirectsError,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class RedirectPolicy:
    """How redirect chains are followed."""

    max_redirects: int = 5
    allow_cycles: bool = False


@dataclass(frozen=True)
class HTTPSettings:
    """Settings for the shared HTTP client."""

    timeout: int = 60
    redirects: RedirectPolicy = field(default_factory=RedirectPolicy)
    head_not_found_hosts: Tuple[str, ...] = ("github.com",)
    """Hosts whose 400 answer to HEAD means the same as 404."""


class HTTPClient:
    """
    Shared HTTP client for one generator run.

    Example:
        >>> with http_client(HTTPSettings()) as client:
        ...     if client.exists(url):
        ...         client.download(url, Path("Artifacts/swift.tar.gz"))
    """

    def __init__(
        self,
        settings: Optional[HTTPSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings or HTTPSettings()
        self.session = session or requests.Session()
        self.session.max_redirects = self.settings.redirects.max_redirects
        self._closed = False

    def close(self):
        """Release pooled connections. Safe to call more than once."""
        if not self._closed:
            self.session.close()
            self._closed = True
            logger.debug("HTTP client shut down")

    def __enter__(self) -> "HTTPClient":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _request(self, method: str, url: str, stream: bool = False):
        """
        Send a request and follow redirects according to the policy.

        Returns:
            Final non-redirect response

        Raises:
            RedirectCycleError: If the chain revisits a URL and cycles are disallowed
            TooManyRedirectsError: If more than max_redirects hops are needed
            FetchError: On connection or protocol errors
        """
        policy = self.settings.redirects
        visited = [url]
        current = url

        while True:
            try:
                response = self.session.request(
                    method,
                    current,
                    allow_redirects=False,
                    stream=stream,
                    timeout=self.settings.timeout,
                )
            except RequestException as e:
                raise FetchError(f"{method} {current} failed: {e}") from e

            if not response.is_redirect:
                return response

            location = urljoin(current, response.headers["location"])
            response.close()

            if location in visited and not policy.allow_cycles:
                raise RedirectCycleError(
                    f"Redirect cycle detected: {' -> '.join(visited + [location])}"
                )
            if len(visited) > policy.max_redirects:
                raise TooManyRedirectsError(
                    f"More than {policy.max_redirects} redirects fetching {url}"
                )

            logger.debug(f"Following redirect {current} -> {location}")
            visited.append(location)
            current = location

    def _is_quirk_host(self, url: str) -> bool:
        host = urlparse(url).hostname or ""
        return any(
            host == quirk or host.endswith("." + quirk)
            for quirk in self.settings.head_not_found_hosts
        )

    def _is_not_found(self, method: str, status_code: int, *urls: str) -> bool:
        """Check for "not found", where urls are the requested and answering URLs."""
        if status_code == 404:
            return True
        if method == "HEAD" and status_code == 400:
            return any(self._is_quirk_host(url) for url in urls if url)
        return False

    def exists(self, url: str) -> bool:
        """
        Probe a URL with HEAD.

        Args:
            url: URL to probe

        Returns:
            True for a 2xx answer, False for "not found"

        Raises:
            FetchError: For any other status or transport failure
        """
        response = self._request("HEAD", url)
        response.close()

        if response.ok:
            return True
        if self._is_not_found("HEAD", response.status_code, url, response.url):
            return False

        raise FetchError(f"HEAD {url} returned HTTP {response.status_code}")

    def download(self, url: str, destination: Path) -> Path:
        """
        Stream a URL to a local file. Exactly one attempt is made.

        Args:
            url: URL to download
            destination: Local path to save file

        Returns:
            Path to downloaded file

        Raises:
            ArtifactNotFoundError: If the server answers 404
            FetchError: On any other failure
        """
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Downloading {url}")
        response = self._request("GET", url, stream=True)

        try:
            if self._is_not_found("GET", response.status_code, url):
                raise ArtifactNotFoundError(url, response.status_code)
            if not response.ok:
                raise FetchError(f"GET {url} returned HTTP {response.status_code}")

            with open(destination, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
        except RequestException as e:
            destination.unlink(missing_ok=True)
            raise FetchError(f"Download of {url} interrupted: {e}") from e
        finally:
            response.close()

        logger.debug(f"Download complete: {destination}")
        return destination


@contextmanager
def http_client(settings: Optional[HTTPSettings] = None) -> Iterator[HTTPClient]:
    """
    Acquire an HTTPClient that is shut down on every exit path.

    Args:
        settings: Client settings (defaults if None)

    Yields:
        HTTPClient instance
    """
    client = HTTPClient(settings)
    try:
        yield client
    finally:
        client.close()
