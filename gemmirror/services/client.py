"""
Blocking HTTP access to a compact-index registry.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from gemmirror.domain.errors import FetchError, TransportFailure
from gemmirror.domain.models import MirrorConfig

logger = logging.getLogger(__name__)


class RegistryClient:
    """Thin wrapper over ``httpx.Client`` that maps failures onto mirror errors."""

    def __init__(self, client: Optional[httpx.Client] = None, config: Optional[MirrorConfig] = None):
        self.config = config or MirrorConfig()
        self._client = client or httpx.Client(
            follow_redirects=self.config.follow_redirects,
            timeout=self.config.timeout_seconds,
            headers={"User-Agent": self.config.user_agent},
        )

    def get(self, url: str) -> httpx.Response:
        """
        Issue a GET and return the response whatever its status.

        Raises:
            TransportFailure: if no response was received.
        """
        logger.debug(f"GET {url}")
        try:
            return self._client.get(url)
        except httpx.HTTPError as e:
            raise TransportFailure(f"Failed to fetch {url}: {e}", url=url) from e

    def get_ok(self, url: str) -> httpx.Response:
        """
        GET ``url`` and require a success status.

        Raises:
            FetchError: on a non-success status.
            TransportFailure: if no response was received.
        """
        response = self.get(url)
        if not response.is_success:
            raise FetchError(
                f"Failed to fetch {url}: {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        return response

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RegistryClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
