# wren/assets/fetch.py
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

import httpx

from wren.assets.errors import FetchError


@dataclass(frozen=True)
class FetchResponse:
    url: str
    status: int
    content: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Fetcher(Protocol):
    async def fetch(self, url: str) -> FetchResponse: ...

    async def aclose(self) -> None: ...


class HttpxFetcher:
    """
    Fetcher backed by an httpx.AsyncClient.
    No timeout is set here; callers that need one wrap the load.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers=headers, timeout=None, follow_redirects=True
        )

    async def fetch(self, url: str) -> FetchResponse:
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise FetchError(url) from e

        return FetchResponse(
            url=url, status=response.status_code, content=response.content
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
