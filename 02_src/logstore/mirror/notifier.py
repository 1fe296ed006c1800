"""Refresh webhook fired after a mirror flush."""

from pathlib import Path

import httpx

from ..logging_config import get_logger

logger = get_logger(__name__)


class RefreshNotifier:
    """POSTs a small notice to a refresh endpoint. Fire-and-forget, no retry."""

    def __init__(
        self,
        url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 5.0,
    ):
        self._url = url
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    async def __call__(self, target: Path, lines: list[str]) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)

        try:
            response = await self._client.post(
                self._url,
                json={"partition": Path(target).name, "lines": len(lines)},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Refresh notification to %s failed: %s", self._url, e)

    async def aclose(self) -> None:
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None
