from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from ..core.errors import TransportError


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: float = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class HttpProvider(Provider):
    """Provider holding a lazily created httpx client.

    A client passed in by the caller is used as-is and never closed here.
    """

    error_class = TransportError

    def __init__(self, *, client: Optional[httpx.AsyncClient] = None, timeout_s: Optional[float] = None):
        if timeout_s is not None:
            self.timeout_s = timeout_s
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_s)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _send(self, method: str, url: str, **kwargs: Any) -> Any:
        """Send a request and return its decoded JSON body."""
        client = await self._get_client()
        try:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            body = exc.response.text[:500]
            raise self.error_class(
                f"{self.name} API error: {exc.response.status_code} - {body}",
                provider=self.name,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            raise self.error_class(
                f"{self.name} request failed: {exc}",
                provider=self.name,
            ) from exc
        except ValueError as exc:
            raise self.error_class(
                f"{self.name} returned a non-JSON response",
                provider=self.name,
            ) from exc
