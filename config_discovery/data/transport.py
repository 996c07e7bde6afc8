"""HTTP transport for the config discovery service."""

from typing import Any, TypeVar

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from ..core.errors import DecodeError, TransportError
from ..core.interfaces import Transport

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class HttpTransport(Transport):
    """GETs JSON documents and decodes them with pydantic.

    Does not retry; retry policy belongs to the caller.
    """

    def __init__(
        self,
        session: httpx.AsyncClient | None = None,
        timeout: float = 4.0,
    ) -> None:
        """Initialize HTTP transport.

        Args:
            session: Optional httpx client (one is created if not provided)
            timeout: Per-request timeout in seconds
        """
        self.timeout = timeout
        self.session = session or httpx.AsyncClient(
            timeout=timeout,
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        )
        self._owns_session = session is None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        if self._owns_session:
            await self.session.aclose()

    async def fetch(self, url: str, decoder: type[T] | TypeAdapter[T]) -> T:
        """Fetch url and decode its JSON body.

        Args:
            url: Absolute URL
            decoder: Target type or a prebuilt TypeAdapter

        Returns:
            Decoded value

        Raises:
            TransportError: On network failure, timeout or non-200 status
            DecodeError: On malformed JSON or unexpected shape
        """
        adapter: TypeAdapter[Any] = (
            decoder if isinstance(decoder, TypeAdapter) else TypeAdapter(decoder)
        )

        try:
            response = await self.session.get(url, timeout=self.timeout)
        except httpx.TimeoutException as e:
            logger.warning("Config request timed out", url=url, timeout=self.timeout)
            raise TransportError(url, f"timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            logger.warning("Network error in config request", url=url, error=str(e))
            raise TransportError(url, f"failed to fetch url: {e}") from e

        if response.status_code != httpx.codes.OK:
            logger.warning(
                "Unexpected status in config request",
                url=url,
                status_code=response.status_code,
            )
            raise TransportError(
                url,
                f"unexpected status code: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            result = adapter.validate_json(response.content)
        except ValidationError as e:
            logger.warning(
                "Failed to decode config response",
                url=url,
                errors=e.error_count(),
            )
            raise DecodeError(url, str(e)) from e

        logger.debug("Fetched config document", url=url, size=len(response.content))
        return result
