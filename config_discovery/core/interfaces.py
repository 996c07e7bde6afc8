"""Core interfaces for the config discovery client."""

from typing import Protocol, TypeVar

from pydantic import TypeAdapter

T = TypeVar("T")


class Transport(Protocol):
    """Fetches a URL and decodes its JSON body."""

    async def fetch(self, url: str, decoder: type[T] | TypeAdapter[T]) -> T:
        """Fetch url and decode the body.

        Raises:
            TransportError: On network failure or non-OK status
            DecodeError: On malformed or unexpected JSON
        """
        ...

    async def close(self) -> None:
        """Release transport resources."""
        ...
