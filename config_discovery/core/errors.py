"""Errors raised by the config discovery client."""


class DiscoveryError(Exception):
    """Base class for config discovery errors."""


class TransportError(DiscoveryError):
    """Network failure or non-OK HTTP status."""

    def __init__(self, url: str, message: str, status_code: int | None = None):
        self.url = url
        self.message = message
        self.status_code = status_code
        super().__init__(f"GET {url} failed: {message}")


class DecodeError(DiscoveryError):
    """Response body is not JSON of the expected shape."""

    def __init__(self, url: str, message: str):
        self.url = url
        self.message = message
        super().__init__(f"Failed to decode response from {url}: {message}")


class ParseError(DiscoveryError):
    """VPI history entry holds a value that is not a base-10 integer."""

    def __init__(self, asset: str, timestamp: str, field: str, value: str):
        self.asset = asset
        self.timestamp = timestamp
        self.field = field
        self.value = value
        super().__init__(
            f"Invalid VPI {field} for {asset} at {timestamp}: {value!r}"
        )


class ConfigUnavailable(DiscoveryError):
    """No config has been fetched successfully yet."""

    def __init__(self, message: str = "Config has not been fetched yet"):
        super().__init__(message)
