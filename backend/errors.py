from __future__ import annotations


class PiholeError(Exception):
    """Base class for everything the Pi-hole client raises."""

    prefix = "Pi-hole request failed"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"{self.prefix}: {message}")


class InvalidHostError(PiholeError):
    prefix = "Invalid host format"


class InvalidUrlError(PiholeError):
    prefix = "Invalid URL"


class NetworkError(PiholeError):
    prefix = "Network request failed"


class JsonError(PiholeError):
    prefix = "JSON parsing failed"


class ServerError(PiholeError):
    def __init__(self, status: int) -> None:
        self.status = int(status)
        self.message = str(self.status)
        Exception.__init__(self, f"Server returned non-success status: {self.status}")


class ValidationError(PiholeError):
    """A parsed stats payload failed a sanity check. Never absorbed by probing."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        self.message = reason
        Exception.__init__(self, f"Response validation failed: {reason}")


class DiscoveryError(Exception):
    """The ARP table could not be read."""
