"""Exception taxonomy for the resolver pipeline."""
from __future__ import annotations


class ADResolveError(Exception):
    """Base class for every error raised by adResolve."""


class InvalidAddressError(ADResolveError, ValueError):
    """A value handed to the resolver is not an IPv4 or IPv6 literal."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Not a valid IP address: {value!r}")


class InvalidZoneNameError(ADResolveError, ValueError):
    """A zone name is not a syntactically valid DNS domain name."""

    def __init__(self, value: object, reason: str = "") -> None:
        self.value = value
        self.reason = reason
        detail = f" ({reason})" if reason else ""
        super().__init__(f"Not a valid DNS zone name: {value!r}{detail}")


class ZoneQueryError(ADResolveError):
    """The zone could not be enumerated (unreachable server, missing zone or refused transfer)."""

    def __init__(self, zone_name: str, server: str, message: str) -> None:
        self.zone_name = zone_name
        self.server = server
        super().__init__(f"Zone query for {zone_name} on {server} failed: {message}")


class DirectoryQueryError(ADResolveError):
    """The directory service failed while answering a lookup."""


class ComputerNotFoundError(DirectoryQueryError):
    """The directory holds no computer object for the identity."""

    def __init__(self, identity: str) -> None:
        self.identity = identity
        super().__init__(f"Computer not found in directory: {identity}")


class TimestampUnsetError(ADResolveError, ValueError):
    """A directory timestamp attribute is absent or holds the 'never' value."""


class DiscoveryError(ADResolveError):
    """A default (domain root or directory server) could not be discovered."""
