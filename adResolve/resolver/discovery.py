"""Default zone name and directory server discovery."""
from __future__ import annotations

import os
import socket
from typing import Optional, Protocol

import dns.exception
import dns.resolver

from adResolve.resolver.config import ResolverConfig
from adResolve.resolver.errors import DiscoveryError
from adResolve.logging_config import get_logger

logger = get_logger("discovery")


class DefaultsProvider(Protocol):
    def domain_root(self) -> str:
        ...

    def zone_name(self) -> str:
        ...

    def server_address(self) -> str:
        ...


class StaticDefaults:
    """Fixed defaults, for callers that already know both values."""

    def __init__(self, zone_name: str, server_address: str) -> None:
        self._zone_name = zone_name
        self._server_address = server_address

    def domain_root(self) -> str:
        return self._zone_name

    def zone_name(self) -> str:
        return self._zone_name

    def server_address(self) -> str:
        return self._server_address


class DomainDefaults:
    """
    Discover defaults from configuration and the environment.

    The domain root comes from config, ADRESOLVE_DOMAIN, or the DNS suffix of
    this host's FQDN. The server is the best SRV target for
    ``_ldap._tcp.dc._msdcs.<domain>``. Both are looked up lazily, once.
    """

    def __init__(self, config: ResolverConfig, resolver: Optional[dns.resolver.Resolver] = None) -> None:
        self.config = config
        self.resolver = resolver
        self._domain: Optional[str] = None
        self._server: Optional[str] = None

    def domain_root(self) -> str:
        if self._domain:
            return self._domain
        domain = self.config.domain or os.getenv("ADRESOLVE_DOMAIN")
        if not domain:
            fqdn = socket.getfqdn()
            if "." not in fqdn:
                raise DiscoveryError(f"Host name {fqdn!r} carries no domain suffix; set a domain explicitly")
            domain = fqdn.split(".", 1)[1]
        self._domain = domain.strip().rstrip(".").lower()
        logger.debug("Domain root discovered", extra={"zone": self._domain})
        return self._domain

    def zone_name(self) -> str:
        return self.config.zone.zone_name or self.domain_root()

    def server_address(self) -> str:
        if self.config.zone.server_address:
            return self.config.zone.server_address
        if self._server is None:
            self._server = self.nearest_domain_controller()
        return self._server

    def nearest_domain_controller(self) -> str:
        """Best SRV target: lowest priority, then highest weight."""
        query = f"{self.config.discovery.srv_prefix}.{self.domain_root()}"
        resolver = self.resolver or dns.resolver.Resolver()
        try:
            answer = resolver.resolve(query, "SRV", lifetime=self.config.discovery.timeout_seconds)
        except dns.exception.DNSException as exc:
            logger.error(
                f"Domain controller discovery failed: {exc}",
                extra={"zone": query, "outcome": "error", "error_type": type(exc).__name__}
            )
            raise DiscoveryError(f"No domain controller found via {query}: {exc}") from exc

        candidates = sorted(answer, key=lambda rr: (rr.priority, -rr.weight))
        if not candidates:
            raise DiscoveryError(f"No domain controller found via {query}")
        server = candidates[0].target.to_text().rstrip(".")
        logger.info("Domain controller discovered", extra={"server": server, "zone": query})
        return server
