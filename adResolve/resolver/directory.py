"""Directory service: look up computer objects by name."""
from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Protocol

from ldap3.utils.conv import escape_filter_chars

from adResolve.resolver.config import LdapConfig
from adResolve.resolver.discovery import DefaultsProvider
from adResolve.resolver.errors import ComputerNotFoundError, DirectoryQueryError, DiscoveryError
from adResolve.resolver.ldap_client import create_connection, paged_search, resolve_base_dn
from adResolve.resolver.models import ComputerAttributes
from adResolve.logging_config import get_logger

logger = get_logger("directory")

COMPUTER_ATTRIBUTES = ["name", "dNSHostName", "operatingSystem", "pwdLastSet", "lastLogonTimestamp"]


class DirectoryService(Protocol):
    def lookup_computer(self, identity: str) -> ComputerAttributes:
        ...


def computer_filter(identity: str) -> str:
    """LDAP filter matching the computer account for a host name or FQDN."""
    short_name = identity.strip().rstrip(".").split(".")[0]
    return f"(&(objectCategory=computer)(sAMAccountName={escape_filter_chars(short_name)}$))"


def _single(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def attributes_from_entry(attrs: Dict[str, Any]) -> ComputerAttributes:
    return ComputerAttributes(
        name=_single(attrs.get("name")) or None,
        dns_host_name=_single(attrs.get("dNSHostName")) or None,
        operating_system=_single(attrs.get("operatingSystem")) or None,
        pwd_last_set=_single(attrs.get("pwdLastSet")),
        last_logon_timestamp=_single(attrs.get("lastLogonTimestamp")),
    )


class LdapDirectory:
    """
    Computer lookups against Active Directory over LDAP.

    The connection is opened on first use and kept for the lifetime of the
    object; call close() when the batch is done.
    """

    def __init__(
        self,
        cfg: LdapConfig,
        server_address: Optional[str] = None,
        domain: Optional[str] = None,
        defaults: Optional[DefaultsProvider] = None,
        connect: Callable[[LdapConfig, str], Any] = create_connection,
    ) -> None:
        self.cfg = cfg
        self.server_address = cfg.server or server_address
        self.domain = domain
        self.defaults = defaults
        self._connect = connect
        self._conn: Any = None
        self._base_dn: Optional[str] = None

    def _domain(self) -> Optional[str]:
        if self.domain or self.defaults is None:
            return self.domain
        try:
            return self.defaults.domain_root()
        except DiscoveryError:
            return None

    def _connection(self) -> Any:
        if self._conn is not None:
            return self._conn
        if not self.server_address and self.defaults is not None:
            try:
                self.server_address = self.defaults.server_address()
            except DiscoveryError as exc:
                raise DirectoryQueryError(str(exc)) from exc
        if not self.server_address:
            raise DirectoryQueryError("No directory server configured or discovered")

        conn = self._connect(self.cfg, self.server_address)
        try:
            base_dn = resolve_base_dn(conn, self.cfg.base_dn, self._domain())
        except DirectoryQueryError:
            conn.unbind()
            raise
        self._conn, self._base_dn = conn, base_dn
        return self._conn

    def lookup_computer(self, identity: str) -> ComputerAttributes:
        conn = self._connection()
        entries = paged_search(
            conn,
            self._base_dn,
            computer_filter(identity),
            COMPUTER_ATTRIBUTES,
            page_size=self.cfg.page_size,
        )
        if not entries:
            logger.debug("No computer object", extra={"computer": identity, "outcome": "not_found"})
            raise ComputerNotFoundError(identity)
        return attributes_from_entry(entries[0].get("attributes", {}))

    def close(self) -> None:
        if self._conn is not None:
            self._conn.unbind()
            self._conn = None
