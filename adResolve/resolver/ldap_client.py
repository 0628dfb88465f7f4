"""ldap3 helpers: connection creation, base DN resolution and paged search."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from ldap3 import ALL, ANONYMOUS, NTLM, SIMPLE, SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPException

from adResolve.resolver.config import LdapConfig
from adResolve.resolver.errors import DirectoryQueryError
from adResolve.logging_config import get_logger, sanitize_log_data

logger = get_logger("ldap")

_AUTH_METHODS = {"anonymous": ANONYMOUS, "simple": SIMPLE, "ntlm": NTLM}


def create_connection(cfg: LdapConfig, server_address: str) -> Connection:
    """Open and bind a connection to server_address using the configured credentials."""
    port = 636 if cfg.use_ssl and cfg.port == 389 else cfg.port
    bind_info = sanitize_log_data({
        "user": cfg.user,
        "password": cfg.password,
        "authentication": cfg.authentication,
        "port": port,
    })
    logger.info(
        "Connecting to directory",
        extra={"server": server_address, "action": "ldap_connect", "state": bind_info}
    )

    try:
        server = Server(
            server_address,
            port=port,
            use_ssl=cfg.use_ssl,
            get_info=ALL,
            connect_timeout=cfg.timeout_seconds,
        )
        if cfg.authentication == "anonymous" or not cfg.user:
            conn = Connection(
                server,
                authentication=ANONYMOUS,
                receive_timeout=cfg.timeout_seconds,
                auto_bind=True,
            )
        else:
            conn = Connection(
                server,
                user=cfg.user,
                password=cfg.password,
                authentication=_AUTH_METHODS[cfg.authentication],
                receive_timeout=cfg.timeout_seconds,
                auto_bind=True,
            )
    except LDAPException as exc:
        logger.error(
            f"LDAP bind to {server_address} failed: {exc}",
            exc_info=True,
            extra={"server": server_address, "outcome": "error", "error_type": type(exc).__name__}
        )
        raise DirectoryQueryError(f"Cannot bind to {server_address}: {exc}") from exc

    logger.info("LDAP bind successful", extra={"server": server_address, "outcome": "success"})
    return conn


def domain_to_base_dn(domain: str) -> str:
    """corp.example.com -> DC=corp,DC=example,DC=com"""
    return ",".join(f"DC={label}" for label in domain.strip(".").split(".") if label)


def resolve_base_dn(conn: Any, configured: Optional[str], domain: Optional[str]) -> str:
    """Pick the search base: explicit config, then the rootDSE naming context, then the domain."""
    if configured:
        return configured
    info = getattr(getattr(conn, "server", None), "info", None)
    other = getattr(info, "other", None) or {}
    if "defaultNamingContext" in other and other["defaultNamingContext"]:
        return str(other["defaultNamingContext"][0])
    if domain:
        return domain_to_base_dn(domain)
    raise DirectoryQueryError("Cannot determine the directory base DN")


def paged_search(
    conn: Any,
    search_base: str,
    search_filter: str,
    attributes: Sequence[str],
    page_size: int = 500,
) -> List[Dict[str, Any]]:
    """Run a paged subtree search and return its result entries."""
    try:
        response = conn.extend.standard.paged_search(
            search_base=search_base,
            search_filter=search_filter,
            search_scope=SUBTREE,
            attributes=list(attributes),
            paged_size=page_size,
            generator=False,
        )
    except LDAPException as exc:
        raise DirectoryQueryError(f"Search under {search_base} failed: {exc}") from exc

    entries = [
        item for item in response or []
        if item.get("type") == "searchResEntry"
    ]
    logger.debug(
        "Paged search completed",
        extra={"action": search_filter, "entries": len(entries)}
    )
    return entries
