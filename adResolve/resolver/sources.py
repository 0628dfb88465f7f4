"""Zone sources: enumerate the A records of a DNS zone (AXFR, AD-integrated zone over LDAP)."""
from __future__ import annotations

import ipaddress
import struct
from typing import Any, Callable, List, Optional, Protocol

import dns.exception
import dns.query
import dns.rdatatype
import dns.resolver
import dns.zone

from adResolve.resolver.config import LdapConfig, ResolverConfig
from adResolve.resolver.errors import DirectoryQueryError, ZoneQueryError
from adResolve.resolver.ldap_client import create_connection, paged_search, resolve_base_dn
from adResolve.resolver.models import AddressRecord
from adResolve.logging_config import get_logger

logger = get_logger("sources")

# dnsRecord blob: DataLength(2) Type(2) Version(1) Rank(1) Flags(2) Serial(4)
# TtlSeconds(4) Reserved(4) TimeStamp(4), then the record data
DNS_RECORD_HEADER = struct.Struct("<HHBBHIIII")
DNS_TYPE_A = 1

DNS_PARTITIONS = ("DomainDnsZones", "ForestDnsZones")
# Pre-2003 AD-integrated zones live in the domain partition
LEGACY_DNS_CONTAINER = "CN=MicrosoftDNS,CN=System"


class ZoneSource(Protocol):
    def fetch_address_records(self, zone_name: str, server_address: str) -> List[AddressRecord]:
        ...


def address_records_from_zone(zone: dns.zone.Zone) -> List[AddressRecord]:
    """Flatten the A rdatasets of a zone; names are relative, the apex renders as '@'."""
    records: List[AddressRecord] = []
    for name, rdataset in zone.iterate_rdatasets(dns.rdatatype.A):
        host = name.relativize(zone.origin).to_text() if name.is_absolute() else name.to_text()
        for rdata in rdataset:
            records.append(AddressRecord(host_name=host, ipv4=rdata.address))
    return records


def parse_dns_record(blob: bytes) -> Optional[str]:
    """Return the IPv4 address held by an A-type dnsRecord blob, else None."""
    if len(blob) < DNS_RECORD_HEADER.size:
        return None
    data_length, record_type = struct.unpack_from("<HH", blob)
    if record_type != DNS_TYPE_A or data_length != 4:
        return None
    start = DNS_RECORD_HEADER.size
    data = blob[start:start + 4]
    if len(data) != 4:
        return None
    return str(ipaddress.IPv4Address(data))


class AxfrZoneSource:
    """Enumerate a zone with a full zone transfer."""

    def __init__(self, timeout: float = 30.0, resolver: Optional[dns.resolver.Resolver] = None) -> None:
        self.timeout = timeout
        self.resolver = resolver

    def _server_ip(self, server_address: str) -> str:
        try:
            return str(ipaddress.ip_address(server_address))
        except ValueError:
            pass
        resolver = self.resolver or dns.resolver.Resolver()
        answer = resolver.resolve(server_address, "A", lifetime=self.timeout)
        return answer[0].to_text()

    def fetch_address_records(self, zone_name: str, server_address: str) -> List[AddressRecord]:
        logger.info(
            "Requesting zone transfer",
            extra={"zone": zone_name, "server": server_address, "source_kind": "axfr"}
        )
        try:
            server_ip = self._server_ip(server_address)
            zone = dns.zone.from_xfr(dns.query.xfr(server_ip, zone_name, lifetime=self.timeout))
        except (dns.exception.DNSException, OSError, EOFError) as exc:
            logger.error(
                f"Zone transfer failed: {exc}",
                exc_info=True,
                extra={"zone": zone_name, "server": server_address, "outcome": "error",
                       "error_type": type(exc).__name__}
            )
            raise ZoneQueryError(zone_name, server_address, str(exc) or type(exc).__name__) from exc

        records = address_records_from_zone(zone)
        logger.info(
            "Zone transfer completed",
            extra={"zone": zone_name, "records": len(records), "outcome": "success"}
        )
        return records


class LdapZoneSource:
    """Read an AD-integrated zone from its dnsNode objects."""

    def __init__(
        self,
        cfg: LdapConfig,
        domain: Optional[str] = None,
        connect: Callable[[LdapConfig, str], Any] = create_connection,
    ) -> None:
        self.cfg = cfg
        self.domain = domain
        self._connect = connect

    def _zone_bases(self, zone_name: str, base_dn: str) -> List[str]:
        bases = [f"DC={zone_name},CN=MicrosoftDNS,DC={partition},{base_dn}" for partition in DNS_PARTITIONS]
        bases.append(f"DC={zone_name},{LEGACY_DNS_CONTAINER},{base_dn}")
        return bases

    def fetch_address_records(self, zone_name: str, server_address: str) -> List[AddressRecord]:
        server = self.cfg.server or server_address
        logger.info(
            "Reading AD-integrated zone",
            extra={"zone": zone_name, "server": server, "source_kind": "ldap"}
        )
        try:
            conn = self._connect(self.cfg, server)
        except DirectoryQueryError as exc:
            raise ZoneQueryError(zone_name, server, str(exc)) from exc

        try:
            base_dn = resolve_base_dn(conn, self.cfg.base_dn, self.domain or zone_name)
            entries: List[dict] = []
            for search_base in self._zone_bases(zone_name, base_dn):
                entries = paged_search(
                    conn,
                    search_base,
                    "(&(objectClass=dnsNode)(!(dNSTombstoned=TRUE)))",
                    ["name", "dnsRecord"],
                    page_size=self.cfg.page_size,
                )
                if entries:
                    break
        except DirectoryQueryError as exc:
            raise ZoneQueryError(zone_name, server, str(exc)) from exc
        finally:
            conn.unbind()

        if not entries:
            raise ZoneQueryError(zone_name, server, "zone not found in any DNS partition or the System container")

        records: List[AddressRecord] = []
        for entry in entries:
            attrs = entry.get("attributes", {})
            name = attrs.get("name")
            if isinstance(name, list):
                name = name[0] if name else None
            if not name:
                continue
            blobs = attrs.get("dnsRecord") or entry.get("raw_attributes", {}).get("dnsRecord") or []
            if isinstance(blobs, bytes):
                blobs = [blobs]
            for blob in blobs:
                ip = parse_dns_record(blob)
                if ip:
                    records.append(AddressRecord(host_name=str(name), ipv4=ip))

        logger.info(
            "AD-integrated zone read",
            extra={"zone": zone_name, "entries": len(entries), "records": len(records), "outcome": "success"}
        )
        return records


def build_source(config: ResolverConfig) -> ZoneSource:
    kind = config.zone.source
    if kind == "axfr":
        return AxfrZoneSource(timeout=config.zone.timeout_seconds)
    if kind == "ldap":
        return LdapZoneSource(config.ldap, domain=config.domain)
    raise ValueError(f"Unsupported zone source: {kind}")
