"""Build the IP -> hostname(s) map from one zone query."""
from __future__ import annotations

import time
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple

from adResolve.resolver.discovery import DefaultsProvider
from adResolve.resolver.errors import DiscoveryError
from adResolve.resolver.models import AddressRecord, HostnameEntry, OneHostname
from adResolve.resolver.sources import ZoneSource
from adResolve.resolver.validation import validate_zone_name
from adResolve.logging_config import get_logger

logger = get_logger("resolver")

ZONE_APEX = "@"
# Replication partitions of AD-integrated DNS, not machines
RESERVED_PARTITION_NAMES = frozenset({"forestdnszones", "domaindnszones"})


def is_eligible(record: AddressRecord) -> bool:
    name = record.host_name.strip()
    if name == ZONE_APEX:
        return False
    return name.lower() not in RESERVED_PARTITION_NAMES


class AddressMap(Mapping[str, HostnameEntry]):
    """Read-only mapping from IP address text to the hostname(s) holding it."""

    def __init__(self, entries: Optional[Dict[str, HostnameEntry]] = None) -> None:
        self._entries: Dict[str, HostnameEntry] = dict(entries or {})

    @classmethod
    def from_records(cls, records: Iterable[AddressRecord]) -> "AddressMap":
        """Accumulate records in order; a repeated IP extends its entry."""
        entries: Dict[str, HostnameEntry] = {}
        for record in records:
            existing = entries.get(record.ipv4)
            if existing is None:
                entries[record.ipv4] = OneHostname(record.host_name)
            else:
                entries[record.ipv4] = existing.with_hostname(record.host_name)
        return cls(entries)

    def __getitem__(self, ip: str) -> HostnameEntry:
        return self._entries[ip]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def hostnames(self, ip: str) -> Tuple[str, ...]:
        """Ordered hostnames for ip; empty when the address is not in the zone."""
        entry = self._entries.get(ip)
        return entry.hostnames if entry is not None else ()

    def as_joined(self) -> Dict[str, str]:
        """Comma-joined view, one string per address."""
        return {ip: ",".join(entry.hostnames) for ip, entry in self._entries.items()}

    def __repr__(self) -> str:
        return f"AddressMap({len(self)} addresses)"


def build_address_map(
    zone_name: Optional[str],
    server_address: Optional[str],
    source: ZoneSource,
    *,
    defaults: Optional[DefaultsProvider] = None,
) -> AddressMap:
    """
    Query the zone once and index its eligible A records by address.

    Missing zone_name / server_address are taken from defaults. Zone query
    failures propagate unchanged; no partial map is ever returned.

    Raises:
        InvalidZoneNameError: zone name is malformed (before any query)
        DiscoveryError: a value was omitted and no defaults provider can supply it
        ZoneQueryError: the zone could not be enumerated
    """
    if (zone_name is None or server_address is None) and defaults is None:
        raise DiscoveryError("Zone name and server address are required when no defaults provider is given")

    zone_name = validate_zone_name(zone_name if zone_name is not None else defaults.zone_name())
    if server_address is None:
        server_address = defaults.server_address()

    start_time = time.time()
    records = source.fetch_address_records(zone_name, server_address)
    eligible = [record for record in records if is_eligible(record)]
    address_map = AddressMap.from_records(eligible)
    logger.debug("Address map entries", extra={"zone": zone_name, "state": address_map.as_joined()})

    logger.info(
        "Address map built",
        extra={
            "zone": zone_name,
            "server": server_address,
            "records": len(records),
            "entries": len(address_map),
            "duration": round((time.time() - start_time) * 1000, 2),
            "outcome": "success",
        }
    )
    return address_map
