"""Resolve IP addresses to directory computer records."""
from __future__ import annotations

import time
import uuid
from typing import Callable, Iterable, Iterator, Optional

from adResolve.resolver.address_map import AddressMap, build_address_map
from adResolve.resolver.directory import DirectoryService
from adResolve.resolver.discovery import DefaultsProvider
from adResolve.resolver.errors import ComputerNotFoundError, DirectoryQueryError, TimestampUnsetError
from adResolve.resolver.models import ComputerAttributes, ComputerRecord, Diagnostic, DiagnosticKind
from adResolve.resolver.sources import ZoneSource
from adResolve.resolver.timestamps import to_calendar_date
from adResolve.logging_config import get_logger, reset_run_id, set_run_id

logger = get_logger("resolver")

DiagnosticSink = Callable[[Diagnostic], None]


def normalize_computer(attrs: ComputerAttributes) -> ComputerRecord:
    """
    Turn raw directory attributes into a complete ComputerRecord.

    Raises:
        TimestampUnsetError: a timestamp is absent or marks "never"
        ValueError: a text attribute is missing
    """
    missing = [
        field for field in ("name", "dns_host_name", "operating_system")
        if not getattr(attrs, field)
    ]
    if missing:
        raise ValueError(f"missing attribute(s): {', '.join(missing)}")
    try:
        password_last_set = to_calendar_date(attrs.pwd_last_set)
    except TimestampUnsetError as exc:
        raise TimestampUnsetError(f"pwdLastSet: {exc}") from exc
    try:
        last_logon_date = to_calendar_date(attrs.last_logon_timestamp)
    except TimestampUnsetError as exc:
        raise TimestampUnsetError(f"lastLogonTimestamp: {exc}") from exc
    return ComputerRecord(
        name=attrs.name,
        dns_host_name=attrs.dns_host_name,
        operating_system=attrs.operating_system,
        password_last_set=password_last_set,
        last_logon_date=last_logon_date,
    )


class ComputerResolver:
    """
    Two-stage lookup: one zone query into an AddressMap, then one directory
    query per hostname found for each input address.

    Per-item failures become Diagnostics (logged as warnings and handed to
    on_diagnostic); only a failing zone query aborts the batch.
    """

    def __init__(
        self,
        zone_source: ZoneSource,
        directory: DirectoryService,
        *,
        defaults: Optional[DefaultsProvider] = None,
        on_diagnostic: Optional[DiagnosticSink] = None,
    ) -> None:
        self.zone_source = zone_source
        self.directory = directory
        self.defaults = defaults
        self.on_diagnostic = on_diagnostic

    def _diagnose(self, kind: DiagnosticKind, subject: str, message: str, ip: str) -> None:
        diagnostic = Diagnostic(kind=kind, subject=subject, message=message, ip=ip)
        logger.warning(message, extra={"kind": kind.value, "ip": ip, "computer": subject})
        if self.on_diagnostic is not None:
            self.on_diagnostic(diagnostic)

    def _lookup(self, hostname: str, ip: str) -> Optional[ComputerRecord]:
        try:
            attrs = self.directory.lookup_computer(hostname)
        except ComputerNotFoundError:
            self._diagnose(
                DiagnosticKind.COMPUTER_NOT_FOUND, hostname,
                f"Could not find computer {hostname} in the directory", ip,
            )
            return None
        except DirectoryQueryError as exc:
            self._diagnose(
                DiagnosticKind.COMPUTER_NOT_FOUND, hostname,
                f"Could not find computer {hostname} in the directory: {exc}", ip,
            )
            return None

        try:
            return normalize_computer(attrs)
        except ValueError as exc:
            self._diagnose(
                DiagnosticKind.INCOMPLETE_RECORD, hostname,
                f"Directory entry for {hostname} is incomplete: {exc}", ip,
            )
            return None

    def resolve_with_map(self, ip_addresses: Iterable[str], address_map: AddressMap) -> Iterator[ComputerRecord]:
        """Resolve against an already built map, in input order."""
        for ip in ip_addresses:
            hostnames = address_map.hostnames(ip)
            if not hostnames:
                self._diagnose(
                    DiagnosticKind.UNRESOLVED_ADDRESS, ip,
                    f"Could not resolve {ip} to a hostname", ip,
                )
                continue
            for hostname in hostnames:
                record = self._lookup(hostname, ip)
                if record is not None:
                    yield record

    def resolve(
        self,
        ip_addresses: Iterable[str],
        zone_name: Optional[str] = None,
        server_address: Optional[str] = None,
    ) -> Iterator[ComputerRecord]:
        """
        Lazily resolve ip_addresses to ComputerRecords.

        The address map is built once when iteration starts; errors from
        that step propagate to the caller.
        """
        token = set_run_id(uuid.uuid4().hex[:12])
        start_time = time.time()
        emitted = 0
        try:
            address_map = build_address_map(
                zone_name, server_address, self.zone_source, defaults=self.defaults
            )
            for record in self.resolve_with_map(ip_addresses, address_map):
                emitted += 1
                yield record
            logger.info(
                "Resolution batch completed",
                extra={
                    "emitted": emitted,
                    "duration": round((time.time() - start_time) * 1000, 2),
                    "outcome": "success",
                }
            )
        finally:
            reset_run_id(token)


def resolve_computers(
    ip_addresses: Iterable[str],
    zone_source: ZoneSource,
    directory: DirectoryService,
    *,
    zone_name: Optional[str] = None,
    server_address: Optional[str] = None,
    defaults: Optional[DefaultsProvider] = None,
    on_diagnostic: Optional[DiagnosticSink] = None,
) -> Iterator[ComputerRecord]:
    resolver = ComputerResolver(zone_source, directory, defaults=defaults, on_diagnostic=on_diagnostic)
    return resolver.resolve(ip_addresses, zone_name=zone_name, server_address=server_address)
