"""
Resolver pipeline for adResolve.

Builds an IP -> hostname map from one DNS zone query, then looks up each
hostname as a computer object in Active Directory.
"""
from __future__ import annotations

from adResolve.resolver.address_map import AddressMap, build_address_map
from adResolve.resolver.config import ResolverConfig
from adResolve.resolver.directory import LdapDirectory
from adResolve.resolver.discovery import DomainDefaults, StaticDefaults
from adResolve.resolver.errors import (
    ADResolveError,
    ComputerNotFoundError,
    DirectoryQueryError,
    DiscoveryError,
    InvalidAddressError,
    InvalidZoneNameError,
    TimestampUnsetError,
    ZoneQueryError,
)
from adResolve.resolver.models import (
    AddressRecord,
    ComputerAttributes,
    ComputerRecord,
    Diagnostic,
    DiagnosticKind,
    ManyHostnames,
    OneHostname,
)
from adResolve.resolver.pipeline import ComputerResolver, resolve_computers
from adResolve.resolver.sources import AxfrZoneSource, LdapZoneSource, build_source
from adResolve.resolver.validation import validate_addresses, validate_ip, validate_zone_name

__all__ = [
    "ADResolveError",
    "AddressMap",
    "AddressRecord",
    "AxfrZoneSource",
    "ComputerAttributes",
    "ComputerNotFoundError",
    "ComputerRecord",
    "ComputerResolver",
    "Diagnostic",
    "DiagnosticKind",
    "DirectoryQueryError",
    "DiscoveryError",
    "DomainDefaults",
    "InvalidAddressError",
    "InvalidZoneNameError",
    "LdapDirectory",
    "LdapZoneSource",
    "ManyHostnames",
    "OneHostname",
    "ResolverConfig",
    "StaticDefaults",
    "TimestampUnsetError",
    "ZoneQueryError",
    "build_address_map",
    "build_source",
    "resolve_computers",
    "validate_addresses",
    "validate_ip",
    "validate_zone_name",
]
