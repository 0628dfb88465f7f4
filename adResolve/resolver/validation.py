"""Boundary validation for addresses and zone names."""
from __future__ import annotations

import ipaddress
import re
from typing import Iterable, List, Tuple

from adResolve.resolver.errors import InvalidAddressError, InvalidZoneNameError

LABEL_PATTERN = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")
TOP_LABEL_PATTERN = re.compile(r"^[A-Za-z]{2,63}$")
MAX_NAME_LENGTH = 253


def validate_ip(value: object) -> str:
    """Return the canonical text form of an IPv4/IPv6 literal."""
    if not isinstance(value, str):
        raise InvalidAddressError(value)
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError as exc:
        raise InvalidAddressError(value) from exc


def validate_addresses(values: Iterable[object]) -> Tuple[List[str], List[InvalidAddressError]]:
    """Split values into canonical addresses and rejections, both in input order."""
    valid: List[str] = []
    rejected: List[InvalidAddressError] = []
    for value in values:
        try:
            valid.append(validate_ip(value))
        except InvalidAddressError as exc:
            rejected.append(exc)
    return valid, rejected


def validate_zone_name(value: object) -> str:
    """
    Check that value is a dotted DNS domain name.

    Each label is 1-63 letters, digits or hyphens without a leading or
    trailing hyphen; the top label is alphabetic and at least two
    characters long. A single trailing dot is accepted and removed.
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidZoneNameError(value, "empty")
    name = value.strip()
    if name.endswith("."):
        name = name[:-1]
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidZoneNameError(value, "longer than 253 characters")

    labels = name.split(".")
    if len(labels) < 2:
        raise InvalidZoneNameError(value, "needs at least two labels")
    for label in labels:
        if not LABEL_PATTERN.match(label):
            raise InvalidZoneNameError(value, f"bad label {label!r}")
    if not TOP_LABEL_PATTERN.match(labels[-1]):
        raise InvalidZoneNameError(value, "top label must be alphabetic")
    return name
