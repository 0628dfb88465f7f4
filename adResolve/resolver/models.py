"""Data models for the IP-to-computer pipeline."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from adResolve.resolver.timestamps import format_short_date


class AddressRecord(BaseModel):
    """One A record as returned by a zone source."""
    host_name: str
    ipv4: str

    model_config = ConfigDict(frozen=True)


@dataclass(frozen=True)
class OneHostname:
    hostname: str

    @property
    def hostnames(self) -> Tuple[str, ...]:
        return (self.hostname,)

    def with_hostname(self, hostname: str) -> "ManyHostnames":
        return ManyHostnames((self.hostname, hostname))


@dataclass(frozen=True)
class ManyHostnames:
    """Several A records share one address; order is the order they were received."""
    hostnames: Tuple[str, ...]

    def with_hostname(self, hostname: str) -> "ManyHostnames":
        return ManyHostnames(self.hostnames + (hostname,))


HostnameEntry = Union[OneHostname, ManyHostnames]


class ComputerAttributes(BaseModel):
    """Raw attributes of a directory computer object, before normalization."""
    name: Optional[str] = None
    dns_host_name: Optional[str] = None
    operating_system: Optional[str] = None
    pwd_last_set: Any = None
    last_logon_timestamp: Any = None

    model_config = ConfigDict(extra="ignore", arbitrary_types_allowed=True)


class ComputerRecord(BaseModel):
    """Normalized output record; every field is always populated."""
    name: str
    dns_host_name: str
    operating_system: str
    password_last_set: date
    last_logon_date: date

    model_config = ConfigDict(frozen=True)

    def as_row(self) -> Dict[str, str]:
        """Render with the short calendar date form, keyed by directory attribute name."""
        return {
            "Name": self.name,
            "DNSHostName": self.dns_host_name,
            "OperatingSystem": self.operating_system,
            "PasswordLastSet": format_short_date(self.password_last_set),
            "LastLogonDate": format_short_date(self.last_logon_date),
        }


class DiagnosticKind(str, Enum):
    UNRESOLVED_ADDRESS = "unresolved_address"
    COMPUTER_NOT_FOUND = "computer_not_found"
    INCOMPLETE_RECORD = "incomplete_record"


class Diagnostic(BaseModel):
    """Per-item warning produced instead of a ComputerRecord."""
    kind: DiagnosticKind
    subject: str = Field(description="The IP address or hostname the warning is about")
    message: str
    ip: Optional[str] = Field(default=None, description="Input address that led to this item")

    model_config = ConfigDict(frozen=True)
