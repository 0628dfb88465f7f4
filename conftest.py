"""Shared fakes for the resolver tests. No test touches the network."""
import os
import tempfile
from datetime import datetime

import pytest

os.environ.setdefault(
    "ADRESOLVE_LOG_FILE", os.path.join(tempfile.gettempdir(), "adresolve-tests", "adresolve.jsonl")
)

from adResolve.resolver.errors import ComputerNotFoundError  # noqa: E402
from adResolve.resolver.models import AddressRecord, ComputerAttributes  # noqa: E402


class FakeZoneSource:
    """Returns canned (hostname, ip) pairs and records every query."""

    def __init__(self, records, error=None):
        self.records = list(records)
        self.error = error
        self.calls = []

    def fetch_address_records(self, zone_name, server_address):
        self.calls.append((zone_name, server_address))
        if self.error is not None:
            raise self.error
        return [AddressRecord(host_name=host, ipv4=ip) for host, ip in self.records]


class FakeDirectory:
    """Looks computers up in a dict; identities listed in errors raise instead."""

    def __init__(self, computers, errors=None):
        self.computers = dict(computers)
        self.errors = dict(errors or {})
        self.lookups = []
        self.closed = False

    def lookup_computer(self, identity):
        self.lookups.append(identity)
        if identity in self.errors:
            raise self.errors[identity]
        if identity not in self.computers:
            raise ComputerNotFoundError(identity)
        return self.computers[identity]

    def close(self):
        self.closed = True


class FakeDefaults:
    def __init__(self, zone_name="corp.example.com", server_address="10.0.0.1"):
        self._zone_name = zone_name
        self._server_address = server_address
        self.calls = []

    def domain_root(self):
        self.calls.append("domain_root")
        return self._zone_name

    def zone_name(self):
        self.calls.append("zone_name")
        return self._zone_name

    def server_address(self):
        self.calls.append("server_address")
        return self._server_address


def computer(
    name,
    operating_system="Windows 10 Pro",
    pwd_last_set=datetime(2023, 2, 21, 9, 30),
    last_logon=datetime(2023, 3, 1, 17, 5),
):
    return ComputerAttributes(
        name=name,
        dns_host_name=f"{name}.corp.example.com",
        operating_system=operating_system,
        pwd_last_set=pwd_last_set,
        last_logon_timestamp=last_logon,
    )


@pytest.fixture
def zone_source_cls():
    return FakeZoneSource


@pytest.fixture
def directory_cls():
    return FakeDirectory


@pytest.fixture
def defaults_cls():
    return FakeDefaults


@pytest.fixture
def make_computer():
    return computer


@pytest.fixture
def lab_zone():
    """Zone of the lab domain: apex, DNS partitions and two machines."""
    return FakeZoneSource([
        ("@", "10.0.0.80"),
        ("ForestDnsZones", "10.0.0.80"),
        ("DomainDnsZones", "10.0.0.80"),
        ("CDC2", "10.0.0.83"),
        ("WIN10", "10.0.0.85"),
    ])


@pytest.fixture
def lab_directory():
    return FakeDirectory({
        "CDC2": computer("CDC2", operating_system="Windows Server 2019 Standard",
                         pwd_last_set=datetime(2023, 2, 21, 23, 59, 59),
                         last_logon=datetime(2023, 2, 27, 6, 0)),
        "WIN10": computer("WIN10"),
    })
