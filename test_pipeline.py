"""End-to-end behaviour of the IP -> computer pipeline."""
from datetime import date
from types import SimpleNamespace

import pytest

from adResolve.resolver.config import LdapConfig
from adResolve.resolver.directory import LdapDirectory
from adResolve.resolver.errors import DirectoryQueryError, ZoneQueryError
from adResolve.resolver.models import ComputerAttributes, DiagnosticKind
from adResolve.resolver.pipeline import ComputerResolver, normalize_computer, resolve_computers


def _resolve(zone, directory, ips, diagnostics):
    resolver = ComputerResolver(zone, directory, on_diagnostic=diagnostics.append)
    return list(resolver.resolve(ips, zone_name="corp.example.com", server_address="10.0.0.1"))


def test_lab_domain_end_to_end(lab_zone, lab_directory):
    diagnostics = []
    records = _resolve(lab_zone, lab_directory, ["10.0.0.83", "10.0.0.85"], diagnostics)

    assert [r.name for r in records] == ["CDC2", "WIN10"]
    assert diagnostics == []
    assert records[0].as_row() == {
        "Name": "CDC2",
        "DNSHostName": "CDC2.corp.example.com",
        "OperatingSystem": "Windows Server 2019 Standard",
        "PasswordLastSet": "2/21/2023",
        "LastLogonDate": "2/27/2023",
    }
    assert records[1].password_last_set == date(2023, 2, 21)
    assert records[1].last_logon_date == date(2023, 3, 1)


def test_address_map_is_built_once_and_lazily(lab_zone, lab_directory):
    resolver = ComputerResolver(lab_zone, lab_directory)
    records = resolver.resolve(["10.0.0.83", "10.0.0.85", "10.0.0.83"], "corp.example.com", "10.0.0.1")

    assert lab_zone.calls == []
    assert len(list(records)) == 3
    assert lab_zone.calls == [("corp.example.com", "10.0.0.1")]


def test_unresolvable_address_yields_one_diagnostic(lab_zone, lab_directory):
    diagnostics = []
    records = _resolve(lab_zone, lab_directory, ["10.0.0.99"], diagnostics)

    assert records == []
    assert len(diagnostics) == 1
    assert diagnostics[0].kind == DiagnosticKind.UNRESOLVED_ADDRESS
    assert diagnostics[0].subject == "10.0.0.99"
    assert "10.0.0.99" in diagnostics[0].message
    assert lab_directory.lookups == []


def test_missing_computer_yields_one_diagnostic(zone_source_cls, directory_cls):
    zone = zone_source_cls([("GHOST", "10.0.0.50")])
    directory = directory_cls({})
    diagnostics = []

    records = _resolve(zone, directory, ["10.0.0.50"], diagnostics)

    assert records == []
    assert [(d.kind, d.subject, d.ip) for d in diagnostics] == [
        (DiagnosticKind.COMPUTER_NOT_FOUND, "GHOST", "10.0.0.50"),
    ]
    assert "GHOST" in diagnostics[0].message


def test_directory_errors_count_as_not_found(zone_source_cls, directory_cls, make_computer):
    zone = zone_source_cls([("FLAKY", "10.0.0.60"), ("OK", "10.0.0.61")])
    directory = directory_cls(
        {"OK": make_computer("OK")},
        errors={"FLAKY": DirectoryQueryError("server busy")},
    )
    diagnostics = []

    records = _resolve(zone, directory, ["10.0.0.60", "10.0.0.61"], diagnostics)

    assert [r.name for r in records] == ["OK"]
    assert diagnostics[0].kind == DiagnosticKind.COMPUTER_NOT_FOUND
    assert "server busy" in diagnostics[0].message


def test_shared_address_queries_every_hostname_in_order(zone_source_cls, directory_cls, make_computer):
    zone = zone_source_cls([("A", "10.0.0.70"), ("B", "10.0.0.70"), ("C", "10.0.0.70")])
    directory = directory_cls({"B": make_computer("B"), "C": make_computer("C")})
    diagnostics = []

    records = _resolve(zone, directory, ["10.0.0.70"], diagnostics)

    assert directory.lookups == ["A", "B", "C"]
    assert [r.name for r in records] == ["B", "C"]
    assert [d.subject for d in diagnostics] == ["A"]


def test_no_deduplication_across_inputs(zone_source_cls, directory_cls, make_computer):
    zone = zone_source_cls([("SRV", "10.0.0.10"), ("SRV", "10.0.0.11")])
    directory = directory_cls({"SRV": make_computer("SRV")})

    records = _resolve(zone, directory, ["10.0.0.10", "10.0.0.11"], [])

    assert [r.name for r in records] == ["SRV", "SRV"]
    assert directory.lookups == ["SRV", "SRV"]


def test_output_follows_input_order(lab_zone, lab_directory):
    diagnostics = []
    records = _resolve(lab_zone, lab_directory, ["10.0.0.85", "10.0.0.1", "10.0.0.83"], diagnostics)

    assert [r.name for r in records] == ["WIN10", "CDC2"]
    assert [d.subject for d in diagnostics] == ["10.0.0.1"]


def test_unset_password_timestamp_drops_the_record(zone_source_cls, directory_cls, make_computer):
    zone = zone_source_cls([("NEW", "10.0.0.90"), ("OLD", "10.0.0.91")])
    directory = directory_cls({
        "NEW": make_computer("NEW", pwd_last_set=0),
        "OLD": make_computer("OLD"),
    })
    diagnostics = []

    records = _resolve(zone, directory, ["10.0.0.90", "10.0.0.91"], diagnostics)

    assert [r.name for r in records] == ["OLD"]
    assert diagnostics[0].kind == DiagnosticKind.INCOMPLETE_RECORD
    assert diagnostics[0].subject == "NEW"
    assert "pwdLastSet" in diagnostics[0].message


def test_zone_failure_aborts_the_batch(zone_source_cls, lab_directory):
    zone = zone_source_cls([], error=ZoneQueryError("corp.example.com", "10.0.0.1", "timed out"))

    with pytest.raises(ZoneQueryError):
        _resolve(zone, lab_directory, ["10.0.0.83"], [])
    assert lab_directory.lookups == []


def test_defaults_are_used_when_caller_omits_values(lab_zone, lab_directory, defaults_cls):
    defaults = defaults_cls(zone_name="corp.example.com", server_address="dc1.corp.example.com")

    records = list(resolve_computers(["10.0.0.83"], lab_zone, lab_directory, defaults=defaults))

    assert [r.name for r in records] == ["CDC2"]
    assert lab_zone.calls == [("corp.example.com", "dc1.corp.example.com")]


def test_normalize_requires_every_attribute():
    attrs = ComputerAttributes(name="X", dns_host_name=None, operating_system="Windows 11",
                               pwd_last_set=133214544000000000, last_logon_timestamp=133214544000000000)

    with pytest.raises(ValueError, match="dns_host_name"):
        normalize_computer(attrs)


class RootlessConnection:
    """Bound connection whose rootDSE carries no naming context."""

    server = SimpleNamespace(info=None)

    def unbind(self):
        pass


def test_directory_without_base_dn_reports_each_host(zone_source_cls):
    zone = zone_source_cls([("A", "10.0.0.1"), ("B", "10.0.0.2")])
    directory = LdapDirectory(LdapConfig(), server_address="dc1.corp.example.com",
                              connect=lambda cfg, server: RootlessConnection())
    diagnostics = []

    records = _resolve(zone, directory, ["10.0.0.1", "10.0.0.2"], diagnostics)

    assert records == []
    assert [d.subject for d in diagnostics] == ["A", "B"]
    assert {d.kind for d in diagnostics} == {DiagnosticKind.COMPUTER_NOT_FOUND}


def test_empty_timestamp_tuple_is_an_incomplete_record(zone_source_cls, directory_cls, make_computer):
    zone = zone_source_cls([("NEW1", "10.0.0.60"), ("WIN10", "10.0.0.85")])
    directory = directory_cls({"NEW1": make_computer("NEW1", pwd_last_set=()), "WIN10": make_computer("WIN10")})
    diagnostics = []

    records = _resolve(zone, directory, ["10.0.0.60", "10.0.0.85"], diagnostics)

    assert [r.name for r in records] == ["WIN10"]
    assert [(d.kind, d.subject) for d in diagnostics] == [(DiagnosticKind.INCOMPLETE_RECORD, "NEW1")]
