"""Command line entry point: resolve IP addresses to AD computer records."""
from __future__ import annotations

import argparse
import csv
import json
import os
import sys
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, TextIO

from rich.console import Console
from rich.table import Table
from rich.traceback import install as install_rich_traceback

from adResolve.resolver.config import ResolverConfig
from adResolve.resolver.directory import LdapDirectory
from adResolve.resolver.discovery import DomainDefaults
from adResolve.resolver.errors import DiscoveryError, InvalidZoneNameError, ZoneQueryError
from adResolve.resolver.models import ComputerRecord, Diagnostic
from adResolve.resolver.pipeline import ComputerResolver
from adResolve.resolver.sources import build_source
from adResolve.resolver.validation import validate_addresses, validate_zone_name
from adResolve.logging_config import get_logger, init_component_loggers

install_rich_traceback()
console = Console()
err_console = Console(stderr=True)
logger = get_logger("cli")

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_USAGE = 2
EXIT_ZONE_FAILURE = 3

TABLE_COLUMNS = ["Name", "DNSHostName", "OperatingSystem", "PasswordLastSet", "LastLogonDate"]


def read_plain_lines(stream: TextIO) -> List[str]:
    values = []
    for line in stream:
        line = line.strip()
        if line and not line.startswith("#"):
            values.append(line)
    return values


def read_input_file(path: str, column: str) -> List[str]:
    """Read addresses from a CSV with a header row, or one per line."""
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Input file not found: {file_path}")
    with file_path.open("r", encoding="utf-8-sig", newline="") as fh:
        reader = csv.reader(fh)
        header = [cell.strip() for cell in next(reader, [])]
        if column not in header:
            fh.seek(0)
            return read_plain_lines(fh)
        index = header.index(column)
        return [row[index].strip() for row in reader if len(row) > index and row[index].strip()]


def collect_addresses(args: argparse.Namespace, stdin: TextIO) -> List[str]:
    if args.addresses:
        return list(args.addresses)
    if args.input:
        return read_input_file(args.input, args.column)
    if not stdin.isatty():
        return read_plain_lines(stdin)
    return []


def render_table(records: Iterable[ComputerRecord]) -> Table:
    table = Table(title="Computers")
    for column in TABLE_COLUMNS:
        table.add_column(column)
    for record in records:
        row = record.as_row()
        table.add_row(*(row[column] for column in TABLE_COLUMNS))
    return table


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Resolve IP addresses to Active Directory computer records")
    parser.add_argument("addresses", nargs="*", help="IPv4/IPv6 addresses to resolve")
    parser.add_argument("--input", "-i", help="CSV file with a header row, or a file with one address per line")
    parser.add_argument("--column", default="IPAddress", help="CSV column holding the addresses")
    parser.add_argument("--zone-name", "-z", help="DNS zone to enumerate (default: domain root)")
    parser.add_argument("--server", "-s", help="DNS server answering the zone query (default: nearest DC)")
    parser.add_argument(
        "--config",
        default=os.getenv("ADRESOLVE_CONFIG"),
        help="Path to resolver YAML config",
    )
    parser.add_argument("--json", action="store_true", help="Write JSON lines instead of a table")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument("--verbose", "-v", action="store_true", help="Echo log records to stderr")
    args = parser.parse_args(argv)
    if args.addresses and args.input:
        parser.error("give addresses as arguments or with --input, not both")
    return args


def run(args: argparse.Namespace, stdin: Optional[TextIO] = None) -> int:
    stdin = stdin if stdin is not None else sys.stdin
    try:
        config = ResolverConfig.load(args.config) if args.config else ResolverConfig.from_env()
    except (FileNotFoundError, ValueError) as exc:
        err_console.print(f"[red]{exc}")
        return EXIT_USAGE

    try:
        zone_name = validate_zone_name(args.zone_name) if args.zone_name else None
        values = collect_addresses(args, stdin)
    except (InvalidZoneNameError, FileNotFoundError) as exc:
        err_console.print(f"[red]{exc}")
        return EXIT_USAGE

    addresses, rejected = validate_addresses(values)
    for exc in rejected:
        logger.warning(str(exc), extra={"ip": str(exc.value), "outcome": "rejected"})
        err_console.print(f"[red]{exc}")
    if not addresses:
        err_console.print("[yellow]No valid IP addresses to resolve")
        return EXIT_PARTIAL if rejected else EXIT_USAGE

    diagnostics: List[Diagnostic] = []

    def report(diagnostic: Diagnostic) -> None:
        diagnostics.append(diagnostic)
        err_console.print(f"[yellow]WARNING:[/yellow] {diagnostic.message}", highlight=False)

    defaults = DomainDefaults(config)
    directory = LdapDirectory(config.ldap, domain=config.domain, defaults=defaults)
    resolver = ComputerResolver(build_source(config), directory, defaults=defaults, on_diagnostic=report)

    try:
        records = resolver.resolve(addresses, zone_name=zone_name, server_address=args.server)
        if args.json:
            for record in records:
                console.out(json.dumps(record.as_row()), highlight=False)
        else:
            collected = list(records)
            if collected:
                console.print(render_table(collected))
    except (ZoneQueryError, DiscoveryError) as exc:
        logger.error(
            f"Cannot build address map: {exc}",
            exc_info=True,
            extra={"outcome": "error", "error_type": type(exc).__name__}
        )
        err_console.print(f"[red]{exc}")
        return EXIT_ZONE_FAILURE
    except InvalidZoneNameError as exc:
        err_console.print(f"[red]{exc}")
        return EXIT_USAGE
    finally:
        directory.close()

    logger.info(
        "Run finished",
        extra={"batch_size": len(values), "diagnostics": len(diagnostics) + len(rejected)}
    )
    return EXIT_PARTIAL if diagnostics or rejected else EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    init_component_loggers(log_level=args.log_level, enable_console=args.verbose)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
