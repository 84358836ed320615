"""CLI entry point for VLAN path verification (standalone-capable).

Tests every VLAN-tagged distributed port group on the given ESXi hosts through
each active uplink by pinging a per-VLAN target address from a temporary
VMkernel adapter. Results go to a CSV file and a table on stdout.

Examples:
  vsphereops vlan-test --server vcsa-01a.corp.local --user administrator@vsphere.local \\
      --password <PW> --esx-password <ROOTPW> esx-01a.corp.local esx-02a.corp.local

  # host names from stdin, one VLAN only, skip the storage switch
  cat hosts.txt | vsphereops vlan-test --vlan 120 --exclude-switch '*storage*'
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from loguru import logger
from pydantic import ValidationError

from vsphereops.vlantest.config import DEFAULT_NETWORK_PREFIX, DEFAULT_PROBE_COUNT, VerifierConfig
from vsphereops.vlantest.csvio import DEFAULT_INPUT_FILE, default_output_path, load_test_specs, write_results
from vsphereops.vlantest.exceptions import ConfigurationError, RunInterrupted, SessionError
from vsphereops.vlantest.formatters import TerminalFormatter
from vsphereops.vlantest.runner import verify_hosts
from vsphereops.vlantest.vsphere import VSphereClient, VSphereSession


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Build argparse parser for VLAN path verification."""
    parser = argparse.ArgumentParser(
        prog="vsphereops-vlan-test",
        description="Verify VLAN reachability through every uplink of distributed virtual switches",
    )
    parser.add_argument(
        "hosts",
        nargs="*",
        help="ESXi host names as known to vCenter ('-' or none: read from stdin)",
    )
    parser.add_argument("--server", default=os.getenv("VSPHERE_SERVER"), help="vCenter server (env: VSPHERE_SERVER)")
    parser.add_argument("--user", default=os.getenv("VSPHERE_USER"), help="vCenter user (env: VSPHERE_USER)")
    parser.add_argument(
        "--password", default=os.getenv("VSPHERE_PASSWORD"), help="vCenter password (env: VSPHERE_PASSWORD)"
    )
    parser.add_argument(
        "--esx-user", default=os.getenv("ESX_USER", "root"), help="ESXi SSH user (env: ESX_USER, default: root)"
    )
    parser.add_argument(
        "--esx-password", default=os.getenv("ESX_PASSWORD", ""), help="ESXi SSH password (env: ESX_PASSWORD)"
    )
    parser.add_argument(
        "--input",
        default=DEFAULT_INPUT_FILE,
        help=f"VLAN test definitions, columns Vlan,TestIP,TestMask,TargetIP (default: {DEFAULT_INPUT_FILE})",
    )
    parser.add_argument("--vlan", type=int, help="Only test this VLAN ID")
    parser.add_argument("-o", "--output", help="Result CSV file (default: VlanTest-<timestamp>.csv)")
    parser.add_argument(
        "--exclude-switch",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Skip distributed switches matching this glob (repeatable)",
    )
    parser.add_argument(
        "--network-prefix",
        default=DEFAULT_NETWORK_PREFIX,
        help=f"Name prefix of the temporary test port group (default: {DEFAULT_NETWORK_PREFIX})",
    )
    parser.add_argument("--max-concurrency", type=int, default=4, help="Hosts tested in parallel (default: 4)")
    parser.add_argument(
        "--probe-count", type=int, default=DEFAULT_PROBE_COUNT, help=f"Pings per probe (default: {DEFAULT_PROBE_COUNT})"
    )
    parser.add_argument("--probe-timeout", type=float, default=30.0, help="Seconds per probe (default: 30)")
    parser.add_argument(
        "--cleanup-network",
        action="store_true",
        help="Also remove the temporary test port group after each switch",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(args)


def _read_hosts(hosts: list[str]) -> list[str]:
    if hosts and hosts != ["-"]:
        return hosts
    if not hosts and sys.stdin.isatty():
        return []
    return sys.stdin.read().split()


def main(args: list[str] | None = None) -> None:
    """Main entry point for the VLAN test CLI."""
    parsed = parse_args(args)

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if parsed.verbose else "INFO")
    logger.enable("vsphereops")
    logging.basicConfig(level=logging.DEBUG if parsed.verbose else logging.WARNING)

    hosts = _read_hosts(parsed.hosts)
    if not hosts:
        logger.error("No hosts given (pass host names or pipe them on stdin)")
        sys.exit(1)
    if not parsed.server or not parsed.user:
        logger.error("vCenter server and user are required (--server/--user or VSPHERE_SERVER/VSPHERE_USER)")
        sys.exit(1)

    try:
        config = VerifierConfig(
            probe_count=parsed.probe_count,
            probe_timeout=parsed.probe_timeout,
            network_prefix=parsed.network_prefix,
            exclude_switches=parsed.exclude_switch,
            cleanup_network=parsed.cleanup_network,
            max_concurrency=parsed.max_concurrency,
        )
        specs = load_test_specs(parsed.input)
    except ValidationError as e:
        logger.error(f"Invalid option: {e}")
        sys.exit(1)
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)

    output = parsed.output or default_output_path()

    try:
        with VSphereSession(parsed.server, parsed.user, parsed.password or "") as session:
            with VSphereClient(session, esx_username=parsed.esx_user, esx_password=parsed.esx_password) as client:
                results = verify_hosts(client, hosts, specs, config, vlan_filter=parsed.vlan)
    except SessionError as e:
        logger.error(str(e))
        sys.exit(1)
    except RunInterrupted as e:
        if e.results:
            write_results(output, e.results)
            print(TerminalFormatter(e.results).format())
        print("\nAborted.", file=sys.stderr)
        sys.exit(130)
    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        sys.exit(130)

    write_results(output, results)
    print(TerminalFormatter(results).format())


if __name__ == "__main__":
    main()
