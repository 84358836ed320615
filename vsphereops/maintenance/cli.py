"""CLI entry point for host maintenance-mode events (standalone-capable).

Meant to be wired to vCenter event subscriptions: on
``entered.maintenance.mode`` alarm actions are disabled and the SolarWinds
node is unmanaged, on ``exit.maintenance.mode`` both are reverted.

Examples:
  vsphereops maint-event entered.maintenance.mode esx-01a.corp.local \\
      --server vcsa-01a.corp.local --user administrator@vsphere.local --password <PW> \\
      --swis-server orion.corp.local --swis-user svc-vsphere --swis-password <PW>

  # SolarWinds only, unmanage for 4 hours
  vsphereops maint-event entered.maintenance.mode esx-01a.corp.local --no-vcenter \\
      --swis-server orion.corp.local --unmanage-hours 4
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from loguru import logger

from vsphereops.maintenance.events import MaintenanceEvent, handle_event
from vsphereops.maintenance.swis import SWIS_PORT, SwisClient
from vsphereops.vlantest.vsphere.session import VSphereSession


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Build argparse parser for maintenance-event handling."""
    parser = argparse.ArgumentParser(
        prog="vsphereops-maint-event",
        description="Toggle vCenter alarm actions and SolarWinds node state for a host in maintenance",
    )
    parser.add_argument("event", choices=[e.value for e in MaintenanceEvent], help="vCenter event type")
    parser.add_argument("host", help="ESXi host name")
    parser.add_argument("--server", default=os.getenv("VSPHERE_SERVER"), help="vCenter server (env: VSPHERE_SERVER)")
    parser.add_argument("--user", default=os.getenv("VSPHERE_USER"), help="vCenter user (env: VSPHERE_USER)")
    parser.add_argument(
        "--password", default=os.getenv("VSPHERE_PASSWORD"), help="vCenter password (env: VSPHERE_PASSWORD)"
    )
    parser.add_argument("--no-vcenter", action="store_true", help="Leave vCenter alarm actions untouched")
    parser.add_argument("--swis-server", default=os.getenv("SWIS_SERVER"), help="SolarWinds server (env: SWIS_SERVER)")
    parser.add_argument("--swis-user", default=os.getenv("SWIS_USER"), help="SolarWinds user (env: SWIS_USER)")
    parser.add_argument(
        "--swis-password", default=os.getenv("SWIS_PASSWORD"), help="SolarWinds password (env: SWIS_PASSWORD)"
    )
    parser.add_argument("--swis-port", type=int, default=SWIS_PORT, help=f"SWIS port (default: {SWIS_PORT})")
    parser.add_argument(
        "--unmanage-hours", type=float, default=24, help="How long the node stays unmanaged (default: 24)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(args)


def main(args: list[str] | None = None) -> None:
    """Main entry point for the maintenance-event CLI."""
    parsed = parse_args(args)

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if parsed.verbose else "INFO")
    logger.enable("vsphereops")
    logging.basicConfig(level=logging.DEBUG if parsed.verbose else logging.WARNING)

    session = None
    if parsed.server and not parsed.no_vcenter:
        session = VSphereSession(parsed.server, parsed.user or "", parsed.password or "")
    swis = None
    if parsed.swis_server:
        swis = SwisClient(parsed.swis_server, parsed.swis_user or "", parsed.swis_password or "", port=parsed.swis_port)

    if session is None and swis is None:
        logger.error("Nothing to do: give --server and/or --swis-server")
        sys.exit(1)

    try:
        outcomes = handle_event(
            parsed.event, parsed.host, session=session, swis=swis, unmanage_hours=parsed.unmanage_hours
        )
    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        sys.exit(130)
    finally:
        if session is not None:
            session.disconnect()
        if swis is not None:
            swis.disconnect()

    for outcome in outcomes:
        print(f"{outcome.target:12s}  {'OK' if outcome.success else 'FAILED':6s}  {outcome.message}")
    if not all(o.success for o in outcomes):
        sys.exit(1)


if __name__ == "__main__":
    main()
