"""Orchestrator CLI dispatching to sub-CLIs.

Sub-commands:
  vlan-test    VLAN path verification across distributed switch uplinks
  maint-event  Host maintenance-mode handlers (vCenter alarms, SolarWinds)

Examples:
  vsphereops vlan-test --server vcsa-01a.corp.local --user administrator@vsphere.local \\
      --password <PW> --esx-password <ROOTPW> esx-01a.corp.local

  vsphereops maint-event entered.maintenance.mode esx-01a.corp.local --server vcsa-01a.corp.local
"""

from __future__ import annotations

import os
import sys

from tabulate import tabulate

from vsphereops import __version__, configure_logging
from vsphereops import glogger

COMMANDS = {
    "vlan-test": ("vsphereops.vlantest.cli", "VLAN path verification per uplink"),
    "maint-event": ("vsphereops.maintenance.cli", "Host maintenance-mode event handlers"),
}


def _print_usage() -> None:
    print("usage: vsphereops <command> [options]\n")
    print("Available commands:")
    for cmd, (_, desc) in COMMANDS.items():
        print(f"  {cmd:14s}  {desc}")
    print("\nRun 'vsphereops <command> --help' for command-specific options.")


def _print_startup_banner() -> None:
    startup_rows = [["version", __version__]]

    for var in ("VSPHERE_SERVER", "SWIS_SERVER", "BUILDTIME"):
        val = os.environ.get(var)
        if val:
            startup_rows.append([var, val])

    table_str = tabulate(startup_rows, tablefmt="mixed_grid")
    lines = table_str.split("\n")
    table_width = len(lines[0])
    title = "vsphereops starting up"
    title_border = "┍" + "━" * (table_width - 2) + "┑"
    title_row = "│ " + title.center(table_width - 4) + " │"
    separator = lines[0].replace("┍", "┝").replace("┑", "┥").replace("┯", "┿")

    glogger.opt(raw=True).info(
        "\n{}\n", title_border + "\n" + title_row + "\n" + separator + "\n" + "\n".join(lines[1:])
    )


def main() -> None:
    """Main entry point: dispatch to a sub-CLI."""
    configure_logging()
    _print_startup_banner()

    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help"):
        _print_usage()
        sys.exit(0 if len(sys.argv) >= 2 else 1)

    command = sys.argv[1]
    if command not in COMMANDS:
        print(f"vsphereops: unknown command '{command}'\n", file=sys.stderr)
        _print_usage()
        sys.exit(1)

    module_path, _ = COMMANDS[command]

    from importlib import import_module

    module = import_module(module_path)
    module.main(sys.argv[2:])


if __name__ == "__main__":
    main()
