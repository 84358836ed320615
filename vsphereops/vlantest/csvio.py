"""CSV input (VLAN test specs) and output (test results)."""

from __future__ import annotations

import csv
from datetime import datetime
from pathlib import Path
from typing import Iterable

from loguru import logger
from pydantic import ValidationError

from vsphereops.vlantest.exceptions import ConfigurationError
from vsphereops.vlantest.models import UplinkTestResult, VlanTestSpec

DEFAULT_INPUT_FILE = "vlan-tests.csv"

REQUIRED_INPUT_COLUMNS = ("Vlan", "TestIP", "TargetIP")
OUTPUT_COLUMNS = ("HostName", "VDSwitch", "Uplink", "VLAN", "Status", "Tx", "Rx", "Message")


def default_output_path(now: datetime | None = None) -> Path:
    """Timestamped result file name in the working directory."""
    now = now or datetime.now()
    return Path(f"VlanTest-{now:%Y%m%d-%H%M%S}.csv")


def load_test_specs(path: Path | str) -> list[VlanTestSpec]:
    """Read VLAN test definitions.

    Expected columns are ``Vlan, TestIP, TestMask, TargetIP``. A ``TestIP`` of
    ``dhcp`` selects dynamic addressing. Invalid rows are logged and skipped;
    a later row for the same VLAN replaces an earlier one.

    Raises:
        ConfigurationError: If the file is missing or lacks required columns.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"VLAN test file not found: {path}")

    specs: dict[int, VlanTestSpec] = {}
    with open(path, newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        fieldnames = {name.strip() for name in reader.fieldnames or []}
        missing = [col for col in REQUIRED_INPUT_COLUMNS if col not in fieldnames]
        if missing:
            raise ConfigurationError(f"{path}: missing column(s): {', '.join(missing)}")

        for line_no, raw in enumerate(reader, start=2):
            row = {k.strip(): (v or "").strip() for k, v in raw.items() if k is not None}
            if not any(row.values()):
                continue
            try:
                spec = VlanTestSpec(
                    vlan_id=int(row["Vlan"]),
                    test_address=row["TestIP"],
                    test_mask=row.get("TestMask", ""),
                    target_address=row["TargetIP"],
                )
            except (ValueError, ValidationError) as e:
                logger.warning(f"{path}:{line_no}: skipping invalid row: {e}")
                continue
            if spec.vlan_id in specs:
                logger.warning(f"{path}:{line_no}: duplicate entry for VLAN {spec.vlan_id}, using the later one")
            specs[spec.vlan_id] = spec

    logger.info(f"Loaded {len(specs)} VLAN test definition(s) from {path}")
    return list(specs.values())


def result_to_row(result: UplinkTestResult) -> dict[str, str]:
    """Flatten a result into output column values."""

    def _opt(value: object) -> str:
        return "" if value is None else str(value)

    return {
        "HostName": result.host,
        "VDSwitch": result.switch,
        "Uplink": result.uplink,
        "VLAN": _opt(result.vlan_id),
        "Status": result.status.value,
        "Tx": _opt(result.transmitted),
        "Rx": _opt(result.received),
        "Message": _opt(result.message),
    }


def write_results(path: Path | str, results: Iterable[UplinkTestResult]) -> Path:
    """Write results as CSV and return the path written."""
    path = Path(path)
    rows = [result_to_row(r) for r in results]
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=OUTPUT_COLUMNS)
        writer.writeheader()
        writer.writerows(rows)
    logger.info(f"{len(rows)} result(s) written to {path}")
    return path
