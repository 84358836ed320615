"""Human-readable rendering of VLAN test results."""

from __future__ import annotations

from collections import Counter

from tabulate import tabulate

from vsphereops.vlantest.csvio import OUTPUT_COLUMNS, result_to_row
from vsphereops.vlantest.models import ResultStatus, UplinkTestResult


class TerminalFormatter:
    """Format results as a plain-text table plus a status summary."""

    def __init__(self, results: list[UplinkTestResult], tablefmt: str = "simple") -> None:
        self.results = results
        self.tablefmt = tablefmt

    def format(self) -> str:
        """Return the complete terminal output as a string."""
        if not self.results:
            return "No results."

        rows = [[row[col] for col in OUTPUT_COLUMNS] for row in map(result_to_row, self.results)]
        lines = [tabulate(rows, headers=list(OUTPUT_COLUMNS), tablefmt=self.tablefmt)]
        lines.append("")
        lines.append(self.summary())
        return "\n".join(lines)

    def summary(self) -> str:
        """One line with the count per status, e.g. ``Passed: 4  Failed: 1``."""
        counts = Counter(r.status for r in self.results)
        hosts = len({r.host for r in self.results})
        parts = [f"{status.value}: {counts[status]}" for status in ResultStatus if counts[status]]
        return f"{hosts} host(s), {len(self.results)} result(s) - " + "  ".join(parts)
