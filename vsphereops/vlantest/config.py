"""Run settings for the VLAN path verifier."""

from __future__ import annotations

import fnmatch

from pydantic import BaseModel, Field

DEFAULT_NETWORK_PREFIX = "vlan-testing-"
DEFAULT_PROBE_COUNT = 3


class VerifierConfig(BaseModel):
    """Settings shared by every host pass of a run."""

    probe_count: int = Field(default=DEFAULT_PROBE_COUNT, ge=1)
    probe_timeout: float = Field(default=30.0, gt=0)
    network_prefix: str = DEFAULT_NETWORK_PREFIX
    exclude_switches: list[str] = Field(default_factory=list)
    cleanup_network: bool = False
    max_concurrency: int = Field(default=4, ge=1)

    def test_network_name(self, switch_id: str) -> str:
        """Deterministic name of the ephemeral port group for a switch."""
        return f"{self.network_prefix}{switch_id}"

    def is_excluded(self, switch_name: str) -> bool:
        """True if the switch name matches one of the exclusion patterns."""
        name = switch_name.lower()
        return any(fnmatch.fnmatch(name, pattern.lower()) for pattern in self.exclude_switches)
