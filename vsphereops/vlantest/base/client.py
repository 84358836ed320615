"""Abstract infrastructure client consumed by the VLAN path verifier."""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any, Self

from vsphereops.vlantest.models import (
    AdapterRef,
    NetworkRef,
    ProbeSummary,
    ProductionPortGroup,
    SwitchDescriptor,
    UplinkPolicy,
)
from vsphereops.vlantest.result import Result


class BaseInfrastructureClient(ABC):
    """Narrow interface over the virtualization platform.

    Discovery and read calls raise ``DiscoveryError``. Calls that create or
    reconfigure ephemeral resources return a ``Result`` instead of raising.
    ``probe`` raises ``ProbeFailure`` when no summary comes back.
    """

    def __init__(self, **kwargs: Any) -> None:
        pass

    # ── discovery ──────────────────────────────────────────────────────

    @abstractmethod
    def list_switches(self, host: str) -> list[SwitchDescriptor]:
        """Distributed switches the host is a member of."""

    @abstractmethod
    def list_vlan_networks(self, switch: SwitchDescriptor, vlan_filter: int | None = None) -> list[ProductionPortGroup]:
        """VLAN-tagged port groups on the switch, optionally narrowed to one VLAN."""

    @abstractmethod
    def get_uplink_policy(self, network: NetworkRef | ProductionPortGroup) -> UplinkPolicy:
        """Current active/standby/unused uplink order of a port group."""

    # ── provisioning ───────────────────────────────────────────────────

    @abstractmethod
    def get_or_create_test_network(self, switch: SwitchDescriptor, name: str) -> Result[NetworkRef]:
        """Return the port group called ``name``, creating it if needed."""

    @abstractmethod
    def set_vlan(self, network: NetworkRef, vlan_id: int) -> Result[None]:
        """Tag the port group with ``vlan_id``."""

    @abstractmethod
    def set_uplink_policy(
        self,
        network: NetworkRef,
        active: list[str] | None = None,
        standby: list[str] | None = None,
        unused: list[str] | None = None,
    ) -> Result[None]:
        """Rewrite the given uplink lists; lists left as ``None`` are kept."""

    @abstractmethod
    def destroy_network(self, network: NetworkRef) -> Result[None]:
        """Remove the port group."""

    @abstractmethod
    def get_or_create_test_adapter(self, host: str, switch: SwitchDescriptor, network: NetworkRef) -> Result[AdapterRef]:
        """Return the host adapter bound to ``network``, creating it if needed."""

    @abstractmethod
    def configure_static_address(self, adapter: AdapterRef, ip: str, mask: str) -> Result[None]:
        """Assign a static IPv4 address."""

    @abstractmethod
    def configure_dhcp(self, adapter: AdapterRef) -> Result[None]:
        """Switch the adapter to DHCP."""

    @abstractmethod
    def destroy_adapter(self, adapter: AdapterRef) -> Result[None]:
        """Remove the adapter from the host."""

    # ── probing ────────────────────────────────────────────────────────

    @abstractmethod
    def probe(self, adapter: AdapterRef, target: str, count: int, timeout: float) -> ProbeSummary:
        """Send ``count`` ICMP echo requests from ``adapter`` to ``target``."""

    # ── lifecycle ──────────────────────────────────────────────────────

    def close(self) -> None:
        """Release client-held resources. The session itself is owned by the caller."""

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        self.close()
