"""Shared fixtures for the vsphereops test suite."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from vsphereops.vlantest.base.client import BaseInfrastructureClient
from vsphereops.vlantest.exceptions import DiscoveryError, ProbeFailure, ProvisioningError
from vsphereops.vlantest.models import (
    AdapterRef,
    NetworkRef,
    ProbeSummary,
    ProductionPortGroup,
    SwitchDescriptor,
    UplinkPolicy,
    VlanTestSpec,
)
from vsphereops.vlantest.result import Err, Ok

# ── fake infrastructure ───────────────────────────────────────────────


class FakeInfrastructureClient(BaseInfrastructureClient):
    """In-memory distributed switch inventory that records every call.

    New test port groups start with all switch uplinks active. ``probe``
    answers from ``probe_results`` keyed by ``(vlan_id, uplink)`` where
    ``uplink`` is the single active uplink of the test port group; a value
    that is an exception is raised instead.
    """

    def __init__(
        self,
        switches: dict[str, list[SwitchDescriptor]] | None = None,
        networks: dict[str, list[ProductionPortGroup]] | None = None,
        uplinks: dict[str, list[str]] | None = None,
        probe_results: dict | None = None,
    ):
        super().__init__()
        self.switches = switches or {}
        self.networks = networks or {}
        self.uplinks = uplinks or {}
        self.probe_results = probe_results or {}

        self.calls: list[tuple] = []
        self.fail: dict[str, str] = {}
        self.discovery_fail: dict[str, str] = {}

        self.test_networks: dict[str, NetworkRef] = {}
        self.policies: dict[str, UplinkPolicy] = {}
        self.vlans: dict[str, int] = {}
        self.adapters: dict[str, AdapterRef] = {}
        self.probed_active: list[list[str]] = []
        self._nic_seq = 1

    def _failing(self, name: str):
        if name in self.fail:
            return Err(ProvisioningError(self.fail[name]))
        return None

    def _switch_of(self, key: str) -> str:
        for net in self.test_networks.values():
            if net.key == key:
                return net.switch_id
        for switch_id, pgs in self.networks.items():
            if any(pg.key == key for pg in pgs):
                return switch_id
        raise DiscoveryError(f"unknown port group {key}")

    # ── discovery ──

    def list_switches(self, host):
        self.calls.append(("list_switches", host))
        if "list_switches" in self.discovery_fail:
            raise DiscoveryError(self.discovery_fail["list_switches"])
        return list(self.switches.get(host, []))

    def list_vlan_networks(self, switch, vlan_filter=None):
        self.calls.append(("list_vlan_networks", switch.id, vlan_filter))
        if "list_vlan_networks" in self.discovery_fail:
            raise DiscoveryError(self.discovery_fail["list_vlan_networks"])
        pgs = list(self.networks.get(switch.id, []))
        pgs += [
            ProductionPortGroup(key=net.key, name=net.name, vlan_id=self.vlans[net.key], policy=self.policies[net.key])
            for net in self.test_networks.values()
            if net.switch_id == switch.id and net.key in self.vlans
        ]
        if vlan_filter is not None:
            pgs = [pg for pg in pgs if pg.vlan_id == vlan_filter]
        return pgs

    def get_uplink_policy(self, network):
        self.calls.append(("get_uplink_policy", network.key))
        if network.key in self.policies:
            return self.policies[network.key].model_copy(deep=True)
        for pgs in self.networks.values():
            for pg in pgs:
                if pg.key == network.key:
                    return pg.policy.model_copy(deep=True)
        raise DiscoveryError(f"unknown port group {network.key}")

    # ── provisioning ──

    def get_or_create_test_network(self, switch, name):
        self.calls.append(("get_or_create_test_network", switch.id, name))
        if failed := self._failing("get_or_create_test_network"):
            return failed
        if name not in self.test_networks:
            key = f"dvportgroup-test-{len(self.test_networks) + 1}"
            self.test_networks[name] = NetworkRef(key=key, name=name, switch_id=switch.id)
            self.policies[key] = UplinkPolicy(active=list(self.uplinks.get(switch.id, [])))
        return Ok(self.test_networks[name])

    def set_vlan(self, network, vlan_id):
        self.calls.append(("set_vlan", network.key, vlan_id))
        if failed := self._failing("set_vlan"):
            return failed
        self.vlans[network.key] = vlan_id
        return Ok(None)

    def set_uplink_policy(self, network, active=None, standby=None, unused=None):
        self.calls.append(("set_uplink_policy", network.key, active, standby, unused))
        if failed := self._failing("set_uplink_policy"):
            return failed
        current = self.policies[network.key]
        moved_out = set(standby or []) | set(unused or [])
        new_active = list(active) if active is not None else [u for u in current.active if u not in moved_out]
        taken = set(new_active) | set(unused or [])
        source = standby if standby is not None else current.standby
        new_standby = [u for u in source if u not in taken]
        all_uplinks = self.uplinks.get(self._switch_of(network.key), [])
        self.policies[network.key] = UplinkPolicy(
            active=new_active,
            standby=new_standby,
            unused=[u for u in all_uplinks if u not in new_active and u not in new_standby],
        )
        return Ok(None)

    def destroy_network(self, network):
        self.calls.append(("destroy_network", network.key))
        if failed := self._failing("destroy_network"):
            return failed
        self.test_networks.pop(network.name, None)
        self.policies.pop(network.key, None)
        self.vlans.pop(network.key, None)
        return Ok(None)

    def get_or_create_test_adapter(self, host, switch, network):
        self.calls.append(("get_or_create_test_adapter", host, switch.id, network.key))
        if failed := self._failing("get_or_create_test_adapter"):
            return failed
        key = f"{host}/{network.key}"
        if key not in self.adapters:
            self.adapters[key] = AdapterRef(host=host, device=f"vmk{self._nic_seq}", network_key=network.key)
            self._nic_seq += 1
        return Ok(self.adapters[key])

    def configure_static_address(self, adapter, ip, mask):
        self.calls.append(("configure_static_address", adapter.device, ip, mask))
        return self._failing("configure_static_address") or Ok(None)

    def configure_dhcp(self, adapter):
        self.calls.append(("configure_dhcp", adapter.device))
        return self._failing("configure_dhcp") or Ok(None)

    def destroy_adapter(self, adapter):
        self.calls.append(("destroy_adapter", adapter.device))
        if failed := self._failing("destroy_adapter"):
            return failed
        self.adapters.pop(f"{adapter.host}/{adapter.network_key}", None)
        return Ok(None)

    # ── probing ──

    def probe(self, adapter, target, count, timeout):
        self.calls.append(("probe", adapter.device, target, count))
        active = list(self.policies[adapter.network_key].active)
        self.probed_active.append(active)
        vlan_id = self.vlans[adapter.network_key]
        default = ProbeSummary(transmitted=count, received=count)
        result = self.probe_results.get((vlan_id, active[0] if active else None), default)
        if isinstance(result, BaseException):
            raise result
        return result

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]


# ── fixtures ──────────────────────────────────────────────────────────


@pytest.fixture()
def dvs():
    return SwitchDescriptor(id="dvs-21", name="DSwitch-Prod")


@pytest.fixture()
def make_portgroup():
    """Factory fixture returning a ProductionPortGroup."""

    def _make(vlan_id=10, active=("Uplink 1",), standby=(), unused=(), key=None, name=None):
        return ProductionPortGroup(
            key=key or f"dvportgroup-{vlan_id}",
            name=name or f"VLAN{vlan_id}-Servers",
            vlan_id=vlan_id,
            policy=UplinkPolicy(active=list(active), standby=list(standby), unused=list(unused)),
        )

    return _make


@pytest.fixture()
def spec_10():
    return VlanTestSpec(vlan_id=10, test_address="10.0.10.5", test_mask="255.255.255.0", target_address="10.0.10.1")


@pytest.fixture()
def fake_client(dvs):
    """Factory fixture returning a FakeInfrastructureClient for one host with one switch."""

    def _make(portgroups, uplinks=("Uplink 1",), probe_results=None, hosts=("esx-01a.corp.local",)):
        return FakeInfrastructureClient(
            switches={host: [dvs] for host in hosts},
            networks={dvs.id: list(portgroups)},
            uplinks={dvs.id: list(uplinks)},
            probe_results=probe_results,
        )

    return _make


@pytest.fixture()
def probe_failure():
    return ProbeFailure("esxcli ping returned no summary", output="")


# ── vSphere / transport mocks ─────────────────────────────────────────


@pytest.fixture()
def mock_session():
    """MagicMock of VSphereSession with a connected service content."""
    session = MagicMock()
    session.is_connected.return_value = True
    return session


ESXCLI_PING_OUTPUT = """\
Trace:
   Received Bytes: 64
   Host: 10.0.10.1
   ICMP Seq: 0
   TTL: 64
   Round-trip Time: 181 us
   Dup: false
   Detail:

Summary:
   Host Addr: 10.0.10.1
   Transmitted: 3
   Received: 3
   Duplicated: 0
   Packet Lost: 0
   Round-trip Min: 162 us
   Round-trip Avg: 177 us
   Round-trip Max: 190 us
"""


@pytest.fixture()
def esxcli_ping_output():
    return ESXCLI_PING_OUTPUT
