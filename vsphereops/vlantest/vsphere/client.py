"""pyVmomi implementation of the infrastructure client."""

from __future__ import annotations

import logging
import threading
from typing import Any

from pyVim.task import WaitForTask
from pyVmomi import vim, vmodl

from vsphereops.vlantest.base.client import BaseInfrastructureClient
from vsphereops.vlantest.exceptions import DiscoveryError, ProbeFailure, ProvisioningError, SessionError
from vsphereops.vlantest.models import (
    AdapterRef,
    NetworkRef,
    ProbeSummary,
    ProductionPortGroup,
    SwitchDescriptor,
    UplinkPolicy,
)
from vsphereops.vlantest.result import returns_result
from vsphereops.vlantest.vsphere.esxcli import EsxcliTransport, build_ping_command, parse_ping_summary
from vsphereops.vlantest.vsphere.session import VSphereSession

logger = logging.getLogger(__name__)

VDS = vim.dvs.VmwareDistributedVirtualSwitch


def _fault_message(e: Exception) -> str:
    msg = getattr(e, "msg", None)
    return msg if msg else str(e)


class VSphereClient(BaseInfrastructureClient):
    """Distributed-switch test networking through the vSphere API.

    Port groups and VMkernel adapters are managed through the API session;
    pings run through ``esxcli`` over SSH on the host itself.

    Usage::

        with VSphereSession(server, user, pw) as session, VSphereClient(session, esx_password=pw) as client:
            switches = client.list_switches("esx-01a.corp.local")
    """

    def __init__(
        self,
        session: VSphereSession,
        esx_username: str = "root",
        esx_password: str = "",
        ssh_port: int = 22,
    ):
        super().__init__()
        self.session = session
        self.esx_username = esx_username
        self.esx_password = esx_password
        self.ssh_port = ssh_port

        self._hosts: dict[str, Any] = {}
        self._switches: dict[str, Any] = {}
        self._portgroups: dict[str, Any] = {}
        self._transports: dict[str, EsxcliTransport] = {}
        self._lock = threading.Lock()

    # ── lookups ────────────────────────────────────────────────────────

    def _host(self, name: str) -> Any:
        if name not in self._hosts:
            try:
                host = self.session.find_host(name)
            except (vmodl.MethodFault, SessionError) as e:
                raise DiscoveryError(f"Host lookup for {name} failed: {_fault_message(e)}") from e
            if host is None:
                raise DiscoveryError(f"Host {name} not found")
            self._hosts[name] = host
        return self._hosts[name]

    def _switch(self, switch: SwitchDescriptor) -> Any:
        try:
            return self._switches[switch.id]
        except KeyError:
            raise DiscoveryError(f"Switch {switch.name} ({switch.id}) was not discovered by this client") from None

    def _portgroup(self, key: str) -> Any:
        try:
            return self._portgroups[key]
        except KeyError:
            raise DiscoveryError(f"Port group {key} was not discovered by this client") from None

    def _network_system(self, host: str) -> Any:
        return self._host(host).configManager.networkSystem

    def _wait(self, task: Any, what: str) -> None:
        try:
            WaitForTask(task)
        except vmodl.MethodFault as e:
            raise ProvisioningError(f"{what} failed: {_fault_message(e)}") from e

    # ── discovery ──────────────────────────────────────────────────────

    def list_switches(self, host: str) -> list[SwitchDescriptor]:
        """Distributed switches with a proxy switch on the host."""
        host_obj = self._host(host)
        try:
            proxies = host_obj.config.network.proxySwitch or []
            manager = self.session.content.dvSwitchManager
            switches: list[SwitchDescriptor] = []
            for proxy in proxies:
                dvs = manager.QueryDvsByUuid(proxy.dvsUuid)
                if dvs is None:
                    logger.warning("%s: switch %s (%s) not visible", host, proxy.dvsName, proxy.dvsUuid)
                    continue
                self._switches[dvs._moId] = dvs
                switches.append(SwitchDescriptor(id=dvs._moId, name=dvs.name))
        except vmodl.MethodFault as e:
            raise DiscoveryError(f"{host}: listing distributed switches failed: {_fault_message(e)}") from e
        return switches

    def list_vlan_networks(self, switch: SwitchDescriptor, vlan_filter: int | None = None) -> list[ProductionPortGroup]:
        """Port groups tagged with a single VLAN ID (trunks, PVLANs and uplink port groups are skipped)."""
        dvs = self._switch(switch)
        networks: list[ProductionPortGroup] = []
        try:
            for pg in dvs.portgroup:
                config = pg.config
                if config.uplink:
                    continue
                vlan = config.defaultPortConfig.vlan
                if not isinstance(vlan, VDS.VlanIdSpec) or not vlan.vlanId:
                    continue
                if vlan_filter is not None and vlan.vlanId != vlan_filter:
                    continue
                self._portgroups[pg.key] = pg
                networks.append(
                    ProductionPortGroup(
                        key=pg.key,
                        name=pg.name,
                        vlan_id=vlan.vlanId,
                        policy=self._policy_of(pg, dvs),
                    )
                )
        except vmodl.MethodFault as e:
            raise DiscoveryError(f"{switch.name}: listing port groups failed: {_fault_message(e)}") from e
        return networks

    def get_uplink_policy(self, network: NetworkRef | ProductionPortGroup) -> UplinkPolicy:
        pg = self._portgroup(network.key)
        try:
            return self._policy_of(pg, pg.config.distributedVirtualSwitch)
        except vmodl.MethodFault as e:
            raise DiscoveryError(f"{network.name}: reading teaming policy failed: {_fault_message(e)}") from e

    @staticmethod
    def _policy_of(pg: Any, dvs: Any) -> UplinkPolicy:
        order = pg.config.defaultPortConfig.uplinkTeamingPolicy.uplinkPortOrder
        active = list(order.activeUplinkPort or [])
        standby = list(order.standbyUplinkPort or [])
        all_uplinks = list(dvs.config.uplinkPortPolicy.uplinkPortName or [])
        unused = [u for u in all_uplinks if u not in active and u not in standby]
        return UplinkPolicy(active=active, standby=standby, unused=unused)

    # ── test port group ────────────────────────────────────────────────

    def _find_portgroup(self, dvs: Any, name: str) -> Any | None:
        for pg in dvs.portgroup:
            if pg.name == name:
                self._portgroups[pg.key] = pg
                return pg
        return None

    @returns_result
    def get_or_create_test_network(self, switch: SwitchDescriptor, name: str) -> NetworkRef:
        dvs = self._switch(switch)
        with self._lock:
            pg = self._find_portgroup(dvs, name)
            if pg is None:
                logger.info("%s: creating test port group %s", switch.name, name)
                spec = vim.dvs.DistributedVirtualPortgroup.ConfigSpec(name=name, type="ephemeral")
                self._wait(dvs.AddDVPortgroup_Task([spec]), f"Creating port group {name}")
                pg = self._find_portgroup(dvs, name)
                if pg is None:
                    raise ProvisioningError(f"Port group {name} missing after creation")
        return NetworkRef(key=pg.key, name=pg.name, switch_id=switch.id)

    def _reconfigure(self, pg: Any, port_config: Any, what: str) -> None:
        spec = vim.dvs.DistributedVirtualPortgroup.ConfigSpec(
            configVersion=pg.config.configVersion,
            defaultPortConfig=port_config,
        )
        self._wait(pg.ReconfigureDVPortgroup_Task(spec), what)

    @returns_result
    def set_vlan(self, network: NetworkRef, vlan_id: int) -> None:
        pg = self._portgroup(network.key)
        current = pg.config.defaultPortConfig.vlan
        if isinstance(current, VDS.VlanIdSpec) and current.vlanId == vlan_id:
            return
        port_config = VDS.VmwarePortConfigPolicy(vlan=VDS.VlanIdSpec(inherited=False, vlanId=vlan_id))
        self._reconfigure(pg, port_config, f"Setting VLAN {vlan_id} on {network.name}")

    @returns_result
    def set_uplink_policy(
        self,
        network: NetworkRef,
        active: list[str] | None = None,
        standby: list[str] | None = None,
        unused: list[str] | None = None,
    ) -> None:
        # unused uplinks are implicit in vSphere: whatever is neither active nor standby
        current = self.get_uplink_policy(network)
        moved_out = set(standby or []) | set(unused or [])
        new_active = list(active) if active is not None else [u for u in current.active if u not in moved_out]
        taken = set(new_active) | set(unused or [])
        new_standby = (
            [u for u in standby if u not in taken]
            if standby is not None
            else [u for u in current.standby if u not in taken]
        )

        order = VDS.UplinkPortOrderPolicy(inherited=False, activeUplinkPort=new_active, standbyUplinkPort=new_standby)
        port_config = VDS.VmwarePortConfigPolicy(
            uplinkTeamingPolicy=VDS.UplinkPortTeamingPolicy(inherited=False, uplinkPortOrder=order)
        )
        self._reconfigure(
            self._portgroup(network.key), port_config, f"Setting teaming on {network.name} (active: {new_active})"
        )

    @returns_result
    def destroy_network(self, network: NetworkRef) -> None:
        pg = self._portgroup(network.key)
        self._wait(pg.Destroy_Task(), f"Removing port group {network.name}")
        self._portgroups.pop(network.key, None)

    # ── test adapter ───────────────────────────────────────────────────

    @returns_result
    def get_or_create_test_adapter(self, host: str, switch: SwitchDescriptor, network: NetworkRef) -> AdapterRef:
        ns = self._network_system(host)
        for vnic in ns.networkInfo.vnic or []:
            port = vnic.spec.distributedVirtualPort
            if port is not None and port.portgroupKey == network.key:
                logger.info("%s: reusing test adapter %s", host, vnic.device)
                return AdapterRef(host=host, device=vnic.device, network_key=network.key)

        dvs = self._switch(switch)
        spec = vim.host.VirtualNic.Specification(
            ip=vim.host.IpConfig(dhcp=True),
            distributedVirtualPort=vim.dvs.PortConnection(switchUuid=dvs.uuid, portgroupKey=network.key),
        )
        try:
            device = ns.AddVirtualNic(portgroup="", nic=spec)
        except vmodl.MethodFault as e:
            raise ProvisioningError(f"{host}: adding test adapter on {network.name} failed: {_fault_message(e)}") from e
        logger.info("%s: created test adapter %s on %s", host, device, network.name)
        return AdapterRef(host=host, device=device, network_key=network.key)

    def _update_ip(self, adapter: AdapterRef, ip_config: Any, what: str) -> None:
        ns = self._network_system(adapter.host)
        try:
            ns.UpdateVirtualNic(device=adapter.device, nic=vim.host.VirtualNic.Specification(ip=ip_config))
        except vmodl.MethodFault as e:
            raise ProvisioningError(f"{adapter.host}: {what} on {adapter.device} failed: {_fault_message(e)}") from e

    @returns_result
    def configure_static_address(self, adapter: AdapterRef, ip: str, mask: str) -> None:
        ip_config = vim.host.IpConfig(dhcp=False, ipAddress=ip, subnetMask=mask)
        self._update_ip(adapter, ip_config, f"assigning {ip}/{mask}")

    @returns_result
    def configure_dhcp(self, adapter: AdapterRef) -> None:
        self._update_ip(adapter, vim.host.IpConfig(dhcp=True), "enabling DHCP")

    @returns_result
    def destroy_adapter(self, adapter: AdapterRef) -> None:
        ns = self._network_system(adapter.host)
        try:
            ns.RemoveVirtualNic(device=adapter.device)
        except vmodl.MethodFault as e:
            raise ProvisioningError(f"{adapter.host}: removing {adapter.device} failed: {_fault_message(e)}") from e

    # ── probing ────────────────────────────────────────────────────────

    def _transport(self, host: str) -> EsxcliTransport:
        with self._lock:
            if host not in self._transports:
                self._transports[host] = EsxcliTransport(
                    host=host, username=self.esx_username, password=self.esx_password, port=self.ssh_port
                )
            return self._transports[host]

    def probe(self, adapter: AdapterRef, target: str, count: int, timeout: float) -> ProbeSummary:
        try:
            command = build_ping_command(adapter.device, target, count)
        except ValueError as e:
            raise ProbeFailure(str(e)) from e
        try:
            output = self._transport(adapter.host).run(command, timeout=timeout)
        except SessionError as e:
            raise ProbeFailure(str(e)) from e
        return parse_ping_summary(output)

    def close(self) -> None:
        """Close SSH transports and forget cached inventory."""
        with self._lock:
            for transport in self._transports.values():
                transport.disconnect()
            self._transports.clear()
        self._hosts.clear()
        self._switches.clear()
        self._portgroups.clear()
