"""VLAN path verifier: per-uplink reachability tests over an ephemeral port group.

For every distributed switch on a host the verifier owns one ephemeral test
port group and one VMkernel adapter. Each VLAN-tagged production port group
is tested by retagging the test port group, copying the production teaming
order onto it and then probing the VLAN's target address through every active
uplink on its own.

The run mutates live host networking. The adapter is always removed at the
end of a switch pass (also on interrupt); the test port group is left behind
for the next run unless ``VerifierConfig.cleanup_network`` is set.

The test port group name depends only on the switch, so hosts sharing a switch
are tested one after another on it; a single verifier instance must be shared
by all hosts of a run for that to hold.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Iterable

from loguru import logger

from vsphereops.vlantest.base.client import BaseInfrastructureClient
from vsphereops.vlantest.config import VerifierConfig
from vsphereops.vlantest.exceptions import DiscoveryError, ProbeFailure, ProvisioningError
from vsphereops.vlantest.models import (
    AdapterRef,
    NetworkRef,
    ProductionPortGroup,
    ResultStatus,
    SwitchDescriptor,
    UplinkPolicy,
    UplinkTestResult,
    VlanTestSpec,
    classify_probe,
)
from vsphereops.vlantest.result import Err, Ok, Result

NO_SPEC_MESSAGE = "No vlan info in CSV file."
NO_PROBE_RESULT_MESSAGE = "No results from network diagnostic ping."


@dataclass
class _SwitchPass:
    """Ephemeral resources owned by a single switch pass."""

    host: str
    switch: SwitchDescriptor
    network_name: str
    network: NetworkRef | None = None
    adapter: AdapterRef | None = None


class VlanPathVerifier:
    """Test every VLAN-tagged port group of a host through every active uplink.

    Usage::

        verifier = VlanPathVerifier(client, specs, VerifierConfig(exclude_switches=["*storage*"]))
        for row in verifier.verify_host("esx-01a.corp.local"):
            print(row.switch, row.uplink, row.vlan_id, row.status)
    """

    def __init__(
        self,
        client: BaseInfrastructureClient,
        specs: Iterable[VlanTestSpec],
        config: VerifierConfig | None = None,
        vlan_filter: int | None = None,
    ) -> None:
        self.client = client
        self.specs: dict[int, VlanTestSpec] = {spec.vlan_id: spec for spec in specs}
        self.config = config or VerifierConfig()
        self.vlan_filter = vlan_filter
        self._switch_locks: dict[str, threading.Lock] = {}
        self._switch_locks_guard = threading.Lock()
        self._stopped = threading.Event()

    def stop(self) -> None:
        """Ask running passes to stop after the current VLAN; switches not yet started are skipped."""
        self._stopped.set()

    def verify_host(self, host: str) -> list[UplinkTestResult]:
        """Run the full test pass for one host, switch by switch."""
        logger.info(f"{host}: discovering distributed switches")
        try:
            switches = self.client.list_switches(host)
        except DiscoveryError as e:
            logger.error(f"{host}: switch discovery failed: {e}")
            return [UplinkTestResult(host=host, status=ResultStatus.FAILED, message=str(e))]

        results: list[UplinkTestResult] = []
        for switch in switches:
            if self.config.is_excluded(switch.name):
                logger.info(f"{host}: skipping excluded switch {switch.name}")
                continue
            results.extend(self.verify_switch(host, switch))

        logger.info(f"{host}: {len(results)} result(s) from {len(switches)} switch(es)")
        return results

    def _switch_lock(self, switch_id: str) -> threading.Lock:
        with self._switch_locks_guard:
            return self._switch_locks.setdefault(switch_id, threading.Lock())

    def verify_switch(self, host: str, switch: SwitchDescriptor) -> list[UplinkTestResult]:
        """Test all candidate VLANs of one switch, then tear down the test adapter."""
        # the test port group is switch-wide: one pass per switch at a time, across hosts
        lock = self._switch_lock(switch.id)
        if not lock.acquire(blocking=False):
            logger.info(f"{host}: waiting for another host to finish testing {switch.name}")
            lock.acquire()
        try:
            if self._stopped.is_set():
                logger.warning(f"{host}: run stopped, skipping {switch.name}")
                return []
            return self._verify_switch(host, switch)
        finally:
            lock.release()

    def _verify_switch(self, host: str, switch: SwitchDescriptor) -> list[UplinkTestResult]:
        state = _SwitchPass(host=host, switch=switch, network_name=self.config.test_network_name(switch.id))

        try:
            networks = self.client.list_vlan_networks(switch, self.vlan_filter)
        except DiscoveryError as e:
            logger.error(f"{host}: port group discovery on {switch.name} failed: {e}")
            return [UplinkTestResult(host=host, switch=switch.name, status=ResultStatus.FAILED, message=str(e))]

        candidates = [pg for pg in networks if not pg.name.startswith(self.config.network_prefix)]
        if not candidates:
            logger.warning(f"{host}: no VLAN port groups to test on {switch.name}")
            return []

        results: list[UplinkTestResult] = []
        try:
            for portgroup in candidates:
                if self._stopped.is_set():
                    logger.warning(f"{host}: run stopped, not testing further VLANs on {switch.name}")
                    break
                results.extend(self._verify_vlan(state, portgroup))
        finally:
            self._teardown(state)
        return results

    # ── per VLAN ───────────────────────────────────────────────────────

    def _verify_vlan(self, state: _SwitchPass, portgroup: ProductionPortGroup) -> list[UplinkTestResult]:
        spec = self.specs.get(portgroup.vlan_id)
        if spec is None:
            logger.warning(f"{state.host}: {state.switch.name} VLAN {portgroup.vlan_id}: {NO_SPEC_MESSAGE}")
            return [self._row(state, portgroup, ResultStatus.NO_IP, message=NO_SPEC_MESSAGE)]

        logger.info(f"{state.host}: {state.switch.name} testing VLAN {portgroup.vlan_id} ({portgroup.name})")
        provisioned = self._provision(state, portgroup, spec)
        if isinstance(provisioned, Err):
            logger.error(f"{state.host}: {state.switch.name} VLAN {portgroup.vlan_id}: {provisioned.message}")
            return [self._row(state, portgroup, ResultStatus.FAILED, message=provisioned.message)]

        uplinks = provisioned.value
        if not uplinks:
            message = "No active uplinks on test network."
            logger.error(f"{state.host}: {state.switch.name} VLAN {portgroup.vlan_id}: {message}")
            return [self._row(state, portgroup, ResultStatus.FAILED, message=message)]

        return [self._test_uplink(state, portgroup, spec, uplink, uplinks) for uplink in uplinks]

    def _provision(
        self, state: _SwitchPass, portgroup: ProductionPortGroup, spec: VlanTestSpec
    ) -> Result[list[str]]:
        """Bring the test network and adapter into shape for ``portgroup``.

        Returns the active uplinks of the test network as re-read after the
        teaming sync; those are the uplinks to test.
        """
        if state.network is None:
            created = self.client.get_or_create_test_network(state.switch, state.network_name)
            if isinstance(created, Err):
                return created
            state.network = created.value
        network = state.network

        tagged = self.client.set_vlan(network, portgroup.vlan_id)
        if isinstance(tagged, Err):
            return tagged

        if state.adapter is None:
            adapter = self.client.get_or_create_test_adapter(state.host, state.switch, network)
            if isinstance(adapter, Err):
                return adapter
            state.adapter = adapter.value

        if spec.use_dhcp:
            addressed = self.client.configure_dhcp(state.adapter)
        else:
            addressed = self.client.configure_static_address(state.adapter, spec.test_address, spec.test_mask)
        if isinstance(addressed, Err):
            return addressed

        synced = self._sync_teaming(network, portgroup)
        if isinstance(synced, Err):
            return synced

        policy = self._read_policy(network)
        if isinstance(policy, Err):
            return policy
        return Ok(list(policy.value.active))

    def _sync_teaming(self, network: NetworkRef, portgroup: ProductionPortGroup) -> Result[None]:
        """Copy the production uplink order onto the test network if the active sets differ."""
        production = self._read_policy(portgroup)
        if isinstance(production, Err):
            return production
        current = self._read_policy(network)
        if isinstance(current, Err):
            return current

        if current.value.active_set() == production.value.active_set():
            logger.debug(f"{network.name}: teaming already matches {portgroup.name}")
            return Ok(None)

        logger.info(f"{network.name}: copying teaming from {portgroup.name} (active: {production.value.active})")
        # standby/unused first, otherwise an uplink can end up in no list at all
        moved = self.client.set_uplink_policy(
            network, standby=list(production.value.standby), unused=list(production.value.unused)
        )
        if isinstance(moved, Err):
            return moved
        return self.client.set_uplink_policy(network, active=list(production.value.active))

    def _read_policy(self, network: NetworkRef | ProductionPortGroup) -> Result[UplinkPolicy]:
        try:
            return Ok(self.client.get_uplink_policy(network))
        except DiscoveryError as e:
            return Err(ProvisioningError(f"Reading teaming policy of {network.name} failed: {e}"))

    # ── per uplink ─────────────────────────────────────────────────────

    def _test_uplink(
        self,
        state: _SwitchPass,
        portgroup: ProductionPortGroup,
        spec: VlanTestSpec,
        uplink: str,
        uplinks: list[str],
    ) -> UplinkTestResult:
        assert state.network is not None and state.adapter is not None

        if len(uplinks) > 1:
            isolated = self._isolate(state.network, uplink, uplinks)
            if isinstance(isolated, Err):
                logger.error(f"{state.host}: {state.switch.name} VLAN {portgroup.vlan_id} {uplink}: {isolated.message}")
                return self._row(state, portgroup, ResultStatus.FAILED, uplink=uplink, message=isolated.message)

        try:
            summary = self.client.probe(
                state.adapter, spec.target_address, self.config.probe_count, self.config.probe_timeout
            )
        except ProbeFailure as e:
            logger.warning(f"{state.host}: {state.switch.name} VLAN {portgroup.vlan_id} {uplink}: ping failed: {e}")
            summary = None

        if summary is None:
            return self._row(state, portgroup, ResultStatus.FAILED, uplink=uplink, message=NO_PROBE_RESULT_MESSAGE)

        status = classify_probe(summary.transmitted, summary.received)
        logger.info(
            f"{state.host}: {state.switch.name} VLAN {portgroup.vlan_id} {uplink} -> {spec.target_address}: "
            f"{status.value} ({summary.received}/{summary.transmitted})"
        )
        return self._row(
            state,
            portgroup,
            status,
            uplink=uplink,
            transmitted=summary.transmitted,
            received=summary.received,
        )

    def _isolate(self, network: NetworkRef, uplink: str, uplinks: list[str]) -> Result[None]:
        """Make ``uplink`` the only active uplink of the test network."""
        siblings = [u for u in uplinks if u != uplink]
        written = self.client.set_uplink_policy(network, active=[uplink], unused=siblings)
        if isinstance(written, Err):
            return written

        policy = self._read_policy(network)
        if isinstance(policy, Err):
            return policy
        if list(policy.value.active) != [uplink]:
            return Err(ProvisioningError(f"Could not isolate {uplink} (active uplinks: {policy.value.active})"))
        return Ok(None)

    # ── teardown ───────────────────────────────────────────────────────

    def _teardown(self, state: _SwitchPass) -> None:
        if state.adapter is not None:
            removed = self.client.destroy_adapter(state.adapter)
            if isinstance(removed, Err):
                logger.warning(f"{state.host}: removing test adapter {state.adapter.device} failed: {removed.message}")
            else:
                logger.info(f"{state.host}: removed test adapter {state.adapter.device}")
            state.adapter = None

        if self.config.cleanup_network and state.network is not None:
            removed = self.client.destroy_network(state.network)
            if isinstance(removed, Err):
                logger.warning(f"{state.host}: removing test network {state.network.name} failed: {removed.message}")
            else:
                logger.info(f"{state.host}: removed test network {state.network.name}")
            state.network = None

    @staticmethod
    def _row(
        state: _SwitchPass,
        portgroup: ProductionPortGroup,
        status: ResultStatus,
        uplink: str = "",
        transmitted: int | None = None,
        received: int | None = None,
        message: str | None = None,
    ) -> UplinkTestResult:
        return UplinkTestResult(
            host=state.host,
            switch=state.switch.name,
            uplink=uplink,
            vlan_id=portgroup.vlan_id,
            status=status,
            transmitted=transmitted,
            received=received,
            message=message,
        )
