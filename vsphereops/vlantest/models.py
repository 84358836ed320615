"""Pydantic models for VLAN path verification."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

DHCP_SENTINEL = "dhcp"


class ResultStatus(str, Enum):
    PASSED = "Passed"
    PARTIAL = "Partial"
    FAILED = "Failed"
    NO_IP = "NoIP"


class VlanTestSpec(BaseModel):
    """Addressing used to test one VLAN."""

    model_config = ConfigDict(frozen=True)

    vlan_id: int = Field(ge=1, le=4094)
    test_address: str
    test_mask: str = ""
    target_address: str

    @property
    def use_dhcp(self) -> bool:
        return self.test_address.strip().lower() == DHCP_SENTINEL

    @model_validator(mode="after")
    def check_static_mask(self) -> VlanTestSpec:
        if not self.use_dhcp and not self.test_mask.strip():
            raise ValueError(f"VLAN {self.vlan_id}: static TestIP {self.test_address} needs a TestMask")
        return self


class SwitchDescriptor(BaseModel):
    """A distributed virtual switch discovered on a host."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class UplinkPolicy(BaseModel):
    """Uplink teaming order of a port group."""

    active: list[str] = Field(default_factory=list)
    standby: list[str] = Field(default_factory=list)
    unused: list[str] = Field(default_factory=list)

    def active_set(self) -> frozenset[str]:
        return frozenset(self.active)


class ProductionPortGroup(BaseModel):
    """An existing VLAN-tagged port group, used as the teaming template."""

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    vlan_id: int
    policy: UplinkPolicy = Field(default_factory=UplinkPolicy)


class NetworkRef(BaseModel):
    """Handle to the ephemeral test port group."""

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    switch_id: str


class AdapterRef(BaseModel):
    """Handle to the ephemeral VMkernel test adapter."""

    model_config = ConfigDict(frozen=True)

    host: str
    device: str
    network_key: str = ""


class ProbeSummary(BaseModel):
    transmitted: int = 0
    received: int = 0


class UplinkTestResult(BaseModel):
    """One row of verifier output: a single uplink tested on a single VLAN."""

    host: str
    switch: str = ""
    uplink: str = ""
    vlan_id: int | None = None
    status: ResultStatus
    transmitted: int | None = None
    received: int | None = None
    message: str | None = None


def classify_probe(transmitted: int, received: int) -> ResultStatus:
    """Derive a test status from probe packet counts."""
    if transmitted > 0 and received == transmitted:
        return ResultStatus.PASSED
    if 0 < received < transmitted:
        return ResultStatus.PARTIAL
    return ResultStatus.FAILED
