"""VLAN path verification for distributed virtual switches."""

from vsphereops.vlantest.config import VerifierConfig
from vsphereops.vlantest.exceptions import (
    ConfigurationError,
    DiscoveryError,
    ProbeFailure,
    ProvisioningError,
    RunInterrupted,
    SessionError,
    VlanTestError,
)
from vsphereops.vlantest.models import ResultStatus, UplinkTestResult, VlanTestSpec
from vsphereops.vlantest.runner import verify_hosts
from vsphereops.vlantest.verifier import VlanPathVerifier

__all__ = [
    "VlanPathVerifier",
    "VerifierConfig",
    "verify_hosts",
    "VlanTestSpec",
    "UplinkTestResult",
    "ResultStatus",
    "VlanTestError",
    "ConfigurationError",
    "SessionError",
    "DiscoveryError",
    "ProvisioningError",
    "ProbeFailure",
    "RunInterrupted",
]
