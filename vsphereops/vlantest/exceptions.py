"""Exception hierarchy for VLAN path verification."""


class VlanTestError(Exception):
    """Base exception for all VLAN test errors."""


class ConfigurationError(VlanTestError):
    """Test input is missing or unusable. Aborts the run before any host is touched."""


class SessionError(VlanTestError):
    """Connecting or authenticating to the infrastructure API failed."""


class DiscoveryError(VlanTestError):
    """Host, switch or port group lookup failed."""


class ProvisioningError(VlanTestError):
    """Creating or reconfiguring the ephemeral test network or adapter failed."""


class ProbeFailure(VlanTestError):
    """The network diagnostic ping returned no result."""

    def __init__(self, message: str, output: str | None = None):
        self.output = output
        super().__init__(message)


class RunInterrupted(KeyboardInterrupt):
    """The run was interrupted. ``results`` holds the rows of the passes that completed."""

    def __init__(self, results: list | None = None):
        self.results = results or []
        super().__init__("run interrupted")
