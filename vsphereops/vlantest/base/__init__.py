"""Abstract base classes for infrastructure access."""

from vsphereops.vlantest.base.client import BaseInfrastructureClient
from vsphereops.vlantest.base.transport import BaseTransport

__all__ = [
    "BaseInfrastructureClient",
    "BaseTransport",
]
