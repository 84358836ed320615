"""vSphere backend: pyVmomi session, infrastructure client and esxcli probes."""

from vsphereops.vlantest.vsphere.client import VSphereClient
from vsphereops.vlantest.vsphere.esxcli import EsxcliTransport
from vsphereops.vlantest.vsphere.session import VSphereSession

__all__ = [
    "VSphereClient",
    "VSphereSession",
    "EsxcliTransport",
]
