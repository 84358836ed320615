"""vCenter alarm actions for hosts in maintenance."""

from __future__ import annotations

from loguru import logger
from pyVmomi import vmodl

from vsphereops.maintenance.exceptions import MaintenanceError
from vsphereops.vlantest.exceptions import SessionError
from vsphereops.vlantest.vsphere.session import VSphereSession


def set_host_alarm_actions(session: VSphereSession, host_name: str, enabled: bool) -> None:
    """Enable or disable alarm actions on a host.

    Raises:
        MaintenanceError: If the host is unknown or vCenter rejects the call.
    """
    try:
        host = session.find_host(host_name)
        if host is None:
            raise MaintenanceError(f"Host {host_name} not found")
        session.content.alarmManager.EnableAlarmActions(entity=host, enabled=enabled)
    except SessionError as e:
        raise MaintenanceError(str(e)) from e
    except vmodl.MethodFault as e:
        raise MaintenanceError(f"Setting alarm actions on {host_name} failed: {e.msg or e}") from e

    logger.info(f"{host_name}: alarm actions {'enabled' if enabled else 'disabled'}")
