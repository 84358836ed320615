"""Maintenance-mode event handlers for ESXi hosts."""

from vsphereops.maintenance.alarms import set_host_alarm_actions
from vsphereops.maintenance.events import HandlerOutcome, MaintenanceEvent, handle_event
from vsphereops.maintenance.exceptions import MaintenanceError, SwisError
from vsphereops.maintenance.swis import SwisClient

__all__ = [
    "handle_event",
    "set_host_alarm_actions",
    "MaintenanceEvent",
    "HandlerOutcome",
    "SwisClient",
    "MaintenanceError",
    "SwisError",
]
