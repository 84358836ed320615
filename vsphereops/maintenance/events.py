"""Host maintenance-mode event dispatch.

When a host enters maintenance its vCenter alarm actions are disabled and its
monitoring node is unmanaged; on exit both are reverted. Every target is
handled on its own, so a SolarWinds outage does not keep vCenter alarms on.
"""

from __future__ import annotations

from enum import Enum

from loguru import logger
from pydantic import BaseModel

from vsphereops.maintenance.alarms import set_host_alarm_actions
from vsphereops.maintenance.exceptions import MaintenanceError
from vsphereops.maintenance.swis import SwisClient
from vsphereops.vlantest.exceptions import SessionError
from vsphereops.vlantest.vsphere.session import VSphereSession


class MaintenanceEvent(str, Enum):
    """vCenter event types handled here."""

    ENTERED = "entered.maintenance.mode"
    EXITED = "exit.maintenance.mode"


class HandlerOutcome(BaseModel):
    """Result of applying an event to one target."""

    target: str
    success: bool
    message: str = ""


def _apply_alarms(session: VSphereSession, event: MaintenanceEvent, host_name: str) -> HandlerOutcome:
    enabled = event is MaintenanceEvent.EXITED
    try:
        if not session.is_connected():
            session.connect()
        set_host_alarm_actions(session, host_name, enabled)
    except (MaintenanceError, SessionError) as e:
        logger.error(f"{host_name}: vCenter alarm actions: {e}")
        return HandlerOutcome(target="vcenter", success=False, message=str(e))
    state = "enabled" if enabled else "disabled"
    return HandlerOutcome(target="vcenter", success=True, message=f"alarm actions {state}")


def _apply_node_state(
    swis: SwisClient, event: MaintenanceEvent, host_name: str, unmanage_hours: float
) -> HandlerOutcome:
    try:
        node_id = swis.find_node_id(host_name)
        if node_id is None:
            raise MaintenanceError(f"No SolarWinds node found for {host_name}")
        if event is MaintenanceEvent.ENTERED:
            swis.unmanage_node(node_id, hours=unmanage_hours)
            message = f"node {node_id} unmanaged for {unmanage_hours}h"
        else:
            swis.remanage_node(node_id)
            message = f"node {node_id} remanaged"
    except MaintenanceError as e:
        logger.error(f"{host_name}: SolarWinds node state: {e}")
        return HandlerOutcome(target="solarwinds", success=False, message=str(e))
    logger.info(f"{host_name}: {message}")
    return HandlerOutcome(target="solarwinds", success=True, message=message)


def handle_event(
    event: MaintenanceEvent | str,
    host_name: str,
    session: VSphereSession | None = None,
    swis: SwisClient | None = None,
    unmanage_hours: float = 24,
) -> list[HandlerOutcome]:
    """Apply a maintenance event to every configured target.

    Raises:
        ValueError: If ``event`` is not a known event type.
    """
    event = MaintenanceEvent(event)
    logger.info(f"{host_name}: handling {event.value}")

    outcomes: list[HandlerOutcome] = []
    if session is not None:
        outcomes.append(_apply_alarms(session, event, host_name))
    if swis is not None:
        outcomes.append(_apply_node_state(swis, event, host_name, unmanage_hours))
    if not outcomes:
        logger.warning(f"{host_name}: no targets configured for {event.value}")
    return outcomes
