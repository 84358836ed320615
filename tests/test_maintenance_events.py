"""Tests for maintenance-event dispatch and vCenter alarm actions."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from pyVmomi import vim

from vsphereops.maintenance.alarms import set_host_alarm_actions
from vsphereops.maintenance.events import MaintenanceEvent, handle_event
from vsphereops.maintenance.exceptions import MaintenanceError, SwisError
from vsphereops.vlantest.exceptions import SessionError

HOST = "esx-01a.corp.local"


@pytest.fixture()
def host_obj():
    host = MagicMock()
    host.name = HOST
    return host


@pytest.fixture()
def vcenter(mock_session, host_obj):
    mock_session.find_host.return_value = host_obj
    return mock_session


@pytest.fixture()
def swis():
    client = MagicMock()
    client.find_node_id.return_value = 42
    return client


class TestSetHostAlarmActions:
    def test_disable(self, vcenter, host_obj):
        set_host_alarm_actions(vcenter, HOST, enabled=False)

        vcenter.content.alarmManager.EnableAlarmActions.assert_called_once_with(entity=host_obj, enabled=False)

    def test_unknown_host(self, vcenter):
        vcenter.find_host.return_value = None

        with pytest.raises(MaintenanceError, match="not found"):
            set_host_alarm_actions(vcenter, "esx-09z", enabled=False)

    def test_fault(self, vcenter):
        vcenter.content.alarmManager.EnableAlarmActions.side_effect = vim.fault.NoPermission(msg="Permission denied")

        with pytest.raises(MaintenanceError, match="Permission denied"):
            set_host_alarm_actions(vcenter, HOST, enabled=True)

    def test_session_error(self, vcenter):
        vcenter.find_host.side_effect = SessionError("Not connected. Call connect() first.")

        with pytest.raises(MaintenanceError, match="Not connected"):
            set_host_alarm_actions(vcenter, HOST, enabled=True)


class TestHandleEvent:
    """handle_event applies an event to each configured target."""

    def test_enter_maintenance(self, vcenter, host_obj, swis):
        outcomes = handle_event("entered.maintenance.mode", HOST, session=vcenter, swis=swis, unmanage_hours=6)

        assert [(o.target, o.success) for o in outcomes] == [("vcenter", True), ("solarwinds", True)]
        vcenter.content.alarmManager.EnableAlarmActions.assert_called_once_with(entity=host_obj, enabled=False)
        swis.unmanage_node.assert_called_once_with(42, hours=6)
        swis.remanage_node.assert_not_called()

    def test_exit_maintenance(self, vcenter, host_obj, swis):
        outcomes = handle_event(MaintenanceEvent.EXITED, HOST, session=vcenter, swis=swis)

        assert all(o.success for o in outcomes)
        vcenter.content.alarmManager.EnableAlarmActions.assert_called_once_with(entity=host_obj, enabled=True)
        swis.remanage_node.assert_called_once_with(42)

    def test_connects_session_when_needed(self, vcenter):
        vcenter.is_connected.return_value = False

        handle_event(MaintenanceEvent.ENTERED, HOST, session=vcenter)

        vcenter.connect.assert_called_once()

    def test_swis_failure_does_not_block_vcenter(self, vcenter, swis):
        swis.find_node_id.side_effect = SwisError("POST Query failed: 503", status_code=503)

        outcomes = handle_event(MaintenanceEvent.ENTERED, HOST, session=vcenter, swis=swis)

        assert [(o.target, o.success) for o in outcomes] == [("vcenter", True), ("solarwinds", False)]
        assert "503" in outcomes[1].message

    def test_vcenter_login_failure_does_not_block_swis(self, vcenter, swis):
        vcenter.is_connected.return_value = False
        vcenter.connect.side_effect = SessionError("Login to vcsa-01a failed")

        outcomes = handle_event(MaintenanceEvent.ENTERED, HOST, session=vcenter, swis=swis)

        assert [(o.target, o.success) for o in outcomes] == [("vcenter", False), ("solarwinds", True)]
        swis.unmanage_node.assert_called_once()

    def test_node_not_found(self, swis):
        swis.find_node_id.return_value = None

        outcomes = handle_event(MaintenanceEvent.EXITED, HOST, swis=swis)

        assert outcomes[0].success is False
        assert "No SolarWinds node" in outcomes[0].message

    def test_no_targets(self):
        assert handle_event(MaintenanceEvent.ENTERED, HOST) == []

    def test_unknown_event(self):
        with pytest.raises(ValueError):
            handle_event("vm.powered.on", HOST)
