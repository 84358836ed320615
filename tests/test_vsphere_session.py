"""Tests for VSphereSession with pyVim.connect patched."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from pyVmomi import vim

from vsphereops.vlantest.exceptions import SessionError
from vsphereops.vlantest.vsphere.session import VSphereSession


def _host(name):
    host = MagicMock()
    host.name = name
    return host


@patch("vsphereops.vlantest.vsphere.session.connect")
class TestVSphereSession:
    def test_connect(self, mock_connect):
        session = VSphereSession("vcsa-01a", "administrator@vsphere.local", "pw")
        session.connect()

        mock_connect.SmartConnect.assert_called_once_with(
            host="vcsa-01a", user="administrator@vsphere.local", pwd="pw", port=443, disableSslCertValidation=True
        )
        assert session.is_connected()

    def test_invalid_login(self, mock_connect):
        mock_connect.SmartConnect.side_effect = vim.fault.InvalidLogin(msg="Cannot complete login")

        with pytest.raises(SessionError, match="Cannot complete login"):
            VSphereSession("vcsa-01a", "bad", "pw").connect()

    def test_unreachable(self, mock_connect):
        mock_connect.SmartConnect.side_effect = ConnectionRefusedError("refused")

        with pytest.raises(SessionError, match="refused"):
            VSphereSession("vcsa-01a", "u", "pw").connect()

    def test_content_requires_connection(self, mock_connect):
        with pytest.raises(SessionError, match="Not connected"):
            VSphereSession("vcsa-01a", "u", "pw").content

    def test_context_manager_disconnects(self, mock_connect):
        with VSphereSession("vcsa-01a", "u", "pw") as session:
            si = mock_connect.SmartConnect.return_value
        mock_connect.Disconnect.assert_called_once_with(si)
        assert session.is_connected() is False

    def test_find_objects_destroys_view(self, mock_connect):
        session = VSphereSession("vcsa-01a", "u", "pw")
        session.connect()
        content = mock_connect.SmartConnect.return_value.RetrieveContent.return_value
        view = content.viewManager.CreateContainerView.return_value
        view.view = [_host("esx-01a.corp.local")]

        assert len(session.find_objects(vim.HostSystem)) == 1
        view.Destroy.assert_called_once()

    @pytest.mark.parametrize(
        "wanted,expected",
        [
            ("esx-01a.corp.local", "esx-01a.corp.local"),
            ("ESX-01A.corp.local", "esx-01a.corp.local"),
            ("esx-01a", "esx-01a.corp.local"),
            ("esx-09z", None),
        ],
    )
    def test_find_host(self, mock_connect, wanted, expected):
        session = VSphereSession("vcsa-01a", "u", "pw")
        session.connect()
        content = mock_connect.SmartConnect.return_value.RetrieveContent.return_value
        content.viewManager.CreateContainerView.return_value.view = [
            _host("esx-01a.corp.local"),
            _host("esx-02a.corp.local"),
        ]

        host = session.find_host(wanted)

        assert (host.name if host else None) == expected

    def test_ambiguous_short_name(self, mock_connect):
        session = VSphereSession("vcsa-01a", "u", "pw")
        session.connect()
        content = mock_connect.SmartConnect.return_value.RetrieveContent.return_value
        content.viewManager.CreateContainerView.return_value.view = [
            _host("esx-01a.site-a.local"),
            _host("esx-01a.site-b.local"),
        ]

        assert session.find_host("esx-01a") is None
