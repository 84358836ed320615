"""Explicit vCenter/ESXi API session."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, Self

from pyVim import connect
from pyVmomi import vim

from vsphereops.vlantest.exceptions import SessionError

logger = logging.getLogger(__name__)


class VSphereSession:
    """A single pyVmomi service-instance connection.

    The caller owns the lifecycle: open once, hand the session to every
    client that needs it, close after all hosts are processed.

    Usage::

        with VSphereSession("vcsa-01a.corp.local", "administrator@vsphere.local", pw) as session:
            client = VSphereClient(session, esx_username="root", esx_password=pw)
    """

    def __init__(self, host: str, username: str, password: str, port: int = 443, verify_ssl: bool = False):
        self.host = host
        self.username = username
        self.password = password
        self.port = port
        self.verify_ssl = verify_ssl
        self._si: Any = None

    def connect(self) -> None:
        """Log in to the API endpoint."""
        try:
            self._si = connect.SmartConnect(
                host=self.host,
                user=self.username,
                pwd=self.password,
                port=self.port,
                disableSslCertValidation=not self.verify_ssl,
            )
        except vim.fault.InvalidLogin as e:
            raise SessionError(f"Login to {self.host} failed: {e.msg}") from e
        except Exception as e:
            raise SessionError(f"Connection to {self.host} failed: {e}") from e
        logger.info("Connected to %s", self.host)

    def disconnect(self) -> None:
        """Log out. Safe to call when not connected."""
        if self._si is not None:
            try:
                connect.Disconnect(self._si)
            except Exception:
                logger.debug("Disconnect from %s failed (ignored)", self.host)
            self._si = None

    def is_connected(self) -> bool:
        return self._si is not None

    @property
    def content(self) -> Any:
        """The ``ServiceContent`` of the connected endpoint."""
        if self._si is None:
            raise SessionError("Not connected. Call connect() first.")
        return self._si.RetrieveContent()

    def find_objects(self, vimtype: type) -> list[Any]:
        """All managed objects of ``vimtype`` below the root folder."""
        content = self.content
        container = content.viewManager.CreateContainerView(content.rootFolder, [vimtype], True)
        try:
            return list(container.view)
        finally:
            container.Destroy()

    def find_host(self, name: str) -> Any | None:
        """Look up a ``vim.HostSystem`` by name (case-insensitive).

        A short name matches a fully qualified host name if it is unambiguous.
        """
        wanted = name.lower()
        hosts = self.find_objects(vim.HostSystem)
        for host in hosts:
            if host.name.lower() == wanted:
                return host
        short = [h for h in hosts if h.name.lower().split(".")[0] == wanted]
        return short[0] if len(short) == 1 else None

    def __enter__(self) -> Self:
        self.connect()
        return self

    def __exit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        self.disconnect()
