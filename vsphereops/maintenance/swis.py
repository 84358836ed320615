"""SolarWinds Information Service (SWIS) REST client."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from types import TracebackType
from typing import Any, Self

import requests

from vsphereops.maintenance.exceptions import SwisError

logger = logging.getLogger(__name__)

SWIS_PORT = 17778
API_PATH = "SolarWinds/InformationService/v3/Json"

NODE_QUERY = "SELECT NodeID, Caption FROM Orion.Nodes WHERE Caption = @name OR DNS = @name OR SysName = @name"


class SwisClient:
    """JSON API client for an Orion server using Basic Auth.

    Usage::

        with SwisClient("orion.corp.local", "svc-vsphere", pw) as swis:
            node_id = swis.find_node_id("esx-01a.corp.local")
            swis.unmanage_node(node_id, hours=4)
    """

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        port: int = SWIS_PORT,
        verify_ssl: bool = False,
        timeout: float = 30.0,
    ):
        self.host = host
        self.username = username
        self.password = password
        self.port = port
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.base_url = f"https://{host}:{port}/{API_PATH}"
        self._session: requests.Session | None = None

    def connect(self) -> None:
        """Open an HTTP session and check the credentials with a trivial query."""
        self._session = requests.Session()
        self._session.verify = self.verify_ssl
        self._session.auth = (self.username, self.password)

        try:
            self.query("SELECT TOP 1 NodeID FROM Orion.Nodes")
        except SwisError:
            self._session.close()
            self._session = None
            raise
        logger.info("SWIS connected to %s", self.host)

    def disconnect(self) -> None:
        if self._session:
            self._session.close()
            self._session = None

    def is_connected(self) -> bool:
        return self._session is not None

    def _post(self, endpoint: str, payload: Any) -> Any:
        if self._session is None:
            self.connect()
        assert self._session is not None
        url = f"{self.base_url}/{endpoint}"
        try:
            resp = self._session.post(url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise SwisError(f"POST {endpoint} failed: {e}", status_code=status) from e
        except requests.RequestException as e:
            raise SwisError(f"POST {endpoint} failed: {e}") from e

        if not resp.content:
            return None
        return resp.json()

    def query(self, swql: str, **parameters: Any) -> list[dict[str, Any]]:
        """Run a SWQL query and return its result rows."""
        data = self._post("Query", {"query": swql, "parameters": parameters})
        return list((data or {}).get("results", []))

    def invoke(self, entity: str, verb: str, *args: Any) -> Any:
        """Invoke a verb, e.g. ``invoke("Orion.Nodes", "Remanage", "N:12")``."""
        return self._post(f"Invoke/{entity}/{verb}", list(args))

    def find_node_id(self, name: str) -> int | None:
        """NodeID of the node whose caption, DNS name or sysName is ``name``."""
        rows = self.query(NODE_QUERY, name=name)
        if not rows:
            short = name.split(".")[0]
            if short != name:
                rows = self.query(NODE_QUERY, name=short)
        if not rows:
            return None
        if len(rows) > 1:
            logger.warning("SWIS: %d nodes match %s, using NodeID %s", len(rows), name, rows[0]["NodeID"])
        return int(rows[0]["NodeID"])

    def unmanage_node(self, node_id: int, hours: float = 24, now: datetime | None = None) -> None:
        """Unmanage a node from now for ``hours``."""
        start = now or datetime.now(timezone.utc)
        end = start + timedelta(hours=hours)
        self.invoke("Orion.Nodes", "Unmanage", f"N:{node_id}", _swis_time(start), _swis_time(end), False)
        logger.info("SWIS: node %s unmanaged until %s", node_id, _swis_time(end))

    def remanage_node(self, node_id: int) -> None:
        self.invoke("Orion.Nodes", "Remanage", f"N:{node_id}")
        logger.info("SWIS: node %s remanaged", node_id)

    def __enter__(self) -> Self:
        self.connect()
        return self

    def __exit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        self.disconnect()


def _swis_time(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")
