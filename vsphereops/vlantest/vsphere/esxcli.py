"""SSH transport running esxcli on an ESXi host, plus the ping probe parser."""

from __future__ import annotations

import logging
import re
import socket

import paramiko

from vsphereops.vlantest.base.transport import BaseTransport
from vsphereops.vlantest.exceptions import ProbeFailure, SessionError
from vsphereops.vlantest.models import ProbeSummary

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10

_SAFE_TOKEN = re.compile(r"^[\w.:\-]+$")
_SUMMARY = re.compile(r"^\s*Summary:\s*$", re.MULTILINE)
_TRANSMITTED = re.compile(r"^\s*Transmitted:\s*(\d+)\s*$", re.MULTILINE)
_RECEIVED = re.compile(r"^\s*Received:\s*(\d+)\s*$", re.MULTILINE)


class EsxcliTransport(BaseTransport):
    """Non-interactive SSH command execution on an ESXi host.

    ESXi has no prompt-driven CLI worth scraping, so every command runs in
    its own exec channel and only stdout is returned.
    """

    def __init__(self, host: str, username: str = "root", password: str = "", port: int = 22):
        super().__init__(host, username, password, port)
        self._client: paramiko.SSHClient | None = None

    def connect(self) -> None:
        """Establish the SSH connection."""
        self._client = paramiko.SSHClient()
        self._client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        try:
            self._client.connect(
                hostname=self.host,
                port=self.port or 22,
                username=self.username,
                password=self.password,
                look_for_keys=False,
                allow_agent=False,
                timeout=DEFAULT_TIMEOUT,
            )
        except paramiko.AuthenticationException as e:
            self._client = None
            raise SessionError(f"SSH authentication to {self.host} failed: {e}") from e
        except Exception as e:
            self._client = None
            raise SessionError(f"SSH connection to {self.host} failed: {e}") from e

        logger.info("SSH connected to %s", self.host)

    def disconnect(self) -> None:
        """Close the SSH connection."""
        if self._client:
            try:
                self._client.close()
            except Exception:
                pass
            self._client = None

    def is_connected(self) -> bool:
        if self._client is None:
            return False
        transport = self._client.get_transport()
        return transport is not None and transport.is_active()

    def run(self, command: str, timeout: float = DEFAULT_TIMEOUT) -> str:
        """Run ``command`` in a fresh exec channel and return its stdout.

        Raises:
            SessionError: If the connection drops or the command exceeds ``timeout``.
        """
        if not self.is_connected():
            self.connect()
        assert self._client is not None

        logger.debug("%s: %s", self.host, command)
        try:
            _, stdout, stderr = self._client.exec_command(command, timeout=timeout)
            output = stdout.read().decode("utf-8", errors="replace")
            status = stdout.channel.recv_exit_status()
        except (socket.timeout, TimeoutError) as e:
            raise SessionError(f"{self.host}: '{command}' timed out after {timeout}s") from e
        except (paramiko.SSHException, OSError) as e:
            raise SessionError(f"{self.host}: '{command}' failed: {e}") from e

        if status != 0:
            err = stderr.read().decode("utf-8", errors="replace").strip()
            logger.debug("%s: exit status %s: %s", self.host, status, err)
        return output


def build_ping_command(device: str, target: str, count: int) -> str:
    """esxcli ping from a specific VMkernel adapter."""
    for token in (device, target):
        if not _SAFE_TOKEN.match(token):
            raise ValueError(f"Refusing unsafe argument: {token!r}")
    return f"esxcli network diag ping -I {device} -H {target} -c {int(count)}"


def parse_ping_summary(output: str) -> ProbeSummary:
    """Extract transmitted/received counts from the ``Summary`` block.

    Raises:
        ProbeFailure: If the output carries no summary.
    """
    marker = _SUMMARY.search(output)
    if marker is None:
        raise ProbeFailure("esxcli ping returned no summary", output=output)

    summary = output[marker.end() :]
    transmitted = _TRANSMITTED.search(summary)
    received = _RECEIVED.search(summary)
    if transmitted is None or received is None:
        raise ProbeFailure("esxcli ping summary is incomplete", output=output)

    return ProbeSummary(transmitted=int(transmitted.group(1)), received=int(received.group(1)))
