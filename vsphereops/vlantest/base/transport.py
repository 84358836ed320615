"""Abstract command transport to an ESXi host."""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType
from typing import Self


class BaseTransport(ABC):
    """Runs shell commands on a single host and returns their output."""

    def __init__(self, host: str, username: str, password: str, port: int | None = None):
        self.host = host
        self.username = username
        self.password = password
        self.port = port

    @abstractmethod
    def connect(self) -> None:
        """Open the connection."""

    @abstractmethod
    def disconnect(self) -> None:
        """Close the connection. Safe to call when already closed."""

    @abstractmethod
    def is_connected(self) -> bool:
        """True while the connection is usable."""

    @abstractmethod
    def run(self, command: str, timeout: float) -> str:
        """Execute ``command`` and return stdout, waiting at most ``timeout`` seconds."""

    def __enter__(self) -> Self:
        self.connect()
        return self

    def __exit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        self.disconnect()
