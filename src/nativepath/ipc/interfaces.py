"""Abstract RPC transport interfaces.

The native controller proxy talks to the supervisor through an
``RPCClient``; tests and tools stand up the other side with an
``RPCServer``. Concrete ZMQ implementations live in
``nativepath.ipc.zmq_rpc``.
"""

from abc import ABC, abstractmethod
from typing import Optional


class RPCServer(ABC):
    """Request/reply server: ``recv()`` a request, then ``send()`` the reply."""

    @abstractmethod
    def bind(self, address: str) -> None:
        ...

    @abstractmethod
    def recv(self, timeout_ms: Optional[int] = None) -> Optional[bytes]:
        """Receive a request. Returns None on timeout."""
        ...

    @abstractmethod
    def send(self, data: bytes) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    @property
    @abstractmethod
    def is_bound(self) -> bool:
        ...

    def __enter__(self) -> "RPCServer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class RPCClient(ABC):
    """Request/reply client: ``send()`` a request, then ``recv()`` the reply."""

    @abstractmethod
    def connect(self, address: str) -> None:
        ...

    @abstractmethod
    def send(self, data: bytes) -> None:
        ...

    @abstractmethod
    def recv(self, timeout_ms: Optional[int] = None) -> Optional[bytes]:
        """Receive a reply. Returns None on timeout."""
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    def __enter__(self) -> "RPCClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
