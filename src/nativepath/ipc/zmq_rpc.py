"""ZMQ REQ-REP transport for the native controller channel.

The supervisor daemon owns the REP side; ``NativeController`` owns a REQ
client. Each instance creates its own zmq.Context so a forked process
never inherits a live context.

Example:
    Supervisor side:
        >>> server = ZMQRPCServer()
        >>> server.bind("ipc:///tmp/controller.sock")
        >>> request = server.recv()
        >>> server.send(b'{"type": "ack", "pid": 4242}')

    Launcher side:
        >>> client = ZMQRPCClient(recv_timeout_ms=10000)
        >>> client.connect("ipc:///tmp/controller.sock")
        >>> client.send(b'{"type": "start", "command": ["./autodetect"]}')
        >>> reply = client.recv()  # None on timeout

Requires: pyzmq
"""

import logging
from typing import Optional

import zmq

from nativepath.ipc.interfaces import RPCServer, RPCClient

logger = logging.getLogger(__name__)


class _ZMQEndpoint:
    """Socket and context lifecycle shared by server and client."""

    _socket_type: int

    def __init__(self, linger_ms: int = 0):
        self._linger_ms = linger_ms
        self._context: Optional[zmq.Context] = None
        self._socket: Optional[zmq.Socket] = None

    def _open_socket(self) -> zmq.Socket:
        self._context = zmq.Context()
        self._socket = self._context.socket(self._socket_type)
        self._socket.setsockopt(zmq.LINGER, self._linger_ms)
        return self._socket

    def _recv(self, timeout_ms: Optional[int]) -> Optional[bytes]:
        """Receive one message, temporarily overriding RCVTIMEO."""
        if timeout_ms is not None:
            old_timeout = self._socket.getsockopt(zmq.RCVTIMEO)
            self._socket.setsockopt(zmq.RCVTIMEO, timeout_ms)
        try:
            return self._socket.recv()
        except zmq.Again:
            return None
        finally:
            if timeout_ms is not None:
                self._socket.setsockopt(zmq.RCVTIMEO, old_timeout)

    def _close_socket(self) -> None:
        if self._socket is not None:
            try:
                self._socket.close(linger=self._linger_ms)
            except zmq.ZMQError as e:
                logger.warning(f"Error closing socket: {e}")
            self._socket = None

        if self._context is not None:
            try:
                self._context.term()
            except zmq.ZMQError as e:
                logger.warning(f"Error terminating context: {e}")
            self._context = None


class ZMQRPCServer(_ZMQEndpoint, RPCServer):
    """ZMQ REP socket server (supervisor side).

    The real supervisor is a native daemon; this class stands in for it
    in tests and local tooling and is not exported from ``nativepath.ipc``.

    Args:
        linger_ms: Socket linger time on close (milliseconds).
    """

    _socket_type = zmq.REP

    def __init__(self, linger_ms: int = 0):
        super().__init__(linger_ms=linger_ms)
        self._is_bound = False

    def bind(self, address: str) -> None:
        """Bind the REP socket. Binding twice is a no-op."""
        if self._is_bound:
            return
        self._open_socket().bind(address)
        self._is_bound = True
        logger.info(f"RPC server bound to {address}")

    def recv(self, timeout_ms: Optional[int] = None) -> Optional[bytes]:
        """Receive a request; None on timeout or when not bound."""
        if not self._is_bound or self._socket is None:
            return None
        return self._recv(timeout_ms)

    def send(self, data: bytes) -> None:
        if self._socket is None:
            raise RuntimeError("Server not bound")
        self._socket.send(data)

    def close(self) -> None:
        self._close_socket()
        self._is_bound = False

    @property
    def is_bound(self) -> bool:
        return self._is_bound


class ZMQRPCClient(_ZMQEndpoint, RPCClient):
    """ZMQ REQ socket client (launcher side).

    A REQ socket that timed out waiting for a reply cannot send again;
    callers close and reconnect it in that case.

    Args:
        send_timeout_ms: Default send timeout (milliseconds).
        recv_timeout_ms: Default receive timeout (milliseconds).
        linger_ms: Socket linger time on close (milliseconds).
    """

    _socket_type = zmq.REQ

    def __init__(
        self,
        send_timeout_ms: int = 10000,
        recv_timeout_ms: int = 10000,
        linger_ms: int = 0,
    ):
        super().__init__(linger_ms=linger_ms)
        self._send_timeout_ms = send_timeout_ms
        self._recv_timeout_ms = recv_timeout_ms
        self._is_connected = False

    def connect(self, address: str) -> None:
        """Connect the REQ socket. Connecting twice is a no-op."""
        if self._is_connected:
            return
        socket = self._open_socket()
        socket.setsockopt(zmq.SNDTIMEO, self._send_timeout_ms)
        socket.setsockopt(zmq.RCVTIMEO, self._recv_timeout_ms)
        socket.connect(address)
        self._is_connected = True
        logger.debug(f"RPC client connected to {address}")

    def send(self, data: bytes) -> None:
        if self._socket is None:
            raise RuntimeError("Client not connected")
        self._socket.send(data)

    def recv(self, timeout_ms: Optional[int] = None) -> Optional[bytes]:
        """Receive a reply; None on timeout or when not connected."""
        if not self._is_connected or self._socket is None:
            return None
        return self._recv(timeout_ms)

    def close(self) -> None:
        self._close_socket()
        self._is_connected = False

    @property
    def is_connected(self) -> bool:
        return self._is_connected
