"""Client-side proxy to the native controller daemon.

The native controller is a privileged supervisor that forks worker
processes on request. The launcher never starts workers itself; it sends
the finished command over a ZMQ REQ socket and waits for the supervisor
to confirm.

Protocol (JSON over REQ/REP):
    -> {"type": "ping"}
    <- {"type": "pong", "pid": <controller pid>}

    -> {"type": "start", "command": ["./autodetect", "--jobid=x", ...]}
    <- {"type": "ack", "pid": <worker pid>}
    <- {"error": "<reason>"}

Example:
    >>> with NativeController("ipc:///tmp/controller.sock", timeout_sec=10) as controller:
    ...     worker_pid = controller.start_process(command)
"""

import json
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

import zmq

from nativepath.ipc.interfaces import RPCClient
from nativepath.ipc.zmq_rpc import ZMQRPCClient

logger = logging.getLogger(__name__)


class ControllerError(Exception):
    """Base class for native controller failures."""


class ControllerTimeoutError(ControllerError, TimeoutError):
    """The controller did not answer within the configured bound."""


class ControllerIOError(ControllerError, OSError):
    """The control channel failed or the controller refused the request."""


class NativeController:
    """Proxy to the native controller daemon.

    Requests are serialized with a lock so several launch builders may
    share one controller. A request that times out leaves the REQ socket
    unusable, so the socket is dropped and reconnected on the next call.
    Nothing is retried here.

    Args:
        address: ZMQ address of the controller (``ipc://`` or ``tcp://``).
        timeout_sec: Bound on each request round trip.
        rpc_client_factory: Creates the RPC client; defaults to
            ``ZMQRPCClient``. Tests inject fakes here.
    """

    def __init__(
        self,
        address: str,
        timeout_sec: float = 10.0,
        rpc_client_factory: Optional[Callable[[], RPCClient]] = None,
    ):
        self._address = address
        self._timeout_sec = timeout_sec
        timeout_ms = int(timeout_sec * 1000)
        self._rpc_client_factory = rpc_client_factory or (
            lambda: ZMQRPCClient(send_timeout_ms=timeout_ms, recv_timeout_ms=timeout_ms)
        )
        self._client: Optional[RPCClient] = None
        self._pid: Optional[int] = None
        self._lock = threading.Lock()

    @property
    def address(self) -> str:
        return self._address

    @property
    def timeout_sec(self) -> float:
        return self._timeout_sec

    @property
    def pid(self) -> int:
        """Process id of the controller daemon.

        Asked once and cached.

        Raises:
            ControllerTimeoutError: If the controller does not answer in time.
            ControllerIOError: If the channel fails.
        """
        if self._pid is None:
            response = self._request({"type": "ping"})
            if response.get("type") != "pong" or "pid" not in response:
                raise ControllerIOError(f"Unexpected ping response: {response}")
            self._pid = _parse_pid(response)
            logger.info(f"Native controller at {self._address} has pid {self._pid}")
        return self._pid

    def start_process(self, command: List[str]) -> int:
        """Ask the controller to start a process.

        Args:
            command: Program path followed by its arguments.

        Returns:
            Pid of the started process, as reported by the controller.

        Raises:
            ValueError: If the command is empty or an argument contains a
                tab or newline, which would corrupt the controller's
                tab/newline delimited command records.
            ControllerTimeoutError: If the start is not confirmed in time.
            ControllerIOError: If the channel fails or the start is refused.
        """
        if not command:
            raise ValueError("Cannot start a process with an empty command")
        for arg in command:
            if "\t" in arg:
                raise ValueError(f"argument contains a tab character: {arg!r} in {command}")
            if "\n" in arg:
                raise ValueError(f"argument contains a newline character: {arg!r} in {command}")

        logger.debug(f"Starting process with command: {command}")
        response = self._request({"type": "start", "command": list(command)})

        if "error" in response:
            raise ControllerIOError(f"Controller refused to start {command[0]}: {response['error']}")
        if response.get("type") != "ack":
            raise ControllerIOError(f"Unexpected start response: {response}")

        worker_pid = _parse_pid(response)
        logger.info(f"Controller started {command[0]} with pid {worker_pid}")
        return worker_pid

    def close(self) -> None:
        with self._lock:
            self._drop_client()

    def __enter__(self) -> "NativeController":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _request(self, message: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            try:
                client = self._connected_client()
                client.send(json.dumps(message).encode("utf-8"))
                raw = client.recv(timeout_ms=int(self._timeout_sec * 1000))
            except zmq.Again as e:
                self._drop_client()
                raise ControllerTimeoutError(
                    f"Timed out sending '{message['type']}' to controller at {self._address}"
                ) from e
            except zmq.ZMQError as e:
                self._drop_client()
                raise ControllerIOError(
                    f"Control channel to {self._address} failed: {e}"
                ) from e

            if raw is None:
                self._drop_client()
                raise ControllerTimeoutError(
                    f"Controller at {self._address} did not answer '{message['type']}' "
                    f"within {self._timeout_sec}s"
                )

        try:
            response = json.loads(raw)
        except ValueError as e:
            raise ControllerIOError(f"Malformed controller response: {raw!r}") from e
        if not isinstance(response, dict):
            raise ControllerIOError(f"Malformed controller response: {raw!r}")
        return response

    def _connected_client(self) -> RPCClient:
        if self._client is None:
            client = self._rpc_client_factory()
            client.connect(self._address)
            self._client = client
        return self._client

    def _drop_client(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


def _parse_pid(response: Dict[str, Any]) -> int:
    try:
        return int(response["pid"])
    except (KeyError, TypeError, ValueError) as e:
        raise ControllerIOError(f"Invalid pid in controller response: {response}") from e
