"""IPC primitives for talking to the native controller and worker.

- Interfaces: RPCServer / RPCClient ABCs
- ZMQ RPC: REQ client for the controller channel (the REP server
  stays in nativepath.ipc.zmq_rpc for in-process stand-ins)
- Pipes: named pipe endpoint naming and worker arguments
- Utilities: IPC address generation
"""

from nativepath.ipc.interfaces import RPCServer, RPCClient
from nativepath.ipc.zmq_rpc import ZMQRPCClient
from nativepath.ipc.pipes import ProcessPipes
from nativepath.ipc._util import generate_ipc_address

__all__ = [
    # Interfaces
    "RPCServer",
    "RPCClient",
    # ZMQ
    "ZMQRPCClient",
    # Pipes
    "ProcessPipes",
    # Utilities
    "generate_ipc_address",
]
