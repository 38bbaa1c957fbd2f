"""RPC 层（msgpack-RPC 连接 + 作用域 session）。"""

from __future__ import annotations

from nvim_bridge.rpc.session import NvimSession, RpcSettings, rpc_session, with_session
from nvim_bridge.rpc.transport import MsgpackRpcConnection, NvimHandle

__all__ = [
    "MsgpackRpcConnection",
    "NvimHandle",
    "NvimSession",
    "RpcSettings",
    "rpc_session",
    "with_session",
]
