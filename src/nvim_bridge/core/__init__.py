"""核心契约（数据结构 + 错误分类）。"""

from __future__ import annotations

from nvim_bridge.core.contracts import (
    BufferInfo,
    CursorPosition,
    ExecuteResult,
    InstanceSnapshot,
    NvimInstance,
    OpenFileResult,
    OperationResult,
)
from nvim_bridge.core.errors import (
    BridgeError,
    ErrorKind,
    NvimConnectError,
    NvimRemoteError,
    NvimTransportError,
    UserError,
    classify_exception,
)

__all__ = [
    "BridgeError",
    "BufferInfo",
    "CursorPosition",
    "ErrorKind",
    "ExecuteResult",
    "InstanceSnapshot",
    "NvimConnectError",
    "NvimInstance",
    "NvimRemoteError",
    "NvimTransportError",
    "OpenFileResult",
    "OperationResult",
    "UserError",
    "classify_exception",
]
