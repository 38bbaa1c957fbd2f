"""
Bridge 内部错误分类（异常类型 + 稳定 error_kind）。

说明：
- 异常只在模块之间传递“失败发生在哪一层”的语义（连接前 / 连接中 / 远端拒绝）；
- 对外的 public operation 不抛异常，统一通过 `classify_exception` 转成 `ErrorKind + message`
  写入结果对象（`error_kind/error` 字段）。
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Tuple


class ErrorKind(str, Enum):
    """结果对象中的稳定错误分类（机器可消费）。"""

    NOT_FOUND = "not_found"
    CONNECT_FAILED = "connect_failed"
    RPC_FAILED = "rpc_failed"
    REMOTE_ERROR = "remote_error"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


class BridgeError(Exception):
    """Bridge 内部错误基类（不建议直接抛出）。"""


class UserError(BridgeError):
    """调用方输入/配置导致的错误（tool 参数、overlay 文件等）。"""


class NvimConnectError(BridgeError):
    """无法连接到实例 socket（不存在、拒绝、无权限、超时）。"""

    def __init__(self, socket_path: str, reason: str) -> None:
        """
        创建连接错误。

        参数：
        - socket_path：目标 socket 路径
        - reason：底层失败原因（一句话）
        """

        super().__init__(reason)
        self.socket_path = socket_path
        self.reason = reason


class NvimTransportError(BridgeError):
    """连接已建立，但收发失败（对端关闭、超时、帧无法解码）。"""


class NvimRemoteError(BridgeError):
    """Neovim 对某次调用返回了 error（命令被拒绝、参数非法等）。"""

    def __init__(self, message: str, *, error_type: Optional[int] = None) -> None:
        """
        创建远端错误。

        参数：
        - message：Neovim 返回的错误消息
        - error_type：Neovim 错误类型编号（0=Exception，1=Validation；可缺省）
        """

        super().__init__(message)
        self.message = message
        self.error_type = error_type

    @classmethod
    def from_payload(cls, payload: Any) -> "NvimRemoteError":
        """把 msgpack-rpc response 的 error 元素（通常为 `[type, message]`）转换为异常。"""

        if isinstance(payload, (list, tuple)) and len(payload) >= 2:
            error_type = payload[0] if isinstance(payload[0], int) else None
            return cls(_to_text(payload[1]), error_type=error_type)
        return cls(_to_text(payload))


def _to_text(value: Any) -> str:
    """把 bytes/任意对象转换为可读字符串。"""

    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def classify_exception(exc: BaseException) -> Tuple[ErrorKind, str]:
    """
    将 operation 内部异常映射为 `(ErrorKind, message)`。

    约束：
    - message 为一句话描述，不包含堆栈或协议内部 payload；
    - “连接失败”与“连接中失败”必须给出不同的文案。
    """

    if isinstance(exc, NvimConnectError):
        return ErrorKind.CONNECT_FAILED, f"Failed to connect to Neovim instance: {exc.reason}"
    if isinstance(exc, NvimTransportError):
        return ErrorKind.RPC_FAILED, f"RPC call failed: {exc}"
    if isinstance(exc, NvimRemoteError):
        return ErrorKind.REMOTE_ERROR, f"Neovim returned an error: {exc.message}"
    if isinstance(exc, UserError):
        return ErrorKind.VALIDATION, str(exc)
    return ErrorKind.UNKNOWN, f"Unexpected error: {str(exc) or type(exc).__name__}"
