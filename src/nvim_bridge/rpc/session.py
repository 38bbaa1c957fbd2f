"""
RPC Session：围绕单个 socket 的 connect → use → close 工作单元。

语义：
- connect 失败：直接抛 `NvimConnectError`，不会进入 body（调用方据此报告“连接失败”）；
- body 内失败：原样向上传播（`NvimTransportError` / `NvimRemoteError`），调用方报告“连接中失败”；
- 释放：任何退出路径都恰好 close 一次；close 自身失败只记录 debug 日志，不覆盖主结果。
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional, Protocol, TypeVar

from nvim_bridge.config.loader import BridgeRpcConfig
from nvim_bridge.core.contracts import NvimInstance
from nvim_bridge.core.errors import NvimRemoteError
from nvim_bridge.rpc.transport import MsgpackRpcConnection

logger = logging.getLogger(__name__)

R = TypeVar("R")

_INVALID_METHOD = "Invalid method"


class RpcConnection(Protocol):
    """Session 依赖的最小连接接口（便于测试替换）。"""

    def request(self, method: str, *args: Any) -> Any:
        """发起一次带 reply 的调用。"""

        ...

    def input(self, keys: str) -> int:
        """原样投递按键序列。"""

        ...

    def close(self) -> None:
        """释放连接。"""

        ...


@dataclass(frozen=True)
class RpcSettings:
    """连接/调用超时（秒）。"""

    connect_timeout_sec: float = 2.0
    call_timeout_sec: float = 10.0

    @classmethod
    def from_config(cls, config: BridgeRpcConfig) -> "RpcSettings":
        """从 `rpc` 配置段构造。"""

        return cls(connect_timeout_sec=config.connect_timeout_sec, call_timeout_sec=config.call_timeout_sec)


Connector = Callable[[str, RpcSettings], RpcConnection]


def _default_connector(socket_path: str, settings: RpcSettings) -> RpcConnection:
    """默认连接器：msgpack-RPC over Unix socket。"""

    return MsgpackRpcConnection.connect(
        socket_path,
        connect_timeout_sec=settings.connect_timeout_sec,
        call_timeout_sec=settings.call_timeout_sec,
    )


def _is_invalid_method(error: NvimRemoteError) -> bool:
    """对端不支持该 API 方法（旧版 Neovim），而不是命令本身失败。"""

    return error.message.startswith(_INVALID_METHOD)


class NvimSession:
    """
    一次 operation 内使用的远端调用集合（对 Neovim API 的薄封装）。

    说明：
    - 每个方法恰好对应一次远端调用；调用顺序由上层 operation 决定。
    """

    def __init__(self, conn: RpcConnection) -> None:
        """绑定已建立的连接。"""

        self._conn = conn

    def call_function(self, name: str, *args: Any) -> Any:
        """调用 Vimscript 函数（`nvim_call_function`）。"""

        return self._conn.request("nvim_call_function", name, list(args))

    def command(self, command: str) -> None:
        """执行 Ex 命令（`nvim_command`；无输出）。"""

        self._conn.request("nvim_command", command)

    def exec_output(self, command: str) -> str:
        """
        执行 Ex 命令并捕获输出。

        说明：
        - 优先 `nvim_exec2`（0.9+）；对端不认识该方法时依次降级到 `nvim_exec`（0.5+）、`nvim_command`（无输出）；
        - 只有 “Invalid method” 触发降级：命令本身被拒绝的 NvimRemoteError 原样抛出。
        """

        try:
            result = self._conn.request("nvim_exec2", command, {"output": True})
        except NvimRemoteError as e:
            if not _is_invalid_method(e):
                raise
        else:
            if isinstance(result, dict):
                return str(result.get("output") or "")
            return ""

        logger.debug("nvim_exec2 unavailable, falling back to nvim_exec")
        try:
            return str(self._conn.request("nvim_exec", command, True) or "")
        except NvimRemoteError as e:
            if not _is_invalid_method(e):
                raise

        logger.debug("nvim_exec unavailable, falling back to nvim_command")
        self.command(command)
        return ""

    def current_buffer(self) -> Any:
        """当前 buffer handle。"""

        return self._conn.request("nvim_get_current_buf")

    def list_buffers(self) -> List[Any]:
        """全部 buffer handle（含 unlisted）。"""

        return list(self._conn.request("nvim_list_bufs") or [])

    def buffer_name(self, buffer: Any) -> str:
        """buffer 的完整路径名（无名 buffer 为空字符串）。"""

        return str(self._conn.request("nvim_buf_get_name", buffer) or "")

    def buffer_loaded(self, buffer: Any) -> bool:
        """buffer 是否已加载。"""

        return bool(self._conn.request("nvim_buf_is_loaded", buffer))

    def input(self, keys: str) -> int:
        """原样投递按键序列（不解释任何前缀字符）。"""

        return self._conn.input(keys)


@contextlib.contextmanager
def rpc_session(
    instance: NvimInstance,
    *,
    settings: Optional[RpcSettings] = None,
    connector: Optional[Connector] = None,
) -> Iterator[NvimSession]:
    """
    打开一个绑定到 `instance.socket_path` 的 session。

    参数：
    - instance：目标实例（调用方应刚刚通过 locator 重新解析）
    - settings：超时设置（缺省为 `RpcSettings()`）
    - connector：可选；替换默认连接器（测试用）

    异常：
    - NvimConnectError：连接失败（发生在 with 块进入之前）
    """

    conn = (connector or _default_connector)(instance.socket_path, settings or RpcSettings())
    try:
        yield NvimSession(conn)
    finally:
        try:
            conn.close()
        except Exception:
            logger.debug("Ignoring error while closing connection to %s", instance.socket_path, exc_info=True)


def with_session(
    instance: NvimInstance,
    body: Callable[[NvimSession], R],
    *,
    settings: Optional[RpcSettings] = None,
    connector: Optional[Connector] = None,
) -> R:
    """在一个 session 内执行 `body(session)` 并返回其结果（释放语义同 `rpc_session`）。"""

    with rpc_session(instance, settings=settings, connector=connector) as session:
        return body(session)
