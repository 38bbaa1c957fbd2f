"""
msgpack-RPC 客户端（Unix domain socket）。

协议（Neovim `--listen` 端点）：
- request：`[0, msgid, method, params]`
- response：`[1, msgid, error, result]`（error 通常为 `[type, message]`）
- notification：`[2, method, params]`（本客户端不订阅事件，收到后直接跳过）

Neovim 的 Buffer/Window/Tabpage 以 msgpack ext type 传输（data 为 msgpack 编码的整数 handle），
这里解码为 `NvimHandle`，回传时再编码为同一 ext type。

超时：
- connect 与每次调用都有超时；connect 超时归为 `NvimConnectError`，调用超时归为 `NvimTransportError`；
- 调用超时是整次调用的截止时间（deadline），对端持续发送 notification 或半帧不会延长它。
"""

from __future__ import annotations

import itertools
import logging
import socket
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import msgpack

from nvim_bridge.core.errors import NvimConnectError, NvimRemoteError, NvimTransportError

logger = logging.getLogger(__name__)

_REQUEST = 0
_RESPONSE = 1
_NOTIFICATION = 2

_EXT_KINDS: Dict[int, str] = {0: "buffer", 1: "window", 2: "tabpage"}
_EXT_CODES: Dict[str, int] = {v: k for k, v in _EXT_KINDS.items()}

_RECV_BYTES = 65536


@dataclass(frozen=True)
class NvimHandle:
    """Neovim 远端对象句柄（buffer/window/tabpage + 整数 id）。"""

    kind: str
    id: int


def _ext_hook(code: int, data: bytes) -> Any:
    """msgpack ext 解码：已知 code 转为 NvimHandle，其它保持 ExtType。"""

    kind = _EXT_KINDS.get(code)
    if kind is None:
        return msgpack.ExtType(code, data)
    return NvimHandle(kind=kind, id=int(msgpack.unpackb(data)))


def _encode_default(obj: Any) -> Any:
    """msgpack 编码兜底：NvimHandle 回写为 ext type。"""

    if isinstance(obj, NvimHandle):
        return msgpack.ExtType(_EXT_CODES[obj.kind], msgpack.packb(obj.id))
    raise TypeError(f"cannot serialize {type(obj).__name__}")


class MsgpackRpcConnection:
    """
    单连接 msgpack-RPC 客户端（非线程安全；一个 operation 独占一个连接）。

    说明：
    - 只提供两个原语：`request`（带 reply 的调用）与 `input`（原样投递按键）；
    - 不做重试：每次调用只发送一次。
    """

    def __init__(self, sock: socket.socket, *, socket_path: str) -> None:
        """
        包装一个已连接的 socket。

        参数：
        - sock：已 connect 的 AF_UNIX stream socket（应已设置调用超时）
        - socket_path：对端路径（仅用于日志/错误信息）
        """

        self._sock = sock
        self._socket_path = socket_path
        self._unpacker = msgpack.Unpacker(raw=False, ext_hook=_ext_hook, strict_map_key=False)
        self._ids = itertools.count(1)
        self._closed = False
        # connect 后设置的调用超时；None 表示不限时
        self._call_timeout: Optional[float] = sock.gettimeout()

    @classmethod
    def connect(
        cls,
        socket_path: str,
        *,
        connect_timeout_sec: float = 2.0,
        call_timeout_sec: float = 10.0,
    ) -> "MsgpackRpcConnection":
        """
        连接到实例 socket。

        异常：
        - NvimConnectError：socket 不存在、拒绝连接、无权限或超时
        """

        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(float(connect_timeout_sec))
        try:
            sock.connect(socket_path)
        except TimeoutError as e:
            sock.close()
            raise NvimConnectError(socket_path, f"timed out after {connect_timeout_sec}s") from e
        except OSError as e:
            sock.close()
            raise NvimConnectError(socket_path, e.strerror or str(e)) from e
        sock.settimeout(float(call_timeout_sec))
        logger.debug("Connected to %s", socket_path)
        return cls(sock, socket_path=socket_path)

    @property
    def socket_path(self) -> str:
        """对端 socket 路径。"""

        return self._socket_path

    def request(self, method: str, *args: Any) -> Any:
        """
        发起一次调用并等待对应 msgid 的 response。

        返回：
        - response 的 result 元素

        异常：
        - NvimRemoteError：Neovim 返回了 error
        - NvimTransportError：发送/接收失败、对端关闭、超时或帧无法解码
        """

        if self._closed:
            raise NvimTransportError("connection is closed")
        msgid = next(self._ids)
        deadline = None if self._call_timeout is None else time.monotonic() + self._call_timeout
        try:
            frame = msgpack.packb([_REQUEST, msgid, method, list(args)], default=_encode_default, use_bin_type=True)
        except TypeError as e:
            raise NvimTransportError(f"cannot encode arguments for {method}: {e}") from e
        # 上一次调用可能把 socket 超时缩短到了剩余时间
        self._sock.settimeout(self._call_timeout)
        try:
            self._sock.sendall(frame)
        except TimeoutError as e:
            raise NvimTransportError(f"{method} timed out while sending") from e
        except OSError as e:
            raise NvimTransportError(f"{method} send failed: {e.strerror or e}") from e

        while True:
            message = self._read_message(method, deadline)
            if not isinstance(message, (list, tuple)) or not message:
                raise NvimTransportError(f"malformed msgpack-rpc message: {type(message).__name__}")
            kind = message[0]
            if kind == _RESPONSE and len(message) == 4 and message[1] == msgid:
                error, result = message[2], message[3]
                if error is not None:
                    raise NvimRemoteError.from_payload(error)
                return result
            if kind == _NOTIFICATION:
                logger.debug("Ignoring notification %r from %s", message[1] if len(message) > 1 else None, self._socket_path)
                continue
            if kind == _REQUEST:
                logger.debug("Ignoring request %r from %s", message[2] if len(message) > 2 else None, self._socket_path)
                continue
            raise NvimTransportError(f"unexpected msgpack-rpc message for {method}")

    def input(self, keys: str) -> int:
        """原样投递按键序列（`nvim_input`；返回实际写入的字节数）。"""

        written = self.request("nvim_input", keys)
        return int(written or 0)

    def close(self) -> None:
        """关闭连接（幂等）。"""

        if self._closed:
            return
        self._closed = True
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # 对端已断开时 shutdown 会失败；close 仍需执行
            pass
        self._sock.close()

    def _read_message(self, method: str, deadline: Optional[float]) -> Any:
        """读取下一条完整的 msgpack 消息（必要时继续 recv；每次 recv 只等待到 deadline 为止）。"""

        while True:
            try:
                return next(self._unpacker)
            except StopIteration:
                pass
            except (msgpack.exceptions.UnpackException, ValueError) as e:
                raise NvimTransportError(f"invalid msgpack frame: {e}") from e
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise NvimTransportError(f"{method} timed out waiting for a reply")
                self._sock.settimeout(remaining)
            try:
                data = self._sock.recv(_RECV_BYTES)
            except TimeoutError as e:
                raise NvimTransportError(f"{method} timed out waiting for a reply") from e
            except OSError as e:
                raise NvimTransportError(f"{method} receive failed: {e.strerror or e}") from e
            if not data:
                raise NvimTransportError("connection closed by Neovim")
            self._unpacker.feed(data)


def handle_id(value: Any) -> int:
    """取 handle 的整数 id（兼容直接以整数表示 buffer 的对端）。"""

    return value.id if isinstance(value, NvimHandle) else int(value)
