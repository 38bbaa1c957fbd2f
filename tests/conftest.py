from __future__ import annotations

import os
import shutil
import socket
import socketserver
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import msgpack
import pytest

from nvim_bridge.config.loader import BridgeConfig, load_config_dicts


def _server_ext_hook(code: int, data: bytes) -> Any:
    if code in (0, 1, 2):
        return int(msgpack.unpackb(data))
    return msgpack.ExtType(code, data)


def _buf(buffer_id: int) -> msgpack.ExtType:
    return msgpack.ExtType(0, msgpack.packb(buffer_id))


class FakeNvim:
    """
    线程化的假 Neovim：在真实 Unix socket 上说 msgpack-RPC。

    只实现 bridge 用到的 API 子集，并记录收到的每一次调用。
    """

    def __init__(
        self,
        socket_path: str,
        *,
        cwd: str = "/work",
        buffers: Optional[Dict[int, Tuple[str, bool]]] = None,
        current: int = 1,
        cursor: Tuple[int, int] = (1, 1),
    ) -> None:
        self.socket_path = socket_path
        self.cwd = cwd
        self.buffers: Dict[int, Tuple[str, bool]] = dict(buffers or {1: ("", True)})
        self.current = current
        self.cursor = cursor
        self.command_errors: Dict[str, str] = {}
        self.exec_outputs: Dict[str, str] = {}
        self.fail_methods: set[str] = set()
        self.hang_methods: set[str] = set()
        self.trickle_methods: set[str] = set()
        self.send_notifications = False
        self.calls: List[Tuple[str, List[Any]]] = []
        self.inputs: List[str] = []
        self.connections = 0
        self._lock = threading.Lock()
        self._release = threading.Event()
        self._server: Optional[socketserver.ThreadingUnixStreamServer] = None

    # --- lifecycle ---------------------------------------------------------

    def start(self) -> "FakeNvim":
        fake = self

        class Handler(socketserver.BaseRequestHandler):
            def handle(self) -> None:
                with fake._lock:
                    fake.connections += 1
                unpacker = msgpack.Unpacker(raw=False, ext_hook=_server_ext_hook, strict_map_key=False)
                while True:
                    try:
                        data = self.request.recv(65536)
                    except OSError:
                        return
                    if not data:
                        return
                    unpacker.feed(data)
                    for message in unpacker:
                        if not fake._serve_one(self.request, message):
                            return

        class Server(socketserver.ThreadingUnixStreamServer):
            daemon_threads = True
            block_on_close = False

        self._server = Server(self.socket_path, Handler)
        threading.Thread(target=self._server.serve_forever, daemon=True).start()
        return self

    def stop(self) -> None:
        self._release.set()
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        try:
            os.unlink(self.socket_path)
        except FileNotFoundError:
            pass

    # --- recording ---------------------------------------------------------

    def methods(self) -> List[str]:
        with self._lock:
            return [m for m, _ in self.calls]

    def commands(self) -> List[str]:
        with self._lock:
            return [p[0] for m, p in self.calls if m == "nvim_command"]

    def function_calls(self) -> List[Tuple[str, List[Any]]]:
        with self._lock:
            return [(p[0], list(p[1])) for m, p in self.calls if m == "nvim_call_function"]

    # --- dispatch ----------------------------------------------------------

    def _serve_one(self, sock: socket.socket, message: Any) -> bool:
        if not isinstance(message, list) or message[0] != 0:
            return True
        _, msgid, method, params = message
        with self._lock:
            self.calls.append((method, list(params)))
        if method in self.fail_methods:
            return False
        if method in self.hang_methods:
            self._release.wait(5)
            return False
        if method in self.trickle_methods:
            # 持续发送 notification，但永不回复
            while not self._release.wait(0.05):
                try:
                    sock.sendall(msgpack.packb([2, "redraw", [["flush", []]]], use_bin_type=True))
                except OSError:
                    return False
            return False
        if self.send_notifications:
            sock.sendall(msgpack.packb([2, "redraw", [["flush", []]]], use_bin_type=True))
        error, result = self._reply(method, list(params))
        sock.sendall(msgpack.packb([1, msgid, error, result], use_bin_type=True))
        return True

    def _reply(self, method: str, params: List[Any]) -> Tuple[Any, Any]:
        handler: Optional[Callable[[List[Any]], Tuple[Any, Any]]] = getattr(self, "_api_" + method, None)
        if handler is None:
            return [0, f"Invalid method: {method}"], None
        return handler(params)

    def _api_nvim_call_function(self, params: List[Any]) -> Tuple[Any, Any]:
        name, args = params[0], list(params[1])
        if name == "getcwd":
            return None, self.cwd
        if name == "getpos":
            return None, [0, self.cursor[0], self.cursor[1], 0]
        if name == "cursor":
            self.cursor = (int(args[0]), int(args[1]))
            return None, 0
        if name == "fnameescape":
            return None, str(args[0]).replace(" ", "\\ ")
        return [0, f"Vim:E117: Unknown function: {name}"], None

    def _api_nvim_get_current_buf(self, params: List[Any]) -> Tuple[Any, Any]:
        return None, _buf(self.current)

    def _api_nvim_list_bufs(self, params: List[Any]) -> Tuple[Any, Any]:
        return None, [_buf(i) for i in sorted(self.buffers)]

    def _api_nvim_buf_get_name(self, params: List[Any]) -> Tuple[Any, Any]:
        entry = self.buffers.get(int(params[0]))
        if entry is None:
            return [1, "Invalid buffer id"], None
        return None, entry[0]

    def _api_nvim_buf_is_loaded(self, params: List[Any]) -> Tuple[Any, Any]:
        entry = self.buffers.get(int(params[0]))
        return None, bool(entry and entry[1])

    def _api_nvim_command(self, params: List[Any]) -> Tuple[Any, Any]:
        command = str(params[0])
        if command in self.command_errors:
            return [0, self.command_errors[command]], None
        if command.startswith("edit "):
            name = command[len("edit ") :].replace("\\ ", " ")
            for buffer_id, (existing, _loaded) in self.buffers.items():
                if existing == name:
                    self.current = buffer_id
                    break
            else:
                new_id = max(self.buffers, default=0) + 1
                self.buffers[new_id] = (name, True)
                self.current = new_id
            self.cursor = (1, 1)
        return None, None

    def _api_nvim_input(self, params: List[Any]) -> Tuple[Any, Any]:
        keys = str(params[0])
        with self._lock:
            self.inputs.append(keys)
        return None, len(keys.encode("utf-8"))

    def _api_nvim_exec2(self, params: List[Any]) -> Tuple[Any, Any]:
        command = str(params[0])
        if command in self.command_errors:
            return [0, self.command_errors[command]], None
        return None, {"output": self.exec_outputs.get(command, "")}

    def _api_nvim_exec(self, params: List[Any]) -> Tuple[Any, Any]:
        command = str(params[0])
        if command in self.command_errors:
            return [0, self.command_errors[command]], None
        return None, self.exec_outputs.get(command, "") if params[1] else ""


@pytest.fixture
def socket_dir() -> Iterator[Path]:
    # AF_UNIX 路径长度有限：不用 pytest 的 tmp_path（可能很深）
    d = tempfile.mkdtemp(prefix="nvb")
    try:
        yield Path(d)
    finally:
        shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def bridge_config(socket_dir: Path) -> BridgeConfig:
    return load_config_dicts(
        [
            {
                "discovery": {"socket_dir": str(socket_dir)},
                "rpc": {"connect_timeout_sec": 1.0, "call_timeout_sec": 2.0},
            }
        ]
    )


@pytest.fixture
def start_nvim(socket_dir: Path) -> Iterator[Callable[..., FakeNvim]]:
    started: List[FakeNvim] = []

    def _start(pid: int = 4242, **state: Any) -> FakeNvim:
        fake = FakeNvim(str(socket_dir / f"nvim-{pid}.sock"), **state).start()
        started.append(fake)
        return fake

    yield _start
    for fake in started:
        fake.stop()


@pytest.fixture
def make_socket_file() -> Callable[[Path], Path]:
    """创建一个 socket 文件但不监听（connect 会被拒绝）。"""

    def _make(path: Path) -> Path:
        s = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            s.bind(str(path))
        finally:
            s.close()
        return path

    return _make
