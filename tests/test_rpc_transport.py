from __future__ import annotations

import time
from pathlib import Path

import pytest

from nvim_bridge.core.errors import NvimConnectError, NvimRemoteError, NvimTransportError
from nvim_bridge.rpc.transport import MsgpackRpcConnection, NvimHandle, handle_id


def _connect(path: str, *, call_timeout_sec: float = 2.0) -> MsgpackRpcConnection:
    return MsgpackRpcConnection.connect(path, connect_timeout_sec=1.0, call_timeout_sec=call_timeout_sec)


def test_request_returns_result_and_decodes_buffer_handles(start_nvim) -> None:  # type: ignore[no-untyped-def]
    fake = start_nvim(buffers={1: ("/work/a.py", True), 3: ("", False)}, current=3)
    conn = _connect(fake.socket_path)
    try:
        assert conn.request("nvim_call_function", "getcwd", []) == "/work"
        current = conn.request("nvim_get_current_buf")
        assert current == NvimHandle(kind="buffer", id=3)
        assert [handle_id(b) for b in conn.request("nvim_list_bufs")] == [1, 3]
    finally:
        conn.close()


def test_request_encodes_handles_back_as_ext_type(start_nvim) -> None:  # type: ignore[no-untyped-def]
    fake = start_nvim(buffers={1: ("", True), 2: ("/work/b.py", True)})
    conn = _connect(fake.socket_path)
    try:
        assert conn.request("nvim_buf_get_name", NvimHandle(kind="buffer", id=2)) == "/work/b.py"
    finally:
        conn.close()
    assert fake.calls[-1] == ("nvim_buf_get_name", [2])


def test_request_skips_interleaved_notifications(start_nvim) -> None:  # type: ignore[no-untyped-def]
    fake = start_nvim()
    fake.send_notifications = True
    conn = _connect(fake.socket_path)
    try:
        assert conn.request("nvim_call_function", "getcwd", []) == "/work"
        assert conn.request("nvim_call_function", "getpos", ["."]) == [0, 1, 1, 0]
    finally:
        conn.close()


def test_request_remote_error_raises_with_message(start_nvim) -> None:  # type: ignore[no-untyped-def]
    fake = start_nvim()
    fake.command_errors["bogus"] = "Vim:E492: Not an editor command: bogus"
    conn = _connect(fake.socket_path)
    try:
        with pytest.raises(NvimRemoteError) as ei:
            conn.request("nvim_command", "bogus")
        assert ei.value.message == "Vim:E492: Not an editor command: bogus"
        assert ei.value.error_type == 0
        # 远端错误不影响连接继续使用
        assert conn.request("nvim_call_function", "getcwd", []) == "/work"
    finally:
        conn.close()


def test_request_peer_close_raises_transport_error(start_nvim) -> None:  # type: ignore[no-untyped-def]
    fake = start_nvim()
    fake.fail_methods.add("nvim_get_current_buf")
    conn = _connect(fake.socket_path)
    try:
        with pytest.raises(NvimTransportError):
            conn.request("nvim_get_current_buf")
    finally:
        conn.close()


def test_request_timeout_raises_transport_error(start_nvim) -> None:  # type: ignore[no-untyped-def]
    fake = start_nvim()
    fake.hang_methods.add("nvim_list_bufs")
    conn = _connect(fake.socket_path, call_timeout_sec=0.2)
    try:
        with pytest.raises(NvimTransportError) as ei:
            conn.request("nvim_list_bufs")
        assert "timed out" in str(ei.value)
    finally:
        conn.close()


def test_connect_missing_socket_raises_connect_error(socket_dir: Path) -> None:
    path = str(socket_dir / "nvim-1.sock")
    with pytest.raises(NvimConnectError) as ei:
        _connect(path)
    assert ei.value.socket_path == path
    assert ei.value.reason


def test_connect_stale_socket_raises_connect_error(socket_dir: Path, make_socket_file) -> None:  # type: ignore[no-untyped-def]
    path = make_socket_file(socket_dir / "nvim-2.sock")
    with pytest.raises(NvimConnectError):
        _connect(str(path))


def test_close_is_idempotent_and_blocks_further_requests(start_nvim) -> None:  # type: ignore[no-untyped-def]
    fake = start_nvim()
    conn = _connect(fake.socket_path)
    conn.close()
    conn.close()
    with pytest.raises(NvimTransportError):
        conn.request("nvim_get_current_buf")


def test_input_returns_written_byte_count(start_nvim) -> None:  # type: ignore[no-untyped-def]
    fake = start_nvim()
    conn = _connect(fake.socket_path)
    try:
        assert conn.input("gg=G") == 4
    finally:
        conn.close()
    assert fake.inputs == ["gg=G"]


def test_handle_id_accepts_plain_integers() -> None:
    assert handle_id(NvimHandle(kind="buffer", id=5)) == 5
    assert handle_id(7) == 7


def test_request_deadline_is_not_extended_by_notifications(start_nvim) -> None:  # type: ignore[no-untyped-def]
    fake = start_nvim()
    fake.trickle_methods.add("nvim_list_bufs")
    conn = _connect(fake.socket_path, call_timeout_sec=0.3)
    started = time.monotonic()
    try:
        with pytest.raises(NvimTransportError) as ei:
            conn.request("nvim_list_bufs")
    finally:
        conn.close()
    assert "timed out" in str(ei.value)
    assert time.monotonic() - started < 2.0


def test_call_timeout_applies_per_call_not_per_connection(start_nvim) -> None:  # type: ignore[no-untyped-def]
    fake = start_nvim()
    conn = _connect(fake.socket_path, call_timeout_sec=0.5)
    try:
        assert conn.request("nvim_call_function", "getcwd", []) == "/work"
        time.sleep(0.6)
        assert conn.request("nvim_call_function", "getcwd", []) == "/work"
    finally:
        conn.close()
