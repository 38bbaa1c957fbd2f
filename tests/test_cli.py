from __future__ import annotations

import json
from pathlib import Path

from nvim_bridge.cli.main import main


def _run(capsys, argv: list[str]) -> tuple[int, dict]:  # type: ignore[no-untyped-def]
    code = main(argv)
    out = capsys.readouterr().out
    return code, json.loads(out)


def test_cli_list(capsys, start_nvim, socket_dir: Path) -> None:  # type: ignore[no-untyped-def]
    code, payload = _run(capsys, ["--socket-dir", str(socket_dir), "list"])
    assert code == 0
    assert payload == {"instances": []}

    fake = start_nvim(pid=21)
    code, payload = _run(capsys, ["--socket-dir", str(socket_dir), "list"])
    assert code == 0
    assert payload == {"instances": [{"socket_path": fake.socket_path, "pid": 21}]}


def test_cli_show(capsys, start_nvim, socket_dir: Path) -> None:  # type: ignore[no-untyped-def]
    start_nvim(pid=22, cwd="/w", buffers={1: ("/w/a.py", True)}, cursor=(2, 3))
    code, payload = _run(capsys, ["--socket-dir", str(socket_dir), "show", "22"])
    assert code == 0
    assert payload["working_directory"] == "/w"
    assert payload["cursor_position"] == {"line": 2, "column": 3}
    assert payload["buffers"][0]["current"] is True


def test_cli_show_not_found_exits_one(capsys, socket_dir: Path) -> None:  # type: ignore[no-untyped-def]
    code, payload = _run(capsys, ["--socket-dir", str(socket_dir), "show", "9999999"])
    assert code == 1
    assert payload["error_kind"] == "not_found"


def test_cli_open_with_selection(capsys, start_nvim, socket_dir: Path) -> None:  # type: ignore[no-untyped-def]
    fake = start_nvim(pid=23)
    code, payload = _run(
        capsys,
        ["--socket-dir", str(socket_dir), "open", "23", "/w/a.py", "--line", "10", "--end-line", "20"],
    )
    assert code == 0
    assert payload["success"] is True
    assert payload["message"] == "Opened /w/a.py at line 10, column 1 (selected to line 20, column 999)"
    assert fake.inputs == ["v"]


def test_cli_exec_command_and_keys(capsys, start_nvim, socket_dir: Path) -> None:  # type: ignore[no-untyped-def]
    fake = start_nvim(pid=24)
    code, payload = _run(capsys, ["--socket-dir", str(socket_dir), "exec", "24", ":w"])
    assert code == 0
    assert payload["message"] == "Executed command: :w"

    code, payload = _run(capsys, ["--socket-dir", str(socket_dir), "exec", "24", "dd", "--keys"])
    assert code == 0
    assert payload["is_key_sequence"] is True
    assert fake.inputs == ["dd"]


def test_cli_exec_not_found_exits_one(capsys, socket_dir: Path) -> None:  # type: ignore[no-untyped-def]
    code, payload = _run(capsys, ["--socket-dir", str(socket_dir), "exec", "9999999", ":w"])
    assert code == 1
    assert payload["success"] is False
    assert payload["error"] == "PID 9999999 not found"


def test_cli_invalid_config_exits_two(capsys, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
    bad = tmp_path / "bad.yaml"
    bad.write_text("rpc:\n  call_timeout_sec: -1\n", encoding="utf-8")
    code, payload = _run(capsys, ["--config", str(bad), "list"])
    assert code == 2
    assert payload["error_kind"] == "validation"

    code, payload = _run(capsys, ["--config", str(tmp_path / "missing.yaml"), "list"])
    assert code == 2


def test_cli_config_overlay_sets_socket_dir(capsys, start_nvim, socket_dir: Path, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
    start_nvim(pid=25)
    overlay = tmp_path / "overlay.yaml"
    overlay.write_text(f"discovery:\n  socket_dir: {socket_dir}\n", encoding="utf-8")
    code, payload = _run(capsys, ["--config", str(overlay), "list"])
    assert code == 0
    assert [i["pid"] for i in payload["instances"]] == [25]


def test_cli_env_socket_dir(capsys, start_nvim, socket_dir: Path, monkeypatch) -> None:  # type: ignore[no-untyped-def]
    start_nvim(pid=26)
    monkeypatch.setenv("NVIM_BRIDGE_SOCKET_DIR", str(socket_dir))
    code, payload = _run(capsys, ["list"])
    assert code == 0
    assert [i["pid"] for i in payload["instances"]] == [26]


def test_cli_usage_error_exits_two(capsys) -> None:  # type: ignore[no-untyped-def]
    assert main(["show", "not-a-pid"]) == 2
    assert main([]) == 2
