"""
Executor：执行 Ex 命令或原样投递按键序列。

两种互斥模式：
- key sequence：`nvim_input` 原样投递，不解释任何前缀；投递成功即视为成功。
- command：去掉一个前导 `:` 后经 `nvim_exec2` 执行并捕获输出（旧版 Neovim 降级到 `nvim_exec` 或 `nvim_command`）。
  Neovim 拒绝命令（非法命令、搜索失败等）属于正常结果：错误文本作为 output，结果仍为 success。
  只有 not found / 连接失败 / 传输失败才会 success=false。
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from nvim_bridge.config.loader import BridgeConfig
from nvim_bridge.core.contracts import ExecuteResult
from nvim_bridge.core.errors import ErrorKind, NvimRemoteError, classify_exception
from nvim_bridge.discovery import get_instance
from nvim_bridge.rpc.session import Connector, NvimSession, RpcSettings, rpc_session

logger = logging.getLogger(__name__)

COMMAND_MARKER = ":"


def strip_command_marker(command: str) -> str:
    """去掉一个前导 `:`（其余内容原样保留）。"""

    if command.startswith(COMMAND_MARKER):
        return command[len(COMMAND_MARKER) :]
    return command


def _run(session: NvimSession, command: str, is_key_sequence: bool) -> Tuple[str, str]:
    """
    在 session 内执行并返回 `(message, output)`。

    异常：
    - NvimTransportError：传输层失败（NvimRemoteError 在 command 模式下被吸收为 output）
    """

    if is_key_sequence:
        session.input(command)
        return f"Executed key sequence: {command}", ""

    try:
        output = session.exec_output(strip_command_marker(command))
    except NvimRemoteError as e:
        output = e.message
    message = f"Executed command: {command}"
    if output.strip():
        message += f" → {output.strip()}"
    return message, output


def execute(
    pid: int,
    command: str,
    is_key_sequence: bool = False,
    *,
    config: Optional[BridgeConfig] = None,
    connector: Optional[Connector] = None,
) -> ExecuteResult:
    """
    在实例中执行命令或按键序列（total：永不抛异常）。

    参数：
    - pid：实例进程号
    - command：Ex 命令（可带前导 `:`）或按键序列
    - is_key_sequence：True 时按按键序列投递
    - config / connector：见 `get_instance_details`
    """

    cfg = config or BridgeConfig()
    instance = get_instance(pid, config=cfg.discovery)
    if instance is None:
        return ExecuteResult(
            success=False,
            message=f"Neovim instance with PID {pid} not found",
            error=f"PID {pid} not found",
            error_kind=ErrorKind.NOT_FOUND,
            command=command,
            is_key_sequence=is_key_sequence,
        )

    try:
        with rpc_session(instance, settings=RpcSettings.from_config(cfg.rpc), connector=connector) as session:
            message, output = _run(session, command, is_key_sequence)
    except Exception as e:
        kind, error = classify_exception(e)
        logger.warning("Executing %r in PID %s failed: %s", command, pid, error)
        return ExecuteResult(
            success=False,
            message="Failed to execute command in Neovim",
            error=error,
            error_kind=kind,
            command=command,
            is_key_sequence=is_key_sequence,
        )
    return ExecuteResult(
        success=True,
        message=message,
        command=command,
        is_key_sequence=is_key_sequence,
        output=output or None,
    )
