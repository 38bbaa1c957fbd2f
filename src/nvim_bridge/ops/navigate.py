"""
Navigator：打开/切换文件、从磁盘重载、定位光标、可选选区。

调用顺序（一个 session 内严格串行）：
a) `fnameescape(file_path)` + `edit <escaped>`
b) `checktime`（必做：外部修改由此对实例可见）
c) 给定 line 时：`cursor(line, column)`
d) 同时给定 end_line 时：输入 `v` 进入 visual 模式，再 `cursor(end_line, end_column)`

失败语义：任一步失败即中止剩余步骤并报告失败；已生效的远端副作用不回滚。
visual 模式进入与第二次 cursor 之间没有原子性，“已进入 visual 但移动失败”是可观测且被接受的状态。
"""

from __future__ import annotations

import logging
from typing import Optional

from nvim_bridge.config.loader import BridgeConfig
from nvim_bridge.core.contracts import OpenFileResult
from nvim_bridge.core.errors import ErrorKind, classify_exception
from nvim_bridge.discovery import get_instance
from nvim_bridge.rpc.session import Connector, NvimSession, RpcSettings, rpc_session

logger = logging.getLogger(__name__)

DEFAULT_COLUMN = 1
# 行尾哨兵值：原样发送，由 Neovim 侧 clamp
END_OF_LINE_COLUMN = 999


def _navigate(
    session: NvimSession,
    *,
    file_path: str,
    line: Optional[int],
    column: int,
    end_line: Optional[int],
    end_column: int,
) -> str:
    """执行导航序列并返回描述实际执行步骤的 message。"""

    escaped = str(session.call_function("fnameescape", file_path))
    session.command(f"edit {escaped}")
    session.command("checktime")

    message = f"Opened {file_path}"
    if line is None:
        return message

    session.call_function("cursor", line, column)
    message += f" at line {line}, column {column}"

    if end_line is not None:
        session.input("v")
        session.call_function("cursor", end_line, end_column)
        message += f" (selected to line {end_line}, column {end_column})"
    return message


def open_file(
    pid: int,
    file_path: str,
    line: Optional[int] = None,
    column: Optional[int] = None,
    end_line: Optional[int] = None,
    end_column: Optional[int] = None,
    *,
    config: Optional[BridgeConfig] = None,
    connector: Optional[Connector] = None,
) -> OpenFileResult:
    """
    在实例中打开文件，可选跳转到位置并选中区域（total：永不抛异常）。

    参数：
    - pid：实例进程号
    - file_path：目标文件（非空）
    - line / column：起始位置（1-based；给定 line 而缺省 column 时取 1）
    - end_line / end_column：选区终点（仅在给定 line 时生效；缺省 end_column 取 999=行尾）
    - config / connector：见 `get_instance_details`

    返回：
    - OpenFileResult：回显实际发送的位置参数
    """

    effective_column = (column or DEFAULT_COLUMN) if line is not None else None
    effective_end_line = end_line if line is not None else None
    effective_end_column = (end_column or END_OF_LINE_COLUMN) if effective_end_line is not None else None
    echo = {
        "file": file_path,
        "line": line,
        "column": effective_column,
        "end_line": effective_end_line,
        "end_column": effective_end_column,
    }

    if not file_path or not file_path.strip():
        return OpenFileResult(
            success=False,
            message="File path must not be empty",
            error="file_path is required",
            error_kind=ErrorKind.VALIDATION,
            **echo,
        )

    cfg = config or BridgeConfig()
    instance = get_instance(pid, config=cfg.discovery)
    if instance is None:
        return OpenFileResult(
            success=False,
            message=f"Neovim instance with PID {pid} not found",
            error=f"PID {pid} not found",
            error_kind=ErrorKind.NOT_FOUND,
            **echo,
        )

    try:
        with rpc_session(instance, settings=RpcSettings.from_config(cfg.rpc), connector=connector) as session:
            message = _navigate(
                session,
                file_path=file_path,
                line=line,
                column=effective_column or DEFAULT_COLUMN,
                end_line=effective_end_line,
                end_column=effective_end_column or END_OF_LINE_COLUMN,
            )
    except Exception as e:
        kind, error = classify_exception(e)
        logger.warning("Opening %s in PID %s failed: %s", file_path, pid, error)
        return OpenFileResult(
            success=False,
            message="Failed to open file in Neovim",
            error=error,
            error_kind=kind,
            **echo,
        )
    return OpenFileResult(success=True, message=message, **echo)
