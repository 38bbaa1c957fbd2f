"""
Snapshot Assembler：在一个 session 内组装实例状态快照。

调用顺序（严格串行，后一步依赖前一步）：
1) `getcwd()`
2) 当前 buffer + 其名称
3) `getpos('.')` → (line, column)
4) buffer 列表；逐个取名称与 loaded 标记，id 与第 2 步一致者标记 current

任何一步失败都会放弃整个快照：返回值只有 instance + error（不会出现部分填充）。
"""

from __future__ import annotations

import logging
from typing import Optional

from nvim_bridge.config.loader import BridgeConfig
from nvim_bridge.core.contracts import BufferInfo, CursorPosition, InstanceSnapshot, NvimInstance
from nvim_bridge.core.errors import ErrorKind, classify_exception
from nvim_bridge.discovery import get_instance
from nvim_bridge.rpc.session import Connector, NvimSession, RpcSettings, rpc_session
from nvim_bridge.rpc.transport import handle_id

logger = logging.getLogger(__name__)


def buffer_display_name(buffer_id: int, name: str) -> str:
    """无名 buffer 使用 `[Buffer <id>]` 占位，避免展示空身份。"""

    return name or f"[Buffer {buffer_id}]"


def _assemble(session: NvimSession, instance: NvimInstance) -> InstanceSnapshot:
    """按固定顺序发起远端调用并构造完整快照。"""

    working_directory = str(session.call_function("getcwd"))

    current = session.current_buffer()
    current_id = handle_id(current)
    current_file = session.buffer_name(current)

    pos = session.call_function("getpos", ".")
    cursor = CursorPosition(line=int(pos[1]), column=int(pos[2]))

    buffers: list[BufferInfo] = []
    for buf in session.list_buffers():
        buf_id = handle_id(buf)
        name = session.buffer_name(buf)
        loaded = session.buffer_loaded(buf)
        buffers.append(
            BufferInfo(
                id=buf_id,
                name=buffer_display_name(buf_id, name),
                loaded=loaded,
                current=buf_id == current_id,
            )
        )

    return InstanceSnapshot(
        instance=instance,
        working_directory=working_directory,
        current_file=current_file or None,
        buffers=buffers,
        cursor_position=cursor,
    )


def get_instance_details(
    pid: int,
    *,
    config: Optional[BridgeConfig] = None,
    connector: Optional[Connector] = None,
) -> InstanceSnapshot:
    """
    获取实例快照（total：永不抛异常）。

    参数：
    - pid：实例进程号
    - config：可选；缺省使用内置默认配置
    - connector：可选；替换默认连接器（测试用）

    返回：
    - InstanceSnapshot：完整快照，或只含 instance + error 的占位
    """

    cfg = config or BridgeConfig()
    instance = get_instance(pid, config=cfg.discovery)
    if instance is None:
        return InstanceSnapshot.failed(
            NvimInstance(socket_path="", pid=pid),
            error_kind=ErrorKind.NOT_FOUND,
            error=f"Neovim instance with PID {pid} not found",
        )

    try:
        with rpc_session(instance, settings=RpcSettings.from_config(cfg.rpc), connector=connector) as session:
            return _assemble(session, instance)
    except Exception as e:
        kind, message = classify_exception(e)
        logger.warning("Snapshot of PID %s failed: %s", pid, message)
        return InstanceSnapshot.failed(instance, error_kind=kind, error=message)
