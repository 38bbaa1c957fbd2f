"""展示层：把实例列表与快照渲染为文本（纯函数）。"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Sequence

from nvim_bridge.core.contracts import InstanceSnapshot, NvimInstance


def format_instances(instances: Sequence[NvimInstance]) -> str:
    """渲染实例列表；空列表返回独立的 “none found” 文案。"""

    if not instances:
        return "No Neovim instances found"
    lines = [f"PID {i.pid}: {i.socket_path}" for i in instances]
    return f"Found {len(instances)} Neovim instance(s):\n" + "\n".join(lines)


def display_path(name: str, base_dir: Optional[Path]) -> str:
    """
    位于 base_dir 之下的绝对路径显示为 `./<relative>`，其它原样返回。

    参数：
    - name：buffer 名称
    - base_dir：相对显示的基准目录；None 表示不做相对化
    """

    if base_dir is None or not name:
        return name
    p = Path(name)
    base = Path(base_dir)
    if not p.is_absolute() or not p.is_relative_to(base) or p == base:
        return name
    return "." + os.sep + str(p.relative_to(base))


def format_instance_details(details: InstanceSnapshot, *, base_dir: Optional[Path] = None) -> str:
    """
    渲染实例快照。

    参数：
    - details：快照（可能为错误占位）
    - base_dir：buffer 路径相对显示的基准目录（通常为 server 进程的 cwd）
    """

    instance = details.instance
    if details.error:
        return f"Neovim Instance {instance.pid}\nSocket: {instance.socket_path}\nError: {details.error}"

    out = f"=== Neovim Instance {instance.pid} ===\n"
    out += f"Socket: {instance.socket_path}\n\n"

    if details.working_directory:
        out += f"Working Directory: {details.working_directory}\n"
    if details.current_file:
        out += f"Current File: {details.current_file}\n"
    if details.cursor_position:
        pos = details.cursor_position
        out += f"Cursor Position: Line {pos.line}, Column {pos.column}\n"

    if details.buffers:
        out += f"\n=== Open Buffers ({len(details.buffers)}) ===\n"
        for buf in details.buffers:
            current = " [CURRENT]" if buf.current else ""
            loaded = "" if buf.loaded else " (not loaded)"
            name = display_path(buf.name, base_dir) or f"[Buffer {buf.id}]"
            out += f"{buf.id:>3}: {name}{loaded}{current}\n"
    return out
