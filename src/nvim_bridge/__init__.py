"""
nvim-bridge（Python）。

说明：
- 通过 `/tmp/nvim-<pid>.sock` 发现正在运行的 Neovim 实例，并经 msgpack-RPC 查询与驱动它们；
- 三个 public operations（快照 / 打开文件 / 执行命令）都是 total 函数：失败以结果值返回；
- 上层适配：MCP stdio server（`nvim_bridge.server`）与 CLI（`nvim-bridge`）。
"""

from __future__ import annotations

__version__ = "0.1.0"

from nvim_bridge.core.contracts import (
    ExecuteResult,
    InstanceSnapshot,
    NvimInstance,
    OpenFileResult,
)
from nvim_bridge.discovery import find_instances, get_instance
from nvim_bridge.ops import execute, get_instance_details, open_file

__all__ = [
    "ExecuteResult",
    "InstanceSnapshot",
    "NvimInstance",
    "OpenFileResult",
    "__version__",
    "execute",
    "find_instances",
    "get_instance",
    "get_instance_details",
    "open_file",
]
