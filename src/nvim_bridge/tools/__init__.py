"""Tool System（协议 + 注册表 + 内置工具）。"""

from __future__ import annotations

from nvim_bridge.tools.protocol import ToolCall, ToolResult, ToolSpec

__all__ = [
    "protocol",
    "registry",
    "ToolCall",
    "ToolResult",
    "ToolSpec",
]
