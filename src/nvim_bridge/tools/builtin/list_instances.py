"""内置工具：list-neovim-instances（枚举存活实例）。"""

from __future__ import annotations

from nvim_bridge.discovery import find_instances_for
from nvim_bridge.format import format_instances
from nvim_bridge.tools.protocol import ToolCall, ToolResult, ToolSpec
from nvim_bridge.tools.registry import ToolExecutionContext

LIST_INSTANCES_SPEC = ToolSpec(
    name="list-neovim-instances",
    description="List all currently running Neovim instances",
    parameters={"type": "object", "properties": {}, "additionalProperties": False},
    idempotency="safe",
)


def list_instances(call: ToolCall, ctx: ToolExecutionContext) -> ToolResult:
    """
    执行 list-neovim-instances。

    参数：
    - call：工具调用（无参数）
    - ctx：执行上下文（使用 discovery 配置）
    """

    instances = find_instances_for(ctx.config.discovery)
    return ToolResult.ok_text(
        format_instances(instances),
        details={"instances": [i.model_dump() for i in instances]},
    )
