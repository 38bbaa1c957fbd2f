"""内置工具：get-neovim-instance（实例快照）。"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from nvim_bridge.core.errors import ErrorKind
from nvim_bridge.format import format_instance_details
from nvim_bridge.ops.snapshot import get_instance_details
from nvim_bridge.tools.protocol import ToolCall, ToolResult, ToolSpec
from nvim_bridge.tools.registry import ToolExecutionContext


class _GetInstanceArgs(BaseModel):
    """get-neovim-instance 输入参数。"""

    model_config = ConfigDict(extra="forbid")

    pid: int = Field(ge=1, description="Neovim 进程号")


GET_INSTANCE_SPEC = ToolSpec(
    name="get-neovim-instance",
    description=(
        "Get detailed information about a specific Neovim instance including working directory, "
        "buffers, and cursor position"
    ),
    parameters={
        "type": "object",
        "properties": {
            "pid": {"type": "integer", "minimum": 1, "description": "Process ID of the Neovim instance"},
        },
        "required": ["pid"],
        "additionalProperties": False,
    },
    idempotency="safe",
)


def get_instance(call: ToolCall, ctx: ToolExecutionContext) -> ToolResult:
    """
    执行 get-neovim-instance。

    说明：
    - 快照失败（not found / 连接失败）仍以文本形式返回（快照文本本身包含 Error 行），
      ok=false 且 error_kind 与快照一致，便于调用方分支。
    """

    try:
        args = _GetInstanceArgs.model_validate(call.args)
    except ValidationError as e:
        return ToolResult.error_text(error_kind=ErrorKind.VALIDATION.value, message=str(e))

    details = get_instance_details(args.pid, config=ctx.config, connector=ctx.connector)
    text = format_instance_details(details, base_dir=ctx.base_dir)
    payload = details.model_dump(mode="json", exclude_none=True)
    if details.error:
        return ToolResult(
            ok=False,
            content=text,
            error_kind=details.error_kind.value if details.error_kind else ErrorKind.UNKNOWN.value,
            message=details.error,
            details=payload,
        )
    return ToolResult.ok_text(text, details=payload)
