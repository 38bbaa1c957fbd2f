"""内置工具：neovim-execute（Ex 命令或按键序列）。"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from nvim_bridge.core.errors import ErrorKind
from nvim_bridge.ops.execute import execute as execute_op
from nvim_bridge.tools.protocol import ToolCall, ToolResult, ToolSpec
from nvim_bridge.tools.registry import ToolExecutionContext


class _ExecuteArgs(BaseModel):
    """neovim-execute 输入参数（wire 名为 camelCase）。"""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    pid: int = Field(ge=1)
    command: str
    is_key_sequence: bool = Field(default=False, alias="isKeySequence")


EXECUTE_SPEC = ToolSpec(
    name="neovim-execute",
    description="Execute a Vim command or key sequence in Neovim",
    parameters={
        "type": "object",
        "properties": {
            "pid": {"type": "integer", "minimum": 1, "description": "Process ID of the Neovim instance"},
            "command": {
                "type": "string",
                "description": "Vim command (like ':w', 'set number') or key sequence (like 'gg=G')",
            },
            "isKeySequence": {
                "type": "boolean",
                "description": "True for key sequences (normal mode keys), false for commands (default: false)",
            },
        },
        "required": ["pid", "command"],
        "additionalProperties": False,
    },
    idempotency="unsafe",
)


def execute(call: ToolCall, ctx: ToolExecutionContext) -> ToolResult:
    """执行 neovim-execute（成功返回 executor message；失败返回 `Error: <error>`）。"""

    try:
        args = _ExecuteArgs.model_validate(call.args)
    except ValidationError as e:
        return ToolResult.error_text(error_kind=ErrorKind.VALIDATION.value, message=str(e))

    result = execute_op(
        args.pid,
        args.command,
        args.is_key_sequence,
        config=ctx.config,
        connector=ctx.connector,
    )
    payload = result.model_dump(mode="json", exclude_none=True)
    if not result.success:
        return ToolResult.error_text(
            error_kind=result.error_kind.value if result.error_kind else ErrorKind.UNKNOWN.value,
            message=result.error or result.message,
            details=payload,
        )
    return ToolResult.ok_text(result.message, details=payload)
