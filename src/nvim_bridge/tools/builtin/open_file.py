"""内置工具：neovim-open-file（打开文件，可选跳转/选区）。"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from nvim_bridge.core.errors import ErrorKind
from nvim_bridge.ops.navigate import open_file as open_file_op
from nvim_bridge.tools.protocol import ToolCall, ToolResult, ToolSpec
from nvim_bridge.tools.registry import ToolExecutionContext


class _OpenFileArgs(BaseModel):
    """neovim-open-file 输入参数（wire 名为 camelCase）。"""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    pid: int = Field(ge=1)
    file_path: str = Field(alias="filePath", min_length=1)
    line: Optional[int] = Field(default=None, ge=1)
    column: Optional[int] = Field(default=None, ge=1)
    end_line: Optional[int] = Field(default=None, alias="endLine", ge=1)
    end_column: Optional[int] = Field(default=None, alias="endColumn", ge=1)


OPEN_FILE_SPEC = ToolSpec(
    name="neovim-open-file",
    description="Open/switch to a file in Neovim, optionally jump to line/column and select a region",
    parameters={
        "type": "object",
        "properties": {
            "pid": {"type": "integer", "minimum": 1, "description": "Process ID of the Neovim instance"},
            "filePath": {"type": "string", "description": "Path to the file to open"},
            "line": {"type": "integer", "minimum": 1, "description": "Line number to jump to (1-based)"},
            "column": {"type": "integer", "minimum": 1, "description": "Column number to jump to (1-based)"},
            "endLine": {"type": "integer", "minimum": 1, "description": "End line for selection (1-based)"},
            "endColumn": {
                "type": "integer",
                "minimum": 1,
                "description": "End column for selection (1-based, 999 means end of line)",
            },
        },
        "required": ["pid", "filePath"],
        "additionalProperties": False,
    },
    idempotency="unsafe",
)


def open_file(call: ToolCall, ctx: ToolExecutionContext) -> ToolResult:
    """
    执行 neovim-open-file。

    返回：
    - 成功：content 为 navigator message
    - 失败：content 为 `Error: <error>`
    """

    try:
        args = _OpenFileArgs.model_validate(call.args)
    except ValidationError as e:
        return ToolResult.error_text(error_kind=ErrorKind.VALIDATION.value, message=str(e))

    result = open_file_op(
        args.pid,
        args.file_path,
        args.line,
        args.column,
        args.end_line,
        args.end_column,
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
