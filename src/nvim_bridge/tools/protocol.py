"""
Tool 协议（ToolSpec / ToolCall / ToolResult）。

本模块只定义 tool 层的最小协议：
- ToolSpec：注册表条目（JSON schema 描述参数，可直接映射为 MCP Tool）
- ToolCall：执行输入（call_id/name/args）
- ToolResult：执行输出（ok/content/error_kind/message/details）；content 为面向调用方的展示文本
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ToolSpec(BaseModel):
    """
    Tool 注册信息。

    字段：
    - name：工具名（全局唯一，稳定）
    - description：工具说明
    - parameters：JSON Schema（必须为 object schema）
    - idempotency：可选；safe（只读）/ unsafe（会改变实例状态）
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    description: str
    parameters: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})
    idempotency: Optional[str] = None


class ToolCall(BaseModel):
    """
    Tool 调用（内部表示）。

    字段：
    - call_id：本次调用的唯一 id
    - name：工具名
    - args：参数 dict（调用方已解析）
    """

    model_config = ConfigDict(extra="forbid")

    call_id: str
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    """
    Tool 执行结果（统一 envelope）。

    字段：
    - ok：是否成功
    - content：返回给调用方的文本（失败时为 `Error: ...` 形式）
    - error_kind：错误分类（not_found/connect_failed/rpc_failed/validation/unknown...）
    - message：一句话说明
    - details：结构化结果（operation 结果对象的 JSON 形态）
    """

    model_config = ConfigDict(extra="forbid")

    ok: bool
    content: str
    error_kind: Optional[str] = None
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    @classmethod
    def ok_text(cls, text: str, *, details: Optional[Dict[str, Any]] = None) -> "ToolResult":
        """便捷构造：成功结果。"""

        return cls(ok=True, content=text, message=None, details=details)

    @classmethod
    def error_text(
        cls,
        *,
        error_kind: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> "ToolResult":
        """便捷构造：失败结果（content 统一为 `Error: <message>`）。"""

        return cls(
            ok=False,
            content=f"Error: {message}",
            error_kind=error_kind,
            message=message,
            details=details,
        )
