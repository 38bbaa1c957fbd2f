"""
ToolRegistry：工具注册表与派发（dispatch）。

本模块提供：
- 注册：`register/get_spec/list_specs`
- 执行：`dispatch(ToolCall) -> ToolResult`（永不抛异常；未处理异常渲染为错误文本）
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional

from nvim_bridge.config.loader import BridgeConfig
from nvim_bridge.core.errors import ErrorKind, UserError
from nvim_bridge.rpc.session import Connector
from nvim_bridge.tools.protocol import ToolCall, ToolResult, ToolSpec

logger = logging.getLogger(__name__)

ToolHandler = Callable[[ToolCall, "ToolExecutionContext"], ToolResult]


@dataclass
class ToolExecutionContext:
    """
    Tool 执行上下文（派发层注入）。

    字段：
    - config：生效配置（discovery/rpc）
    - base_dir：buffer 路径相对显示的基准目录（默认当前工作目录）
    - connector：可选；替换默认连接器（测试用）
    """

    config: BridgeConfig = field(default_factory=BridgeConfig)
    base_dir: Path = field(default_factory=Path.cwd)
    connector: Optional[Connector] = None


class ToolRegistry:
    """工具注册表。"""

    def __init__(self, *, ctx: Optional[ToolExecutionContext] = None) -> None:
        """创建注册表并绑定执行上下文。"""

        self._ctx = ctx or ToolExecutionContext()
        self._specs: Dict[str, ToolSpec] = {}
        self._handlers: Dict[str, ToolHandler] = {}

    @property
    def ctx(self) -> ToolExecutionContext:
        """绑定的执行上下文。"""

        return self._ctx

    def register(self, spec: ToolSpec, handler: ToolHandler, *, override: bool = False) -> None:
        """
        注册工具。

        参数：
        - spec：工具规格
        - handler：工具执行函数
        - override：是否允许覆盖同名工具；默认 False（重复注册抛 UserError）
        """

        name = spec.name
        if name in self._specs and not override:
            raise UserError(f"tool already registered: {name}")
        self._specs[name] = spec
        self._handlers[name] = handler

    def get_spec(self, name: str) -> ToolSpec:
        """获取工具规格；不存在则抛 `UserError`。"""

        try:
            return self._specs[name]
        except KeyError as e:
            raise UserError(f"unknown tool: {name}") from e

    def list_specs(self) -> list[ToolSpec]:
        """按注册顺序返回所有工具规格。"""

        return list(self._specs.values())

    def dispatch(self, call: ToolCall) -> ToolResult:
        """
        派发执行一个 ToolCall。

        返回：
        - ToolResult；未注册的 tool → not_found，UserError → validation，其它异常 → unknown
        """

        handler = self._handlers.get(call.name)
        if handler is None:
            return ToolResult.error_text(
                error_kind=ErrorKind.NOT_FOUND.value,
                message=f"unknown tool: {call.name}",
                details={"tool": call.name},
            )

        logger.debug("Dispatching tool %s (call_id=%s)", call.name, call.call_id)
        try:
            return handler(call, self._ctx)
        except UserError as e:
            return ToolResult.error_text(error_kind=ErrorKind.VALIDATION.value, message=str(e))
        except Exception as e:
            logger.exception("Tool %s raised", call.name)
            return ToolResult.error_text(
                error_kind=ErrorKind.UNKNOWN.value,
                message=f"{call.name} failed: {str(e) or type(e).__name__}",
            )
