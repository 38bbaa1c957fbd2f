"""
内置工具（builtin tools）。

本包提供四个工具，分别对应一个 public operation：
- list-neovim-instances：枚举实例
- get-neovim-instance：实例快照
- neovim-open-file：导航
- neovim-execute：命令 / 按键序列
"""

from __future__ import annotations

from nvim_bridge.tools.builtin.execute import EXECUTE_SPEC, execute
from nvim_bridge.tools.builtin.get_instance import GET_INSTANCE_SPEC, get_instance
from nvim_bridge.tools.builtin.list_instances import LIST_INSTANCES_SPEC, list_instances
from nvim_bridge.tools.builtin.open_file import OPEN_FILE_SPEC, open_file
from nvim_bridge.tools.registry import ToolRegistry

__all__ = ["register_builtin_tools"]

_BUILTIN_TOOL_ENTRIES = [
    (LIST_INSTANCES_SPEC, list_instances),
    (GET_INSTANCE_SPEC, get_instance),
    (OPEN_FILE_SPEC, open_file),
    (EXECUTE_SPEC, execute),
]


def register_builtin_tools(registry: ToolRegistry, *, override: bool = False) -> None:
    """
    注册 builtin tools 集合。

    参数：
    - registry：工具注册表
    - override：是否允许覆盖同名工具（默认 False）
    """

    for spec, handler in _BUILTIN_TOOL_ENTRIES:
        registry.register(spec, handler, override=override)
