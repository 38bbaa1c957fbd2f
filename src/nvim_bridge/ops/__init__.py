"""Public operations（snapshot / navigate / execute）；全部为 total 函数，失败以结果值返回。"""

from __future__ import annotations

from nvim_bridge.ops.execute import execute
from nvim_bridge.ops.navigate import open_file
from nvim_bridge.ops.snapshot import get_instance_details

__all__ = ["execute", "get_instance_details", "open_file"]
