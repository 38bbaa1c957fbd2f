"""配置（默认值 + YAML overlays + pydantic 校验）。"""

from __future__ import annotations

from nvim_bridge.config.loader import BridgeConfig, load_config, load_config_dicts

__all__ = ["BridgeConfig", "load_config", "load_config_dicts"]
