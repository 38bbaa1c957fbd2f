"""
配置加载器（YAML）。

默认配置：`src/nvim_bridge/assets/default.yaml`

设计目标：
- 支持加载多个 YAML，并按顺序做深度合并（后者覆盖前者）。
- 使用 pydantic 做 schema 校验；所有字段都有默认值，`BridgeConfig()` 即可直接使用（无隐式 I/O）。
"""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping

import yaml
from pydantic import BaseModel, ConfigDict, Field


def _deep_merge(base: MutableMapping[str, Any], overlay: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """
    深度合并两个 dict（overlay 覆盖 base）。

    合并规则：
    - dict + dict：递归合并
    - 其它类型：overlay 直接覆盖
    - list：整体覆盖（不做去重/拼接）
    """

    for key, overlay_value in overlay.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(overlay_value, Mapping)
        ):
            _deep_merge(base[key], overlay_value)  # type: ignore[arg-type]
            continue
        base[key] = deepcopy(overlay_value)
    return base


class BridgeDiscoveryConfig(BaseModel):
    """
    socket 发现配置。

    说明：
    - 候选文件名形如 `<prefix>-<pid>.<suffix>`（默认 `/tmp/nvim-<pid>.sock`）；
    - 只有 OS 报告为 socket 特殊文件的条目才会被视为实例。
    """

    model_config = ConfigDict(extra="forbid")

    socket_dir: str = Field(default="/tmp")
    prefix: str = Field(default="nvim", min_length=1)
    suffix: str = Field(default="sock", min_length=1)


class BridgeRpcConfig(BaseModel):
    """
    RPC 超时配置。

    说明：
    - connect 超时归类为 connect_failed；单次调用超时归类为 rpc_failed；
    - 不做重试：每个远端调用只尝试一次。
    """

    model_config = ConfigDict(extra="forbid")

    connect_timeout_sec: float = Field(default=2.0, gt=0)
    call_timeout_sec: float = Field(default=10.0, gt=0)


class BridgeLoggingConfig(BaseModel):
    """日志配置（CLI/MCP server 入口使用）。"""

    model_config = ConfigDict(extra="forbid")

    level: str = Field(default="WARNING")  # DEBUG|INFO|WARNING|ERROR


class BridgeConfig(BaseModel):
    """配置根对象。"""

    model_config = ConfigDict(extra="forbid")

    config_version: int = Field(default=1, ge=1)
    discovery: BridgeDiscoveryConfig = Field(default_factory=BridgeDiscoveryConfig)
    rpc: BridgeRpcConfig = Field(default_factory=BridgeRpcConfig)
    logging: BridgeLoggingConfig = Field(default_factory=BridgeLoggingConfig)


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    """读取 YAML 文件为 dict；空文件返回空 dict。"""

    if not path.exists():
        raise FileNotFoundError(f"config file not found: {path}")
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"config file root must be a mapping(dict): {path}")
    return data


def load_config_dicts(config_dicts: list[Dict[str, Any]]) -> BridgeConfig:
    """
    加载并合并多个 dict 配置，返回校验后的 `BridgeConfig`。

    参数：
    - config_dicts：按顺序做深度合并（后者覆盖前者）
    """

    merged: Dict[str, Any] = {}
    for overlay in config_dicts:
        if not overlay:
            continue
        _deep_merge(merged, overlay)
    return BridgeConfig.model_validate(merged)


def load_config(config_paths: list[Path]) -> BridgeConfig:
    """
    加载并合并多个配置文件，返回校验后的 `BridgeConfig`。

    参数：
    - config_paths：YAML 路径列表；按顺序合并（后者覆盖前者）
    """

    overlays: list[Dict[str, Any]] = []
    for path in config_paths:
        overlays.append(_load_yaml_file(Path(path)))
    return load_config_dicts(overlays)
