"""
Bootstrap Layer（入口层配置发现）。

设计目标：
- 保持核心无隐式 I/O：operations 只接收显式 `BridgeConfig`（缺省时使用内置默认值）；
- CLI / MCP server 通过本模块发现 overlays、应用 env 覆盖并配置 logging。

优先级（后者覆盖前者）：
1) 内置默认配置（`assets/default.yaml`）
2) `NVIM_BRIDGE_CONFIG_PATHS` 指向的 overlays（逗号/分号分隔）
3) 调用方显式传入的 overlays（例如 CLI `--config`）
4) `NVIM_BRIDGE_SOCKET_DIR`
5) 调用方显式传入的 socket_dir（例如 CLI `--socket-dir`）
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from nvim_bridge.config.defaults import load_default_config_dict
from nvim_bridge.config.loader import BridgeConfig, _load_yaml_file, load_config_dicts

ENV_CONFIG_PATHS = "NVIM_BRIDGE_CONFIG_PATHS"
ENV_SOCKET_DIR = "NVIM_BRIDGE_SOCKET_DIR"


def _get_env_nonempty(key: str, *, env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """
    读取 env 并返回非空白字符串（否则视为未设置）。

    参数：
    - key：环境变量名
    - env：可选；缺省时读取 `os.environ`
    """

    v = (os.environ if env is None else env).get(key)
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _split_paths(raw: str) -> list[str]:
    """将逗号/分号分隔的路径串切分为片段列表（去空白、保序）。"""

    parts: list[str] = []
    for chunk in raw.replace(";", ",").split(","):
        s = chunk.strip()
        if s:
            parts.append(s)
    return parts


def discover_overlay_paths(*, env: Optional[Mapping[str, str]] = None) -> list[Path]:
    """
    从 `NVIM_BRIDGE_CONFIG_PATHS` 发现 overlay 路径（保序去重；相对路径相对当前目录）。

    参数：
    - env：可选；缺省时读取 `os.environ`
    """

    raw = _get_env_nonempty(ENV_CONFIG_PATHS, env=env) or ""
    seen: set[Path] = set()
    uniq: list[Path] = []
    for p in _split_paths(raw):
        pp = Path(p).expanduser().resolve()
        if pp in seen:
            continue
        seen.add(pp)
        uniq.append(pp)
    return uniq


def resolve_config(
    *,
    config_paths: Optional[list[Path]] = None,
    socket_dir: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> BridgeConfig:
    """
    解析有效配置（默认值 + overlays + env/显式覆盖）。

    参数：
    - config_paths：显式 overlay 路径（排在 env 发现的 overlays 之后）
    - socket_dir：显式 socket 目录（最高优先级）
    - env：可选；缺省时读取 `os.environ`

    异常：
    - FileNotFoundError / ValueError：overlay 文件不存在或根节点不是 mapping
    - pydantic.ValidationError：合并后的配置不合法
    """

    dicts: list[Dict[str, Any]] = [load_default_config_dict()]
    for p in [*discover_overlay_paths(env=env), *(config_paths or [])]:
        dicts.append(_load_yaml_file(Path(p)))

    env_socket_dir = _get_env_nonempty(ENV_SOCKET_DIR, env=env)
    if env_socket_dir is not None:
        dicts.append({"discovery": {"socket_dir": env_socket_dir}})
    if socket_dir:
        dicts.append({"discovery": {"socket_dir": str(socket_dir)}})
    return load_config_dicts(dicts)


def configure_logging(config: BridgeConfig) -> None:
    """
    按配置初始化 root logging（输出到 stderr）。

    说明：
    - stdout 保留给 JSON 输出与 MCP stdio 流，日志只能写 stderr。
    """

    level = getattr(logging, str(config.logging.level).upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
