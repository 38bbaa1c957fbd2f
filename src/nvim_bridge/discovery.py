"""
Socket Discovery / Instance Locator。

说明：
- 发现是一个对目录快照的纯函数：每次调用都重新扫描，不维护 registry，避免连到已退出/被复用的 socket；
- 发现永远不会让调用方失败：目录缺失或不可读返回空列表，单个条目 stat 失败则跳过。
"""

from __future__ import annotations

import logging
import os
import re
import stat
from typing import Optional

from nvim_bridge.config.loader import BridgeDiscoveryConfig
from nvim_bridge.core.contracts import NvimInstance

logger = logging.getLogger(__name__)


def _socket_name_pattern(prefix: str, suffix: str) -> "re.Pattern[str]":
    """构造 `<prefix>-<digits>.<suffix>` 的文件名匹配规则。"""

    return re.compile(rf"^{re.escape(prefix)}-(\d+)\.{re.escape(suffix)}$")


def find_instances(
    *,
    socket_dir: Optional[str] = None,
    prefix: Optional[str] = None,
    suffix: Optional[str] = None,
) -> list[NvimInstance]:
    """
    扫描 socket 目录，返回当前存活的实例列表。

    参数：
    - socket_dir / prefix / suffix：缺省时取 `BridgeDiscoveryConfig` 默认值（`/tmp`、`nvim`、`sock`）

    返回：
    - list[NvimInstance]：顺序与目录列举顺序一致（调用方不应依赖其稳定性）
    """

    defaults = BridgeDiscoveryConfig()
    directory = socket_dir if socket_dir is not None else defaults.socket_dir
    pattern = _socket_name_pattern(prefix or defaults.prefix, suffix or defaults.suffix)

    if not os.path.isdir(directory):
        return []
    try:
        names = os.listdir(directory)
    except OSError as e:
        logger.debug("Cannot list socket directory %s: %s", directory, e)
        return []

    instances: list[NvimInstance] = []
    for name in names:
        m = pattern.match(name)
        if m is None:
            continue
        full_path = os.path.join(directory, name)
        try:
            st = os.stat(full_path)
        except OSError as e:
            # 与删除/权限竞争：跳过该条目，继续扫描
            logger.debug("Skipping %s: %s", full_path, e)
            continue
        if not stat.S_ISSOCK(st.st_mode):
            continue
        instances.append(NvimInstance(socket_path=full_path, pid=int(m.group(1))))
    return instances


def find_instances_for(config: BridgeDiscoveryConfig) -> list[NvimInstance]:
    """按 discovery 配置扫描（`find_instances` 的配置化入口）。"""

    return find_instances(socket_dir=config.socket_dir, prefix=config.prefix, suffix=config.suffix)


def get_instance(pid: int, *, config: Optional[BridgeDiscoveryConfig] = None) -> Optional[NvimInstance]:
    """
    按 pid 重新解析实例（每次都重新扫描，不缓存）。

    返回：
    - NvimInstance：找到时
    - None：当前没有该 pid 的存活 socket
    """

    for instance in find_instances_for(config or BridgeDiscoveryConfig()):
        if instance.pid == pid:
            return instance
    return None
