"""
nvim-bridge CLI（list/show/open/exec/serve）。

约束：
- 使用 argparse（不引入第三方 CLI 依赖）
- stdout 输出机器可读 JSON（`serve` 除外：stdout 为 MCP stdio 流）；日志只写 stderr
- exit code：0 成功；1 operation 失败；2 参数/配置错误
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import yaml
from pydantic import BaseModel

from nvim_bridge import bootstrap
from nvim_bridge.config.loader import BridgeConfig
from nvim_bridge.core.errors import ErrorKind
from nvim_bridge.discovery import find_instances_for
from nvim_bridge.ops import execute, get_instance_details, open_file

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_OPERATION_FAILED = 1
EXIT_USAGE = 2


def _dump_json_to_stdout(obj: Dict[str, Any], *, pretty: bool) -> None:
    """
    将 dict 输出为 JSON 到 stdout（末尾包含换行）。

    参数：
    - obj：待输出对象（必须可 JSON dumps）
    - pretty：是否启用 pretty-print（indent=2）
    """

    if pretty:
        text = json.dumps(obj, ensure_ascii=False, indent=2)
    else:
        text = json.dumps(obj, ensure_ascii=False, separators=(",", ":"))
    print(text)


def _model_to_jsonable(model: BaseModel) -> Dict[str, Any]:
    """pydantic 模型投影为 JSON dict（省略 None 字段）。"""

    return model.model_dump(mode="json", exclude_none=True)


def _build_parser() -> argparse.ArgumentParser:
    """构建 CLI argparse parser。"""

    parser = argparse.ArgumentParser(
        prog="nvim-bridge",
        description="Inspect and drive running Neovim instances over their RPC sockets.",
    )
    parser.add_argument("--config", action="append", default=[], help="Overlay config YAML path (repeatable).")
    parser.add_argument("--socket-dir", default=None, help="Directory scanned for nvim-<pid>.sock sockets.")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List running Neovim instances")

    show = sub.add_parser("show", help="Show working directory, buffers and cursor of one instance")
    show.add_argument("pid", type=int, help="Process ID of the Neovim instance")

    open_p = sub.add_parser("open", help="Open a file, optionally jumping to a position or selecting a range")
    open_p.add_argument("pid", type=int, help="Process ID of the Neovim instance")
    open_p.add_argument("file_path", help="Path to the file to open")
    open_p.add_argument("--line", type=int, default=None, help="Line to jump to (1-based)")
    open_p.add_argument("--column", type=int, default=None, help="Column to jump to (1-based, default 1)")
    open_p.add_argument("--end-line", type=int, default=None, help="End line of the selection (1-based)")
    open_p.add_argument("--end-column", type=int, default=None, help="End column of the selection (default 999)")

    exec_p = sub.add_parser("exec", help="Execute an Ex command or a key sequence")
    exec_p.add_argument("pid", type=int, help="Process ID of the Neovim instance")
    exec_p.add_argument("text", help="Ex command (leading ':' optional) or key sequence")
    exec_p.add_argument("--keys", action="store_true", help="Send TEXT as a key sequence instead of a command")

    sub.add_parser("serve", help="Run the MCP server on stdio")
    return parser


def _handle_list(config: BridgeConfig, args: argparse.Namespace) -> int:
    """`list`：输出实例列表（发现永不失败）。"""

    instances = find_instances_for(config.discovery)
    _dump_json_to_stdout({"instances": [_model_to_jsonable(i) for i in instances]}, pretty=args.pretty)
    return EXIT_OK


def _handle_show(config: BridgeConfig, args: argparse.Namespace) -> int:
    """`show`：输出实例快照；快照为错误占位时 exit 1。"""

    details = get_instance_details(args.pid, config=config)
    _dump_json_to_stdout(_model_to_jsonable(details), pretty=args.pretty)
    return EXIT_OPERATION_FAILED if details.error else EXIT_OK


def _handle_open(config: BridgeConfig, args: argparse.Namespace) -> int:
    """`open`：打开文件并可选定位/选区。"""

    result = open_file(
        args.pid,
        args.file_path,
        args.line,
        args.column,
        args.end_line,
        args.end_column,
        config=config,
    )
    _dump_json_to_stdout(_model_to_jsonable(result), pretty=args.pretty)
    return EXIT_OK if result.success else EXIT_OPERATION_FAILED


def _handle_exec(config: BridgeConfig, args: argparse.Namespace) -> int:
    """`exec`：执行命令或按键序列。"""

    result = execute(args.pid, args.text, bool(args.keys), config=config)
    _dump_json_to_stdout(_model_to_jsonable(result), pretty=args.pretty)
    return EXIT_OK if result.success else EXIT_OPERATION_FAILED


def _handle_serve(config: BridgeConfig) -> int:
    """`serve`：在 stdio 上运行 MCP server（阻塞直到对端关闭）。"""

    # 延迟导入：只有 serve 需要 mcp 运行时
    from nvim_bridge.server import run_stdio
    from nvim_bridge.tools.builtin import register_builtin_tools
    from nvim_bridge.tools.registry import ToolExecutionContext, ToolRegistry

    registry = ToolRegistry(ctx=ToolExecutionContext(config=config))
    register_builtin_tools(registry)
    run_stdio(registry)
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    CLI 入口函数（用于 console_scripts 与测试）。

    参数：
    - argv：命令行参数列表（不含程序名）；为 None 时读取 sys.argv[1:]。

    返回：
    - int：exit code（不会直接 sys.exit，便于测试）。
    """

    parser = _build_parser()
    try:
        args = parser.parse_args(list(argv) if argv is not None else None)
    except SystemExit as exc:
        # argparse：`--help` 为 0，参数错误为 2
        code = getattr(exc, "code", EXIT_USAGE)
        if code is None:
            return EXIT_USAGE
        return int(code)

    try:
        config = bootstrap.resolve_config(
            config_paths=[Path(p).expanduser().resolve() for p in args.config],
            socket_dir=args.socket_dir,
        )
    except (OSError, ValueError, yaml.YAMLError) as exc:
        _dump_json_to_stdout(
            {"success": False, "error_kind": ErrorKind.VALIDATION.value, "error": f"Invalid configuration: {exc}"},
            pretty=args.pretty,
        )
        return EXIT_USAGE

    bootstrap.configure_logging(config)
    logger.debug("Effective socket directory: %s", config.discovery.socket_dir)

    if args.command == "list":
        return _handle_list(config, args)
    if args.command == "show":
        return _handle_show(config, args)
    if args.command == "open":
        return _handle_open(config, args)
    if args.command == "exec":
        return _handle_exec(config, args)
    if args.command == "serve":
        return _handle_serve(config)
    return EXIT_USAGE
