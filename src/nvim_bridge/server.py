"""
MCP stdio server：把 ToolRegistry 暴露为 MCP tools。

说明：
- tool 执行是同步阻塞的 socket I/O，经 `asyncio.to_thread` 派发，避免阻塞 stdio 事件循环；
- 每次 call 都是独立的 dispatch（重新发现实例、独立连接），server 不持有任何 Neovim 状态。
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict, Optional

from mcp.server import InitializationOptions, Server
from mcp.server.stdio import stdio_server
from mcp.types import ServerCapabilities, TextContent, ToolsCapability
from mcp.types import Tool as MCPTool

from nvim_bridge import __version__
from nvim_bridge.tools.protocol import ToolCall
from nvim_bridge.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

SERVER_NAME = "nvim-bridge"


def build_server(registry: ToolRegistry) -> Server:
    """
    构造绑定到 registry 的 MCP Server。

    参数：
    - registry：已注册 builtin tools 的注册表

    返回：
    - mcp Server（尚未运行）
    """

    server: Server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[MCPTool]:
        """列出注册表中的全部工具。"""

        return [
            MCPTool(name=spec.name, description=spec.description, inputSchema=spec.parameters)
            for spec in registry.list_specs()
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> list[TextContent]:
        """派发一次工具调用，返回单段文本。"""

        call = ToolCall(call_id=uuid.uuid4().hex, name=name, args=dict(arguments or {}))
        result = await asyncio.to_thread(registry.dispatch, call)
        if not result.ok:
            logger.info("Tool %s failed (%s): %s", name, result.error_kind, result.message)
        return [TextContent(type="text", text=result.content)]

    return server


async def serve_stdio(registry: ToolRegistry) -> None:
    """在 stdin/stdout 上运行 MCP server，直到对端关闭流。"""

    server = build_server(registry)
    init_options = InitializationOptions(
        server_name=SERVER_NAME,
        server_version=__version__,
        capabilities=ServerCapabilities(tools=ToolsCapability()),
    )
    logger.info("Starting %s MCP server on stdio", SERVER_NAME)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, init_options)


def run_stdio(registry: ToolRegistry) -> None:
    """同步入口（CLI `serve` 子命令使用）。"""

    asyncio.run(serve_stdio(registry))
