"""
stdio MCP server exposing the mcdev symbol index and call graph.

The symbol index is built lazily on the first query that needs it; the
callgraph database is opened read-only once a dump has been ingested.
stdout carries the MCP transport, so all logging goes to stderr.
"""

import asyncio
import json
import logging
import sys
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .config import Config
from .tools import ALL_TOOLS, ToolHandlers

logger = logging.getLogger("mcp-mcdev")


def configure_logging(level: int = logging.INFO) -> None:
    """Send logs to stderr; stdout belongs to the stdio transport."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def create_server(config: Config | None = None) -> tuple[Server, ToolHandlers]:
    """Wire the tool handlers into an MCP server.

    Args:
        config: Configuration to use (defaults to environment)

    Returns:
        Tuple of (server, handlers)
    """
    config = config or Config.from_env()

    logger.info(f"Serving corpus {config.version} from {config.home_dir}")

    handlers = ToolHandlers(config)

    server = Server("mcp-mcdev")

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """Advertise the tool definitions."""
        return [
            Tool(
                name=tool["name"],
                description=tool["description"],
                inputSchema=tool["inputSchema"],
            )
            for tool in ALL_TOOLS
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        """Run one tool and return its result as JSON text."""
        logger.info(f"Tool called: {name}")

        try:
            result = await handlers.handle_tool(name, arguments or {})
            return [TextContent(type="text", text=json.dumps(result, indent=2, default=str))]
        except Exception as e:
            logger.error(f"Tool error: {e}", exc_info=True)
            return [TextContent(type="text", text=json.dumps({"error": str(e)}))]

    return server, handlers


async def main(config: Config | None = None):
    """Serve on stdio until the client disconnects."""
    logger.info("Starting mcdev server on stdio")

    server, handlers = create_server(config)

    try:
        async with stdio_server() as (read_stream, write_stream):
            logger.info(f"Ready with {len(ALL_TOOLS)} tools")
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )
    finally:
        handlers.callgraph.close()

def cli_main():
    """Console-script entry point for the stdio server."""
    configure_logging()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error(f"Server error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    cli_main()
