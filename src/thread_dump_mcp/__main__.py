import asyncio
import logging
from typing import Any, Callable, Dict

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    CallToolResult,
    TextContent,
    Tool,
)

from thread_dump_mcp.logging_config import setup_logging
from thread_dump_mcp.tools_adapter import (
    Result,
    analyze_tool_call,
    delete_report_call,
    generate_dump_call,
    get_report_call,
    list_processes_call,
    list_reports_call,
)

logger = logging.getLogger("thread_dump_mcp.server")

FORMAT_SCHEMA = {
    "type": "string",
    "enum": ["JSON", "XML", "TEXT"],
    "description": "Output format for the diagnostic report",
}

TOOLS = [
    Tool(
        name="analyze_thread_dump",
        description=(
            "Analyzes Java thread dump content (inline or from a file) and returns a diagnostic report "
            "with thread statistics, deadlock candidates, contention hotspots and suggested fixes."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Path to thread dump text file"},
                "content": {"type": "string", "description": "The thread dump content to analyze"},
                "format": FORMAT_SCHEMA,
                "source": {"type": "string", "description": "Source label recorded in the report"},
            },
            "additionalProperties": False,
        },
    ),
    Tool(
        name="get_report",
        description="Returns a previously produced diagnostic report by id.",
        inputSchema={
            "type": "object",
            "required": ["report_id"],
            "properties": {
                "report_id": {"type": "string"},
                "format": FORMAT_SCHEMA,
            },
            "additionalProperties": False,
        },
    ),
    Tool(
        name="list_reports",
        description="Lists the diagnostic reports held in memory.",
        inputSchema={"type": "object", "properties": {}, "additionalProperties": False},
    ),
    Tool(
        name="delete_report",
        description="Deletes a stored diagnostic report by id.",
        inputSchema={
            "type": "object",
            "required": ["report_id"],
            "properties": {"report_id": {"type": "string"}},
            "additionalProperties": False,
        },
    ),
    Tool(
        name="list_java_processes",
        description="Lists running Java processes on this host (via jps).",
        inputSchema={
            "type": "object",
            "properties": {"format": FORMAT_SCHEMA},
            "additionalProperties": False,
        },
    ),
    Tool(
        name="generate_thread_dump",
        description=(
            "Captures a thread dump of a running Java process with jstack and, by default, analyzes it."
        ),
        inputSchema={
            "type": "object",
            "required": ["pid"],
            "properties": {
                "pid": {"type": "integer", "minimum": 1},
                "analyze": {"type": "boolean", "default": True},
                "format": FORMAT_SCHEMA,
            },
            "additionalProperties": False,
        },
    ),
]

HANDLERS: Dict[str, Callable[[Dict[str, Any]], Result]] = {
    "analyze_thread_dump": lambda args: analyze_tool_call(
        path=args.get("path"),
        content=args.get("content"),
        fmt=args.get("format"),
        source=args.get("source"),
    ),
    "get_report": lambda args: get_report_call(args.get("report_id"), fmt=args.get("format")),
    "list_reports": lambda args: list_reports_call(),
    "delete_report": lambda args: delete_report_call(args.get("report_id")),
    "list_java_processes": lambda args: list_processes_call(fmt=args.get("format")),
    "generate_thread_dump": lambda args: generate_dump_call(
        args.get("pid"),
        analyze=args.get("analyze", True),
        fmt=args.get("format"),
    ),
}


def to_call_tool_result(result: Result) -> CallToolResult:
    if result.ok:
        return CallToolResult(content=[TextContent(type="text", text=result.text or "")])
    message = f"{result.error_code}: {result.error_message}"
    return CallToolResult(content=[TextContent(type="text", text=message)], isError=True)


def dispatch(name: str, arguments: Dict[str, Any]) -> CallToolResult:
    handler = HANDLERS.get(name)
    if handler is None:
        return CallToolResult(content=[TextContent(type="text", text=f"Unknown tool: {name}")], isError=True)
    try:
        return to_call_tool_result(handler(arguments or {}))
    except Exception as e:
        logger.exception("Tool %s failed", name)
        return CallToolResult(content=[TextContent(type="text", text=f"Exception: {e}")], isError=True)


async def main_async() -> None:
    server = Server("thread-dump-analyzer-mcp")

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return TOOLS

    @server.call_tool()
    async def call_tool(name: str, arguments: dict) -> CallToolResult:
        # jps/jstack block; keep them off the event loop
        return await asyncio.to_thread(dispatch, name, arguments)

    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    setup_logging()
    asyncio.run(main_async())


if __name__ == "__main__":
    main()
