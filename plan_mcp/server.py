"""Project Plan MCP Server - lists, reads and records project plan documents."""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from .files import DocumentNotAccessibleError
from .models import LIST_FILTERS, RECORD_CATEGORIES
from .project import (
    PlanContext,
    validate_list_filter,
    validate_record_category,
    validate_sprint_id,
)
from .security import SecurityValidationError
from .timeinfo import right_now, right_now_extended

logger = logging.getLogger(__name__)


# Global project context
ctx = PlanContext()

# Create MCP server
server = Server("project-plan-mcp")

INIT_NEXT_STEP = {
    "action": "Initialize the project plan first",
    "tool": "init_project_plan",
}

WORDS_PER_LINE = 8


def make_response(
    success: bool,
    data: Any = None,
    error: str | None = None,
    next_step: dict | None = None,
) -> dict:
    """Create standardized response with next_step guidance."""
    response = {
        "success": success,
        "data": data,
        "error": error,
    }
    if next_step:
        response["next_step"] = next_step
    return response


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List available project plan tools."""
    return [
        Tool(
            name="set_project",
            description="Set the project root whose project_plan directory the other tools operate on. Defaults to the server's working directory.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_path": {
                        "type": "string",
                        "description": "Path to the project root directory",
                    },
                },
                "required": ["project_path"],
            },
        ),
        Tool(
            name="list_files",
            description="List files in the project_plan directory with metadata and statistics.",
            inputSchema={
                "type": "object",
                "properties": {
                    "type": {
                        "type": "string",
                        "enum": list(LIST_FILTERS),
                        "description": "Filter files by type",
                    },
                },
                "required": ["type"],
            },
        ),
        Tool(
            name="show_current",
            description="Display the current project status from CURRENT.md.",
            inputSchema={
                "type": "object",
                "properties": {},
            },
        ),
        Tool(
            name="show_plan",
            description="Display the project plan from PLAN.md.",
            inputSchema={
                "type": "object",
                "properties": {},
            },
        ),
        Tool(
            name="show_status",
            description="Summarize the project_plan directory: core documents present, counts by type, last update.",
            inputSchema={
                "type": "object",
                "properties": {},
            },
        ),
        Tool(
            name="record",
            description="Record a document (doc reference, code reference or opinion) with an auto-generated file name.",
            inputSchema={
                "type": "object",
                "properties": {
                    "type": {
                        "type": "string",
                        "enum": list(RECORD_CATEGORIES),
                        "description": "Type of document to record",
                    },
                    "target": {
                        "type": "string",
                        "description": "Subject of the document; used to build the file name",
                    },
                    "content": {
                        "type": "string",
                        "description": "Document content appended under '## User Content'",
                    },
                },
                "required": ["type", "target", "content"],
            },
        ),
        Tool(
            name="init_project_plan",
            description="Initialize the project_plan directory with PLAN.md, CURRENT.md and a first sprint document.",
            inputSchema={
                "type": "object",
                "properties": {},
            },
        ),
        Tool(
            name="query_sprint",
            description="Show a sprint document by sprint ID.",
            inputSchema={
                "type": "object",
                "properties": {
                    "sprint_id": {
                        "type": "string",
                        "description": "Sprint ID in format M01_S01",
                    },
                },
                "required": ["sprint_id"],
            },
        ),
        Tool(
            name="right_now",
            description="Get current time: UTC ISO, local timezone, Unix timestamp (seconds and milliseconds).",
            inputSchema={
                "type": "object",
                "properties": {},
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    try:
        result = await _handle_tool(name, arguments or {})
        return [TextContent(type="text", text=json.dumps(result, indent=2, ensure_ascii=False))]
    except Exception as e:
        logger.warning(f"Tool {name} failed: {e}")
        error_response = make_response(False, error=str(e))
        return [TextContent(type="text", text=json.dumps(error_response, indent=2))]


async def _handle_tool(name: str, arguments: dict) -> dict:
    """Route tool calls to handlers."""

    if name == "set_project":
        return await handle_set_project(arguments["project_path"])
    elif name == "list_files":
        return await handle_list_files(arguments.get("type", "all"))
    elif name == "show_current":
        return await handle_show_current()
    elif name == "show_plan":
        return await handle_show_plan()
    elif name == "show_status":
        return await handle_show_status()
    elif name == "record":
        return await handle_record(
            arguments.get("type", ""),
            arguments.get("target", ""),
            arguments.get("content", ""),
        )
    elif name == "init_project_plan":
        return await handle_init_project()
    elif name == "query_sprint":
        return await handle_query_sprint(arguments.get("sprint_id", ""))
    elif name == "right_now":
        return await handle_right_now()
    else:
        return make_response(False, error=f"Unknown tool: {name}")


async def handle_set_project(project_path: str) -> dict:
    """Handle set_project."""
    try:
        files = ctx.set_project(project_path)
    except ValueError as e:
        return make_response(False, error=str(e))

    status = files.get_status()
    next_step = None
    if not status.has_core:
        next_step = INIT_NEXT_STEP

    return make_response(
        True,
        data={
            "project_root": str(ctx.root),
            "project_plan_dir": str(files.get_root()),
            "status": status.to_dict(),
            "right_now": right_now(),
        },
        next_step=next_step,
    )


def _size_bucket(size: int) -> str:
    """Human friendly size category."""
    if size < 1024:
        return "tiny"
    if size < 5120:
        return "small"
    if size < 20480:
        return "medium"
    if size < 102400:
        return "large"
    return "very_large"


def _summarize_files(file_list: list[dict]) -> dict:
    breakdown: dict[str, dict] = {}
    for entry in file_list:
        stats = breakdown.setdefault(entry["type"], {"count": 0, "total_lines": 0, "total_size_kb": 0.0})
        stats["count"] += 1
        stats["total_lines"] += entry["lines"]
        stats["total_size_kb"] += entry["size_kb"]
    for stats in breakdown.values():
        stats["total_size_kb"] = round(stats["total_size_kb"], 2)

    total_lines = sum(f["lines"] for f in file_list)
    largest = max(file_list, key=lambda f: f["lines"]) if file_list else None

    return {
        "total_lines": total_lines,
        "total_words": sum(f["words"] for f in file_list),
        "total_size_kb": round(sum(f["size_kb"] for f in file_list), 2),
        "average_lines_per_file": round(total_lines / len(file_list)) if file_list else 0,
        "largest_file": largest,
        "file_type_breakdown": breakdown,
    }


async def handle_list_files(category: str) -> dict:
    """Handle list_files."""
    if not validate_list_filter(category):
        return make_response(
            False,
            error=f"Invalid type: {category}. Valid: {', '.join(LIST_FILTERS)}",
        )

    files = ctx.require_files()
    records = files.list_documents(category)
    has_core = files.has_core_documents()

    file_list = [
        {
            "name": r.name,
            "type": r.category,
            "lines": r.line_count,
            "words": r.line_count * WORDS_PER_LINE,
            "characters": r.byte_size,
            "modified": r.last_modified.date().isoformat(),
            "size_kb": round(r.byte_size / 1024, 2),
            "relative_size": _size_bucket(r.byte_size),
        }
        for r in records
    ]

    summary = {
        "total_files": len(records),
        "type_filter": category,
        "has_project_plan": has_core,
        "statistics": _summarize_files(file_list),
        "last_updated": datetime.now(timezone.utc).isoformat(),
    }

    return make_response(
        True,
        data={"summary": summary, "files": file_list, "right_now": right_now()},
        next_step=None if has_core else INIT_NEXT_STEP,
    )


async def _show_core_document(file_name: str) -> dict:
    files = ctx.require_files()
    try:
        content = files.read_document(file_name)
    except DocumentNotAccessibleError:
        return make_response(
            False,
            error=f"{file_name} not found. Please run init_project_plan first.",
            next_step=INIT_NEXT_STEP,
        )

    return make_response(
        True,
        data={
            "file_name": file_name,
            "content": content,
            "right_now": right_now(),
        },
    )


async def handle_show_current() -> dict:
    """Handle show_current."""
    return await _show_core_document("CURRENT.md")


async def handle_show_plan() -> dict:
    """Handle show_plan."""
    return await _show_core_document("PLAN.md")


async def handle_show_status() -> dict:
    """Handle show_status."""
    files = ctx.require_files()
    status = files.get_status()

    return make_response(
        True,
        data={**status.to_dict(), "right_now": right_now()},
        next_step=None if status.has_core else INIT_NEXT_STEP,
    )


async def handle_record(category: str, target: str, content: str) -> dict:
    """Handle record."""
    if not validate_record_category(category):
        return make_response(
            False,
            error=f"Invalid type: {category}. Valid: {', '.join(RECORD_CATEGORIES)}",
        )
    if not isinstance(target, str) or not target.strip():
        return make_response(False, error="Target must not be empty")
    if not isinstance(content, str) or not content.strip():
        return make_response(False, error="Content must not be empty")

    files = ctx.require_files()
    templates = ctx.require_templates()

    try:
        file_name = files.generate_name(category, target)
        full_content = templates.record(category, target, content)
        files.write_document(file_name, full_content)
    except (SecurityValidationError, ValueError) as e:
        logger.warning(f"Rejected record for {target!r}: {e}")
        return make_response(False, error=str(e))

    return make_response(
        True,
        data={
            "file_name": file_name,
            "content": full_content,
            "message": f"Document recorded successfully as {file_name}",
            "right_now": right_now(),
        },
        next_step={
            "action": "Review the recorded documents",
            "tool": "list_files",
            "args": {"type": category},
        },
    )


async def handle_init_project() -> dict:
    """Handle init_project_plan."""
    files = ctx.require_files()
    templates = ctx.require_templates()

    files.ensure_directory()
    bundle = templates.project_templates(ctx.config.project_name)

    created = []
    for file_name, content in bundle.items():
        files.write_document(file_name, content)
        created.append(file_name)

    return make_response(
        True,
        data={
            "project_plan_dir": str(files.get_root()),
            "files_created": created,
            "right_now": right_now(),
        },
        next_step={
            "action": "Review the current status",
            "tool": "show_current",
        },
    )


async def handle_query_sprint(sprint_id: str) -> dict:
    """Handle query_sprint."""
    if not validate_sprint_id(sprint_id):
        return make_response(
            False,
            error=f"Invalid sprint ID format: {sprint_id}. Expected M##_S## (e.g., M01_S01).",
        )

    files = ctx.require_files()
    sprints = files.list_documents("sprint")
    match = next((r for r in sprints if r.name.startswith(sprint_id)), None)

    if not match:
        available = [r.name for r in sprints]
        return make_response(
            False,
            data={"sprint_id": sprint_id, "available_sprints": available},
            error=f"Sprint {sprint_id} not found. Available sprints: {', '.join(available) or 'none'}",
        )

    content = files.read_document(match.name)
    return make_response(
        True,
        data={
            "sprint_id": sprint_id,
            "file_name": match.name,
            "content": content,
            "right_now": right_now(),
        },
    )


async def handle_right_now() -> dict:
    """Handle right_now."""
    return make_response(True, data=right_now_extended())


def configure_logging():
    """Send logs to stderr; stdout carries the MCP stream."""
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main():
    """Run the MCP server."""
    import asyncio

    configure_logging()
    files = ctx.require_files()
    logger.info(f"Project plan directory: {files.get_root()}")

    async def run():
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())

    asyncio.run(run())


if __name__ == "__main__":
    main()
