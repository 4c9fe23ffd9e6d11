"""Tests for MCP server tool handling."""

import asyncio
import json
import os

import pytest

from plan_mcp import server
from plan_mcp.project import (
    ROOT_ENV_VAR,
    validate_list_filter,
    validate_record_category,
    validate_sprint_id,
)


def call(name: str, arguments: dict | None = None) -> dict:
    """Invoke a tool through call_tool and decode the JSON envelope."""
    contents = asyncio.run(server.call_tool(name, arguments or {}))
    assert len(contents) == 1
    return json.loads(contents[0].text)


@pytest.fixture(autouse=True)
def project(tmp_path):
    server.ctx.set_project(tmp_path)
    yield tmp_path
    server.ctx.clear()


@pytest.fixture
def plan_dir(project):
    return project / "project_plan"


class TestValidators:
    """Tool argument validation."""

    def test_sprint_id(self):
        assert validate_sprint_id("M01_S01") is True
        assert validate_sprint_id("M1_S01") is False
        assert validate_sprint_id("M01_S01.extra") is False
        assert validate_sprint_id("../M01_S01") is False
        assert validate_sprint_id(None) is False

    def test_list_filter(self):
        assert validate_list_filter("all") is True
        assert validate_list_filter("core") is False

    def test_record_category(self):
        assert validate_record_category("opinion") is True
        assert validate_record_category("sprint") is False


class TestListTools:
    """Tool registration."""

    def test_tool_names(self):
        tools = asyncio.run(server.list_tools())
        assert {t.name for t in tools} == {
            "set_project",
            "list_files",
            "show_current",
            "show_plan",
            "show_status",
            "record",
            "init_project_plan",
            "query_sprint",
            "right_now",
        }


class TestInitProject:
    """init_project_plan."""

    def test_creates_core_and_sprint(self, plan_dir):
        result = call("init_project_plan")

        assert result["success"] is True
        assert result["data"]["files_created"] == [
            "PLAN.md",
            "CURRENT.md",
            "M01_S01.initial_setup.md",
        ]
        assert sorted(os.listdir(plan_dir)) == [
            "CURRENT.md",
            "M01_S01.initial_setup.md",
            "PLAN.md",
        ]

    def test_second_init_overwrites_without_error(self, plan_dir):
        """Running init twice succeeds and leaves no backup residue."""
        call("init_project_plan")
        (plan_dir / "CURRENT.md").write_text("edited")

        result = call("init_project_plan")

        assert result["success"] is True
        assert "Current Status" in (plan_dir / "CURRENT.md").read_text()
        assert sorted(os.listdir(plan_dir)) == [
            "CURRENT.md",
            "M01_S01.initial_setup.md",
            "PLAN.md",
        ]

    def test_uses_configured_project_name(self, project):
        (project / ".plan").mkdir()
        (project / ".plan" / "config.yaml").write_text("project_plan:\n  project_name: Acme\n")
        server.ctx.set_project(project)

        call("init_project_plan")

        assert "# Acme - Project Planning" in (project / "project_plan" / "PLAN.md").read_text()


class TestShowDocuments:
    """show_current, show_plan and show_status."""

    def test_show_current_before_init(self):
        result = call("show_current")
        assert result["success"] is False
        assert result["error"] == "CURRENT.md not found. Please run init_project_plan first."
        assert result["next_step"]["tool"] == "init_project_plan"

    def test_show_plan_before_init(self):
        result = call("show_plan")
        assert result["success"] is False
        assert "PLAN.md not found" in result["error"]

    def test_show_after_init(self, plan_dir):
        call("init_project_plan")

        current = call("show_current")
        plan = call("show_plan")

        assert current["success"] is True
        assert current["data"]["content"] == (plan_dir / "CURRENT.md").read_text()
        assert "timestamp_milliseconds" in current["data"]["right_now"]
        assert plan["data"]["content"].startswith("---\ncreated_date:")

    def test_show_status(self):
        call("init_project_plan")
        result = call("show_status")
        assert result["success"] is True
        assert result["data"]["has_project_plan"] is True
        assert result["data"]["total_files"] == 3
        assert result["data"]["files_by_type"]["sprint"] == 1
        assert "next_step" not in result
        assert "timestamp_seconds" in result["data"]["right_now"]


class TestRecord:
    """record."""

    def test_records_doc(self, plan_dir):
        result = call("record", {"type": "doc", "target": "FastAPI Guide", "content": "Notes here"})

        assert result["success"] is True
        assert result["data"]["file_name"] == "DOCREF_001.fastapi_guide.md"
        written = (plan_dir / "DOCREF_001.fastapi_guide.md").read_text()
        assert written == result["data"]["content"]
        assert written.endswith("## User Content\n\nNotes here")

    def test_sequence_continues(self):
        call("record", {"type": "opinion", "target": "db", "content": "Postgres"})
        result = call("record", {"type": "opinion", "target": "db", "content": "Still Postgres"})
        assert result["data"]["file_name"] == "OPINIONS_002.db.md"

    def test_code_record_overwrites_same_target(self, plan_dir):
        """Code references have no sequence number."""
        call("record", {"type": "code", "target": "auth flow", "content": "v1"})
        call("record", {"type": "code", "target": "auth flow", "content": "v2"})

        assert sorted(os.listdir(plan_dir)) == ["CODEREF_auth_flow.md"]
        assert (plan_dir / "CODEREF_auth_flow.md").read_text().endswith("v2")

    def test_rejects_script_content(self, plan_dir):
        """Malicious content fails and creates no file."""
        result = call("record", {
            "type": "doc",
            "target": "xss",
            "content": "<script>alert(1)</script>",
        })

        assert result["success"] is False
        assert "SecurityValidation" in result["error"]
        assert os.listdir(plan_dir) == []

    @pytest.mark.parametrize("arguments,message", [
        ({"type": "sprint", "target": "x", "content": "y"}, "Invalid type"),
        ({"type": "doc", "target": "", "content": "y"}, "Target must not be empty"),
        ({"type": "doc", "target": "x", "content": ""}, "Content must not be empty"),
        ({"type": "doc", "target": "???", "content": "y"}, "at least one letter"),
    ])
    def test_invalid_arguments(self, arguments, message):
        result = call("record", arguments)
        assert result["success"] is False
        assert message in result["error"]


class TestListFiles:
    """list_files."""

    def test_lists_with_statistics(self):
        call("init_project_plan")
        call("record", {"type": "doc", "target": "guide", "content": "a\nb"})

        result = call("list_files", {"type": "all"})

        summary = result["data"]["summary"]
        files = result["data"]["files"]
        assert summary["total_files"] == 4
        assert summary["has_project_plan"] is True
        assert [f["name"] for f in files][:2] == ["M01_S01.initial_setup.md", "DOCREF_001.guide.md"]
        assert files[0]["words"] == files[0]["lines"] * 8
        assert files[0]["relative_size"] in {"tiny", "small", "medium", "large", "very_large"}
        stats = summary["statistics"]
        assert stats["total_lines"] == sum(f["lines"] for f in files)
        assert stats["file_type_breakdown"]["core"]["count"] == 2
        assert stats["largest_file"]["lines"] == max(f["lines"] for f in files)
        assert "utc_iso" in result["data"]["right_now"]

    def test_filter(self):
        call("init_project_plan")
        result = call("list_files", {"type": "sprint"})
        assert [f["name"] for f in result["data"]["files"]] == ["M01_S01.initial_setup.md"]

    def test_empty_suggests_init(self):
        result = call("list_files", {"type": "all"})
        assert result["data"]["files"] == []
        assert result["data"]["summary"]["statistics"]["largest_file"] is None
        assert result["next_step"]["tool"] == "init_project_plan"

    def test_invalid_filter(self):
        result = call("list_files", {"type": "core"})
        assert result["success"] is False
        assert "Invalid type" in result["error"]


class TestQuerySprint:
    """query_sprint."""

    def test_found(self):
        call("init_project_plan")
        result = call("query_sprint", {"sprint_id": "M01_S01"})
        assert result["success"] is True
        assert result["data"]["file_name"] == "M01_S01.initial_setup.md"
        assert "# M01_S01: Initial Setup" in result["data"]["content"]

    def test_not_found_lists_available(self):
        call("init_project_plan")
        result = call("query_sprint", {"sprint_id": "M02_S01"})
        assert result["success"] is False
        assert "Sprint M02_S01 not found" in result["error"]
        assert result["data"]["available_sprints"] == ["M01_S01.initial_setup.md"]

    def test_invalid_id(self):
        result = call("query_sprint", {"sprint_id": "../../etc"})
        assert result["success"] is False
        assert "Invalid sprint ID" in result["error"]


class TestProjectSelection:
    """set_project and default root."""

    def test_set_project(self, tmp_path):
        other = tmp_path / "other"
        other.mkdir()

        result = call("set_project", {"project_path": str(other)})

        assert result["success"] is True
        assert result["data"]["project_plan_dir"] == str((other / "project_plan").resolve())
        assert result["next_step"]["tool"] == "init_project_plan"
        assert "timestamp_milliseconds" in result["data"]["right_now"]

    def test_set_missing_project(self, tmp_path):
        result = call("set_project", {"project_path": str(tmp_path / "missing")})
        assert result["success"] is False
        assert "does not exist" in result["error"]

    def test_defaults_to_env_root(self, tmp_path, monkeypatch):
        server.ctx.clear()
        monkeypatch.setenv(ROOT_ENV_VAR, str(tmp_path))

        call("init_project_plan")

        assert (tmp_path / "project_plan" / "PLAN.md").exists()


class TestMisc:
    """right_now and routing."""

    def test_right_now(self):
        result = call("right_now")
        assert result["success"] is True
        assert {"utc_iso", "local_timezone", "timestamp_seconds", "timestamp_milliseconds"} <= set(result["data"])
        assert "timezone_offset" in result["data"]["additional_formats"]

    def test_unknown_tool(self):
        result = call("nope")
        assert result["success"] is False
        assert result["error"] == "Unknown tool: nope"

    def test_missing_required_argument_is_an_error_response(self):
        result = call("set_project", {})
        assert result["success"] is False
