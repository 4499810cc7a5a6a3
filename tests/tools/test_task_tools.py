"""タスクボード管理ツールのテスト。"""

import pytest
from mcp.server.fastmcp import FastMCP

from src.tools.tasks import register_tools


def _get_tools() -> dict:
    mcp = FastMCP("test")
    register_tools(mcp)
    return {tool.name: tool.fn for tool in mcp._tool_manager._tools.values()}


class TestTaskTools:
    """タスクボード管理ツールのテスト。"""

    @pytest.mark.asyncio
    async def test_add_and_get_task(self, mock_ctx, temp_dir):
        """add_task で追加したタスクを get_task で取得できることをテスト。"""
        tools = _get_tools()

        result = await tools["add_task"](
            title="Rental list page", priority="P1", points=3, ctx=mock_ctx
        )

        assert result["success"] is True
        task_id = result["task"]["id"]
        assert result["task"]["priority"] == "P1"
        assert (temp_dir / ".workflow" / "board.md").exists()

        fetched = await tools["get_task"](task_id=task_id, ctx=mock_ctx)
        assert fetched["success"] is True
        assert fetched["task"]["title"] == "Rental list page"

    @pytest.mark.asyncio
    async def test_add_task_invalid_priority(self, mock_ctx):
        """無効な優先度でエラーを返すことをテスト。"""
        tools = _get_tools()

        result = await tools["add_task"](title="X", priority="urgent", ctx=mock_ctx)

        assert result["success"] is False
        assert "無効な優先度です" in result["error"]

    @pytest.mark.asyncio
    async def test_add_task_points_over_limit(self, mock_ctx):
        """上限を超える見積もりポイントでエラーを返すことをテスト。"""
        tools = _get_tools()

        result = await tools["add_task"](title="Epic", points=40, ctx=mock_ctx)

        assert result["success"] is False
        assert result["error_type"] == "ValueError"

    @pytest.mark.asyncio
    async def test_duplicate_task_id(self, mock_ctx):
        """重複 ID で DuplicateTaskError を返すことをテスト。"""
        tools = _get_tools()
        await tools["add_task"](title="A", task_id="API-1", ctx=mock_ctx)

        result = await tools["add_task"](title="B", task_id="API-1", ctx=mock_ctx)

        assert result["success"] is False
        assert result["error_type"] == "DuplicateTaskError"

    @pytest.mark.asyncio
    async def test_transition_blocked_by_dependency(self, mock_ctx):
        """依存が未完了のタスクを完了にできないことをテスト。"""
        tools = _get_tools()
        dep = await tools["add_task"](title="Schema", ctx=mock_ctx)
        task = await tools["add_task"](
            title="API", dependencies=[dep["task"]["id"]], ctx=mock_ctx
        )

        result = await tools["transition_task"](
            task_id=task["task"]["id"], status="complete", ctx=mock_ctx
        )

        assert result["success"] is False
        assert result["error_type"] == "InvalidTransitionError"

        await tools["transition_task"](
            task_id=dep["task"]["id"], status="complete", ctx=mock_ctx
        )
        result = await tools["transition_task"](
            task_id=task["task"]["id"], status="complete", ctx=mock_ctx
        )
        assert result["success"] is True
        assert result["task"]["status"] == "complete"

    @pytest.mark.asyncio
    async def test_transition_invalid_status(self, mock_ctx):
        """無効なステータスでエラーを返すことをテスト。"""
        tools = _get_tools()
        task = await tools["add_task"](title="A", ctx=mock_ctx)

        result = await tools["transition_task"](
            task_id=task["task"]["id"], status="done", ctx=mock_ctx
        )

        assert result["success"] is False
        assert "無効なステータスです" in result["error"]

    @pytest.mark.asyncio
    async def test_resume_and_reopen(self, mock_ctx):
        """resume_task と reopen_task をテスト。"""
        tools = _get_tools()
        task = await tools["add_task"](title="A", ctx=mock_ctx)
        task_id = task["task"]["id"]

        await tools["transition_task"](
            task_id=task_id, status="on_hold", note="waiting for design", ctx=mock_ctx
        )
        resumed = await tools["resume_task"](task_id=task_id, ctx=mock_ctx)
        assert resumed["task"]["status"] == "in_progress"

        await tools["transition_task"](task_id=task_id, status="complete", ctx=mock_ctx)
        reopened = await tools["reopen_task"](task_id=task_id, ctx=mock_ctx)
        assert reopened["task"]["status"] == "not_started"

        again = await tools["resume_task"](task_id=task_id, ctx=mock_ctx)
        assert again["success"] is False

    @pytest.mark.asyncio
    async def test_query_tasks_ordering(self, mock_ctx):
        """query_tasks が優先度 → 追加順で返すことをテスト。"""
        tools = _get_tools()
        await tools["add_task"](title="later", priority="P3", ctx=mock_ctx)
        await tools["add_task"](title="urgent", priority="P0", ctx=mock_ctx)
        await tools["add_task"](title="normal", ctx=mock_ctx)

        result = await tools["query_tasks"](ctx=mock_ctx)

        assert result["success"] is True
        assert result["count"] == 3
        assert [t["title"] for t in result["tasks"]] == ["urgent", "normal", "later"]

        filtered = await tools["query_tasks"](priority="P0", ctx=mock_ctx)
        assert [t["title"] for t in filtered["tasks"]] == ["urgent"]

    @pytest.mark.asyncio
    async def test_assign_and_remove(self, mock_ctx):
        """assign_task と remove_task をテスト。"""
        tools = _get_tools()
        task = await tools["add_task"](title="A", ctx=mock_ctx)
        task_id = task["task"]["id"]

        assigned = await tools["assign_task"](task_id=task_id, owner="backend", ctx=mock_ctx)
        assert assigned["task"]["owner"] == "backend"

        removed = await tools["remove_task"](task_id=task_id, ctx=mock_ctx)
        assert removed["success"] is True

        missing = await tools["get_task"](task_id=task_id, ctx=mock_ctx)
        assert missing["success"] is False
        assert missing["error_type"] == "NotFoundError"

    @pytest.mark.asyncio
    async def test_board_summary(self, mock_ctx):
        """get_board_summary をテスト。"""
        tools = _get_tools()
        a = await tools["add_task"](title="A", points=3, ctx=mock_ctx)
        await tools["add_task"](title="B", points=2, ctx=mock_ctx)
        await tools["transition_task"](task_id=a["task"]["id"], status="complete", ctx=mock_ctx)

        result = await tools["get_board_summary"](ctx=mock_ctx)

        assert result["success"] is True
        assert result["summary"]["total_points"] == 5
        assert result["summary"]["completed_points"] == 3
