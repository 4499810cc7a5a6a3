"""状態スナップショット/引き継ぎツールのテスト。"""

import pytest
from mcp.server.fastmcp import FastMCP

from src.tools.state import register_tools


def _get_tools() -> dict:
    mcp = FastMCP("test")
    register_tools(mcp)
    return {tool.name: tool.fn for tool in mcp._tool_manager._tools.values()}


class TestStateTools:
    """状態スナップショット/引き継ぎツールのテスト。"""

    @pytest.mark.asyncio
    async def test_get_empty_state(self, mock_ctx):
        """初期状態で空のスナップショットを返すことをテスト。"""
        tools = _get_tools()

        result = await tools["get_state"](ctx=mock_ctx)

        assert result["success"] is True
        assert result["state"]["active_role"] is None
        assert result["state"]["claims"] == {}

    @pytest.mark.asyncio
    async def test_replace_state(self, mock_ctx, temp_dir):
        """replace_state で丸ごと置き換わることをテスト。"""
        tools = _get_tools()

        await tools["replace_state"](
            writer_role="backend",
            sprint="S1",
            claims={"backend": "T-001"},
            blockers=["staging DB down"],
            ctx=mock_ctx,
        )
        result = await tools["replace_state"](writer_role="backend", sprint="S2", ctx=mock_ctx)

        assert result["success"] is True
        assert result["state"]["sprint"] == "S2"
        assert result["state"]["claims"] == {}
        assert result["state"]["blockers"] == []
        assert result["state"]["active_role"] == "backend"
        assert (temp_dir / ".workflow" / "state.md").exists()

    @pytest.mark.asyncio
    async def test_handoff(self, mock_ctx):
        """handoff でアクティブロールが切り替わることをテスト。"""
        tools = _get_tools()
        await tools["replace_state"](writer_role="backend", sprint="S1", ctx=mock_ctx)

        result = await tools["handoff"](
            from_role="backend", to_role="qa", context="docs/api.md", ctx=mock_ctx
        )

        assert result["success"] is True
        assert result["state"]["active_role"] == "qa"
        assert result["state"]["handoff"]["next_role"] == "qa"
        assert result["state"]["sprint"] == "S1"

    @pytest.mark.asyncio
    async def test_get_briefing(self, mock_ctx, temp_dir):
        """get_briefing が state → index → role の順で返すことをテスト。"""
        tools = _get_tools()
        roles_dir = temp_dir / ".workflow" / "roles"
        roles_dir.mkdir(parents=True)
        (roles_dir / "qa.md").write_text("# QA\n", encoding="utf-8")

        result = await tools["get_briefing"](role="qa", ctx=mock_ctx)

        assert result["success"] is True
        assert [f["kind"] for f in result["files"]] == ["state", "index", "role"]
        assert result["files"][1]["exists"] is True

        other = await tools["get_briefing"](role="design", ctx=mock_ctx)
        assert [f["kind"] for f in other["files"]] == ["state", "index"]
