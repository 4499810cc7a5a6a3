"""MCP Tools モジュール。"""

from mcp.server.fastmcp import FastMCP

from src.tools import delegation, escalation, state, tasks


def register_all_tools(mcp: FastMCP) -> None:
    """全ツールをMCPサーバーに登録する。

    Args:
        mcp: FastMCPインスタンス
    """
    # 状態スナップショット/引き継ぎ
    state.register_tools(mcp)

    # タスクボード
    tasks.register_tools(mcp)

    # 委任ログ
    delegation.register_tools(mcp)

    # エスカレーション
    escalation.register_tools(mcp)
