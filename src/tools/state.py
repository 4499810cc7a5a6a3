"""状態スナップショット/引き継ぎツール。"""

from typing import Any

from mcp.server.fastmcp import Context, FastMCP

from src.context import AppContext
from src.models.state import HandoffNote, StateSnapshot
from src.tools.helpers import (
    HANDLED_ERRORS,
    ensure_state_manager,
    ensure_task_board_manager,
    error_result,
)


def register_tools(mcp: FastMCP) -> None:
    """状態スナップショット/引き継ぎツールを登録する。"""

    @mcp.tool()
    async def get_state(ctx: Context = None) -> dict[str, Any]:
        """現在の状態スナップショットを取得する。

        Returns:
            スナップショット（success, state または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        state = ensure_state_manager(app_ctx)
        try:
            snapshot = state.get_snapshot()
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {"success": True, "state": snapshot.model_dump(mode="json")}

    @mcp.tool()
    async def replace_state(
        writer_role: str,
        sprint: str | None = None,
        active_role: str | None = None,
        claims: dict[str, str] | None = None,
        blockers: list[str] | None = None,
        next_role: str | None = None,
        context: str | None = None,
        note: str = "",
        ctx: Context = None,
    ) -> dict[str, Any]:
        """状態スナップショットを丸ごと置き換える。

        フィールド単位の部分更新はしない。省略したフィールドは空になる。

        Args:
            writer_role: 書き込むロール
            sprint: 現在のスプリント
            active_role: アクティブロール（省略時は writer_role）
            claims: 作業宣言（ロール → タスクID）
            blockers: 未解消のブロッカー
            next_role: 次に作業すべきロールの提案
            context: 引き継ぎ用のコンテキスト（ファイルパス等）
            note: 引き継ぎの補足

        Returns:
            保存結果（success, state, message または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        state = ensure_state_manager(app_ctx)
        try:
            snapshot = StateSnapshot(
                sprint=sprint,
                active_role=active_role,
                claims=claims or {},
                blockers=blockers or [],
                handoff=HandoffNote(next_role=next_role, context=context, note=note),
            )
            saved = state.replace_snapshot(snapshot, writer_role=writer_role)
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {
            "success": True,
            "state": saved.model_dump(mode="json"),
            "message": f"状態を更新しました (by {writer_role})",
        }

    @mcp.tool()
    async def handoff(
        from_role: str,
        to_role: str,
        context: str | None = None,
        note: str = "",
        ctx: Context = None,
    ) -> dict[str, Any]:
        """作業を別ロールへ引き継ぐ。

        Args:
            from_role: 引き継ぎ元ロール
            to_role: 引き継ぎ先ロール
            context: 参照すべきコンテキスト（ファイルパス等）
            note: 補足

        Returns:
            結果（success, state, message または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        state = ensure_state_manager(app_ctx)
        try:
            saved = state.handoff(from_role, to_role, context=context, note=note)
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {
            "success": True,
            "state": saved.model_dump(mode="json"),
            "message": f"{from_role} から {to_role} へ引き継ぎました",
        }

    @mcp.tool()
    async def get_briefing(role: str, ctx: Context = None) -> dict[str, Any]:
        """セッション開始時に読むファイルを決められた順序で返す。

        順序: 状態ファイル → タスクボード → ロール別の指示（存在する場合）

        Args:
            role: セッションを開始するロール

        Returns:
            結果（success, role, files）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        ensure_task_board_manager(app_ctx)
        state = ensure_state_manager(app_ctx)
        return {
            "success": True,
            "role": role,
            "files": state.get_briefing(role),
        }
