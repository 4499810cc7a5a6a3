"""委任ログツール。"""

from typing import Any

from mcp.server.fastmcp import Context, FastMCP

from src.context import AppContext
from src.models.delegation import DelegationStatus
from src.tools.helpers import (
    HANDLED_ERRORS,
    ensure_delegation_manager,
    error_result,
    parse_choice,
)


def register_tools(mcp: FastMCP) -> None:
    """委任ログツールを登録する。"""

    @mcp.tool()
    async def open_delegation(
        requester: str,
        target: str,
        description: str,
        blocking: bool = False,
        task_id: str | None = None,
        ctx: Context = None,
    ) -> dict[str, Any]:
        """別ロールへの作業依頼を記録する。

        Args:
            requester: 依頼元ロール
            target: 依頼先ロール
            description: 依頼内容
            blocking: 依頼元の作業がこの依頼待ちでブロックされているか
            task_id: 関連タスクID（オプション）

        Returns:
            作成結果（success, request, message または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        log = ensure_delegation_manager(app_ctx)
        try:
            request = log.open_request(
                requester=requester,
                target=target,
                description=description,
                blocking=blocking,
                task_id=task_id,
            )
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {
            "success": True,
            "request": request.model_dump(mode="json"),
            "message": f"委任リクエストを記録しました: {request.id} ({requester} -> {target})",
        }

    @mcp.tool()
    async def close_delegation(
        request_id: str,
        outcome: str,
        closed_by: str | None = None,
        ctx: Context = None,
    ) -> dict[str, Any]:
        """委任リクエストを完了にする。

        Args:
            request_id: リクエストID
            outcome: 対応結果
            closed_by: 完了させたロール（省略時は依頼先ロール）

        Returns:
            完了結果（success, request, message または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        log = ensure_delegation_manager(app_ctx)
        try:
            request = log.close_request(request_id, outcome, closed_by=closed_by)
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {
            "success": True,
            "request": request.model_dump(mode="json"),
            "message": f"委任リクエストを完了しました: {request.id}",
        }

    @mcp.tool()
    async def get_delegation(request_id: str, ctx: Context = None) -> dict[str, Any]:
        """委任リクエストの詳細を取得する。

        Args:
            request_id: リクエストID

        Returns:
            詳細（success, request または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        log = ensure_delegation_manager(app_ctx)
        try:
            request = log.get_request(request_id)
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {"success": True, "request": request.model_dump(mode="json")}

    @mcp.tool()
    async def list_delegations(
        status: str | None = None,
        requester: str | None = None,
        target: str | None = None,
        blocking: bool | None = None,
        ctx: Context = None,
    ) -> dict[str, Any]:
        """委任リクエストを作成順に取得する。

        Args:
            status: フィルターする状態（pending/completed）
            requester: フィルターする依頼元ロール
            target: フィルターする依頼先ロール
            blocking: ブロッキングかどうか

        Returns:
            一覧（success, requests, count, pending_count）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context

        status_filter = None
        if status is not None:
            status_filter, error = parse_choice(DelegationStatus, status, "状態")
            if error:
                return error

        log = ensure_delegation_manager(app_ctx)
        requests = log.list_requests(
            status=status_filter,
            requester=requester,
            target=target,
            blocking=blocking,
        )
        return {
            "success": True,
            "requests": [r.model_dump(mode="json") for r in requests],
            "count": len(requests),
            "pending_count": len([r for r in requests if r.is_open]),
        }
