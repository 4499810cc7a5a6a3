"""タスクボード管理ツール。"""

from typing import Any

from mcp.server.fastmcp import Context, FastMCP

from src.context import AppContext
from src.models.task import TaskPriority, TaskStatus
from src.tools.helpers import (
    HANDLED_ERRORS,
    ensure_task_board_manager,
    error_result,
    parse_choice,
)


def register_tools(mcp: FastMCP) -> None:
    """タスクボード管理ツールを登録する。"""

    @mcp.tool()
    async def add_task(
        title: str,
        priority: str = "P2",
        points: int = 1,
        owner: str | None = None,
        dependencies: list[str] | None = None,
        description: str = "",
        sprint: str | None = None,
        task_id: str | None = None,
        ctx: Context = None,
    ) -> dict[str, Any]:
        """バックログにタスクを追加する。

        Args:
            title: タスクタイトル
            priority: 優先度（P0/P1/P2/P3）
            points: 見積もりポイント
            owner: 担当ロール（オプション）
            dependencies: 依存タスクIDのリスト（オプション）
            description: タスク説明
            sprint: 所属スプリント（オプション）
            task_id: タスクID（省略時は T-001 形式で採番）

        Returns:
            追加結果（success, task, message または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        task_priority, error = parse_choice(TaskPriority, priority, "優先度")
        if error:
            return error

        board = ensure_task_board_manager(app_ctx)
        try:
            task = board.create_task(
                title=title,
                priority=task_priority,
                points=points,
                owner=owner,
                dependencies=dependencies,
                description=description,
                sprint=sprint,
                task_id=task_id,
            )
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {
            "success": True,
            "task": task.model_dump(mode="json"),
            "message": f"タスクを追加しました: {task.id}",
        }

    @mcp.tool()
    async def transition_task(
        task_id: str,
        status: str,
        note: str | None = None,
        ctx: Context = None,
    ) -> dict[str, Any]:
        """タスクのステータスを変更する。

        依存タスクが未完了のタスクは complete にできない。

        Args:
            task_id: タスクID
            status: 新しいステータス（not_started/in_progress/complete/blocked/on_hold）
            note: メモ（blocked/on_hold の場合は理由）

        Returns:
            更新結果（success, task, message または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        task_status, error = parse_choice(TaskStatus, status, "ステータス")
        if error:
            return error

        board = ensure_task_board_manager(app_ctx)
        try:
            task = board.transition_task(task_id, task_status, note=note)
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {
            "success": True,
            "task": task.model_dump(mode="json"),
            "message": f"ステータスを更新しました: {task_status.value}",
        }

    @mcp.tool()
    async def resume_task(
        task_id: str,
        note: str | None = None,
        ctx: Context = None,
    ) -> dict[str, Any]:
        """blocked / on_hold のタスクを再開する。

        Args:
            task_id: タスクID
            note: メモ

        Returns:
            再開結果（success, task, message または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        board = ensure_task_board_manager(app_ctx)
        try:
            task = board.resume_task(task_id, note=note)
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {
            "success": True,
            "task": task.model_dump(mode="json"),
            "message": f"タスクを再開しました: {task.id}",
        }

    @mcp.tool()
    async def reopen_task(
        task_id: str,
        note: str | None = None,
        ctx: Context = None,
    ) -> dict[str, Any]:
        """完了タスクを not_started に戻す。

        Args:
            task_id: タスクID
            note: メモ

        Returns:
            結果（success, task, message または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        board = ensure_task_board_manager(app_ctx)
        try:
            task = board.reopen_task(task_id, note=note)
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {
            "success": True,
            "task": task.model_dump(mode="json"),
            "message": f"タスクを再オープンしました: {task.id}",
        }

    @mcp.tool()
    async def assign_task(
        task_id: str,
        owner: str | None = None,
        ctx: Context = None,
    ) -> dict[str, Any]:
        """タスクの担当ロールを設定する（owner 省略で解除）。

        Args:
            task_id: タスクID
            owner: 担当ロール

        Returns:
            結果（success, task, message または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        board = ensure_task_board_manager(app_ctx)
        try:
            task = board.assign_task(task_id, owner)
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {
            "success": True,
            "task": task.model_dump(mode="json"),
            "message": f"担当を設定しました: {owner or '-'}",
        }

    @mcp.tool()
    async def remove_task(task_id: str, ctx: Context = None) -> dict[str, Any]:
        """タスクを削除する。他のタスクから依存されている場合は削除できない。

        Args:
            task_id: タスクID

        Returns:
            削除結果（success, task_id, message または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        board = ensure_task_board_manager(app_ctx)
        try:
            task = board.remove_task(task_id)
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {
            "success": True,
            "task_id": task.id,
            "message": f"タスクを削除しました: {task.id}",
        }

    @mcp.tool()
    async def get_task(task_id: str, ctx: Context = None) -> dict[str, Any]:
        """タスクの詳細を取得する。

        Args:
            task_id: タスクID

        Returns:
            タスク詳細（success, task または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        board = ensure_task_board_manager(app_ctx)
        try:
            task = board.get_task(task_id)
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {"success": True, "task": task.model_dump(mode="json")}

    @mcp.tool()
    async def query_tasks(
        status: str | None = None,
        priority: str | None = None,
        owner: str | None = None,
        sprint: str | None = None,
        ctx: Context = None,
    ) -> dict[str, Any]:
        """タスク一覧を優先度 → 追加順で取得する。

        Args:
            status: フィルターするステータス（オプション）
            priority: フィルターする優先度（オプション）
            owner: フィルターする担当ロール（オプション）
            sprint: フィルターするスプリント（オプション）

        Returns:
            タスク一覧（success, tasks, count）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context

        status_filter = None
        if status is not None:
            status_filter, error = parse_choice(TaskStatus, status, "ステータス")
            if error:
                return error
        priority_filter = None
        if priority is not None:
            priority_filter, error = parse_choice(TaskPriority, priority, "優先度")
            if error:
                return error

        board = ensure_task_board_manager(app_ctx)
        try:
            tasks = board.query_tasks(
                status=status_filter,
                priority=priority_filter,
                owner=owner,
                sprint=sprint,
            )
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {
            "success": True,
            "tasks": [t.model_dump(mode="json") for t in tasks],
            "count": len(tasks),
        }

    @mcp.tool()
    async def get_board_summary(
        sprint: str | None = None,
        ctx: Context = None,
    ) -> dict[str, Any]:
        """タスクボードのサマリー（件数・ポイント）を取得する。

        Args:
            sprint: 集計対象のスプリント（省略時は全タスク）

        Returns:
            サマリー情報（success, summary）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        board = ensure_task_board_manager(app_ctx)
        try:
            summary = board.get_summary(sprint=sprint)
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {"success": True, "summary": summary}
