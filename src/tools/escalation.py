"""エスカレーションツール。"""

from typing import Any

from mcp.server.fastmcp import Context, FastMCP

from src.context import AppContext
from src.models.escalation import EscalationLevel, EscalationOption
from src.tools.helpers import (
    HANDLED_ERRORS,
    ensure_escalation_manager,
    error_result,
    parse_choice,
)


def register_tools(mcp: FastMCP) -> None:
    """エスカレーションツールを登録する。"""

    @mcp.tool()
    async def open_escalation(
        topic: str,
        raised_by: str,
        participants: list[str] | None = None,
        options: list[dict] | None = None,
        ctx: Context = None,
    ) -> dict[str, Any]:
        """未解決の対立を agent 段階のエスカレーションとして記録する。

        Args:
            topic: 論点
            raised_by: 提起したロール
            participants: 関係ロールのリスト
            options: 検討した選択肢
                [{"label": "...", "pros": [...], "cons": [...]}, ...]

        Returns:
            作成結果（success, escalation, message または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        resolver = ensure_escalation_manager(app_ctx)
        try:
            parsed_options = [EscalationOption(**o) for o in options or []]
            record = resolver.open_escalation(
                topic=topic,
                raised_by=raised_by,
                participants=participants,
                options=parsed_options,
            )
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {
            "success": True,
            "escalation": record.model_dump(mode="json"),
            "message": f"エスカレーションを記録しました: {record.id}",
        }

    @mcp.tool()
    async def add_escalation_option(
        escalation_id: str,
        label: str,
        pros: list[str] | None = None,
        cons: list[str] | None = None,
        ctx: Context = None,
    ) -> dict[str, Any]:
        """未決着のエスカレーションに選択肢を追加する。

        Args:
            escalation_id: エスカレーションID
            label: 選択肢ラベル
            pros: 利点
            cons: 欠点

        Returns:
            結果（success, escalation または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        resolver = ensure_escalation_manager(app_ctx)
        try:
            record = resolver.add_option(escalation_id, label, pros=pros, cons=cons)
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {"success": True, "escalation": record.model_dump(mode="json")}

    @mcp.tool()
    async def escalate(
        escalation_id: str,
        reason: str = "",
        target_level: str | None = None,
        ctx: Context = None,
    ) -> dict[str, Any]:
        """エスカレーションを一段上げる（agent → peer → lead → human）。

        段階の飛び越しはできない。

        Args:
            escalation_id: エスカレーションID
            reason: 引き上げ理由
            target_level: 期待する引き上げ先（指定時は次の段階と一致する必要がある）

        Returns:
            結果（success, escalation, level, message または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context

        level = None
        if target_level is not None:
            level, error = parse_choice(EscalationLevel, target_level, "段階")
            if error:
                return error

        resolver = ensure_escalation_manager(app_ctx)
        try:
            record = resolver.escalate(escalation_id, reason=reason, target_level=level)
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {
            "success": True,
            "escalation": record.model_dump(mode="json"),
            "level": record.level.value,
            "message": f"{record.level.value} 段階へ引き上げました",
        }

    @mcp.tool()
    async def resolve_escalation(
        escalation_id: str,
        decision: str,
        decided_by: str,
        chosen_option: str | None = None,
        ctx: Context = None,
    ) -> dict[str, Any]:
        """現在の段階で決定を記録し、エスカレーションを終了する。

        Args:
            escalation_id: エスカレーションID
            decision: 決定内容
            decided_by: 決定したロール
            chosen_option: 採用した選択肢ラベル（オプション）

        Returns:
            結果（success, escalation, level, message または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        resolver = ensure_escalation_manager(app_ctx)
        try:
            record = resolver.resolve(
                escalation_id,
                decision=decision,
                decided_by=decided_by,
                chosen_option=chosen_option,
            )
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {
            "success": True,
            "escalation": record.model_dump(mode="json"),
            "level": record.level.value,
            "message": f"{record.level.value} 段階で決着しました",
        }

    @mcp.tool()
    async def get_escalation(escalation_id: str, ctx: Context = None) -> dict[str, Any]:
        """エスカレーションの詳細を取得する。

        Args:
            escalation_id: エスカレーションID

        Returns:
            詳細（success, escalation または error）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        resolver = ensure_escalation_manager(app_ctx)
        try:
            record = resolver.get_escalation(escalation_id)
        except HANDLED_ERRORS as e:
            return error_result(e)

        return {"success": True, "escalation": record.model_dump(mode="json")}

    @mcp.tool()
    async def list_escalations(
        resolved: bool | None = None,
        level: str | None = None,
        ctx: Context = None,
    ) -> dict[str, Any]:
        """エスカレーションを作成順に取得する。

        Args:
            resolved: 決着済みかどうかでフィルター
            level: フィルターする段階

        Returns:
            一覧（success, escalations, count）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context

        level_filter = None
        if level is not None:
            level_filter, error = parse_choice(EscalationLevel, level, "段階")
            if error:
                return error

        resolver = ensure_escalation_manager(app_ctx)
        records = resolver.list_escalations(resolved=resolved, level=level_filter)
        return {
            "success": True,
            "escalations": [r.model_dump(mode="json") for r in records],
            "count": len(records),
        }

    @mcp.tool()
    async def apply_escalation_timebox(ctx: Context = None) -> dict[str, Any]:
        """peer 段階でタイムボックスを超過したエスカレーションを lead へ引き上げる。

        Returns:
            結果（success, escalated_ids, count, message）
        """
        app_ctx: AppContext = ctx.request_context.lifespan_context
        resolver = ensure_escalation_manager(app_ctx)
        escalated = resolver.apply_timebox()
        return {
            "success": True,
            "escalated_ids": [r.id for r in escalated],
            "count": len(escalated),
            "message": f"{len(escalated)} 件を lead 段階へ引き上げました",
        }
