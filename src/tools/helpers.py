"""MCPツール用共通ヘルパー関数。"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

from pydantic import ValidationError

from src.context import AppContext
from src.errors import WorkflowError
from src.managers.delegation_manager import DelegationLogManager
from src.managers.escalation_manager import EscalationManager
from src.managers.state_manager import StateManager
from src.managers.task_board_manager import TaskBoardManager

logger = logging.getLogger(__name__)

_EnumT = TypeVar("_EnumT", bound=Enum)

# ツールが結果として返す例外（それ以外は伝播させる）
HANDLED_ERRORS = (WorkflowError, ValidationError, ValueError)


# ========== プロジェクトルート解決 ==========


def resolve_project_root(app_ctx: AppContext) -> str:
    """project_root を解決する。

    優先順位:
    1. app_ctx.project_root
    2. settings.project_root（WORKFLOW_PROJECT_ROOT）
    3. カレントディレクトリ
    """
    if app_ctx.project_root:
        return app_ctx.project_root
    return str(app_ctx.settings.resolve_project_root())


def get_workflow_dir(app_ctx: AppContext) -> Path:
    """ワークフローディレクトリのパスを返す。"""
    return Path(resolve_project_root(app_ctx)) / app_ctx.settings.workflow_dir


def _same_dir(current: Path, expected: Path) -> bool:
    return os.path.realpath(current) == os.path.realpath(expected)


# ========== マネージャー初期化 ==========


def ensure_task_board_manager(app_ctx: AppContext) -> TaskBoardManager:
    """TaskBoardManagerが初期化されていることを確認する。"""
    workflow_dir = get_workflow_dir(app_ctx)
    current = app_ctx.task_board_manager
    if current is None or not _same_dir(current.workflow_dir, workflow_dir):
        if current is not None:
            logger.info(
                "TaskBoardManager の参照先を再同期します: %s -> %s",
                current.workflow_dir,
                workflow_dir,
            )
        app_ctx.task_board_manager = TaskBoardManager(workflow_dir, app_ctx.settings)
        app_ctx.task_board_manager.initialize()
    return app_ctx.task_board_manager


def ensure_delegation_manager(app_ctx: AppContext) -> DelegationLogManager:
    """DelegationLogManagerが初期化されていることを確認する。"""
    delegation_dir = get_workflow_dir(app_ctx) / "delegations"
    current = app_ctx.delegation_manager
    if current is None or not _same_dir(current.delegation_dir, delegation_dir):
        app_ctx.delegation_manager = DelegationLogManager(delegation_dir)
        app_ctx.delegation_manager.initialize()
    return app_ctx.delegation_manager


def ensure_escalation_manager(app_ctx: AppContext) -> EscalationManager:
    """EscalationManagerが初期化されていることを確認する。"""
    escalation_dir = get_workflow_dir(app_ctx) / "escalations"
    current = app_ctx.escalation_manager
    if current is None or not _same_dir(current.escalation_dir, escalation_dir):
        app_ctx.escalation_manager = EscalationManager(
            escalation_dir,
            peer_timebox_minutes=app_ctx.settings.escalation_peer_timebox_minutes,
        )
        app_ctx.escalation_manager.initialize()
    return app_ctx.escalation_manager


def ensure_state_manager(app_ctx: AppContext) -> StateManager:
    """StateManagerが初期化されていることを確認する。"""
    workflow_dir = get_workflow_dir(app_ctx)
    current = app_ctx.state_manager
    if current is None or not _same_dir(current.workflow_dir, workflow_dir):
        app_ctx.state_manager = StateManager(workflow_dir)
        app_ctx.state_manager.initialize()
    return app_ctx.state_manager


# ========== 結果整形 ==========


def error_result(error: Exception) -> dict[str, Any]:
    """例外をツールのエラー結果に変換する。"""
    return {
        "success": False,
        "error": str(error),
        "error_type": type(error).__name__,
    }


def parse_choice(
    enum_cls: type[_EnumT], value: str, label: str
) -> tuple[_EnumT | None, dict[str, Any] | None]:
    """文字列を Enum に変換する。失敗時はエラー結果を返す。

    Returns:
        (変換結果, エラー結果) のタプル。どちらか一方のみが None 以外。
    """
    try:
        return enum_cls(value), None
    except ValueError:
        valid = [e.value for e in enum_cls]
        return None, {
            "success": False,
            "error": f"無効な{label}です: {value}（有効: {valid}）",
        }
