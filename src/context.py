"""アプリケーションコンテキストの定義。

マネージャーは ensure_*_manager() で初回アクセス時に遅延初期化する。
"""

from dataclasses import dataclass

from src.config.settings import Settings
from src.managers.delegation_manager import DelegationLogManager
from src.managers.escalation_manager import EscalationManager
from src.managers.state_manager import StateManager
from src.managers.task_board_manager import TaskBoardManager


@dataclass
class AppContext:
    """アプリケーションコンテキスト。"""

    settings: Settings

    task_board_manager: TaskBoardManager | None = None
    delegation_manager: DelegationLogManager | None = None
    escalation_manager: EscalationManager | None = None
    state_manager: StateManager | None = None

    project_root: str | None = None
    """管理対象プロジェクトのルート（.workflow/ の親ディレクトリ）"""
