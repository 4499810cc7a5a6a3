"""マネージャーモジュール。"""

from .delegation_manager import DelegationLogManager
from .escalation_manager import EscalationManager
from .state_manager import StateManager
from .task_board_manager import TaskBoardManager

__all__ = [
    "DelegationLogManager",
    "EscalationManager",
    "StateManager",
    "TaskBoardManager",
]
