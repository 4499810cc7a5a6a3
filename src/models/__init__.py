"""データモデルモジュール。"""

from .delegation import DelegationRequest, DelegationStatus
from .escalation import (
    ESCALATION_CHAIN,
    EscalationLevel,
    EscalationOption,
    EscalationRecord,
    LevelChange,
)
from .state import HandoffNote, StateSnapshot
from .task import Task, TaskBoard, TaskLog, TaskPriority, TaskStatus

__all__ = [
    "ESCALATION_CHAIN",
    "DelegationRequest",
    "DelegationStatus",
    "EscalationLevel",
    "EscalationOption",
    "EscalationRecord",
    "HandoffNote",
    "LevelChange",
    "StateSnapshot",
    "Task",
    "TaskBoard",
    "TaskLog",
    "TaskPriority",
    "TaskStatus",
]
