"""ワークフロー操作の例外定義。

マネージャー層はこれらの例外を送出し、MCP ツール層で
``{"success": False, "error": ...}`` 形式に変換する。
"""


class WorkflowError(Exception):
    """ワークフロー操作の基底例外。"""


class NotFoundError(WorkflowError):
    """指定 ID のレコードが存在しない。"""


class DuplicateTaskError(WorkflowError):
    """同じ ID のタスクが既にボードに存在する。"""


class InvalidTransitionError(WorkflowError):
    """タスクの状態遷移が許可されていない。"""


class AlreadyClosedError(WorkflowError):
    """委任リクエストは既に完了している。"""


class InvalidEscalationError(WorkflowError):
    """エスカレーションの段階遷移が不正（飛び越し・後退・上限超過）。"""


class AlreadyResolvedError(WorkflowError):
    """エスカレーションは既に決着している。"""
