"""タスクボードモデル。"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


def normalize_task_id(task_id: str | None) -> str:
    """task_id を比較用に正規化する。

    プレフィックス（task:, task_, task-）を除去し、小文字に統一する。

    Args:
        task_id: 正規化対象のタスクID

    Returns:
        正規化されたタスクID文字列（None/空の場合は空文字列）
    """
    if not task_id:
        return ""
    normalized = task_id.strip().lower()
    for prefix in ("task:", "task_", "task-"):
        if normalized.startswith(prefix):
            normalized = normalized[len(prefix) :]
            break
    return normalized


class TaskPriority(str, Enum):
    """タスク優先度（P0 が最優先）。"""

    P0 = "P0"
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"

    @property
    def rank(self) -> int:
        """並び替え用の順位（小さいほど高優先）。"""
        return int(self.value[1:])


class TaskStatus(str, Enum):
    """タスクのステータス。"""

    NOT_STARTED = "not_started"  # 未着手
    IN_PROGRESS = "in_progress"  # 進行中
    COMPLETE = "complete"  # 完了
    BLOCKED = "blocked"  # ブロック中
    ON_HOLD = "on_hold"  # 保留


class TaskLog(BaseModel):
    """タスクログエントリ。"""

    timestamp: datetime = Field(default_factory=datetime.now, description="タイムスタンプ")
    message: str = Field(..., description="ログメッセージ")


class Task(BaseModel):
    """バックログ上のタスク。"""

    id: str = Field(..., min_length=1, description="タスクID")
    title: str = Field(..., min_length=1, description="タスクタイトル")
    description: str = Field(default="", description="タスク説明")
    priority: TaskPriority = Field(default=TaskPriority.P2, description="優先度")
    status: TaskStatus = Field(default=TaskStatus.NOT_STARTED, description="ステータス")
    points: int = Field(default=1, ge=1, description="見積もりポイント")
    owner: str | None = Field(default=None, description="担当ロール")
    dependencies: list[str] = Field(default_factory=list, description="依存タスクIDの集合")
    sprint: str | None = Field(default=None, description="所属スプリント")
    sequence: int = Field(default=0, ge=0, description="ボードへの追加順")
    blocked_reason: str | None = Field(default=None, description="ブロック/保留の理由")
    logs: list[TaskLog] = Field(default_factory=list, description="進捗ログ")
    created_at: datetime = Field(default_factory=datetime.now, description="作成日時")
    started_at: datetime | None = Field(default=None, description="開始日時")
    completed_at: datetime | None = Field(default=None, description="完了日時")
    metadata: dict = Field(default_factory=dict, description="追加メタデータ")

    @field_validator("dependencies")
    @classmethod
    def dedupe_dependencies(cls, value: list[str]) -> list[str]:
        """依存関係を集合として扱い、順序を保ったまま重複を除く。"""
        return list(dict.fromkeys(v.strip() for v in value if v and v.strip()))

    @property
    def is_complete(self) -> bool:
        """完了済みかどうか。"""
        return self.status == TaskStatus.COMPLETE


class TaskBoard(BaseModel):
    """タスクボード（board.md の YAML Front Matter 部分）。"""

    updated_at: datetime = Field(default_factory=datetime.now, description="更新日時")
    next_sequence: int = Field(default=1, ge=1, description="次に採番する追加順")
    tasks: list[Task] = Field(default_factory=list, description="タスク一覧")

    def get_task(self, task_id: str) -> Task | None:
        """タスクを取得する。"""
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def get_dependents(self, task_id: str) -> list[Task]:
        """指定タスクに依存しているタスクを取得する。"""
        return [t for t in self.tasks if task_id in t.dependencies]

    def incomplete_dependencies(self, task: Task) -> list[str]:
        """未完了の依存タスクIDを返す（ボードに存在しない依存も未完了扱い）。"""
        pending = []
        for dep_id in task.dependencies:
            dep = self.get_task(dep_id)
            if dep is None or not dep.is_complete:
                pending.append(dep_id)
        return pending

    def ordered(self) -> list[Task]:
        """優先度 → 追加順で並べたタスク一覧を返す。"""
        return sorted(self.tasks, key=lambda t: (t.priority.rank, t.sequence))
