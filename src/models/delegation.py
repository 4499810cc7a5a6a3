"""ロール間の委任リクエストモデル。"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class DelegationStatus(str, Enum):
    """委任リクエストの状態。"""

    PENDING = "pending"  # 対応待ち
    COMPLETED = "completed"  # 対応完了


class DelegationRequest(BaseModel):
    """あるロールから別ロールへの作業依頼。"""

    id: str = Field(..., description="リクエストID")
    requester: str = Field(..., min_length=1, description="依頼元ロール")
    target: str = Field(..., min_length=1, description="依頼先ロール")
    description: str = Field(..., min_length=1, description="依頼内容")
    blocking: bool = Field(default=False, description="依頼元の作業をブロックしているか")
    status: DelegationStatus = Field(default=DelegationStatus.PENDING, description="状態")
    task_id: str | None = Field(default=None, description="関連タスクID")
    outcome: str | None = Field(default=None, description="対応結果")
    created_at: datetime = Field(default_factory=datetime.now, description="作成日時")
    closed_at: datetime | None = Field(default=None, description="完了日時")
    closed_by: str | None = Field(default=None, description="完了させたロール")

    @property
    def is_open(self) -> bool:
        """未完了かどうか。"""
        return self.status == DelegationStatus.PENDING
