"""エスカレーションモデル。"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class EscalationLevel(str, Enum):
    """権限チェーンの段階。"""

    AGENT = "agent"
    """当事者のエージェント同士"""

    PEER = "peer"
    """同格ロールによる調停"""

    LEAD = "lead"
    """リードによる裁定"""

    HUMAN = "human"
    """人間による最終判断"""

    @property
    def rank(self) -> int:
        """段階の順位（0 始まり）。"""
        return ESCALATION_CHAIN.index(self)

    @property
    def next_level(self) -> "EscalationLevel | None":
        """一つ上の段階。最上位の場合は None。"""
        idx = self.rank
        if idx + 1 < len(ESCALATION_CHAIN):
            return ESCALATION_CHAIN[idx + 1]
        return None


ESCALATION_CHAIN: tuple[EscalationLevel, ...] = (
    EscalationLevel.AGENT,
    EscalationLevel.PEER,
    EscalationLevel.LEAD,
    EscalationLevel.HUMAN,
)


class EscalationOption(BaseModel):
    """検討した選択肢。"""

    label: str = Field(..., min_length=1, description="選択肢ラベル")
    pros: list[str] = Field(default_factory=list, description="利点")
    cons: list[str] = Field(default_factory=list, description="欠点")


class LevelChange(BaseModel):
    """段階変更の履歴。"""

    from_level: EscalationLevel = Field(..., description="変更前の段階")
    to_level: EscalationLevel = Field(..., description="変更後の段階")
    reason: str = Field(default="", description="理由")
    changed_at: datetime = Field(default_factory=datetime.now, description="変更日時")


class EscalationRecord(BaseModel):
    """未解決の対立とその決着。"""

    id: str = Field(..., description="エスカレーションID")
    topic: str = Field(..., min_length=1, description="論点")
    raised_by: str = Field(..., min_length=1, description="提起したロール")
    participants: list[str] = Field(default_factory=list, description="関係ロールの集合")
    options: list[EscalationOption] = Field(default_factory=list, description="検討した選択肢")
    level: EscalationLevel = Field(default=EscalationLevel.AGENT, description="現在の段階")
    level_entered_at: datetime = Field(
        default_factory=datetime.now, description="現在の段階に入った日時"
    )
    history: list[LevelChange] = Field(default_factory=list, description="段階変更履歴")
    decision: str | None = Field(default=None, description="最終決定")
    decided_by: str | None = Field(default=None, description="決定したロール")
    chosen_option: str | None = Field(default=None, description="採用した選択肢ラベル")
    created_at: datetime = Field(default_factory=datetime.now, description="作成日時")
    resolved_at: datetime | None = Field(default=None, description="決着日時")

    @property
    def is_resolved(self) -> bool:
        """決着済みかどうか。"""
        return self.decision is not None

    def get_option(self, label: str) -> EscalationOption | None:
        """ラベルで選択肢を取得する。"""
        for option in self.options:
            if option.label == label:
                return option
        return None
