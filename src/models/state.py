"""プロジェクト状態スナップショットモデル。"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class HandoffNote(BaseModel):
    """次のロールへの引き継ぎ情報。"""

    next_role: str | None = Field(default=None, description="次に作業すべきロールの提案")
    context: str | None = Field(default=None, description="参照すべきコンテキスト（ファイルパス等）")
    note: str = Field(default="", description="補足")


class StateSnapshot(BaseModel):
    """現在のプロジェクト状態。

    アクティブなロールが所有し、更新のたびに丸ごと置き換える。
    """

    sprint: str | None = Field(default=None, description="現在のスプリント")
    active_role: str | None = Field(default=None, description="現在アクティブなロール")
    claims: dict[str, str] = Field(default_factory=dict, description="作業宣言（ロール → タスクID）")
    blockers: list[str] = Field(default_factory=list, description="未解消のブロッカー")
    handoff: HandoffNote = Field(default_factory=HandoffNote, description="引き継ぎ情報")
    updated_at: datetime | None = Field(default=None, description="更新日時")
    updated_by: str | None = Field(default=None, description="最後に書き込んだロール")

    @field_validator("blockers")
    @classmethod
    def dedupe_blockers(cls, value: list[str]) -> list[str]:
        """ブロッカーを集合として扱う。"""
        return list(dict.fromkeys(v.strip() for v in value if v and v.strip()))
