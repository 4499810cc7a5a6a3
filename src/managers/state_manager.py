"""プロジェクト状態スナップショット管理モジュール。

state.md（YAML Front Matter + Markdown）1ファイルで現在の状態を保持する。
更新はフィールド単位のパッチではなくドキュメント全体の置き換え。
書き手は一度に一ロールという運用上の約束で、ロックは取らない。
"""

import logging
from datetime import datetime
from pathlib import Path

import yaml
from pydantic import ValidationError

from src.managers.markdown_store import (
    atomic_write,
    build_document,
    markdown_table,
    parse_front_matter,
    sanitize_filename,
)
from src.models.state import HandoffNote, StateSnapshot

logger = logging.getLogger(__name__)


class StateManager:
    """状態スナップショットを管理するクラス。"""

    STATE_FILENAME = "state.md"
    INDEX_FILENAME = "board.md"
    ROLES_DIRNAME = "roles"

    def __init__(self, workflow_dir: str | Path) -> None:
        """StateManagerを初期化する。

        Args:
            workflow_dir: 状態ファイルを置くディレクトリ
        """
        self.workflow_dir = Path(workflow_dir)

    def initialize(self) -> None:
        """ワークフローディレクトリと roles/ を作成する。"""
        (self.workflow_dir / self.ROLES_DIRNAME).mkdir(parents=True, exist_ok=True)
        logger.info(f"状態ファイルのディレクトリを初期化しました: {self.workflow_dir}")

    @property
    def state_path(self) -> Path:
        return self.workflow_dir / self.STATE_FILENAME

    def get_snapshot(self) -> StateSnapshot:
        """現在のスナップショットを取得する。未作成なら空のスナップショットを返す。

        Raises:
            ValueError: state.md が壊れている場合
        """
        if not self.state_path.exists():
            return StateSnapshot()
        try:
            data = parse_front_matter(self.state_path.read_text(encoding="utf-8"))
            if data is None:
                raise ValueError("YAML Front Matter がありません")
            return StateSnapshot(**data)
        except (OSError, yaml.YAMLError, ValidationError, ValueError) as e:
            logger.error(f"状態ファイル読み込みエラー ({self.state_path}): {e}")
            raise ValueError(f"状態ファイルを読み込めません: {self.state_path}: {e}") from e

    def replace_snapshot(self, snapshot: StateSnapshot, writer_role: str) -> StateSnapshot:
        """スナップショットを丸ごと置き換える（last-writer-wins）。

        アクティブでないロールからの書き込みは警告を出すが拒否はしない。

        Args:
            snapshot: 新しいスナップショット
            writer_role: 書き込むロール

        Returns:
            保存されたスナップショット
        """
        if self.state_path.exists():
            try:
                current = self.get_snapshot()
            except ValueError:
                current = None
            if current and current.active_role and current.active_role != writer_role:
                logger.warning(
                    f"アクティブロール {current.active_role} 以外 ({writer_role}) が"
                    "状態ファイルを上書きします"
                )

        saved = snapshot.model_copy(deep=True)
        if saved.active_role is None:
            saved.active_role = writer_role
        saved.updated_at = datetime.now()
        saved.updated_by = writer_role
        content = build_document(saved.model_dump(mode="json"), self._render_state(saved))
        atomic_write(self.state_path, content)
        logger.info(f"状態ファイルを更新しました (by {writer_role})")
        return saved

    def handoff(
        self,
        from_role: str,
        to_role: str,
        context: str | None = None,
        note: str = "",
    ) -> StateSnapshot:
        """作業を別ロールへ引き継ぐ。

        現在のスナップショットを元に、アクティブロールと引き継ぎ情報を
        差し替えた新しいスナップショットで置き換える。
        """
        snapshot = self.get_snapshot()
        snapshot.active_role = to_role
        snapshot.handoff = HandoffNote(next_role=to_role, context=context, note=note)
        saved = self.replace_snapshot(snapshot, writer_role=from_role)
        logger.info(f"引き継ぎ: {from_role} -> {to_role}")
        return saved

    def get_role_guide_path(self, role: str) -> Path:
        return self.workflow_dir / self.ROLES_DIRNAME / f"{sanitize_filename(role)}.md"

    def get_briefing(self, role: str) -> list[dict]:
        """セッション開始時に読むファイルを決められた順序で返す。

        順序: 状態ファイル → タスクボード（インデックス） → ロール別の指示
        ロール別の指示ファイルは存在する場合のみ含める。
        """
        entries = [
            {"kind": "state", "path": str(self.state_path), "exists": self.state_path.exists()},
        ]
        index_path = self.workflow_dir / self.INDEX_FILENAME
        entries.append({"kind": "index", "path": str(index_path), "exists": index_path.exists()})
        guide_path = self.get_role_guide_path(role)
        if guide_path.exists():
            entries.append({"kind": "role", "path": str(guide_path), "exists": True})
        return entries

    def _render_state(self, snapshot: StateSnapshot) -> str:
        """スナップショットの Markdown 本文を生成する。"""
        updated = snapshot.updated_at.strftime("%Y-%m-%d %H:%M:%S") if snapshot.updated_at else "-"
        lines = [
            "# Project State",
            "",
            f"**更新時刻**: {updated} ({snapshot.updated_by or '-'})",
            f"**スプリント**: {snapshot.sprint or '-'}",
            f"**アクティブロール**: {snapshot.active_role or '-'}",
            "",
            "## 作業宣言",
            "",
        ]
        if snapshot.claims:
            lines.extend(
                markdown_table(
                    ["ロール", "タスク"],
                    [[role, f"`{task_id}`"] for role, task_id in snapshot.claims.items()],
                )
            )
        else:
            lines.append("*なし*")

        lines.extend(["", "## ブロッカー", ""])
        if snapshot.blockers:
            lines.extend(f"- {blocker}" for blocker in snapshot.blockers)
        else:
            lines.append("*なし*")

        handoff = snapshot.handoff
        lines.extend(
            [
                "",
                "## 引き継ぎ",
                "",
                f"- **次のロール**: {handoff.next_role or '-'}",
                f"- **コンテキスト**: {handoff.context or '-'}",
            ]
        )
        if handoff.note:
            lines.extend(["", handoff.note])
        return "\n".join(lines)
