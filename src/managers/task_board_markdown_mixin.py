"""タスクボードの Markdown 表示ロジック mixin。"""

from datetime import datetime

from src.managers.markdown_store import markdown_table
from src.models.task import TaskBoard, TaskStatus


class TaskBoardMarkdownMixin:
    """board.md の Markdown 本文生成機能を提供する mixin。"""

    _STATUS_EMOJI = {
        TaskStatus.NOT_STARTED: "⏳",
        TaskStatus.IN_PROGRESS: "🔄",
        TaskStatus.COMPLETE: "✅",
        TaskStatus.BLOCKED: "🚫",
        TaskStatus.ON_HOLD: "⏸️",
    }

    def _generate_markdown_body(self, board: TaskBoard) -> str:
        """TaskBoard から Markdown 本体を生成する。

        Args:
            board: TaskBoard オブジェクト

        Returns:
            Markdown 文字列
        """
        now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        lines = [
            "# Task Board",
            "",
            f"**更新時刻**: {now}",
            "",
            "---",
            "",
            "## バックログ",
            "",
        ]
        lines.extend(self._generate_task_table(board))
        lines.extend(self._generate_blocked_section(board))
        lines.extend(self._generate_stats_section(board))
        return "\n".join(lines)

    def _generate_task_table(self, board: TaskBoard) -> list[str]:
        """優先度順のタスクテーブルを生成する。"""
        if not board.tasks:
            return ["*タスクはまだありません*"]

        rows = []
        for task in board.ordered():
            emoji = self._STATUS_EMOJI.get(task.status, "⚪")
            deps = ", ".join(task.dependencies) or "-"
            rows.append(
                [
                    f"`{task.id}`",
                    task.priority.value,
                    task.title,
                    f"{emoji} {task.status.value}",
                    str(task.points),
                    task.owner or "-",
                    deps,
                    task.sprint or "-",
                ]
            )
        return markdown_table(
            ["ID", "優先度", "タイトル", "状態", "pt", "担当", "依存", "スプリント"],
            rows,
        )

    def _generate_blocked_section(self, board: TaskBoard) -> list[str]:
        """ブロック/保留中タスクの理由一覧を生成する。"""
        stalled = [
            t for t in board.ordered() if t.status in (TaskStatus.BLOCKED, TaskStatus.ON_HOLD)
        ]
        if not stalled:
            return []
        lines = ["", "## ブロック / 保留", ""]
        for task in stalled:
            reason = task.blocked_reason or "理由未記入"
            lines.append(f"- `{task.id}` ({task.status.value}): {reason}")
        return lines

    def _generate_stats_section(self, board: TaskBoard) -> list[str]:
        """統計セクションを生成する。"""
        total_points = sum(t.points for t in board.tasks)
        done_points = sum(t.points for t in board.tasks if t.is_complete)
        return [
            "",
            "## 統計",
            "",
            f"- タスク数: {len(board.tasks)}",
            f"- ポイント: {done_points} / {total_points} 完了",
        ]
