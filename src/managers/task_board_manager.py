"""タスクボード管理モジュール。

バックログを board.md（YAML Front Matter + Markdown）1ファイルで管理する。
書き込みは毎回ファイルから読み直して丸ごと書き戻す（last-writer-wins）。
"""

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import ClassVar, TypeVar

import yaml
from pydantic import ValidationError

from src.config.settings import Settings
from src.errors import (
    DuplicateTaskError,
    InvalidTransitionError,
    NotFoundError,
)
from src.managers.markdown_store import atomic_write, build_document, parse_front_matter
from src.managers.task_board_markdown_mixin import TaskBoardMarkdownMixin
from src.models.task import (
    Task,
    TaskBoard,
    TaskLog,
    TaskPriority,
    TaskStatus,
    normalize_task_id,
)

logger = logging.getLogger(__name__)

_MutationResult = TypeVar("_MutationResult")


class TaskBoardManager(TaskBoardMarkdownMixin):
    """タスクボードを管理するクラス。"""

    BOARD_FILENAME = "board.md"

    _STALLED_STATUSES: ClassVar[set[TaskStatus]] = {TaskStatus.BLOCKED, TaskStatus.ON_HOLD}
    _ALLOWED_TASK_TRANSITIONS: ClassVar[dict[TaskStatus, set[TaskStatus]]] = {
        TaskStatus.NOT_STARTED: set(TaskStatus),
        TaskStatus.IN_PROGRESS: set(TaskStatus),
        # blocked/on_hold -> in_progress は再開扱い
        TaskStatus.BLOCKED: {
            TaskStatus.NOT_STARTED,
            TaskStatus.IN_PROGRESS,
            TaskStatus.BLOCKED,
            TaskStatus.ON_HOLD,
        },
        TaskStatus.ON_HOLD: {
            TaskStatus.NOT_STARTED,
            TaskStatus.IN_PROGRESS,
            TaskStatus.BLOCKED,
            TaskStatus.ON_HOLD,
        },
        TaskStatus.COMPLETE: {TaskStatus.COMPLETE},
    }

    def __init__(self, workflow_dir: str | Path, settings: Settings | None = None) -> None:
        """TaskBoardManagerを初期化する。

        Args:
            workflow_dir: 状態ファイルを置くディレクトリ
            settings: 設定（省略時はデフォルト）
        """
        self.workflow_dir = Path(workflow_dir)
        self.settings = settings or Settings(_env_file=None)

    def initialize(self) -> None:
        """board.md がなければ空のボードを作成する。"""
        self.workflow_dir.mkdir(parents=True, exist_ok=True)
        if not self.board_path.exists():
            self._write_board(TaskBoard())
        logger.info(f"タスクボードを初期化しました: {self.board_path}")

    @property
    def board_path(self) -> Path:
        return self.workflow_dir / self.BOARD_FILENAME

    # 読み書き

    def _read_board(self) -> TaskBoard:
        """ボードをファイルから読み込む。ファイルがなければ空のボードを返す。"""
        if not self.board_path.exists():
            return TaskBoard()
        try:
            content = self.board_path.read_text(encoding="utf-8")
            data = parse_front_matter(content)
            if data is None:
                raise ValueError("YAML Front Matter がありません")
            return TaskBoard(**data)
        except (OSError, yaml.YAMLError, ValidationError, ValueError) as e:
            logger.error(f"タスクボード読み込みエラー ({self.board_path}): {e}")
            raise ValueError(f"タスクボードを読み込めません: {self.board_path}: {e}") from e

    def _write_board(self, board: TaskBoard) -> None:
        """ボードをファイルに保存する（YAML Front Matter + Markdown）。"""
        board.updated_at = datetime.now()
        front_matter = board.model_dump(mode="json")
        content = build_document(front_matter, self._generate_markdown_body(board))
        try:
            atomic_write(self.board_path, content)
        except OSError as e:
            logger.error(f"タスクボード保存エラー: {e}")
            raise

    def _mutate_board(self, mutator: Callable[[TaskBoard], _MutationResult]) -> _MutationResult:
        """ボードを読み込み、変更して書き戻す。

        mutator が例外を送出した場合は書き戻さない。
        """
        board = self._read_board()
        result = mutator(board)
        self._write_board(board)
        return result

    def _resolve_task(self, board: TaskBoard, task_id: str) -> Task:
        """task_id を exact / normalized で解決する。

        前方一致では解決しない。

        Raises:
            NotFoundError: 一意に解決できない場合
        """
        task = board.get_task(task_id)
        if task:
            return task

        normalized_target = normalize_task_id(task_id)
        if normalized_target:
            normalized_matches = [
                t for t in board.tasks if normalize_task_id(t.id) == normalized_target
            ]
            if len(normalized_matches) == 1:
                return normalized_matches[0]

        raise NotFoundError(f"タスク {task_id} が見つかりません")

    def _append_log(self, task: Task, message: str) -> None:
        task.logs.append(TaskLog(message=message))
        task.logs = task.logs[-self.settings.task_log_limit :]

    # タスク管理メソッド

    def add_task(self, task: Task) -> Task:
        """タスクをボードに追加する。

        Args:
            task: 追加するタスク（sequence はボード側で採番する）

        Returns:
            追加されたTask

        Raises:
            DuplicateTaskError: 同じ ID のタスクが既に存在する場合
            NotFoundError: 依存タスクがボードに存在しない場合
            InvalidTransitionError: 自己依存、または未完了の依存を持つ完了タスクの場合
            ValueError: 見積もりポイントが上限を超える場合
        """
        if task.points > self.settings.max_task_points:
            raise ValueError(
                f"見積もりポイントは 1..{self.settings.max_task_points} で指定してください: "
                f"{task.points}"
            )

        def _add(board: TaskBoard) -> Task:
            if board.get_task(task.id):
                raise DuplicateTaskError(f"タスク {task.id} は既に存在します")
            if task.id in task.dependencies:
                raise InvalidTransitionError(f"タスク {task.id} は自身に依存できません")
            missing = [d for d in task.dependencies if board.get_task(d) is None]
            if missing:
                raise NotFoundError(f"依存タスクが見つかりません: {', '.join(missing)}")

            new_task = task.model_copy(deep=True)
            if new_task.is_complete:
                pending = board.incomplete_dependencies(new_task)
                if pending:
                    raise InvalidTransitionError(
                        f"未完了の依存タスクがあるため完了状態では追加できません: {', '.join(pending)}"
                    )
                new_task.completed_at = new_task.completed_at or datetime.now()
            new_task.sequence = board.next_sequence
            board.next_sequence += 1
            board.tasks.append(new_task)
            return new_task

        added = self._mutate_board(_add)
        logger.info(f"タスクを追加しました: {added.id} - {added.title}")
        return added

    def create_task(
        self,
        title: str,
        priority: TaskPriority = TaskPriority.P2,
        points: int = 1,
        owner: str | None = None,
        dependencies: list[str] | None = None,
        description: str = "",
        sprint: str | None = None,
        task_id: str | None = None,
    ) -> Task:
        """新しいタスクを作成してボードに追加する。

        task_id 省略時は T-001 形式で採番する。
        """
        if task_id is None:
            board = self._read_board()
            seq = board.next_sequence
            task_id = f"T-{seq:03d}"
            while board.get_task(task_id):
                seq += 1
                task_id = f"T-{seq:03d}"

        return self.add_task(
            Task(
                id=task_id,
                title=title,
                description=description,
                priority=priority,
                points=points,
                owner=owner,
                dependencies=dependencies or [],
                sprint=sprint,
            )
        )

    def transition_task(
        self,
        task_id: str,
        status: TaskStatus,
        note: str | None = None,
    ) -> Task:
        """タスクのステータスを更新する。

        Args:
            task_id: タスクID
            status: 新しいステータス
            note: ログに残すメモ（blocked/on_hold の場合は理由として保持）

        Returns:
            更新後のTask

        Raises:
            NotFoundError: タスクが存在しない場合
            InvalidTransitionError: 遷移表または依存関係の制約に違反する場合
        """

        def _transition(board: TaskBoard) -> Task:
            task = self._resolve_task(board, task_id)
            old_status = task.status
            self._validate_transition(board, task, status)
            self._apply_status(task, status, note)
            logger.info(
                f"タスク {task.id} のステータスを更新: {old_status.value} -> {status.value}"
            )
            return task.model_copy(deep=True)

        return self._mutate_board(_transition)

    def resume_task(self, task_id: str, note: str | None = None) -> Task:
        """blocked / on_hold のタスクを in_progress に戻す。

        Raises:
            NotFoundError: タスクが存在しない場合
            InvalidTransitionError: タスクが blocked / on_hold でない場合
        """

        def _resume(board: TaskBoard) -> Task:
            task = self._resolve_task(board, task_id)
            if task.status not in self._STALLED_STATUSES:
                raise InvalidTransitionError(
                    f"タスク {task.id} は blocked / on_hold ではないため再開できません"
                    f"（現在: {task.status.value}）"
                )
            self._apply_status(task, TaskStatus.IN_PROGRESS, note or "再開")
            return task.model_copy(deep=True)

        task = self._mutate_board(_resume)
        logger.info(f"タスク {task.id} を再開しました")
        return task

    def reopen_task(self, task_id: str, note: str | None = None) -> Task:
        """完了タスクを not_started に戻す。

        完了済みタスクから依存されている場合は依存関係の制約が崩れるため拒否する。

        Raises:
            NotFoundError: タスクが存在しない場合
            InvalidTransitionError: 完了状態でない、または完了済みタスクから依存されている場合
        """

        def _reopen(board: TaskBoard) -> Task:
            task = self._resolve_task(board, task_id)
            if not task.is_complete:
                raise InvalidTransitionError(
                    f"タスク {task.id} は完了状態ではありません（現在: {task.status.value}）"
                )
            completed_dependents = [t.id for t in board.get_dependents(task.id) if t.is_complete]
            if completed_dependents:
                raise InvalidTransitionError(
                    f"完了済みタスクが依存しているため再オープンできません: "
                    f"{', '.join(completed_dependents)}"
                )
            task.status = TaskStatus.NOT_STARTED
            task.completed_at = None
            task.blocked_reason = None
            self._append_log(task, note or "再オープン")
            return task.model_copy(deep=True)

        task = self._mutate_board(_reopen)
        logger.info(f"タスク {task.id} を再オープンしました")
        return task

    def _validate_transition(self, board: TaskBoard, task: Task, new_status: TaskStatus) -> None:
        """状態遷移が許可されるか検証する。"""
        old_status = task.status
        allowed = self._ALLOWED_TASK_TRANSITIONS.get(old_status, {old_status})
        if new_status not in allowed:
            if old_status == TaskStatus.COMPLETE:
                raise InvalidTransitionError(
                    f"完了状態から {new_status.value} へは遷移できません。"
                    "再開には reopen_task を使用してください。"
                )
            raise InvalidTransitionError(
                f"状態遷移が許可されていません: {old_status.value} -> {new_status.value}"
            )

        if new_status == TaskStatus.COMPLETE and old_status != TaskStatus.COMPLETE:
            pending = board.incomplete_dependencies(task)
            if pending:
                raise InvalidTransitionError(
                    f"未完了の依存タスクがあるため完了にできません: {', '.join(pending)}"
                )

    def _apply_status(self, task: Task, status: TaskStatus, note: str | None) -> None:
        """検証済みのステータス変更をタスクに反映する。"""
        if task.status == status:
            if note:
                self._append_log(task, note)
            return

        now = datetime.now()
        old_status = task.status
        task.status = status

        if status == TaskStatus.IN_PROGRESS:
            if task.started_at is None:
                task.started_at = now
            task.blocked_reason = None
        elif status in self._STALLED_STATUSES:
            task.blocked_reason = note
        elif status == TaskStatus.COMPLETE:
            task.completed_at = now
            task.blocked_reason = None
        elif status == TaskStatus.NOT_STARTED:
            task.blocked_reason = None

        self._append_log(task, note or f"{old_status.value} -> {status.value}")

    def assign_task(self, task_id: str, owner: str | None) -> Task:
        """タスクの担当ロールを設定（None で解除）する。"""

        def _assign(board: TaskBoard) -> Task:
            task = self._resolve_task(board, task_id)
            task.owner = owner
            self._append_log(task, f"担当: {owner or '-'}")
            return task.model_copy(deep=True)

        task = self._mutate_board(_assign)
        logger.info(f"タスク {task.id} の担当を設定しました: {owner}")
        return task

    def remove_task(self, task_id: str) -> Task:
        """タスクを削除する。

        Raises:
            NotFoundError: タスクが存在しない場合
            InvalidTransitionError: 他のタスクから依存されている場合
        """

        def _remove(board: TaskBoard) -> Task:
            task = self._resolve_task(board, task_id)
            dependents = [t.id for t in board.get_dependents(task.id)]
            if dependents:
                raise InvalidTransitionError(
                    f"タスク {task.id} は依存されているため削除できません: {', '.join(dependents)}"
                )
            board.tasks = [t for t in board.tasks if t.id != task.id]
            return task

        task = self._mutate_board(_remove)
        logger.info(f"タスク {task.id} を削除しました")
        return task

    def get_task(self, task_id: str) -> Task:
        """タスクを取得する。

        Raises:
            NotFoundError: タスクが存在しない場合
        """
        board = self._read_board()
        return self._resolve_task(board, task_id).model_copy(deep=True)

    def query_tasks(
        self,
        status: TaskStatus | None = None,
        priority: TaskPriority | None = None,
        owner: str | None = None,
        sprint: str | None = None,
    ) -> tuple[Task, ...]:
        """条件に合うタスクを優先度 → 追加順で取得する。

        Args:
            status: フィルターするステータス
            priority: フィルターする優先度
            owner: フィルターする担当ロール
            sprint: フィルターするスプリント

        Returns:
            Taskのタプル（コピーなので変更してもボードには影響しない）
        """
        tasks = self._read_board().ordered()

        if status is not None:
            tasks = [t for t in tasks if t.status == status]
        if priority is not None:
            tasks = [t for t in tasks if t.priority == priority]
        if owner is not None:
            tasks = [t for t in tasks if t.owner == owner]
        if sprint is not None:
            tasks = [t for t in tasks if t.sprint == sprint]

        return tuple(t.model_copy(deep=True) for t in tasks)

    def get_summary(self, sprint: str | None = None) -> dict:
        """ボードのサマリーを取得する。

        Args:
            sprint: 集計対象のスプリント（省略時は全タスク）

        Returns:
            サマリー情報の辞書
        """
        board = self._read_board()
        tasks = board.tasks
        if sprint is not None:
            tasks = [t for t in tasks if t.sprint == sprint]

        by_status = {s.value: 0 for s in TaskStatus}
        points_by_status = {s.value: 0 for s in TaskStatus}
        for task in tasks:
            by_status[task.status.value] += 1
            points_by_status[task.status.value] += task.points

        total_points = sum(points_by_status.values())
        return {
            "sprint": sprint,
            "total_tasks": len(tasks),
            "total_points": total_points,
            "completed_points": points_by_status[TaskStatus.COMPLETE.value],
            "tasks_by_status": by_status,
            "points_by_status": points_by_status,
            "all_tasks_completed": bool(tasks) and all(t.is_complete for t in tasks),
            "updated_at": board.updated_at.isoformat(),
        }
