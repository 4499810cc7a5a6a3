"""委任ログ管理モジュール。

ロール間の作業依頼を追記専用のログとして管理する。

保存先: {project_root}/{workflow_dir}/delegations/
形式: YAML Front Matter + Markdown（各リクエストは個別の .md ファイル）

レコードは削除しない。完了時は同じファイルをアトミックに書き換える。
"""

import glob
import logging
import uuid
from datetime import datetime
from pathlib import Path

import yaml
from pydantic import ValidationError

from src.errors import AlreadyClosedError, NotFoundError
from src.managers.markdown_store import (
    atomic_write,
    build_document,
    parse_front_matter,
    sanitize_filename,
)
from src.models.delegation import DelegationRequest, DelegationStatus

logger = logging.getLogger(__name__)


class DelegationLogManager:
    """委任リクエストの追記専用ログを管理するクラス。"""

    def __init__(self, delegation_dir: str | Path) -> None:
        """DelegationLogManagerを初期化する。

        Args:
            delegation_dir: リクエストファイルを保存するディレクトリ
        """
        self.delegation_dir = Path(delegation_dir)

    def initialize(self) -> None:
        """委任ログのディレクトリを作成する。"""
        self.delegation_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"委任ログを初期化しました: {self.delegation_dir}")

    def _get_request_path(self, request: DelegationRequest) -> Path:
        timestamp = request.created_at.strftime("%Y%m%d_%H%M%S_%f")
        return self.delegation_dir / f"{timestamp}_{sanitize_filename(request.id)}.md"

    def _find_request_path(self, request_id: str) -> Path | None:
        if not self.delegation_dir.exists():
            return None
        pattern = f"*_{glob.escape(sanitize_filename(request_id))}.md"
        matches = sorted(self.delegation_dir.glob(pattern))
        return matches[0] if matches else None

    def _load(self, request_id: str) -> tuple[Path, DelegationRequest]:
        """リクエストIDに完全一致するファイルとリクエストを返す。

        Raises:
            NotFoundError: リクエストが存在しない場合
        """
        file_path = self._find_request_path(request_id)
        request = self._parse_request_file(file_path) if file_path else None
        if request is None or request.id != request_id:
            raise NotFoundError(f"委任リクエスト {request_id} が見つかりません")
        return file_path, request

    def _parse_request_file(self, file_path: Path) -> DelegationRequest | None:
        """Markdown ファイルからリクエストを読み込む。"""
        try:
            data = parse_front_matter(file_path.read_text(encoding="utf-8"))
            if not data or "id" not in data:
                return None
            return DelegationRequest(**data)
        except (OSError, yaml.YAMLError, ValidationError) as e:
            logger.warning(f"委任リクエストの読み込みに失敗 ({file_path}): {e}")
            return None

    def _build_request_content(self, request: DelegationRequest) -> str:
        """リクエストの Markdown コンテンツを組み立てる。"""
        front_matter = request.model_dump(mode="json", exclude={"description", "outcome"})
        front_matter["description"] = request.description
        if request.outcome is not None:
            front_matter["outcome"] = request.outcome

        blocking = "はい" if request.blocking else "いいえ"
        lines = [
            f"# {request.requester} → {request.target}",
            "",
            f"- **状態**: {request.status.value}",
            f"- **ブロッキング**: {blocking}",
            f"- **関連タスク**: {request.task_id or '-'}",
            "",
            "## 依頼内容",
            "",
            request.description,
        ]
        if request.outcome is not None:
            lines.extend(["", "## 対応結果", "", request.outcome])
        return build_document(front_matter, "\n".join(lines))

    def open_request(
        self,
        requester: str,
        target: str,
        description: str,
        blocking: bool = False,
        task_id: str | None = None,
    ) -> DelegationRequest:
        """委任リクエストを追加する。

        Args:
            requester: 依頼元ロール
            target: 依頼先ロール
            description: 依頼内容
            blocking: 依頼元の作業をブロックしているか
            task_id: 関連タスクID

        Returns:
            作成された DelegationRequest（pending）
        """
        request = DelegationRequest(
            id=f"D-{uuid.uuid4().hex[:8]}",
            requester=requester,
            target=target,
            description=description,
            blocking=blocking,
            task_id=task_id,
            created_at=datetime.now(),
        )
        atomic_write(self._get_request_path(request), self._build_request_content(request))
        logger.info(f"委任リクエストを追加: {request.id} ({requester} -> {target})")
        return request

    def close_request(
        self,
        request_id: str,
        outcome: str,
        closed_by: str | None = None,
    ) -> DelegationRequest:
        """委任リクエストを完了にする。

        Args:
            request_id: リクエストID
            outcome: 対応結果
            closed_by: 完了させたロール（省略時は依頼先ロール）

        Returns:
            完了した DelegationRequest

        Raises:
            NotFoundError: リクエストが存在しない場合
            AlreadyClosedError: 既に完了している場合
        """
        file_path, request = self._load(request_id)
        if not request.is_open:
            raise AlreadyClosedError(f"委任リクエスト {request_id} は既に完了しています")

        request.status = DelegationStatus.COMPLETED
        request.outcome = outcome
        request.closed_at = datetime.now()
        request.closed_by = closed_by or request.target
        atomic_write(file_path, self._build_request_content(request))
        logger.info(f"委任リクエストを完了: {request.id} (by {request.closed_by})")
        return request

    def get_request(self, request_id: str) -> DelegationRequest:
        """委任リクエストを取得する。

        Raises:
            NotFoundError: リクエストが存在しない場合
        """
        _, request = self._load(request_id)
        return request

    def list_requests(
        self,
        status: DelegationStatus | None = None,
        requester: str | None = None,
        target: str | None = None,
        blocking: bool | None = None,
    ) -> list[DelegationRequest]:
        """委任リクエストを作成順に取得する。

        Args:
            status: フィルターする状態
            requester: フィルターする依頼元ロール
            target: フィルターする依頼先ロール
            blocking: ブロッキングかどうかでフィルター

        Returns:
            DelegationRequest のリスト（時系列順）
        """
        if not self.delegation_dir.exists():
            return []

        requests = []
        for file_path in self.delegation_dir.glob("*.md"):
            request = self._parse_request_file(file_path)
            if request:
                requests.append(request)
        requests.sort(key=lambda r: r.created_at)

        if status is not None:
            requests = [r for r in requests if r.status == status]
        if requester is not None:
            requests = [r for r in requests if r.requester == requester]
        if target is not None:
            requests = [r for r in requests if r.target == target]
        if blocking is not None:
            requests = [r for r in requests if r.blocking == blocking]
        return requests

    def get_pending_count(self, target: str | None = None) -> int:
        """未完了リクエスト数を取得する。"""
        return len(self.list_requests(status=DelegationStatus.PENDING, target=target))
