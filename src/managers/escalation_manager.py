"""エスカレーション管理モジュール。

未解決の対立を agent → peer → lead → human の順に一段ずつ引き上げ、
決着した段階で決定を記録する。

保存先: {project_root}/{workflow_dir}/escalations/{id}.md
形式: YAML Front Matter + ADR 形式の Markdown
"""

import logging
import uuid
from datetime import datetime, timedelta
from pathlib import Path

import yaml
from pydantic import ValidationError

from src.errors import AlreadyResolvedError, InvalidEscalationError, NotFoundError
from src.managers.markdown_store import (
    atomic_write,
    build_document,
    parse_front_matter,
    sanitize_filename,
)
from src.models.escalation import (
    EscalationLevel,
    EscalationOption,
    EscalationRecord,
    LevelChange,
)

logger = logging.getLogger(__name__)


class EscalationManager:
    """エスカレーションの段階遷移と決定記録を管理するクラス。"""

    def __init__(
        self,
        escalation_dir: str | Path,
        peer_timebox_minutes: int = 30,
    ) -> None:
        """EscalationManagerを初期化する。

        Args:
            escalation_dir: エスカレーションファイルを保存するディレクトリ
            peer_timebox_minutes: peer 段階のタイムボックス（分）
        """
        self.escalation_dir = Path(escalation_dir)
        self.peer_timebox = timedelta(minutes=peer_timebox_minutes)

    def initialize(self) -> None:
        """エスカレーションのディレクトリを作成する。"""
        self.escalation_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"エスカレーション記録を初期化しました: {self.escalation_dir}")

    def _get_record_path(self, record_id: str) -> Path:
        return self.escalation_dir / f"{sanitize_filename(record_id)}.md"

    def _load(self, record_id: str) -> EscalationRecord:
        """エスカレーションを読み込む。

        Raises:
            NotFoundError: ファイルが存在しない、または ID が一致しない場合
            ValueError: ファイルが壊れている場合
        """
        file_path = self._get_record_path(record_id)
        if not file_path.exists():
            raise NotFoundError(f"エスカレーション {record_id} が見つかりません")
        try:
            data = parse_front_matter(file_path.read_text(encoding="utf-8"))
            if not data:
                raise ValueError("YAML Front Matter がありません")
            record = EscalationRecord(**data)
        except (OSError, yaml.YAMLError, ValidationError, ValueError) as e:
            logger.error(f"エスカレーション読み込みエラー ({file_path}): {e}")
            raise ValueError(f"エスカレーションを読み込めません: {file_path}: {e}") from e
        if record.id != record_id:
            raise NotFoundError(f"エスカレーション {record_id} が見つかりません")
        return record

    def _parse_record_file(self, file_path: Path) -> EscalationRecord | None:
        """Markdown ファイルからエスカレーションを読み込む。"""
        try:
            data = parse_front_matter(file_path.read_text(encoding="utf-8"))
            if not data or "id" not in data:
                return None
            return EscalationRecord(**data)
        except (OSError, yaml.YAMLError, ValidationError) as e:
            logger.warning(f"エスカレーションの読み込みに失敗 ({file_path}): {e}")
            return None

    def _save(self, record: EscalationRecord) -> None:
        front_matter = record.model_dump(mode="json")
        content = build_document(front_matter, self._render_adr(record))
        atomic_write(self._get_record_path(record.id), content)

    def _render_adr(self, record: EscalationRecord) -> str:
        """エスカレーションを ADR 形式の Markdown に整形する。"""
        status = "決定済み" if record.is_resolved else "検討中"
        participants = ", ".join(record.participants) or "-"
        lines = [
            f"# {record.topic}",
            "",
            f"- **状態**: {status}",
            f"- **段階**: {record.level.value}",
            f"- **提起**: {record.raised_by}",
            f"- **関係者**: {participants}",
            "",
            "## 選択肢",
        ]
        if not record.options:
            lines.extend(["", "*未記入*"])
        for idx, option in enumerate(record.options, start=1):
            lines.extend(["", f"### {idx}. {option.label}"])
            lines.extend(f"- 👍 {pro}" for pro in option.pros)
            lines.extend(f"- 👎 {con}" for con in option.cons)

        if record.history:
            lines.extend(["", "## 経緯", ""])
            for change in record.history:
                when = change.changed_at.strftime("%Y-%m-%d %H:%M")
                reason = f": {change.reason}" if change.reason else ""
                lines.append(
                    f"- {when} {change.from_level.value} → {change.to_level.value}{reason}"
                )

        if record.is_resolved:
            lines.extend(["", "## 決定", ""])
            if record.chosen_option:
                lines.append(f"**採用**: {record.chosen_option}")
                lines.append("")
            lines.append(record.decision or "")
            lines.append("")
            lines.append(f"*{record.level.value} 段階で {record.decided_by} が決定*")
        return "\n".join(lines)

    @staticmethod
    def _ensure_open(record: EscalationRecord) -> None:
        if record.is_resolved:
            raise AlreadyResolvedError(
                f"エスカレーション {record.id} は {record.level.value} 段階で決着済みです"
            )

    def open_escalation(
        self,
        topic: str,
        raised_by: str,
        participants: list[str] | None = None,
        options: list[EscalationOption] | None = None,
    ) -> EscalationRecord:
        """新しいエスカレーションを agent 段階で作成する。

        Args:
            topic: 論点
            raised_by: 提起したロール
            participants: 関係ロール（raised_by は自動で含まれる）
            options: 検討した選択肢

        Returns:
            作成された EscalationRecord
        """
        members = list(dict.fromkeys([raised_by, *(participants or [])]))
        now = datetime.now()
        record = EscalationRecord(
            id=f"E-{uuid.uuid4().hex[:8]}",
            topic=topic,
            raised_by=raised_by,
            participants=members,
            options=options or [],
            level=EscalationLevel.AGENT,
            level_entered_at=now,
            created_at=now,
        )
        self._save(record)
        logger.info(f"エスカレーションを作成: {record.id} - {topic}")
        return record

    def add_option(
        self,
        record_id: str,
        label: str,
        pros: list[str] | None = None,
        cons: list[str] | None = None,
    ) -> EscalationRecord:
        """未決着のエスカレーションに選択肢を追加する。

        Raises:
            NotFoundError: エスカレーションが存在しない場合
            AlreadyResolvedError: 決着済みの場合
            InvalidEscalationError: 同じラベルの選択肢が既にある場合
        """
        record = self._load(record_id)
        self._ensure_open(record)
        if record.get_option(label):
            raise InvalidEscalationError(f"選択肢 {label} は既に存在します")
        record.options.append(EscalationOption(label=label, pros=pros or [], cons=cons or []))
        self._save(record)
        logger.info(f"エスカレーション {record.id} に選択肢を追加: {label}")
        return record

    def escalate(
        self,
        record_id: str,
        reason: str = "",
        target_level: EscalationLevel | None = None,
        now: datetime | None = None,
    ) -> EscalationRecord:
        """エスカレーションを一段上に引き上げる。

        Args:
            record_id: エスカレーションID
            reason: 引き上げ理由
            target_level: 期待する引き上げ先（指定時は次の段階と一致する必要がある）
            now: 変更時刻（省略時は現在時刻）

        Returns:
            更新後の EscalationRecord

        Raises:
            NotFoundError: エスカレーションが存在しない場合
            AlreadyResolvedError: 決着済みの場合
            InvalidEscalationError: human より上へ上げようとした、または段階を飛ばそうとした場合
        """
        record = self._load(record_id)
        self._ensure_open(record)

        next_level = record.level.next_level
        if next_level is None:
            raise InvalidEscalationError(
                f"エスカレーション {record.id} は既に最上位（{record.level.value}）です"
            )
        if target_level is not None and target_level != next_level:
            raise InvalidEscalationError(
                f"段階は一つずつしか上げられません: {record.level.value} -> "
                f"{next_level.value}（指定: {target_level.value}）"
            )

        changed_at = now or datetime.now()
        record.history.append(
            LevelChange(
                from_level=record.level,
                to_level=next_level,
                reason=reason,
                changed_at=changed_at,
            )
        )
        record.level = next_level
        record.level_entered_at = changed_at
        self._save(record)
        logger.info(
            f"エスカレーション {record.id} を引き上げ: "
            f"{record.history[-1].from_level.value} -> {next_level.value}"
        )
        return record

    def resolve(
        self,
        record_id: str,
        decision: str,
        decided_by: str,
        chosen_option: str | None = None,
    ) -> EscalationRecord:
        """現在の段階で決定を記録し、エスカレーションを終了する。

        Raises:
            NotFoundError: エスカレーションが存在しない場合
            AlreadyResolvedError: 決着済みの場合
            InvalidEscalationError: chosen_option が選択肢にない場合
        """
        record = self._load(record_id)
        self._ensure_open(record)
        if not decision.strip():
            raise InvalidEscalationError("決定内容を入力してください")
        if chosen_option is not None and record.get_option(chosen_option) is None:
            raise InvalidEscalationError(f"選択肢 {chosen_option} は存在しません")

        record.decision = decision
        record.decided_by = decided_by
        record.chosen_option = chosen_option
        record.resolved_at = datetime.now()
        self._save(record)
        logger.info(
            f"エスカレーション {record.id} が {record.level.value} 段階で決着しました"
        )
        return record

    def get_escalation(self, record_id: str) -> EscalationRecord:
        """エスカレーションを取得する。

        Raises:
            NotFoundError: エスカレーションが存在しない場合
        """
        return self._load(record_id)

    def list_escalations(
        self,
        resolved: bool | None = None,
        level: EscalationLevel | None = None,
    ) -> list[EscalationRecord]:
        """エスカレーションを作成順に取得する。"""
        if not self.escalation_dir.exists():
            return []

        records = []
        for file_path in self.escalation_dir.glob("*.md"):
            record = self._parse_record_file(file_path)
            if record:
                records.append(record)
        records.sort(key=lambda r: r.created_at)

        if resolved is not None:
            records = [r for r in records if r.is_resolved == resolved]
        if level is not None:
            records = [r for r in records if r.level == level]
        return records

    def find_overdue(self, now: datetime | None = None) -> list[EscalationRecord]:
        """peer 段階でタイムボックスを超過した未決着エスカレーションを返す。"""
        current = now or datetime.now()
        return [
            r
            for r in self.list_escalations(resolved=False, level=EscalationLevel.PEER)
            if current - r.level_entered_at >= self.peer_timebox
        ]

    def apply_timebox(self, now: datetime | None = None) -> list[EscalationRecord]:
        """タイムボックスを超過した peer 段階のエスカレーションを lead へ引き上げる。

        自動では実行されない。呼び出し側が明示的に適用する。

        Returns:
            引き上げた EscalationRecord のリスト
        """
        current = now or datetime.now()
        minutes = int(self.peer_timebox.total_seconds() // 60)
        escalated = []
        for record in self.find_overdue(current):
            escalated.append(
                self.escalate(
                    record.id,
                    reason=f"peer 段階で {minutes} 分以上未決着のため自動引き上げ",
                    target_level=EscalationLevel.LEAD,
                    now=current,
                )
            )
        if escalated:
            logger.info(f"タイムボックス超過のエスカレーションを {len(escalated)} 件引き上げました")
        return escalated
