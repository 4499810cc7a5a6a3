"""EscalationManagerのテスト。"""

from datetime import datetime, timedelta

import pytest

from src.errors import AlreadyResolvedError, InvalidEscalationError, NotFoundError
from src.managers.escalation_manager import EscalationManager
from src.models.escalation import ESCALATION_CHAIN, EscalationLevel, EscalationOption


@pytest.fixture
def record(escalation_manager):
    """検討中のエスカレーションを作成する。"""
    return escalation_manager.open_escalation(
        topic="Rental pricing: per hour or per day?",
        raised_by="backend",
        participants=["frontend", "backend"],
        options=[
            EscalationOption(label="per-hour", pros=["flexible"], cons=["complex UI"]),
            EscalationOption(label="per-day", pros=["simple"]),
        ],
    )


class TestOpenEscalation:
    """エスカレーション作成のテスト。"""

    def test_starts_at_agent_level(self, record):
        """agent 段階から始まることをテスト。"""
        assert record.level == EscalationLevel.AGENT
        assert record.id.startswith("E-")
        assert not record.is_resolved
        assert record.history == []

    def test_raised_by_is_participant(self, record):
        """提起したロールが関係者に含まれ、重複しないことをテスト。"""
        assert record.participants == ["backend", "frontend"]

    def test_record_file_is_adr(self, escalation_manager, record):
        """ADR 形式の Markdown が保存されることをテスト。"""
        content = (escalation_manager.escalation_dir / f"{record.id}.md").read_text(
            encoding="utf-8"
        )
        assert "# Rental pricing: per hour or per day?" in content
        assert "## 選択肢" in content
        assert "### 1. per-hour" in content

    def test_get_unknown_raises(self, escalation_manager):
        """存在しないエスカレーションの取得が NotFoundError になることをテスト。"""
        with pytest.raises(NotFoundError):
            escalation_manager.get_escalation("E-missing")

    def test_get_corrupted_raises_value_error(self, escalation_manager, record):
        """壊れたファイルの取得が ValueError になることをテスト。"""
        path = escalation_manager.escalation_dir / f"{record.id}.md"
        path.write_text("---\nlevel: [\n---\n", encoding="utf-8")

        with pytest.raises(ValueError, match="エスカレーションを読み込めません"):
            escalation_manager.get_escalation(record.id)
        with pytest.raises(ValueError):
            escalation_manager.escalate(record.id)

    def test_corrupted_file_skipped_in_list(self, escalation_manager, record):
        """壊れたファイルが一覧から除外されることをテスト。"""
        (escalation_manager.escalation_dir / "E-broken.md").write_text(
            "no front matter", encoding="utf-8"
        )

        assert [r.id for r in escalation_manager.list_escalations()] == [record.id]


class TestEscalate:
    """段階引き上げのテスト。"""

    def test_walks_the_chain_one_step_at_a_time(self, escalation_manager, record):
        """agent → peer → lead → human と一段ずつ上がることをテスト。"""
        levels = [record.level]
        for _ in range(3):
            levels.append(escalation_manager.escalate(record.id, reason="stuck").level)

        assert levels == list(ESCALATION_CHAIN)
        stored = escalation_manager.get_escalation(record.id)
        assert [(c.from_level, c.to_level) for c in stored.history] == [
            (EscalationLevel.AGENT, EscalationLevel.PEER),
            (EscalationLevel.PEER, EscalationLevel.LEAD),
            (EscalationLevel.LEAD, EscalationLevel.HUMAN),
        ]

    def test_cannot_go_beyond_human(self, escalation_manager, record):
        """human より上には上げられないことをテスト。"""
        for _ in range(3):
            escalation_manager.escalate(record.id)

        with pytest.raises(InvalidEscalationError):
            escalation_manager.escalate(record.id)

        assert escalation_manager.get_escalation(record.id).level == EscalationLevel.HUMAN

    def test_cannot_skip_levels(self, escalation_manager, record):
        """段階の飛び越しが拒否されることをテスト。"""
        with pytest.raises(InvalidEscalationError):
            escalation_manager.escalate(record.id, target_level=EscalationLevel.LEAD)

        assert escalation_manager.get_escalation(record.id).level == EscalationLevel.AGENT

    def test_explicit_next_level_is_accepted(self, escalation_manager, record):
        """次の段階を明示した引き上げが成功することをテスト。"""
        updated = escalation_manager.escalate(record.id, target_level=EscalationLevel.PEER)
        assert updated.level == EscalationLevel.PEER

    def test_cannot_escalate_resolved(self, escalation_manager, record):
        """決着済みのエスカレーションは引き上げられないことをテスト。"""
        escalation_manager.resolve(record.id, decision="per-day", decided_by="backend")

        with pytest.raises(AlreadyResolvedError):
            escalation_manager.escalate(record.id)


class TestResolve:
    """決着のテスト。"""

    def test_resolve_at_current_level(self, escalation_manager, record):
        """現在の段階で決着が記録されることをテスト。"""
        escalation_manager.escalate(record.id)

        resolved = escalation_manager.resolve(
            record.id,
            decision="Charge per day, hourly later",
            decided_by="lead",
            chosen_option="per-day",
        )

        assert resolved.is_resolved
        assert resolved.level == EscalationLevel.PEER
        assert resolved.chosen_option == "per-day"
        assert resolved.resolved_at is not None
        content = (escalation_manager.escalation_dir / f"{record.id}.md").read_text(
            encoding="utf-8"
        )
        assert "## 決定" in content
        assert "Charge per day, hourly later" in content

    def test_resolve_is_terminal(self, escalation_manager, record):
        """決着済みのエスカレーションは再決着できないことをテスト。"""
        escalation_manager.resolve(record.id, decision="per-day", decided_by="backend")

        with pytest.raises(AlreadyResolvedError):
            escalation_manager.resolve(record.id, decision="per-hour", decided_by="frontend")

        assert escalation_manager.get_escalation(record.id).decision == "per-day"

    def test_resolve_requires_decision(self, escalation_manager, record):
        """空の決定が拒否されることをテスト。"""
        with pytest.raises(InvalidEscalationError):
            escalation_manager.resolve(record.id, decision="  ", decided_by="backend")

    def test_resolve_with_unknown_option(self, escalation_manager, record):
        """存在しない選択肢の採用が拒否されることをテスト。"""
        with pytest.raises(InvalidEscalationError):
            escalation_manager.resolve(
                record.id, decision="x", decided_by="backend", chosen_option="per-week"
            )


class TestOptions:
    """選択肢追加のテスト。"""

    def test_add_option(self, escalation_manager, record):
        """選択肢を追加できることをテスト。"""
        updated = escalation_manager.add_option(record.id, "per-week", pros=["cheap"])
        assert [o.label for o in updated.options] == ["per-hour", "per-day", "per-week"]

    def test_duplicate_option_rejected(self, escalation_manager, record):
        """同じラベルの選択肢が拒否されることをテスト。"""
        with pytest.raises(InvalidEscalationError):
            escalation_manager.add_option(record.id, "per-day")

    def test_cannot_add_option_after_resolve(self, escalation_manager, record):
        """決着後は選択肢を追加できないことをテスト。"""
        escalation_manager.resolve(record.id, decision="per-day", decided_by="backend")

        with pytest.raises(AlreadyResolvedError):
            escalation_manager.add_option(record.id, "per-week")


class TestTimebox:
    """peer 段階のタイムボックスのテスト。"""

    def test_overdue_peer_is_escalated_to_lead(self, escalation_manager, record):
        """タイムボックス超過の peer 段階が lead に上がることをテスト。"""
        entered = datetime.now()
        escalation_manager.escalate(record.id, now=entered)

        assert escalation_manager.find_overdue(entered + timedelta(minutes=29)) == []

        escalated = escalation_manager.apply_timebox(entered + timedelta(minutes=30))
        assert [r.id for r in escalated] == [record.id]
        stored = escalation_manager.get_escalation(record.id)
        assert stored.level == EscalationLevel.LEAD
        assert "30 分" in stored.history[-1].reason

    def test_timebox_ignores_other_levels(self, escalation_manager, record):
        """peer 以外や決着済みのエスカレーションは対象外であることをテスト。"""
        later = datetime.now() + timedelta(hours=2)
        other = escalation_manager.open_escalation(topic="Naming", raised_by="qa")
        escalation_manager.escalate(other.id)
        escalation_manager.resolve(other.id, decision="keep", decided_by="qa")

        assert escalation_manager.apply_timebox(later) == []
        assert escalation_manager.get_escalation(record.id).level == EscalationLevel.AGENT

    def test_custom_timebox(self, temp_dir):
        """タイムボックスの長さを変更できることをテスト。"""
        manager = EscalationManager(temp_dir / "esc", peer_timebox_minutes=5)
        manager.initialize()
        record = manager.open_escalation(topic="Cache TTL", raised_by="backend")
        entered = datetime.now()
        manager.escalate(record.id, now=entered)

        assert len(manager.find_overdue(entered + timedelta(minutes=5))) == 1


class TestListEscalations:
    """一覧取得のテスト。"""

    def test_list_filters(self, escalation_manager, record):
        """決着状態と段階でのフィルターをテスト。"""
        other = escalation_manager.open_escalation(topic="Naming", raised_by="qa")
        escalation_manager.resolve(other.id, decision="keep", decided_by="qa")

        assert [r.id for r in escalation_manager.list_escalations()] == [record.id, other.id]
        assert [r.id for r in escalation_manager.list_escalations(resolved=False)] == [record.id]
        assert escalation_manager.list_escalations(level=EscalationLevel.PEER) == []
