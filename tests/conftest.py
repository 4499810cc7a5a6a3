"""pytest設定とフィクスチャ。"""

import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from src.config.settings import Settings
from src.context import AppContext
from src.managers.delegation_manager import DelegationLogManager
from src.managers.escalation_manager import EscalationManager
from src.managers.state_manager import StateManager
from src.managers.task_board_manager import TaskBoardManager


@pytest.fixture
def temp_dir():
    """一時ディレクトリを作成する。"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings(temp_dir):
    """テスト用の設定を作成する。"""
    return Settings(_env_file=None, project_root=str(temp_dir), max_task_points=8)


@pytest.fixture
def workflow_dir(temp_dir):
    """ワークフローディレクトリのパス。"""
    return temp_dir / ".workflow"


@pytest.fixture
def task_board_manager(workflow_dir, settings):
    """TaskBoardManagerインスタンスを作成する。"""
    manager = TaskBoardManager(workflow_dir, settings)
    manager.initialize()
    return manager


@pytest.fixture
def delegation_manager(workflow_dir):
    """DelegationLogManagerインスタンスを作成する。"""
    manager = DelegationLogManager(workflow_dir / "delegations")
    manager.initialize()
    return manager


@pytest.fixture
def escalation_manager(workflow_dir):
    """EscalationManagerインスタンスを作成する。"""
    manager = EscalationManager(workflow_dir / "escalations", peer_timebox_minutes=30)
    manager.initialize()
    return manager


@pytest.fixture
def state_manager(workflow_dir):
    """StateManagerインスタンスを作成する。"""
    manager = StateManager(workflow_dir)
    manager.initialize()
    return manager


@pytest.fixture
def app_ctx(settings, temp_dir):
    """ツールテスト用のAppContextを作成する。"""
    return AppContext(settings=settings, project_root=str(temp_dir))


@pytest.fixture
def mock_ctx(app_ctx):
    """MCP Context のモック。"""
    mock = MagicMock()
    mock.request_context.lifespan_context = app_ctx
    return mock
