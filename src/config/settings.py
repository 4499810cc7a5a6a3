"""設定管理モジュール。"""

import os
from pathlib import Path

from pydantic import ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_WORKFLOW_DIR = ".workflow"


def resolve_project_env_file(project_root: str | os.PathLike[str] | None) -> str | None:
    """指定した project_root から .env ファイルを解決する。

    Args:
        project_root: プロジェクトルートパス

    Returns:
        .env ファイルのパス（存在する場合）、または None
    """
    if not project_root:
        return None

    env_file = Path(project_root) / DEFAULT_WORKFLOW_DIR / ".env"
    if env_file.exists():
        return str(env_file)
    return None


def get_project_env_file() -> str | None:
    """プロジェクト別 .env ファイルのパスを取得。

    WORKFLOW_PROJECT_ROOT 環境変数が設定されている場合、
    {project_root}/.workflow/.env を返す。

    Returns:
        .env ファイルのパス（存在する場合）、または None
    """
    return resolve_project_env_file(os.getenv("WORKFLOW_PROJECT_ROOT"))


class Settings(BaseSettings):
    """ワークフロートラッカーの設定。

    環境変数で上書き可能。プレフィックスは WORKFLOW_。
    例: WORKFLOW_MAX_TASK_POINTS=8

    優先順位:
    1. 環境変数（最優先）
    2. プロジェクト別 .env ファイル（{project}/.workflow/.env）
    3. デフォルト値
    """

    model_config = ConfigDict(
        env_prefix="WORKFLOW_",
        env_file=get_project_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    project_root: str | None = None
    """管理対象プロジェクトのルート（未指定ならカレントディレクトリ）"""

    workflow_dir: str = DEFAULT_WORKFLOW_DIR
    """状態ファイルを置くディレクトリ名（デフォルト: .workflow）"""

    log_level: str = Field(default="INFO", description="ログレベル")

    # タスクボード設定
    max_task_points: int = Field(
        default=13,
        ge=1,
        description="タスク見積もりポイントの上限",
    )
    """見積もりポイントの上限（デフォルト: 13）"""

    task_log_limit: int = Field(
        default=5,
        ge=1,
        description="タスクごとに保持する進捗ログ件数",
    )

    # エスカレーション設定
    escalation_peer_timebox_minutes: int = Field(
        default=30,
        ge=1,
        description="peer 段階で未決着のまま待つ時間（分）。超過分は lead へ上げる",
    )
    """peer 段階のタイムボックス（デフォルト: 30分）。自動では適用されない。"""

    @field_validator("workflow_dir")
    @classmethod
    def validate_workflow_dir(cls, value: str) -> str:
        """ワークフローディレクトリ名を安全な相対単一ディレクトリ名に制限する。"""
        candidate = value.strip()
        base_error = (
            "WORKFLOW_WORKFLOW_DIR は相対の単一ディレクトリ名を指定してください（例: .workflow）"
        )

        if not candidate:
            raise ValueError(f"{base_error}: 空文字は許可されません")
        if os.path.isabs(candidate):
            raise ValueError(f"{base_error}: 絶対パスは許可されません")
        if "/" in candidate or "\\" in candidate:
            raise ValueError(f"{base_error}: 区切り文字を含むパスは許可されません")
        if ".." in candidate:
            raise ValueError(f"{base_error}: '..' を含む値は許可されません")
        if candidate == ".":
            raise ValueError(f"{base_error}: '.' は許可されません")

        return candidate

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """ログレベル名を正規化する。"""
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"無効なログレベルです: {value}")
        return level

    def resolve_project_root(self) -> Path:
        """有効なプロジェクトルートを返す。"""
        if self.project_root:
            return Path(self.project_root).expanduser()
        return Path.cwd()

    def get_workflow_path(self, project_root: str | os.PathLike[str] | None = None) -> Path:
        """ワークフローディレクトリの絶対パスを返す。"""
        root = Path(project_root) if project_root else self.resolve_project_root()
        return root / self.workflow_dir


def load_settings_for_project(project_root: str | os.PathLike[str] | None) -> Settings:
    """指定 project_root の .env を優先して Settings を生成する。

    優先順位:
    1. プロセス環境変数 WORKFLOW_*
    2. {project_root}/.workflow/.env
    3. デフォルト値

    Args:
        project_root: プロジェクトルートパス

    Returns:
        読み込み済み Settings インスタンス
    """
    env_file = resolve_project_env_file(project_root)
    if env_file:
        settings = Settings(_env_file=env_file)
    else:
        # model_config 側の env_file を使わず、環境変数 + デフォルトのみで構築
        settings = Settings(_env_file=None)
    if project_root and not settings.project_root:
        settings.project_root = str(project_root)
    return settings
