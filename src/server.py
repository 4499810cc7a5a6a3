"""Workflow State MCP Server エントリーポイント。"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from mcp.server.fastmcp import FastMCP

from src.config.settings import Settings, load_settings_for_project
from src.context import AppContext
from src.tools import register_all_tools

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """ログ設定（stderrに出力）。"""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """サーバーライフサイクルを管理する。

    Args:
        server: FastMCPサーバーインスタンス

    Yields:
        アプリケーションコンテキスト
    """
    settings = Settings()
    settings = load_settings_for_project(settings.resolve_project_root())
    logger.info(
        "Workflow State MCP Server を起動しています... (project_root=%s)",
        settings.resolve_project_root(),
    )
    try:
        yield AppContext(settings=settings, project_root=settings.project_root)
    finally:
        logger.info("サーバーをシャットダウンしています...")


# FastMCPサーバーを作成
mcp = FastMCP("Workflow State MCP", lifespan=app_lifespan)
register_all_tools(mcp)


def main() -> None:
    """MCPサーバーを起動する。"""
    configure_logging(load_settings_for_project(Settings().resolve_project_root()))
    mcp.run()


if __name__ == "__main__":
    main()
