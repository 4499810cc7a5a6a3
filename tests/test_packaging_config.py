"""配布設定の回帰を防ぐテスト。"""

from pathlib import Path

import tomli


class TestPyprojectPackagingConfig:
    """pyproject.toml の配布設定を検証する。"""

    def _load(self) -> dict:
        pyproject_path = Path(__file__).resolve().parents[1] / "pyproject.toml"
        return tomli.loads(pyproject_path.read_text(encoding="utf-8"))

    def test_console_script_points_to_server_main(self) -> None:
        """コンソールスクリプトが server.main を指すことを確認する。"""
        data = self._load()
        assert data["project"]["scripts"]["workflow-state-mcp"] == "src.server:main"

    def test_wheel_includes_src_package(self) -> None:
        """wheel に src パッケージが含まれることを確認する。"""
        data = self._load()
        wheel_target = data["tool"]["hatch"]["build"]["targets"]["wheel"]
        assert wheel_target["packages"] == ["src"]
