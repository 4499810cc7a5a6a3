"""YAML Front Matter 付き Markdown ファイルの読み書きヘルパー。

状態ファイルはすべて「--- YAML --- + Markdown 本文」の形式で保存する。
YAML 部分が正、Markdown 本文は人間・エージェント向けの表示用。
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Any

import yaml

_FRONT_MATTER_PATTERN = re.compile(r"^---\n(.*?)\n---", re.DOTALL)


def sanitize_filename(value: str, fallback: str = "record") -> str:
    """ファイル名として安全な形式に変換する。"""
    safe = re.sub(r'[<>:"/\\|?*\s]', "_", value)
    safe = safe.strip(" ._")
    return safe or fallback


def parse_front_matter(content: str) -> dict | None:
    """YAML Front Matter をパースする。

    Args:
        content: Markdown コンテンツ（YAML Front Matter 付き）

    Returns:
        パースされた辞書、Front Matter がない場合は None

    Raises:
        yaml.YAMLError: YAML として不正な場合
    """
    match = _FRONT_MATTER_PATTERN.match(content)
    if not match:
        return None
    data = yaml.safe_load(match.group(1))
    if not isinstance(data, dict):
        return None
    return data


def build_document(front_matter: dict[str, Any], body: str) -> str:
    """Front Matter と本文から Markdown ドキュメントを組み立てる。"""
    yaml_str = yaml.dump(
        front_matter,
        allow_unicode=True,
        default_flow_style=False,
        sort_keys=False,
    )
    return f"---\n{yaml_str}---\n\n{body.rstrip()}\n"


def atomic_write(file_path: Path, content: str) -> None:
    """アトミック書き込み（tmpfile + os.replace）でファイルを安全に保存する。"""
    file_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(file_path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, str(file_path))
    except BaseException:
        # 書き込み失敗時に一時ファイルを削除
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def markdown_table(headers: list[str], rows: list[list[str]]) -> list[str]:
    """Markdown テーブルの行リストを生成する。"""
    lines = [
        "| " + " | ".join(headers) + " |",
        "|" + "|".join(":---" for _ in headers) + "|",
    ]
    for row in rows:
        cells = [str(cell).replace("|", "\\|").replace("\n", " ") for cell in row]
        lines.append("| " + " | ".join(cells) + " |")
    return lines
