"""模型文件扫描逻辑。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, Sequence

from gallery_refresh.core.models import Asset

LOGGER = logging.getLogger(__name__)


def _iter_candidate_files(directory: Path) -> Iterator[Path]:
    """遍历目录下的文件（不递归）。"""

    if not directory.is_dir():
        return

    for candidate in directory.iterdir():
        if candidate.is_file():
            yield candidate


def _matches_extension(path: Path, extensions: Sequence[str]) -> bool:
    suffix = path.suffix.lower()
    return any(suffix == ext.lower() for ext in extensions)


def collect_assets(directory: Path, extensions: Sequence[str]) -> list[Asset]:
    """扫描目录，返回按文件名排序的模型列表。

    排序保证每次运行的处理顺序、状态输出与日志内容一致。
    """

    collected: list[Asset] = []
    for candidate in _iter_candidate_files(directory):
        if not _matches_extension(candidate, extensions):
            continue
        try:
            modified_at = candidate.stat().st_mtime
        except OSError as exc:
            # 扫描与 stat 之间文件被移走，视为不存在。
            LOGGER.warning("无法读取文件信息 %s: %s", candidate, exc)
            continue
        collected.append(Asset(path=candidate, modified_at=modified_at))

    collected.sort(key=lambda asset: asset.path.name)
    LOGGER.debug("在 %s 中发现 %d 个模型文件", directory, len(collected))
    return collected
