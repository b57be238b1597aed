"""内置目录页生成器：根据目录中的模型与预览图生成静态 index.html。"""

from __future__ import annotations

import html
import logging
from pathlib import Path
from typing import Sequence
from urllib.parse import quote

from gallery_refresh.core.config import CatalogConfig
from gallery_refresh.core.output_manager import preview_path_for, write_text_atomic
from gallery_refresh.core.scanner import collect_assets

LOGGER = logging.getLogger(__name__)

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{title}</title>
<style>
body {{ font-family: sans-serif; background: #111; color: #eee; margin: 2rem; }}
.grid {{ display: grid; grid-template-columns: repeat(auto-fill, minmax(220px, 1fr)); gap: 1rem; }}
.card {{ background: #1e1e24; border-radius: 8px; padding: 0.75rem; text-align: center; }}
.card img {{ width: 100%; aspect-ratio: 1; object-fit: contain; }}
.card .missing {{ width: 100%; aspect-ratio: 1; display: flex; align-items: center; justify-content: center; color: #777; }}
.card a {{ color: #9cf; word-break: break-all; }}
</style>
</head>
<body>
<h1>{title}</h1>
<p>{count} models</p>
<div class="grid">
{cards}
</div>
</body>
</html>
"""

CARD_WITH_PREVIEW = """<div class="card"><img src="{preview}" alt="{label}" loading="lazy"><a href="{href}">{label}</a></div>"""
CARD_WITHOUT_PREVIEW = """<div class="card"><div class="missing">no preview</div><a href="{href}">{label}</a></div>"""


def render_catalog(entries: Sequence[tuple[str, str | None]], title: str) -> str:
    """entries 为 (模型文件名, 预览图文件名或 None) 列表。"""

    cards = []
    for asset_name, preview_name in entries:
        label = html.escape(asset_name)
        href = html.escape(quote(asset_name))
        if preview_name:
            cards.append(CARD_WITH_PREVIEW.format(preview=html.escape(quote(preview_name)), label=label, href=href))
        else:
            cards.append(CARD_WITHOUT_PREVIEW.format(label=label, href=href))

    return PAGE_TEMPLATE.format(title=html.escape(title), count=len(entries), cards="\n".join(cards))


def build_catalog(
    directory: Path,
    asset_extensions: Sequence[str],
    preview_extension: str,
    config: CatalogConfig,
) -> Path:
    """扫描目录并写出目录页，返回页面路径。"""

    entries: list[tuple[str, str | None]] = []
    for asset in collect_assets(directory, asset_extensions):
        preview = preview_path_for(asset, preview_extension)
        entries.append((asset.path.name, preview.name if preview.is_file() else None))

    destination = directory / config.output_filename
    write_text_atomic(destination, render_catalog(entries, config.title))
    LOGGER.info("目录页已写入 %s（%d 个模型）", destination, len(entries))
    return destination
