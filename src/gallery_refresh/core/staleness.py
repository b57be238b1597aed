"""预览图过期判断。"""

from __future__ import annotations

from gallery_refresh.core.models import Asset, PreviewArtifact


def is_stale(asset: Asset, preview: PreviewArtifact) -> bool:
    """判断预览图是否需要重新生成。

    预览图不存在时视为过期；否则仅当模型的修改时间严格晚于预览图时才过期，
    时间戳相同视为最新。文件系统时间精度较粗时可能误判为最新，这是已知限制。
    """

    if not preview.exists or preview.modified_at is None:
        return True
    return asset.modified_at > preview.modified_at
