"""预览图路径推导与原子写入。"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from PIL import Image

from gallery_refresh.core.exceptions import PreviewWriteError
from gallery_refresh.core.models import Asset, PreviewArtifact

LOGGER = logging.getLogger(__name__)


def preview_path_for(asset: Asset, preview_extension: str) -> Path:
    """预览图与模型位于同一目录，文件名为 <逻辑名><扩展名>。"""

    return asset.path.with_name(f"{asset.name}{preview_extension}")


def inspect_preview(asset: Asset, preview_extension: str) -> PreviewArtifact:
    """读取预览图在磁盘上的状态。"""

    path = preview_path_for(asset, preview_extension)
    try:
        stat = path.stat()
    except FileNotFoundError:
        return PreviewArtifact(path=path, exists=False)
    return PreviewArtifact(path=path, exists=True, modified_at=stat.st_mtime)


def save_preview(image: Image.Image, destination: Path) -> None:
    """将 PIL Image 原子写入磁盘。

    先写入同目录下的临时文件并 fsync，再通过 os.replace 替换目标文件，
    中途失败不会在目标路径留下残缺文件。
    """

    image_format = Image.registered_extensions().get(destination.suffix.lower())
    if not image_format:
        raise PreviewWriteError(f"不支持的输出格式: {destination.suffix}")

    image_to_save = image
    if image_format == "JPEG" and image.mode != "RGB":
        image_to_save = image.convert("RGB")

    def write(handle) -> None:
        image_to_save.save(handle, format=image_format)

    _write_atomic(destination, write, binary=True)


def write_text_atomic(destination: Path, text: str) -> None:
    """以 UTF-8 原子写入文本文件。"""

    _write_atomic(destination, lambda handle: handle.write(text), binary=False)


def _write_atomic(destination: Path, writer, *, binary: bool) -> None:
    fd, tmp_name = tempfile.mkstemp(prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent)
    tmp_path = Path(tmp_name)
    try:
        mode = "wb" if binary else "w"
        kwargs = {} if binary else {"encoding": "utf-8", "newline": ""}
        with os.fdopen(fd, mode, **kwargs) as handle:
            writer(handle)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, destination)
    except (OSError, ValueError) as exc:
        tmp_path.unlink(missing_ok=True)
        raise PreviewWriteError(f"写入文件失败: {destination}") from exc
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    LOGGER.debug("已写入 %s", destination)
