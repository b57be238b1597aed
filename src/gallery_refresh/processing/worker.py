"""单个模型的处理单元。"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from PIL import Image

from gallery_refresh.core.config import PipelineConfig
from gallery_refresh.core.exceptions import RenderError
from gallery_refresh.core.models import Asset, ProcessingOutcome
from gallery_refresh.core.output_manager import inspect_preview, save_preview
from gallery_refresh.core.staleness import is_stale
from gallery_refresh.processing.diagnostics import DiagnosticSink
from gallery_refresh.processing.renderer import Renderer
from gallery_refresh.processing.validation import ensure_usable_render

LOGGER = logging.getLogger(__name__)


class AssetProcessor:
    """驱动渲染器处理单个模型，并把所有失败归类为 ProcessingOutcome。"""

    def __init__(self, renderer: Renderer, sink: DiagnosticSink, config: PipelineConfig) -> None:
        self.renderer = renderer
        self.sink = sink
        self.config = config

    def process(self, asset: Asset) -> ProcessingOutcome:
        """处理单个模型。除 KeyboardInterrupt 等 BaseException 外不会抛出异常。"""

        preview = inspect_preview(asset, self.config.preview_extension)
        if not is_stale(asset, preview):
            LOGGER.debug("预览图已是最新：%s", preview.path)
            return ProcessingOutcome.skipped(asset, preview.path)

        size = tuple(self.config.render.size)
        with self.sink.capture(asset.path.name) as scope:
            try:
                image = self._render(asset, size)
                try:
                    save_preview(ensure_usable_render(image, size), preview.path)
                finally:
                    _close_if_needed(image)
            except Exception as exc:  # noqa: BLE001 - 单个模型失败不能中断批处理
                reason = _describe(exc)
                scope.fail(reason)
                LOGGER.debug("处理失败 %s: %s", asset.path.name, reason, exc_info=True)
                if preview.exists:
                    _discard_outdated_preview(preview.path)
                return ProcessingOutcome.failed(asset, reason)

        return ProcessingOutcome.generated(asset, preview.path)

    def _render(self, asset: Asset, size: tuple[int, int]) -> Image.Image:
        timeout = self.config.render.render_timeout
        if timeout is None:
            return self.renderer.render(asset.path, size)
        return _render_with_timeout(self.renderer, asset, size, timeout)


def _render_with_timeout(renderer: Renderer, asset: Asset, size: tuple[int, int], timeout: float) -> Image.Image:
    """在守护线程中渲染，超时后判定失败；卡住的线程无法终止，只能放弃。"""

    result: dict[str, object] = {}

    def target() -> None:
        try:
            result["image"] = renderer.render(asset.path, size)
        except BaseException as exc:  # noqa: BLE001 - 转交给调用线程
            result["error"] = exc

    thread = threading.Thread(target=target, name=f"render-{asset.name}", daemon=True)
    thread.start()
    thread.join(timeout)
    if thread.is_alive():
        LOGGER.warning(
            "渲染线程 %s 超时后被放弃但仍在运行，其后续输出可能混入之后模型的诊断日志",
            thread.name,
        )
        raise RenderError(f"渲染超时（{timeout:g} 秒）")

    error: Optional[BaseException] = result.get("error")  # type: ignore[assignment]
    if error is not None:
        raise error
    return result["image"]  # type: ignore[return-value]


def _discard_outdated_preview(path: Path) -> None:
    """失败的模型不保留旧预览图，避免下次运行把它当成最新结果跳过。"""

    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        LOGGER.error("无法删除过期的预览图 %s: %s", path, exc)
        return
    LOGGER.info("已删除过期的预览图 %s", path)


def _close_if_needed(image: object) -> None:
    if isinstance(image, Image.Image):
        image.close()


def _describe(exc: BaseException) -> str:
    message = str(exc).strip()
    if not message:
        return type(exc).__name__
    return f"{type(exc).__name__}: {message}"
