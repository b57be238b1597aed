"""流水线任务的配置模型。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Tuple

from PIL import Image

from gallery_refresh.core.exceptions import InvalidConfigurationError
from gallery_refresh.utils.colors import parse_hex_color


@dataclass(slots=True)
class RenderConfig:
    """预览图渲染相关配置。"""

    size: Tuple[int, int] = (512, 512)
    background_color: str = "#1e1e24"
    mesh_color: str = "#c8c8d2"
    elevation_deg: float = 25.0
    azimuth_deg: float = 35.0
    render_timeout: Optional[float] = None


@dataclass(slots=True)
class StepConfig:
    """可选外部步骤脚本的位置（相对于目标目录）。"""

    catalog_script: Path = Path("generate_catalog.py")
    publish_script: Path = Path("publish.py")


@dataclass(slots=True)
class CatalogConfig:
    """内置目录页生成器配置。"""

    output_filename: str = "index.html"
    title: str = "3D Model Gallery"


@dataclass(slots=True)
class PublishConfig:
    """内置 git 发布器配置。"""

    remote: str = "origin"
    branch: Optional[str] = None
    message: str = "Update gallery"


@dataclass(slots=True)
class PipelineConfig:
    """单次流水线调用的配置集合。"""

    directory: Path
    asset_extensions: Sequence[str] = field(default_factory=lambda: (".glb",))
    preview_extension: str = ".png"
    log_filename: str = "thumbnail_render.log"
    render: RenderConfig = field(default_factory=RenderConfig)
    steps: StepConfig = field(default_factory=StepConfig)
    report_filename: Optional[str] = None

    @property
    def log_path(self) -> Path:
        return self.directory / self.log_filename

    def validate(self) -> None:
        """检查配置是否合法，不合法时抛出 InvalidConfigurationError。"""

        if not self.directory.is_dir():
            raise InvalidConfigurationError(f"目标目录不存在: {self.directory}")

        if not self.asset_extensions:
            raise InvalidConfigurationError("至少需要一个模型扩展名")
        for ext in self.asset_extensions:
            if not ext.startswith(".") or len(ext) < 2:
                raise InvalidConfigurationError(f"扩展名必须形如 .glb: {ext}")

        if self.preview_extension.lower() in {ext.lower() for ext in self.asset_extensions}:
            raise InvalidConfigurationError("预览图扩展名不能与模型扩展名相同")
        Image.init()
        if self.preview_extension.lower() not in Image.registered_extensions():
            raise InvalidConfigurationError(f"不支持的预览图格式: {self.preview_extension}")

        width, height = self.render.size
        if width <= 0 or height <= 0:
            raise InvalidConfigurationError("渲染尺寸必须大于 0")
        if self.render.render_timeout is not None and self.render.render_timeout <= 0:
            raise InvalidConfigurationError("渲染超时时间必须大于 0")

        parse_hex_color(self.render.background_color)
        parse_hex_color(self.render.mesh_color)
