"""模型预览渲染。

流水线只依赖 ``Renderer`` 协议：给定模型路径与像素尺寸，返回一张 PIL Image 或抛出异常。
``TrimeshRenderer`` 是默认实现，用 trimesh 加载场景，numpy 计算平面着色，
Pillow 以画家算法逐个三角形光栅化，全程只用 CPU。
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Protocol, Tuple

import numpy as np
import trimesh
from PIL import Image, ImageDraw

from gallery_refresh.core.config import RenderConfig
from gallery_refresh.core.exceptions import EmptyRenderError, EmptySceneError, RenderError
from gallery_refresh.utils.colors import parse_hex_color, shade_colors

LOGGER = logging.getLogger(__name__)

LIGHT_DIRECTION = np.array([0.35, 0.55, 1.0])
AMBIENT = 0.25
FIT_MARGIN = 0.85


class Renderer(Protocol):
    def render(self, path: Path, size: Tuple[int, int]) -> Image.Image:
        """渲染模型，失败时抛出异常。"""


class TrimeshRenderer:
    """基于 trimesh + Pillow 的软件渲染器。"""

    def __init__(self, config: RenderConfig) -> None:
        self.config = config
        self.background = parse_hex_color(config.background_color)
        self.mesh_color = parse_hex_color(config.mesh_color)
        self.light = LIGHT_DIRECTION / np.linalg.norm(LIGHT_DIRECTION)

    def render(self, path: Path, size: Tuple[int, int]) -> Image.Image:
        triangles = load_triangles(path)
        rotated = triangles @ _view_rotation(self.config.azimuth_deg, self.config.elevation_deg).T

        normals = np.cross(rotated[:, 1] - rotated[:, 0], rotated[:, 2] - rotated[:, 0])
        lengths = np.linalg.norm(normals, axis=1)
        visible = lengths > 0
        if not visible.any():
            raise EmptyRenderError(f"模型只包含退化三角形: {path.name}")
        rotated = rotated[visible]
        normals = normals[visible] / lengths[visible][:, None]

        # 双面光照，背面三角形同样可见。
        intensities = AMBIENT + (1.0 - AMBIENT) * np.abs(normals @ self.light)
        colors = shade_colors(self.mesh_color, intensities)

        screen = _project_to_screen(rotated, size)
        order = np.argsort(rotated[:, :, 2].mean(axis=1))

        image = Image.new("RGB", size, self.background)
        draw = ImageDraw.Draw(image)
        for index in order:
            polygon = [tuple(point) for point in screen[index]]
            draw.polygon(polygon, fill=tuple(int(c) for c in colors[index]))

        LOGGER.debug("渲染完成 %s：%d 个三角形", path.name, len(order))
        return image


def load_triangles(path: Path) -> np.ndarray:
    """加载模型并返回世界坐标下的三角形数组，形状为 (N, 3, 3)。"""

    try:
        scene = trimesh.load(str(path), force="scene")
    except Exception as exc:  # noqa: BLE001 - trimesh 的加载器会抛出各种异常类型
        raise RenderError(f"无法加载模型 {path.name}: {exc}") from exc

    parts: list[np.ndarray] = []
    for node_name in scene.graph.nodes_geometry:
        transform, geometry_name = scene.graph[node_name]
        geometry = scene.geometry.get(geometry_name)
        if not isinstance(geometry, trimesh.Trimesh) or len(geometry.faces) == 0:
            continue
        vertices = trimesh.transform_points(np.asarray(geometry.vertices, dtype=np.float64), transform)
        parts.append(vertices[np.asarray(geometry.faces)])

    if not parts:
        raise EmptySceneError(f"模型中没有可渲染的网格: {path.name}")
    return np.concatenate(parts, axis=0)


def _view_rotation(azimuth_deg: float, elevation_deg: float) -> np.ndarray:
    """先绕 Y 轴转方位角，再绕 X 轴转仰角；相机位于 +Z 方向看向原点。"""

    az = math.radians(azimuth_deg)
    el = math.radians(elevation_deg)
    rot_y = np.array(
        [
            [math.cos(az), 0.0, math.sin(az)],
            [0.0, 1.0, 0.0],
            [-math.sin(az), 0.0, math.cos(az)],
        ]
    )
    rot_x = np.array(
        [
            [1.0, 0.0, 0.0],
            [0.0, math.cos(el), -math.sin(el)],
            [0.0, math.sin(el), math.cos(el)],
        ]
    )
    return rot_x @ rot_y


def _project_to_screen(triangles: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """正交投影并缩放到画布中心，返回 (N, 3, 2) 的像素坐标。"""

    width, height = size
    points = triangles[:, :, :2].reshape(-1, 2)
    low = points.min(axis=0)
    high = points.max(axis=0)
    extent = float((high - low).max())
    if extent <= 0:
        raise EmptyRenderError("模型投影后尺寸为 0")

    scale = FIT_MARGIN * min(width, height) / extent
    center = (low + high) / 2.0

    xy = triangles[:, :, :2] - center
    screen = np.empty_like(xy)
    screen[:, :, 0] = width / 2.0 + xy[:, :, 0] * scale
    screen[:, :, 1] = height / 2.0 - xy[:, :, 1] * scale
    return screen
