"""渲染结果校验。"""

from __future__ import annotations

from typing import Tuple

import numpy as np
from PIL import Image

from gallery_refresh.core.exceptions import EmptyRenderError


def is_blank(image: Image.Image) -> bool:
    """所有通道都是同一个值（纯色画面）时视为空白。"""

    array = np.asarray(image)
    if array.size == 0:
        return True
    if array.ndim == 2:
        array = array[:, :, None]
    flat = array.reshape(-1, array.shape[-1])
    return bool((flat == flat[0]).all())


def ensure_usable_render(image: object, expected_size: Tuple[int, int]) -> Image.Image:
    """校验渲染器输出，不可用时抛出 EmptyRenderError。"""

    if not isinstance(image, Image.Image):
        raise EmptyRenderError(f"渲染器未返回图像: {type(image).__name__}")

    width, height = image.size
    if width == 0 or height == 0:
        raise EmptyRenderError("渲染结果尺寸为 0")
    if image.size != tuple(expected_size):
        raise EmptyRenderError(f"渲染结果尺寸不符: {image.size} != {tuple(expected_size)}")
    if is_blank(image):
        raise EmptyRenderError("渲染结果为空白画面")
    return image
