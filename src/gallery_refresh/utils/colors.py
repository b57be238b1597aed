"""颜色工具函数。"""

from __future__ import annotations

import re
from typing import Tuple

import numpy as np

from gallery_refresh.core.exceptions import InvalidConfigurationError

HEX_COLOR_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

RGB = Tuple[int, int, int]


def parse_hex_color(value: str) -> RGB:
    """将 HEX 字符串解析为 RGB 三元组。"""

    if not value:
        raise InvalidConfigurationError("颜色值不能为空")

    match = HEX_COLOR_RE.match(value.strip())
    if not match:
        raise InvalidConfigurationError(f"无法解析颜色值: {value}")

    hex_value = match.group(1)
    if len(hex_value) == 3:
        hex_value = "".join(ch * 2 for ch in hex_value)

    return int(hex_value[0:2], 16), int(hex_value[2:4], 16), int(hex_value[4:6], 16)


def shade_colors(base: RGB, intensities: np.ndarray) -> np.ndarray:
    """按光照强度（0~1）批量缩放基础色，返回 (N, 3) 的 uint8 数组。"""

    factors = np.clip(np.asarray(intensities, dtype=np.float64), 0.0, 1.0)[:, None]
    shaded = factors * np.asarray(base, dtype=np.float64)[None, :]
    return np.clip(np.rint(shaded), 0, 255).astype(np.uint8)
