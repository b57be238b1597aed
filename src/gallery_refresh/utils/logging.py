"""日志配置。"""

from __future__ import annotations

import logging

NOISY_LOGGERS = ("trimesh", "PIL")


def setup_logging(level: int = logging.INFO) -> None:
    """初始化项目日志配置，日志统一输出到 stderr。

    trimesh 与 Pillow 的日志在非调试模式下只保留警告以上级别。
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    third_party_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)
