"""状态输出的数据模型。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(slots=True)
class StatusUpdate:
    """批处理及流水线各阶段的状态信息。"""

    message: str
    stage: str = "batch"
    completed: int = 0
    total: int = 0


StatusCallback = Optional[Callable[[StatusUpdate], None]]


def emit_status(callback: StatusCallback, message: str, *, stage: str = "batch", completed: int = 0, total: int = 0) -> None:
    if not callback:
        return
    callback(StatusUpdate(message=message, stage=stage, completed=completed, total=total))
