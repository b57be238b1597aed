"""可选协作步骤（目录页生成、发布）。

编排器只依赖 ``OptionalStep`` 协议：先检查步骤在目标目录下是否可用，再显式传入工作目录执行，
不会修改进程的当前目录。
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Callable, Optional, Protocol

from gallery_refresh.core.models import StepResult

LOGGER = logging.getLogger(__name__)


class OptionalStep(Protocol):
    name: str

    def is_available(self, directory: Path) -> bool:
        ...

    def invoke(self, directory: Path) -> StepResult:
        ...


class ScriptStep:
    """位于目标目录固定相对路径下的外部可执行文件。"""

    def __init__(self, name: str, relative_path: Path) -> None:
        self.name = name
        self.relative_path = relative_path

    def script_path(self, directory: Path) -> Path:
        return directory / self.relative_path

    def is_available(self, directory: Path) -> bool:
        return self.script_path(directory).is_file()

    def invoke(self, directory: Path) -> StepResult:
        command = self.build_command(self.script_path(directory))
        LOGGER.info("执行步骤 %s: %s", self.name, " ".join(command))
        try:
            completed = subprocess.run(command, cwd=directory, check=False)
        except OSError as exc:
            LOGGER.error("无法启动步骤 %s: %s", self.name, exc)
            return StepResult(name=self.name, ran=True, returncode=None, message=str(exc))

        if completed.returncode != 0:
            LOGGER.warning("步骤 %s 退出码 %d", self.name, completed.returncode)
        return StepResult(name=self.name, ran=True, returncode=completed.returncode)

    @staticmethod
    def build_command(script: Path) -> list[str]:
        if script.suffix == ".py":
            return [sys.executable, str(script)]
        if os.access(script, os.X_OK):
            return [str(script)]
        return ["sh", str(script)]


class CallableStep:
    """把进程内的协作者（返回退出码的函数）包装成 OptionalStep。"""

    def __init__(
        self,
        name: str,
        func: Callable[[Path], int],
        available: Optional[Callable[[Path], bool]] = None,
    ) -> None:
        self.name = name
        self.func = func
        self.available = available

    def is_available(self, directory: Path) -> bool:
        if self.available is None:
            return True
        return self.available(directory)

    def invoke(self, directory: Path) -> StepResult:
        LOGGER.info("执行步骤 %s", self.name)
        try:
            returncode = self.func(directory)
        except Exception as exc:  # noqa: BLE001 - 与外部进程失败同样上报
            LOGGER.exception("步骤 %s 执行异常", self.name)
            return StepResult(name=self.name, ran=True, returncode=None, message=str(exc))
        return StepResult(name=self.name, ran=True, returncode=returncode)
