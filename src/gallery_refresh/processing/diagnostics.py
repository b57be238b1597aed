"""渲染诊断输出的捕获。

渲染器（及其依赖的本地库）会向 stderr 输出大量无关紧要的信息。DiagnosticSink 在单个模型
渲染期间把 Python 层的 ``sys.stderr`` 与文件描述符 2 一并重定向到日志文件，结束后无论成功、
失败还是异常都会恢复原始输出，并追加一行 ``SUCCESS: <name>`` / ``FAILED: <name>: <reason>``，
使日志同时充当原始输出存档与可 grep 的状态清单。

重定向的是进程级共享资源，同一时间只能有一个渲染持有，由模块级锁保证。
"""

from __future__ import annotations

import contextlib
import logging
import os
import sys
import threading
from pathlib import Path
from typing import Callable, Iterator, Optional, TextIO, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_REDIRECT_LOCK = threading.Lock()


class CaptureScope:
    """单次捕获的状态，供被包裹的代码报告已处理的失败。"""

    def __init__(self, asset_name: str) -> None:
        self.asset_name = asset_name
        self.failure_reason: Optional[str] = None

    def fail(self, reason: str) -> None:
        self.failure_reason = reason

    @property
    def failed(self) -> bool:
        return self.failure_reason is not None


class DiagnosticSink:
    """每次运行一个的诊断日志，运行开始时清空。"""

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path
        self._handle: Optional[TextIO] = None

    def open(self) -> "DiagnosticSink":
        # 先截断，再以追加模式打开：本地库经 fd 2 写入的内容与状态行共享文件末尾。
        self.log_path.write_text("", encoding="utf-8")
        self._handle = self.log_path.open("a", encoding="utf-8", errors="replace")
        return self

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "DiagnosticSink":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    @contextlib.contextmanager
    def capture(self, asset_name: str) -> Iterator[CaptureScope]:
        """在 with 块内捕获诊断输出，退出后写入一行状态记录。"""

        handle = self._require_handle()
        scope = CaptureScope(asset_name)
        with _REDIRECT_LOCK:
            try:
                with _redirect_stderr(handle):
                    yield scope
            except BaseException as exc:
                if not scope.failed:
                    scope.fail(str(exc) or type(exc).__name__)
                raise
            finally:
                self._write_status(scope)

    def run(self, asset_name: str, work_fn: Callable[[], T]) -> T:
        """函数形式的 capture：返回 work_fn 的结果，异常记为 FAILED 后继续抛出。"""

        with self.capture(asset_name):
            return work_fn()

    def _write_status(self, scope: CaptureScope) -> None:
        handle = self._require_handle()
        if scope.failed:
            line = f"FAILED: {scope.asset_name}: {scope.failure_reason}"
        else:
            line = f"SUCCESS: {scope.asset_name}"
        handle.write(line + "\n")
        handle.flush()

    def _require_handle(self) -> TextIO:
        if self._handle is None:
            raise RuntimeError("DiagnosticSink 尚未打开")
        return self._handle


@contextlib.contextmanager
def _redirect_stderr(handle: TextIO) -> Iterator[None]:
    """同时重定向 sys.stderr 与文件描述符 2，退出时必定恢复。"""

    _flush_quietly(sys.stderr)
    handle.flush()

    saved_fd: Optional[int] = None
    try:
        saved_fd = os.dup(2)
    except OSError:
        LOGGER.debug("无法复制文件描述符 2，仅重定向 sys.stderr")

    try:
        if saved_fd is not None:
            os.dup2(handle.fileno(), 2)
        with contextlib.redirect_stderr(handle):
            yield
    finally:
        _flush_quietly(sys.stderr)
        handle.flush()
        if saved_fd is not None:
            os.dup2(saved_fd, 2)
            os.close(saved_fd)


def _flush_quietly(stream: Optional[TextIO]) -> None:
    if stream is None:
        return
    try:
        stream.flush()
    except (OSError, ValueError):
        pass
