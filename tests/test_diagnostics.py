"""测试诊断输出捕获：重定向、恢复与状态行。"""

from __future__ import annotations

import os
import sys
import threading
import time
from pathlib import Path

import pytest

from gallery_refresh.processing.diagnostics import DiagnosticSink


def test_capture_redirects_python_and_native_stderr(tmp_path: Path) -> None:
    log_path = tmp_path / "render.log"
    original_stderr = sys.stderr

    with DiagnosticSink(log_path) as sink:
        with sink.capture("model.glb"):
            print("python noise", file=sys.stderr)
            os.write(2, b"native noise\n")
        assert sys.stderr is original_stderr

    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert "python noise" in lines
    assert "native noise" in lines
    assert lines[-1] == "SUCCESS: model.glb"


def test_handled_failure_is_logged_with_reason(tmp_path: Path) -> None:
    log_path = tmp_path / "render.log"

    with DiagnosticSink(log_path) as sink:
        with sink.capture("broken.glb") as scope:
            scope.fail("RenderError: bad header")

    assert log_path.read_text(encoding="utf-8").splitlines() == ["FAILED: broken.glb: RenderError: bad header"]


def test_stream_restored_when_work_raises(tmp_path: Path) -> None:
    log_path = tmp_path / "render.log"
    original_stderr = sys.stderr
    original_fd_target = os.fstat(2)

    def crash() -> None:
        raise ValueError("boom")

    with DiagnosticSink(log_path) as sink:
        with pytest.raises(ValueError, match="boom"):
            sink.run("crash.glb", crash)

        assert sys.stderr is original_stderr
        restored = os.fstat(2)
        assert (restored.st_dev, restored.st_ino) == (original_fd_target.st_dev, original_fd_target.st_ino)

        assert sink.run("ok.glb", lambda: 42) == 42

    assert log_path.read_text(encoding="utf-8").splitlines() == [
        "FAILED: crash.glb: boom",
        "SUCCESS: ok.glb",
    ]


def test_log_truncated_at_run_start(tmp_path: Path) -> None:
    log_path = tmp_path / "render.log"
    log_path.write_text("stale content from last run\n", encoding="utf-8")

    with DiagnosticSink(log_path) as sink:
        with sink.capture("a.glb"):
            pass

    assert log_path.read_text(encoding="utf-8") == "SUCCESS: a.glb\n"


def test_capture_requires_open_sink(tmp_path: Path) -> None:
    sink = DiagnosticSink(tmp_path / "render.log")

    with pytest.raises(RuntimeError):
        with sink.capture("a.glb"):
            pass


def test_concurrent_captures_do_not_overlap(tmp_path: Path) -> None:
    log_path = tmp_path / "render.log"
    guard = threading.Lock()
    active: list[str] = []
    overlaps: list[tuple[str, ...]] = []

    with DiagnosticSink(log_path) as sink:

        def work(name: str) -> None:
            with sink.capture(name):
                with guard:
                    if active:
                        overlaps.append((name, *active))
                    active.append(name)
                time.sleep(0.05)
                with guard:
                    active.remove(name)

        threads = [threading.Thread(target=work, args=(f"m{i}.glb",)) for i in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

    assert overlaps == []
    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert sorted(lines) == ["SUCCESS: m0.glb", "SUCCESS: m1.glb", "SUCCESS: m2.glb"]


def test_keyboard_interrupt_restores_streams_and_is_logged(tmp_path: Path) -> None:
    log_path = tmp_path / "render.log"
    original_stderr = sys.stderr
    original_fd_target = os.fstat(2)

    with DiagnosticSink(log_path) as sink:
        with pytest.raises(KeyboardInterrupt):
            with sink.capture("x.glb"):
                raise KeyboardInterrupt

        assert sys.stderr is original_stderr
        restored = os.fstat(2)
        assert (restored.st_dev, restored.st_ino) == (original_fd_target.st_dev, original_fd_target.st_ino)

    assert log_path.read_text(encoding="utf-8").splitlines() == ["FAILED: x.glb: KeyboardInterrupt"]
