"""测试单个模型处理与批处理：增量跳过、失败隔离、计数与日志。"""

from __future__ import annotations

import csv
import logging
import os
import sys
import time
from pathlib import Path

from PIL import Image, ImageDraw

from gallery_refresh.core.config import PipelineConfig, RenderConfig
from gallery_refresh.core.exceptions import RenderError
from gallery_refresh.core.models import OutcomeStatus
from gallery_refresh.core.progress import StatusUpdate
from gallery_refresh.processing.diagnostics import DiagnosticSink
from gallery_refresh.processing.pipeline import BatchRunner
from gallery_refresh.processing.worker import AssetProcessor

OLD_MTIME = 1_000_000.0


class FakeRenderer:
    """内容以 corrupt 开头的文件渲染失败，blank 开头的返回纯色图，其余画一个方块。"""

    def __init__(self) -> None:
        self.calls: list[Path] = []

    def render(self, path: Path, size: tuple[int, int]) -> Image.Image:
        self.calls.append(path)
        print(f"loader noise for {path.name}", file=sys.stderr)
        content = path.read_bytes()
        if content.startswith(b"corrupt"):
            raise RenderError(f"cannot parse {path.name}")
        image = Image.new("RGB", size, "black")
        if not content.startswith(b"blank"):
            ImageDraw.Draw(image).rectangle([size[0] // 4, size[1] // 4, size[0] // 2, size[1] // 2], fill="white")
        return image


def write_asset(directory: Path, name: str, content: bytes = b"model", mtime: float = OLD_MTIME) -> Path:
    path = directory / name
    path.write_bytes(content)
    os.utime(path, (mtime, mtime))
    return path


def make_config(directory: Path, **overrides) -> PipelineConfig:
    return PipelineConfig(directory=directory, render=RenderConfig(size=(32, 32)), **overrides)


def run_batch(config: PipelineConfig, renderer: FakeRenderer, updates: list[StatusUpdate] | None = None):
    with DiagnosticSink(config.log_path) as sink:
        runner = BatchRunner(AssetProcessor(renderer, sink, config), config, status_callback=updates.append if updates is not None else None)
        return runner.run()


def test_empty_directory_yields_empty_summary(tmp_path: Path) -> None:
    (tmp_path / "readme.txt").write_text("no models here")

    summary = run_batch(make_config(tmp_path), FakeRenderer())

    assert summary.is_empty
    assert (summary.generated, summary.failed, summary.skipped) == (0, 0, 0)


def test_newer_asset_regenerates_preview_and_logs_success(tmp_path: Path) -> None:
    write_asset(tmp_path, "model.glb", mtime=2_000_000.0)
    preview = tmp_path / "model.png"
    Image.new("RGB", (4, 4), "red").save(preview)
    os.utime(preview, (OLD_MTIME, OLD_MTIME))

    config = make_config(tmp_path)
    summary = run_batch(config, FakeRenderer())

    assert [o.status for o in summary.outcomes] == [OutcomeStatus.GENERATED]
    with Image.open(preview) as img:
        assert img.size == (32, 32)
    assert preview.stat().st_mtime > OLD_MTIME

    log_lines = config.log_path.read_text(encoding="utf-8").splitlines()
    assert "SUCCESS: model.glb" in log_lines
    assert "loader noise for model.glb" in log_lines


def test_second_run_is_idempotent(tmp_path: Path) -> None:
    for name in ["a.glb", "b.glb", "c.glb"]:
        write_asset(tmp_path, name)
    config = make_config(tmp_path)

    first = run_batch(config, FakeRenderer())
    renderer = FakeRenderer()
    second = run_batch(config, renderer)

    assert first.generated == 3
    assert second.generated == 0
    assert second.skipped == 3
    assert all(o.status is OutcomeStatus.SKIPPED for o in second.outcomes)
    assert renderer.calls == []
    # 全部跳过时日志被截断且没有新的状态行。
    assert config.log_path.read_text(encoding="utf-8") == ""


def test_failure_is_isolated_and_leaves_no_preview(tmp_path: Path) -> None:
    write_asset(tmp_path, "a.glb")
    write_asset(tmp_path, "b.glb", content=b"corrupt data")
    write_asset(tmp_path, "c.glb")
    config = make_config(tmp_path)

    summary = run_batch(config, FakeRenderer())

    assert [o.asset.path.name for o in summary.outcomes] == ["a.glb", "b.glb", "c.glb"]
    assert [o.status for o in summary.outcomes] == [
        OutcomeStatus.GENERATED,
        OutcomeStatus.FAILED,
        OutcomeStatus.GENERATED,
    ]
    failed = summary.outcomes[1]
    assert failed.reason == "RenderError: cannot parse b.glb"
    assert not failed.has_preview
    assert not (tmp_path / "b.png").exists()
    assert not [p for p in tmp_path.iterdir() if p.suffix == ".tmp"]

    log_lines = config.log_path.read_text(encoding="utf-8").splitlines()
    assert "FAILED: b.glb: RenderError: cannot parse b.glb" in log_lines
    assert summary.preview_names() == ["a.glb", "c.glb"]


def test_blank_render_counts_as_failure(tmp_path: Path) -> None:
    write_asset(tmp_path, "empty.glb", content=b"blank scene")

    summary = run_batch(make_config(tmp_path), FakeRenderer())

    assert summary.failed == 1
    assert "EmptyRenderError" in summary.outcomes[0].reason
    assert not (tmp_path / "empty.png").exists()


def test_counts_always_sum_to_total(tmp_path: Path) -> None:
    write_asset(tmp_path, "fresh.glb")
    write_asset(tmp_path, "bad.glb", content=b"corrupt")
    write_asset(tmp_path, "done.glb")
    done_preview = tmp_path / "done.png"
    Image.new("RGB", (4, 4), "red").save(done_preview)
    os.utime(done_preview, (OLD_MTIME, OLD_MTIME))  # 时间相同 -> 跳过

    summary = run_batch(make_config(tmp_path), FakeRenderer())

    assert (summary.generated, summary.failed, summary.skipped) == (1, 1, 1)
    assert summary.generated + summary.failed + summary.skipped == summary.total == 3


def test_status_updates_use_three_symbols(tmp_path: Path) -> None:
    write_asset(tmp_path, "a.glb")
    write_asset(tmp_path, "b.glb", content=b"corrupt")
    updates: list[StatusUpdate] = []

    config = make_config(tmp_path)
    run_batch(config, FakeRenderer(), updates)
    second_updates: list[StatusUpdate] = []
    run_batch(config, FakeRenderer(), second_updates)

    batch_lines = [u.message for u in updates if u.stage == "batch"]
    assert batch_lines[0] == "✓ a.glb"
    assert batch_lines[1].startswith("✗ b.glb")
    assert updates[-1].stage == "summary"
    assert [u.message for u in second_updates if u.stage == "batch"][0] == "· a.glb"


def test_unexpected_processor_error_does_not_abort_batch(tmp_path: Path) -> None:
    write_asset(tmp_path, "a.glb")
    write_asset(tmp_path, "b.glb")
    config = make_config(tmp_path)

    class ExplodingProcessor:
        def process(self, asset):
            raise RuntimeError("bug")

    summary = BatchRunner(ExplodingProcessor(), config).run()

    assert summary.failed == 2
    assert summary.outcomes[0].reason == "RuntimeError: bug"


def test_render_timeout_marks_failure(tmp_path: Path, caplog) -> None:
    write_asset(tmp_path, "slow.glb")
    config = PipelineConfig(directory=tmp_path, render=RenderConfig(size=(32, 32), render_timeout=0.05))

    class SlowRenderer(FakeRenderer):
        def render(self, path: Path, size: tuple[int, int]) -> Image.Image:
            time.sleep(1.0)
            return super().render(path, size)

    caplog.set_level(logging.WARNING, logger="gallery_refresh.processing.worker")
    summary = run_batch(config, SlowRenderer())

    assert summary.failed == 1
    assert "渲染超时" in summary.outcomes[0].reason
    assert not (tmp_path / "slow.png").exists()
    assert any(
        record.levelno == logging.WARNING and "render-slow" in record.getMessage() for record in caplog.records
    )


def test_csv_report_written_when_requested(tmp_path: Path) -> None:
    write_asset(tmp_path, "a.glb")
    write_asset(tmp_path, "b.glb", content=b"corrupt")

    run_batch(make_config(tmp_path, report_filename="report.csv"), FakeRenderer())

    with (tmp_path / "report.csv").open(encoding="utf-8") as handle:
        rows = list(csv.DictReader(handle))
    assert [row["status"] for row in rows] == ["generated", "failed"]
    assert rows[1]["reason"].startswith("RenderError")


def test_failed_asset_removes_outdated_preview(tmp_path: Path) -> None:
    write_asset(tmp_path, "b.glb", content=b"corrupt", mtime=2_000_000.0)
    preview = tmp_path / "b.png"
    Image.new("RGB", (4, 4), "red").save(preview)
    os.utime(preview, (OLD_MTIME, OLD_MTIME))

    summary = run_batch(make_config(tmp_path), FakeRenderer())

    outcome = summary.outcomes[0]
    assert outcome.status is OutcomeStatus.FAILED
    assert not outcome.has_preview
    assert summary.preview_names() == []
    assert not preview.exists()


def test_failed_asset_is_retried_on_next_run(tmp_path: Path) -> None:
    asset = write_asset(tmp_path, "b.glb", content=b"corrupt", mtime=2_000_000.0)
    preview = tmp_path / "b.png"
    Image.new("RGB", (4, 4), "red").save(preview)
    os.utime(preview, (OLD_MTIME, OLD_MTIME))
    config = make_config(tmp_path)

    run_batch(config, FakeRenderer())
    asset.write_bytes(b"model")
    os.utime(asset, (2_000_000.0, 2_000_000.0))
    summary = run_batch(config, FakeRenderer())

    assert [o.status for o in summary.outcomes] == [OutcomeStatus.GENERATED]
    assert preview.exists()
