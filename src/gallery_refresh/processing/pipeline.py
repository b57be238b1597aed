"""批处理：扫描目录、逐个生成预览图并汇总结果。"""

from __future__ import annotations

import logging

from gallery_refresh.core.config import PipelineConfig
from gallery_refresh.core.models import BatchSummary, OutcomeStatus, ProcessingOutcome
from gallery_refresh.core.progress import StatusCallback, emit_status
from gallery_refresh.core.report import write_csv_report
from gallery_refresh.core.scanner import collect_assets
from gallery_refresh.processing.worker import AssetProcessor

LOGGER = logging.getLogger(__name__)

STATUS_SYMBOLS = {
    OutcomeStatus.GENERATED: "✓",
    OutcomeStatus.FAILED: "✗",
    OutcomeStatus.SKIPPED: "·",
}


class BatchRunner:
    """按文件名顺序串行处理目录中的全部模型。

    渲染共享同一个设备与进程级 stderr，因此这里刻意不做并发。
    """

    def __init__(
        self,
        processor: AssetProcessor,
        config: PipelineConfig,
        status_callback: StatusCallback = None,
    ) -> None:
        self.processor = processor
        self.config = config
        self.status_callback = status_callback

    def run(self) -> BatchSummary:
        LOGGER.info("开始扫描 %s", self.config.directory)
        assets = collect_assets(self.config.directory, self.config.asset_extensions)
        total = len(assets)
        LOGGER.info("发现 %d 个模型文件", total)

        if total == 0:
            emit_status(self.status_callback, "没有找到模型文件", total=0)
            return BatchSummary()

        outcomes: list[ProcessingOutcome] = []
        for index, asset in enumerate(assets, start=1):
            try:
                outcome = self.processor.process(asset)
            except Exception as exc:  # noqa: BLE001
                LOGGER.exception("处理 %s 时出现未预期的异常", asset.path.name)
                outcome = ProcessingOutcome.failed(asset, f"{type(exc).__name__}: {exc}")
            outcomes.append(outcome)
            emit_status(self.status_callback, format_outcome(outcome), completed=index, total=total)

        summary = BatchSummary(outcomes=tuple(outcomes))
        emit_status(
            self.status_callback,
            f"生成 {summary.generated} 个，失败 {summary.failed} 个，跳过 {summary.skipped} 个",
            stage="summary",
            completed=total,
            total=total,
        )
        self._write_report(summary)
        return summary

    def _write_report(self, summary: BatchSummary) -> None:
        if not self.config.report_filename:
            return
        try:
            path = write_csv_report(summary.outcomes, self.config.directory, self.config.report_filename)
        except OSError as exc:
            LOGGER.error("写入报告失败：%s", exc)
            return
        LOGGER.info("报告已写入 %s", path)


def format_outcome(outcome: ProcessingOutcome) -> str:
    """单行状态：符号 + 文件名（失败时附带原因）。"""

    line = f"{STATUS_SYMBOLS[outcome.status]} {outcome.asset.path.name}"
    if outcome.status is OutcomeStatus.FAILED and outcome.reason:
        line += f"  ({outcome.reason})"
    return line
