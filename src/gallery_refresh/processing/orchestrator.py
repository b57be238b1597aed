"""流水线编排：批量生成预览图 → 生成目录页 → 发布。

每次调用都是一次线性执行，状态只前进不回退；失败不会自动重试，也不会自动修复
（例如不会在推送被拒后先 pull 再重试），需要外部重新调用。
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from gallery_refresh.core.models import PipelineResult, StepResult
from gallery_refresh.core.progress import StatusCallback, emit_status
from gallery_refresh.processing.pipeline import BatchRunner
from gallery_refresh.processing.steps import OptionalStep

LOGGER = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    BATCHING = "batching"
    CATALOG = "catalog"
    SKIP_CATALOG = "skip-catalog"
    PUBLISH = "publish"
    SKIP_PUBLISH = "skip-publish"
    DONE = "done"


class PipelineOrchestrator:
    """串联批处理与两个可选协作步骤，汇总为 PipelineResult。"""

    def __init__(
        self,
        batch_runner: BatchRunner,
        directory: Path,
        catalog_step: Optional[OptionalStep] = None,
        publish_step: Optional[OptionalStep] = None,
        status_callback: StatusCallback = None,
    ) -> None:
        self.batch_runner = batch_runner
        self.directory = directory
        self.catalog_step = catalog_step
        self.publish_step = publish_step
        self.status_callback = status_callback
        self.state = PipelineState.IDLE

    def run(self) -> PipelineResult:
        if self.state is not PipelineState.IDLE:
            raise RuntimeError("PipelineOrchestrator 只能运行一次")

        self.state = PipelineState.BATCHING
        batch = self.batch_runner.run()
        if batch.failed:
            LOGGER.warning("%d 个模型处理失败，继续执行后续步骤", batch.failed)

        catalog = self._run_step(self.catalog_step, PipelineState.CATALOG, PipelineState.SKIP_CATALOG)
        if catalog is not None and not catalog.succeeded:
            # 目录页失败只记录，不影响发布。
            LOGGER.warning("目录页生成失败：%s", _describe_step(catalog))

        publish = self._run_step(self.publish_step, PipelineState.PUBLISH, PipelineState.SKIP_PUBLISH)
        if publish is not None and not publish.succeeded:
            LOGGER.error("发布失败：%s", _describe_step(publish))

        self.state = PipelineState.DONE
        return PipelineResult(
            batch=batch,
            catalog_ran=catalog is not None,
            publish_attempted=publish is not None,
            publish_succeeded=None if publish is None else publish.succeeded,
            catalog_step=catalog,
            publish_step=publish,
        )

    def _run_step(
        self,
        step: Optional[OptionalStep],
        run_state: PipelineState,
        skip_state: PipelineState,
    ) -> Optional[StepResult]:
        stage = run_state.value
        if step is None or not step.is_available(self.directory):
            self.state = skip_state
            name = step.name if step is not None else stage
            emit_status(self.status_callback, f"{name}：未配置，跳过", stage=stage)
            return None

        self.state = run_state
        result = step.invoke(self.directory)
        if result.succeeded:
            emit_status(self.status_callback, f"{step.name}：成功", stage=stage)
        else:
            emit_status(self.status_callback, f"{step.name}：失败（{_describe_step(result)}）", stage=stage)
        return result


def _describe_step(result: StepResult) -> str:
    if result.returncode is None:
        return result.message or "无法启动"
    return f"退出码 {result.returncode}"
