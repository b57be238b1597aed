"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


@dataclass(slots=True, frozen=True)
class Asset:
    """扫描阶段得到的模型文件信息。"""

    path: Path
    modified_at: float

    @property
    def name(self) -> str:
        """不含扩展名的逻辑名称。"""

        return self.path.stem


@dataclass(slots=True, frozen=True)
class PreviewArtifact:
    """预览图在磁盘上的状态。不存在也是合法状态。"""

    path: Path
    exists: bool
    modified_at: Optional[float] = None


class OutcomeStatus(str, Enum):
    GENERATED = "generated"
    SKIPPED = "skipped-up-to-date"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class ProcessingOutcome:
    """记录单个模型的处理结果（用于状态输出/报告/目录页）。"""

    asset: Asset
    status: OutcomeStatus
    preview_path: Optional[Path] = None
    reason: Optional[str] = None
    has_preview: bool = False

    @classmethod
    def generated(cls, asset: Asset, preview_path: Path) -> "ProcessingOutcome":
        return cls(asset=asset, status=OutcomeStatus.GENERATED, preview_path=preview_path, has_preview=True)

    @classmethod
    def skipped(cls, asset: Asset, preview_path: Path) -> "ProcessingOutcome":
        return cls(asset=asset, status=OutcomeStatus.SKIPPED, preview_path=preview_path, has_preview=True)

    @classmethod
    def failed(cls, asset: Asset, reason: str) -> "ProcessingOutcome":
        return cls(asset=asset, status=OutcomeStatus.FAILED, reason=reason)


@dataclass(slots=True, frozen=True)
class BatchSummary:
    """批处理阶段的汇总结果，计数由结果列表派生。"""

    outcomes: tuple[ProcessingOutcome, ...] = ()

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def generated(self) -> int:
        return self._count(OutcomeStatus.GENERATED)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def is_empty(self) -> bool:
        return not self.outcomes

    def preview_names(self) -> list[str]:
        """返回拥有可用预览图的模型文件名。"""

        return [outcome.asset.path.name for outcome in self.outcomes if outcome.has_preview]

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)


@dataclass(slots=True, frozen=True)
class StepResult:
    """外部协作步骤（目录生成/发布）的执行结果。"""

    name: str
    ran: bool
    returncode: Optional[int] = None
    message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.ran and self.returncode == 0


@dataclass(slots=True, frozen=True)
class PipelineResult:
    """一次流水线调用的最终结果。"""

    batch: BatchSummary
    catalog_ran: bool = False
    publish_attempted: bool = False
    publish_succeeded: Optional[bool] = None
    catalog_step: Optional[StepResult] = None
    publish_step: Optional[StepResult] = None

    @property
    def publishing_configured(self) -> bool:
        return self.catalog_ran or self.publish_attempted

    @property
    def exit_code(self) -> int:
        if self.publish_attempted and not self.publish_succeeded:
            return 1
        return 0
