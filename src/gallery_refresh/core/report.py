"""报告生成工具。"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from gallery_refresh.core.models import ProcessingOutcome

HEADER = ["asset_path", "preview_path", "status", "reason"]


def write_csv_report(outcomes: Iterable[ProcessingOutcome], output_dir: Path, filename: str) -> Path:
    """将每个模型的处理结果写入 CSV 报告。"""

    report_path = output_dir / filename
    with report_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(HEADER)
        for record in outcomes:
            writer.writerow(
                [
                    str(record.asset.path),
                    str(record.preview_path) if record.preview_path else "",
                    record.status.value,
                    record.reason or "",
                ]
            )
    return report_path
