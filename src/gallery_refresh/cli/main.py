"""命令行入口。"""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.text import Text

from gallery_refresh.collaborators.catalog import build_catalog
from gallery_refresh.collaborators.publisher import publish
from gallery_refresh.core.config import CatalogConfig, PipelineConfig, PublishConfig, RenderConfig, StepConfig
from gallery_refresh.core.exceptions import GalleryRefreshError, InvalidConfigurationError
from gallery_refresh.core.models import PipelineResult
from gallery_refresh.core.progress import StatusUpdate
from gallery_refresh.processing.diagnostics import DiagnosticSink
from gallery_refresh.processing.orchestrator import PipelineOrchestrator
from gallery_refresh.processing.pipeline import BatchRunner
from gallery_refresh.processing.renderer import TrimeshRenderer
from gallery_refresh.processing.steps import ScriptStep
from gallery_refresh.processing.worker import AssetProcessor
from gallery_refresh.utils.logging import setup_logging

app = typer.Typer(help="3D 模型预览图增量刷新、目录页生成与发布工具。")

STAGE_STYLES = {
    "batch": "",
    "summary": "bold",
    "catalog": "cyan",
    "publish": "magenta",
}


def _normalize_extensions(values: List[str]) -> tuple[str, ...]:
    normalized = []
    for value in values:
        value = value.strip().lower()
        if not value:
            raise typer.BadParameter("扩展名不能为空")
        normalized.append(value if value.startswith(".") else f".{value}")
    return tuple(normalized)


def _build_status_callback(console: Console):
    def callback(update: StatusUpdate) -> None:
        if update.stage == "batch" and update.total:
            prefix = f"[{update.completed}/{update.total}] "
        else:
            prefix = ""
        console.print(Text(prefix + update.message, style=STAGE_STYLES.get(update.stage, "")))

    return callback


def _print_summary(console: Console, result: PipelineResult, config: PipelineConfig) -> None:
    batch = result.batch
    console.print()
    if result.publish_attempted and not result.publish_succeeded:
        console.print(Text("发布失败：远端可能领先于本地，或认证/网络出错。", style="bold red"))
        console.print(Text("流水线不会自动重试或合并，请手动处理后重新运行。", style="red"))
    elif batch.failed:
        console.print(
            Text(f"部分成功：{batch.failed} 个模型生成预览图失败，详情见 {config.log_path}", style="yellow")
        )
    elif batch.generated == 0:
        console.print(Text("没有需要更新的预览图。", style="green"))
    else:
        console.print(Text(f"完成：生成 {batch.generated} 张预览图。", style="green"))

    if not result.publishing_configured:
        console.print(Text("警告：未找到目录页生成或发布脚本，本次未发布任何内容。", style="yellow"))


@app.command("run")
def run_cli(  # noqa: PLR0913
    directory: Path = typer.Argument(Path("."), help="模型所在目录，默认当前目录"),
    extensions: List[str] = typer.Option([".glb"], "--ext", "-e", help="模型文件扩展名，可指定多个"),
    size: int = typer.Option(512, "--size", help="预览图边长（像素）"),
    log_file: str = typer.Option("thumbnail_render.log", "--log-file", help="诊断日志文件名（位于目标目录）"),
    catalog_script: Path = typer.Option(Path("generate_catalog.py"), "--catalog-script", help="目录页生成脚本的相对路径"),
    publish_script: Path = typer.Option(Path("publish.py"), "--publish-script", help="发布脚本的相对路径"),
    report: Optional[str] = typer.Option(None, "--report", help="CSV 报告文件名（位于目标目录）"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="单个模型的渲染超时（秒）"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    """刷新过期的预览图，然后依次执行目录页生成与发布脚本。"""

    setup_logging(logging.DEBUG if verbose else logging.INFO)

    config = PipelineConfig(
        directory=directory.expanduser().resolve(),
        asset_extensions=_normalize_extensions(extensions),
        log_filename=log_file,
        render=RenderConfig(size=(size, size), render_timeout=timeout),
        steps=StepConfig(catalog_script=catalog_script, publish_script=publish_script),
        report_filename=report,
    )
    try:
        config.validate()
    except InvalidConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    console = Console()
    status_callback = _build_status_callback(console)

    try:
        sink = DiagnosticSink(config.log_path).open()
    except OSError as exc:
        raise typer.BadParameter(f"无法创建诊断日志 {config.log_path}: {exc}") from exc

    with contextlib.closing(sink):
        processor = AssetProcessor(TrimeshRenderer(config.render), sink, config)
        orchestrator = PipelineOrchestrator(
            BatchRunner(processor, config, status_callback=status_callback),
            config.directory,
            catalog_step=ScriptStep("catalog", config.steps.catalog_script),
            publish_step=ScriptStep("publish", config.steps.publish_script),
            status_callback=status_callback,
        )
        result = orchestrator.run()

    _print_summary(console, result, config)
    raise typer.Exit(code=result.exit_code)


@app.command("catalog")
def catalog_cli(
    directory: Path = typer.Argument(Path("."), help="模型所在目录，默认当前目录"),
    extensions: List[str] = typer.Option([".glb"], "--ext", "-e", help="模型文件扩展名，可指定多个"),
    preview_extension: str = typer.Option(".png", "--preview-ext", help="预览图扩展名"),
    title: str = typer.Option("3D Model Gallery", "--title", help="页面标题"),
    output: str = typer.Option("index.html", "--output", "-o", help="输出文件名"),
) -> None:
    """使用内置生成器重建目录页。"""

    setup_logging()
    directory = directory.expanduser().resolve()
    try:
        page = build_catalog(
            directory,
            _normalize_extensions(extensions),
            preview_extension,
            CatalogConfig(output_filename=output, title=title),
        )
    except GalleryRefreshError as exc:
        typer.echo(f"目录页生成失败：{exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"目录页：{page}")


@app.command("publish")
def publish_cli(
    directory: Path = typer.Argument(Path("."), help="git 工作目录，默认当前目录"),
    remote: str = typer.Option("origin", "--remote", help="推送的远端"),
    branch: Optional[str] = typer.Option(None, "--branch", help="推送的分支，默认使用上游分支"),
    message: str = typer.Option("Update gallery", "--message", "-m", help="提交信息"),
) -> None:
    """使用内置 git 发布器提交并推送改动。"""

    setup_logging()
    try:
        returncode = publish(directory.expanduser().resolve(), PublishConfig(remote=remote, branch=branch, message=message))
    except GalleryRefreshError as exc:
        typer.echo(f"发布失败：{exc}", err=True)
        raise typer.Exit(code=1) from exc
    if returncode != 0:
        typer.echo(f"发布失败，退出码 {returncode}", err=True)
    raise typer.Exit(code=returncode)


if __name__ == "__main__":
    app()
