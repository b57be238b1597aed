"""内置 git 发布器：暂存全部改动，有改动时提交，然后推送。

不处理远端领先等冲突，推送失败直接以非零退出码返回。
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Sequence

from gallery_refresh.core.config import PublishConfig
from gallery_refresh.core.exceptions import StepInvocationError

LOGGER = logging.getLogger(__name__)


def _git(directory: Path, args: Sequence[str]) -> int:
    command = ["git", *args]
    LOGGER.debug("执行 %s", " ".join(command))
    try:
        completed = subprocess.run(command, cwd=directory, check=False)
    except OSError as exc:
        raise StepInvocationError(f"无法执行 git: {exc}") from exc
    return completed.returncode


def has_staged_changes(directory: Path) -> bool:
    """git diff --cached --quiet：0 表示无改动，1 表示有改动，其他为错误。"""

    returncode = _git(directory, ["diff", "--cached", "--quiet"])
    if returncode not in (0, 1):
        raise StepInvocationError(f"git diff 失败，退出码 {returncode}")
    return returncode == 1


def publish(directory: Path, config: PublishConfig) -> int:
    """执行 add / commit / push，返回第一个非零退出码或 0。"""

    returncode = _git(directory, ["add", "-A"])
    if returncode != 0:
        LOGGER.error("git add 失败，退出码 %d", returncode)
        return returncode

    if has_staged_changes(directory):
        returncode = _git(directory, ["commit", "-m", config.message])
        if returncode != 0:
            LOGGER.error("git commit 失败，退出码 %d", returncode)
            return returncode
    else:
        LOGGER.info("没有需要提交的改动")

    push_args = ["push", config.remote]
    if config.branch:
        push_args.append(config.branch)
    returncode = _git(directory, push_args)
    if returncode != 0:
        LOGGER.error("git push 失败，退出码 %d；远端可能领先于本地，需要手动处理", returncode)
    return returncode
