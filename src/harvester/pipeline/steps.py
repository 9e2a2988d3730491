import asyncio
from pathlib import Path

from loguru import logger

from harvester.configs import JOB_NAME_ENV, JOB_NAME_KEY, ConfigurationSnapshot
from harvester.pipeline.core import (
    CONTINUE,
    EXIT_CONFIG_ERROR,
    Abort,
    InvocationContext,
    StepOutcome,
    ValidationStep,
)


class RequireJobName:
    """ジョブ名が設定されていることを検証するステップ。

    ジョブ名がない状態では出力先も決まらないため、空の場合は必ず打ち切ります。
    """

    name = "require-job-name"

    async def __call__(
        self,
        config: ConfigurationSnapshot,
        context: InvocationContext,
        cancel: asyncio.Event,
    ) -> StepOutcome:
        job_name = config.job_name
        if job_name is None or not job_name.strip():
            return Abort(
                exit_code=EXIT_CONFIG_ERROR,
                message=(
                    "JobName must be set. Either as an environment variable "
                    f"({JOB_NAME_ENV}) or in JSON ({JOB_NAME_KEY})"
                ),
            )
        logger.info(f"Current job: {job_name.strip()}")
        return CONTINUE


class EnsureOutputDirectories:
    """出力ディレクトリを（親ディレクトリも含めて）作成するステップ。

    既に存在する場合は何もしません。作成に失敗した場合の ``OSError`` は
    そのまま伝播させます。
    """

    name = "ensure-output-directories"

    async def __call__(
        self,
        config: ConfigurationSnapshot,
        context: InvocationContext,
        cancel: asyncio.Event,
    ) -> StepOutcome:
        for path in config.output_paths:
            await asyncio.to_thread(_make_dirs, path)
        return CONTINUE


def _make_dirs(path: Path) -> None:
    if not path.is_dir():
        logger.debug(f"Creating directory: {path}")
    path.mkdir(parents=True, exist_ok=True)


def default_steps() -> list[ValidationStep]:
    """標準の検証ステップを実行順に返します。ジョブ名の検証が必ず先です。"""
    return [RequireJobName(), EnsureOutputDirectories()]
