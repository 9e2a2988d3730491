"""ジョブ実行前の検証パイプライン。

検証ステップを登録順に1つずつ実行し、すべてが続行を返した場合にのみ
最後のジョブ本体を実行します。ステップは ``Continue`` か ``Abort`` を返し、
プロセスの終了はパイプラインの呼び出し側（CLI）だけが行います。
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence

from loguru import logger

from harvester.configs import ConfigurationSnapshot

EXIT_OK = 0
# sysexits.h の EX_CONFIG。未処理例外による終了コード 1 と区別する
EXIT_CONFIG_ERROR = 78
EXIT_BAD_CONFIG_FILE = 2
EXIT_JOB_FAILED = 3
EXIT_CANCELLED = 130

JOB_ACTION_NAME = "job"


@dataclass(frozen=True)
class InvocationContext:
    """1回の起動に関する情報（コマンド名と引数）。"""

    command: str
    arguments: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Continue:
    """次のステップへ進むことを表す結果。"""


@dataclass(frozen=True)
class Abort:
    """パイプラインを打ち切ることを表す結果。

    Attributes:
        exit_code: プロセスの終了コード
        message: エラーログに出力するメッセージ
    """

    exit_code: int
    message: str


StepOutcome = Continue | Abort

CONTINUE = Continue()


class ValidationStep(Protocol):
    """検証ステップのインターフェース。

    設定を検査、または修復（ディレクトリ作成など）し、続行するかを返します。
    ``name`` 属性があればログと結果に使われます。
    """

    async def __call__(
        self,
        config: ConfigurationSnapshot,
        context: InvocationContext,
        cancel: asyncio.Event,
    ) -> StepOutcome: ...


class JobAction(Protocol):
    """全ステップ通過後に実行するジョブ本体のインターフェース。

    戻り値は終了コードで、None は正常終了（0）として扱います。
    """

    async def __call__(
        self,
        config: ConfigurationSnapshot,
        context: InvocationContext,
        cancel: asyncio.Event,
    ) -> int | None: ...


@dataclass(frozen=True)
class PipelineResult:
    """パイプライン実行の結果。

    Attributes:
        exit_code: プロセスの終了コード
        completed_steps: 続行を返したステップ名（実行順）
        aborted_by: 打ち切ったステップ名（最後まで進んだ場合は None）
        message: 打ち切り理由
    """

    exit_code: int
    completed_steps: tuple[str, ...]
    aborted_by: str | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.exit_code == EXIT_OK


def step_name(step: object) -> str:
    name = getattr(step, "name", None) or getattr(step, "__name__", None)
    return name if isinstance(name, str) else type(step).__name__


class Pipeline:
    """検証ステップとジョブ本体を順に実行するドライバー。

    Example:
        >>> pipeline = Pipeline(snapshot, default_steps(), ScrapeMetadata())
        >>> result = await pipeline.run(InvocationContext("scrape metadata"))
        >>> result.exit_code
        0
    """

    def __init__(
        self,
        config: ConfigurationSnapshot,
        steps: Sequence[ValidationStep],
        action: JobAction,
    ) -> None:
        self.config = config
        self.steps = tuple(steps)
        self.action = action

    async def run(
        self, context: InvocationContext, cancel: asyncio.Event | None = None
    ) -> PipelineResult:
        """ステップを登録順に実行し、最後にジョブ本体を実行します。

        いずれかのステップが ``Abort`` を返すと、それ以降のステップとジョブ本体は
        実行されません。キャンセルシグナルは各ステップの開始前に確認します。
        ステップが送出した例外（ディレクトリ作成失敗など）はそのまま伝播します。

        Args:
            context: 起動時のコンテキスト
            cancel: キャンセルシグナル。省略時は新規に作成します。

        Returns:
            実行結果
        """
        if cancel is None:
            cancel = asyncio.Event()
        completed: list[str] = []

        for step in self.steps:
            name = step_name(step)
            if cancel.is_set():
                return self._cancelled(name, completed)
            logger.debug(f"Running step: {name}")
            outcome = await step(self.config, context, cancel)
            if isinstance(outcome, Abort):
                logger.error(outcome.message)
                return PipelineResult(
                    exit_code=outcome.exit_code,
                    completed_steps=tuple(completed),
                    aborted_by=name,
                    message=outcome.message,
                )
            completed.append(name)

        if cancel.is_set():
            return self._cancelled(JOB_ACTION_NAME, completed)
        exit_code = await self.action(self.config, context, cancel)
        return PipelineResult(
            exit_code=EXIT_OK if exit_code is None else exit_code,
            completed_steps=tuple(completed),
        )

    def _cancelled(self, name: str, completed: list[str]) -> PipelineResult:
        logger.warning(f"Cancelled before {name}")
        return PipelineResult(
            exit_code=EXIT_CANCELLED,
            completed_steps=tuple(completed),
            aborted_by=name,
            message="cancelled",
        )
