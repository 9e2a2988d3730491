"""harvester コマンドのエントリーポイント。

すべてのコマンドは、設定スナップショットの読み込み → 検証パイプライン →
ジョブ本体 の順に実行され、パイプラインの結果をプロセスの終了コードにします。
"""

import asyncio
import contextlib
import signal
from pathlib import Path
from typing import Annotated, Any

import truststore
import typer
from loguru import logger

from harvester.configs import load_snapshot
from harvester.errors import ConfigurationError
from harvester.pipeline import (
    EXIT_BAD_CONFIG_FILE,
    InvocationContext,
    JobAction,
    Pipeline,
    PipelineResult,
    default_steps,
)
from harvester.usecase import CheckOnly, DownloadPapers, DumpPdfText, RunAll, ScrapeMetadata
from harvester.utils.log import setup_logger

app = typer.Typer(
    help="Harvest paper metadata and PDFs from the ACM Digital Library.",
    no_args_is_help=True,
)
scrape_app = typer.Typer(help="Scrape paper metadata and download PDFs.", no_args_is_help=True)
app.add_typer(scrape_app, name="scrape")
dump_app = typer.Typer(help="Extract data from downloaded PDFs.", no_args_is_help=True)
app.add_typer(dump_app, name="dump")

ProceedingDoiOption = Annotated[
    str | None,
    typer.Option(
        "--proceeding-doi",
        "-p",
        help="DOI of the proceedings to scrape (defaults to scraper.proceeding_doi).",
    ),
]


async def run_pipeline(pipeline: Pipeline, context: InvocationContext) -> PipelineResult:
    """SIGINT/SIGTERM をキャンセルシグナルに結び付けてパイプラインを実行します。"""
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Windows のイベントループはシグナルハンドラーに対応していない
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, cancel.set)
            installed.append(sig)
    try:
        return await pipeline.run(context, cancel)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def execute(ctx: typer.Context, command: str, action: JobAction, **arguments: Any) -> None:
    config_file: Path | None = ctx.obj
    try:
        snapshot = load_snapshot(config_file)
    except ConfigurationError as e:
        logger.error(str(e))
        raise typer.Exit(EXIT_BAD_CONFIG_FILE) from e
    setup_logger(snapshot.log_level)

    pipeline = Pipeline(snapshot, default_steps(), action)
    context = InvocationContext(command=command, arguments=arguments)
    result = asyncio.run(run_pipeline(pipeline, context))
    raise typer.Exit(result.exit_code)


@app.callback()
def root(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="JSON config file. Environment variables win."),
    ] = None,
) -> None:
    ctx.obj = config


@app.command()
def check(ctx: typer.Context) -> None:
    """Validate the configuration and create output directories."""
    execute(ctx, "check", CheckOnly())


@scrape_app.command()
def metadata(ctx: typer.Context, proceeding_doi: ProceedingDoiOption = None) -> None:
    """Scrape paper metadata from a proceedings page."""
    execute(
        ctx,
        "scrape metadata",
        ScrapeMetadata(proceeding_doi),
        proceeding_doi=proceeding_doi,
    )


@scrape_app.command()
def download(ctx: typer.Context) -> None:
    """Download PDFs for all scraped papers."""
    execute(ctx, "scrape download", DownloadPapers())


@scrape_app.command()
def run(ctx: typer.Context, proceeding_doi: ProceedingDoiOption = None) -> None:
    """Scrape metadata, download PDFs, then extract their text."""
    execute(ctx, "scrape run", RunAll(proceeding_doi), proceeding_doi=proceeding_doi)


@dump_app.command()
def pdf(ctx: typer.Context) -> None:
    """Extract text and tables from downloaded PDFs into the pdfdata directory."""
    execute(ctx, "dump pdf", DumpPdfText())


def main() -> None:
    # SSL: CERTIFICATE_VERIFY_FAILED の回避策（OS の証明書ストアを利用する）
    truststore.inject_into_ssl()
    setup_logger()
    app()


if __name__ == "__main__":
    main()
