"""検証パイプラインの最後に実行するジョブ本体。

いずれも ``JobAction`` として ``Pipeline`` に渡し、終了コードを返します。
処理は逐次で、論文やセクションの区切りごとにキャンセルを確認します。
"""

import asyncio
from collections.abc import Callable
from pathlib import Path

import httpx
from loguru import logger

from harvester.configs import ConfigurationSnapshot, ScraperSettings
from harvester.domain.paper import Paper
from harvester.errors import ScrapeError
from harvester.pipeline.core import EXIT_CANCELLED, EXIT_JOB_FAILED, InvocationContext
from harvester.repository.acm_repository import AcmRepository
from harvester.repository.metadata_store import load_papers, save_paper
from harvester.usecase.dump import DumpPdfText
from harvester.utils.http_client import create_scraper_client

ClientFactory = Callable[[ScraperSettings], httpx.AsyncClient]


def needs_download(target: Path) -> bool:
    """未取得、または空ファイルの場合に True を返します。"""
    return not target.exists() or target.stat().st_size == 0


class ScrapeMetadata:
    """プロシーディングから論文メタデータを収集し、1論文1ファイルで保存するジョブ。"""

    name = "scrape-metadata"

    def __init__(
        self,
        proceeding_doi: str | None = None,
        client_factory: ClientFactory = create_scraper_client,
    ) -> None:
        """ScrapeMetadataインスタンスを初期化します。

        Args:
            proceeding_doi: 対象プロシーディングのDOI。省略時は設定値を使用。
            client_factory: 設定から AsyncClient を作る関数
        """
        self.proceeding_doi = proceeding_doi
        self.client_factory = client_factory

    async def __call__(
        self,
        config: ConfigurationSnapshot,
        context: InvocationContext,
        cancel: asyncio.Event,
    ) -> int | None:
        settings = config.get(ScraperSettings)
        proceeding_doi = self.proceeding_doi or settings.proceeding_doi
        metadata_dir = config.paper_metadata_dir

        logger.info("Starting paper metadata scraping...")
        count = 0
        try:
            async with self.client_factory(settings) as client:
                repo = AcmRepository(client)
                async for paper in repo.fetch_proceeding_papers(proceeding_doi, cancel):
                    logger.info(f"Processing paper: {paper.title}")
                    await asyncio.to_thread(save_paper, paper, metadata_dir)
                    count += 1
        except (httpx.HTTPError, ScrapeError) as e:
            logger.error(f"Failed to scrape proceedings {proceeding_doi}: {e}")
            return EXIT_JOB_FAILED

        if cancel.is_set():
            logger.warning(f"Scraping cancelled after {count} papers")
            return EXIT_CANCELLED
        logger.info(f"Completed scraping {count} papers")
        return None


class DownloadPapers:
    """保存済みメタデータをもとに、未取得の PDF をダウンロードするジョブ。"""

    name = "download-papers"

    def __init__(self, client_factory: ClientFactory = create_scraper_client) -> None:
        self.client_factory = client_factory

    async def __call__(
        self,
        config: ConfigurationSnapshot,
        context: InvocationContext,
        cancel: asyncio.Event,
    ) -> int | None:
        logger.info("Loading papers from metadata...")
        papers = await asyncio.to_thread(load_papers, config.paper_metadata_dir)
        logger.info(f"Found {len(papers)} papers to download")

        bin_dir = config.paper_bin_dir
        pending: list[tuple[Paper, Path]] = [
            (paper, bin_dir / f"{paper.sanitized_doi}.pdf") for paper in papers
        ]
        pending = [(paper, target) for paper, target in pending if needs_download(target)]
        logger.info(f"Downloading {len(pending)} papers to {bin_dir}")

        async with self.client_factory(config.get(ScraperSettings)) as client:
            repo = AcmRepository(client)
            for paper, target in pending:
                if cancel.is_set():
                    logger.warning("Download cancelled")
                    return EXIT_CANCELLED
                logger.info(f"Downloading: {paper.title} ({target.name})")
                try:
                    await repo.download_pdf(paper, target)
                except httpx.HTTPError as e:
                    logger.error(f"Error downloading {target.name}: {e}")
                    continue
                logger.debug(f"Successfully downloaded {target.name}")

        logger.info("Downloads completed")
        return None


class RunAll:
    """メタデータ収集、PDF ダウンロード、PDF テキスト抽出を続けて実行するジョブ。"""

    name = "run-all"

    def __init__(
        self,
        proceeding_doi: str | None = None,
        client_factory: ClientFactory = create_scraper_client,
    ) -> None:
        self.scrape = ScrapeMetadata(proceeding_doi, client_factory)
        self.download = DownloadPapers(client_factory)
        self.dump = DumpPdfText()

    async def __call__(
        self,
        config: ConfigurationSnapshot,
        context: InvocationContext,
        cancel: asyncio.Event,
    ) -> int | None:
        logger.info("Starting full pipeline...")
        for stage in (self.scrape, self.download, self.dump):
            exit_code = await stage(config, context, cancel)
            if exit_code:
                return exit_code
        logger.info("Pipeline completed successfully")
        return None


class CheckOnly:
    """検証ステップだけを実行するための、何もしないジョブ。"""

    name = "check"

    async def __call__(
        self,
        config: ConfigurationSnapshot,
        context: InvocationContext,
        cancel: asyncio.Event,
    ) -> int | None:
        logger.info(f"Configuration OK: {len(config.output_paths)} output directories ready")
        return None
