import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
from bs4 import BeautifulSoup, Tag
from loguru import logger

from harvester.domain.paper import Paper
from harvester.errors import ScrapeError

# lazyLoadTOC ウィジェットが要求するページコンテキスト（{doi} はプロシーディングのDOI）
PB_CONTEXT_TEMPLATE = (
    ";taxonomy:taxonomy:conference-collections"
    ";issue:issue:doi\\:{doi}"
    ";wgroup:string:ACM Publication Websites"
    ";groupTopic:topic:acm-pubtype>proceeding"
    ";csubtype:string:Conference Proceedings"
    ";page:string:Book Page"
    ";website:website:dl-site"
    ";ctype:string:Book Content"
    ";topic:topic:conference-collections>icse"
    ";article:article:doi\\:{doi}"
    ";journal:journal:acmconferences"
    ";pageGroup:string:Publication Pages"
)

SECTION_CLASSES = ["toc__section", "accordion-tabbed__tab"]


@dataclass(frozen=True)
class TocSection:
    """目次の1セクション（遅延読み込みの単位）。"""

    heading_id: str
    doi: str


class AcmRepository:
    """ACM Digital Library との通信を担当するリポジトリクラス。"""

    PROCEEDINGS_PATH = "/doi/proceedings/{doi}"
    SECTION_PATH = "/pb/widgets/lazyLoadTOC"
    PAPER_PATH = "/doi/{doi}"
    ABSTRACT_NOT_AVAILABLE = "Abstract not available"

    def __init__(self, client: httpx.AsyncClient) -> None:
        """AcmRepositoryインスタンスを初期化します。

        Args:
            client: base_url が設定済みの AsyncClient インスタンス
        """
        self.client = client

    async def fetch_proceeding_papers(
        self, proceeding_doi: str, cancel: asyncio.Event | None = None
    ) -> AsyncIterator[Paper]:
        """プロシーディングに含まれる論文をセクション順に返します。

        セクション単位、論文単位のエラーはログに出力してスキップします。
        キャンセルされた場合は、処理中のセクションを区切りとして終了します。

        Args:
            proceeding_doi: プロシーディングのDOI（例: "10.1145/3597503"）
            cancel: キャンセルシグナル

        Yields:
            取得した論文

        Raises:
            httpx.HTTPError: 目次ページの取得に失敗した場合
            ScrapeError: 目次ページの構造が想定と異なる場合
        """
        url = self.PROCEEDINGS_PATH.format(doi=proceeding_doi)
        logger.info(f"Fetching proceedings from {url}")
        resp = await self.client.get(url)
        resp.raise_for_status()

        widget_id, sections = parse_table_of_contents(resp.text)
        logger.info(f"Found {len(sections)} sections to process")

        for section in sections:
            if cancel is not None and cancel.is_set():
                logger.warning("Cancellation requested, stopping section processing")
                return
            logger.debug(f"Processing section {section.heading_id} with DOI {section.doi}")
            try:
                section_html = await self.fetch_section(section, widget_id, proceeding_doi)
            except httpx.HTTPError as e:
                logger.error(f"Error processing section {section.heading_id}: {e}")
                continue
            papers = await self._papers_from_section(section_html, cancel)
            logger.info(f"Found {len(papers)} papers in section {section.heading_id}")
            for paper in papers:
                yield paper

    async def fetch_section(
        self, section: TocSection, widget_id: str, proceeding_doi: str
    ) -> str:
        """セクションの HTML 断片を遅延読み込み API から取得します。"""
        params = {
            "tocHeading": section.heading_id,
            "widgetId": widget_id,
            "doi": section.doi,
            "pbContext": PB_CONTEXT_TEMPLATE.format(doi=proceeding_doi),
        }
        resp = await self.client.get(self.SECTION_PATH, params=params)
        resp.raise_for_status()
        return resp.text

    async def fetch_abstract(self, doi: str) -> str:
        """論文ページからアブストラクトを取得します。見つからない場合は既定の文言を返します。"""
        resp = await self.client.get(self.PAPER_PATH.format(doi=doi))
        resp.raise_for_status()
        soup = BeautifulSoup(resp.text, "html.parser")
        node = soup.select_one("div[id*=abstracts] section div")
        if node is None:
            return self.ABSTRACT_NOT_AVAILABLE
        return node.get_text(strip=True)

    async def download_pdf(self, paper: Paper, target: Path) -> None:
        """論文の PDF をストリーミングで保存します。

        途中で失敗しても不完全なファイルが残らないよう、一時ファイルに書き込んでから
        置き換えます。

        Raises:
            httpx.HTTPError: ダウンロードに失敗した場合
        """
        partial = target.with_name(target.name + ".part")
        try:
            async with self.client.stream("GET", paper.download_link) as resp:
                resp.raise_for_status()
                # ファイル操作はワーカースレッドで行い、イベントループを止めない
                f = await asyncio.to_thread(partial.open, "wb")
                try:
                    async for chunk in resp.aiter_bytes():
                        await asyncio.to_thread(f.write, chunk)
                finally:
                    await asyncio.to_thread(f.close)
            await asyncio.to_thread(partial.replace, target)
        finally:
            await asyncio.to_thread(partial.unlink, missing_ok=True)

    async def _papers_from_section(
        self, section_html: str, cancel: asyncio.Event | None
    ) -> list[Paper]:
        """セクション HTML から論文を抽出し、アブストラクトを補完します。"""
        soup = BeautifulSoup(section_html, "html.parser")
        papers: list[Paper] = []
        for node in soup.select("div.issue-item-container"):
            if cancel is not None and cancel.is_set():
                break
            try:
                entry = parse_paper_entry(node)
                entry["abstract"] = await self.fetch_abstract(entry["doi"])
            except (ScrapeError, httpx.HTTPError) as e:
                logger.error(f"Error extracting paper data: {e}")
                continue
            papers.append(Paper(**entry))
        return papers


def _attr(tag: Tag, name: str) -> str | None:
    value = tag.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return value or None


def parse_table_of_contents(html: str) -> tuple[str, list[TocSection]]:
    """プロシーディングの目次ページからウィジェットIDとセクション一覧を抽出します。

    Raises:
        ScrapeError: 目次ラッパーまたはウィジェットIDが見つからない場合
    """
    soup = BeautifulSoup(html, "html.parser")
    wrapper = soup.select_one("div.table-of-content-wrapper")
    if wrapper is None:
        raise ScrapeError("Table of contents not found in proceedings page")
    widget_id = _attr(wrapper, "data-widgetid")
    if widget_id is None:
        raise ScrapeError("Table of contents has no data-widgetid")

    sections: list[TocSection] = []
    for node in wrapper.select("div.toc__section.accordion-tabbed__tab"):
        # class 以外の属性を持つものは入れ子のサブセクション
        if node.get("class") != SECTION_CLASSES or len(node.attrs) != 1:
            continue
        lazy = node.select_one("div.accordion-lazy")
        heading = node.select_one("a.section__title")
        section_doi = _attr(lazy, "data-doi") if lazy is not None else None
        heading_id = _attr(heading, "id") if heading is not None else None
        if section_doi is None or heading_id is None:
            logger.warning("Skipping section without DOI or heading id")
            continue
        sections.append(TocSection(heading_id=heading_id, doi=section_doi))
    return widget_id, sections


def parse_paper_entry(node: Tag) -> dict[str, Any]:
    """目次の論文エントリからアブストラクト以外の項目を抽出します。

    Raises:
        ScrapeError: タイトルリンクが見つからない場合
    """
    title_link = node.select_one("h5.issue-item__title a")
    href = _attr(title_link, "href") if title_link is not None else None
    if title_link is None or href is None:
        raise ScrapeError("Paper entry has no title link")

    authors_list = node.select_one("ul")
    authors = (
        [li.get_text(strip=True).rstrip(",") for li in authors_list.select("li")]
        if authors_list is not None
        else []
    )
    first_link = node.select_one("a")
    url = (_attr(first_link, "href") if first_link is not None else None) or href
    return {
        "title": title_link.get_text(strip=True),
        "authors": authors,
        "url": url,
        "doi": href.replace("/doi/", ""),
    }
