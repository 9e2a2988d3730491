import asyncio
from pathlib import Path

from loguru import logger

from harvester.configs import ConfigurationSnapshot
from harvester.errors import PdfExtractionError
from harvester.pipeline.core import EXIT_CANCELLED, InvocationContext
from harvester.repository.pdf_store import dumped_file_names, extract_pdf, save_pdf_data


def _list_pdfs(directory: Path) -> list[Path]:
    return sorted(directory.glob("*.pdf"))


class DumpPdfText:
    """ダウンロード済み PDF のテキストと表を抽出し、pdfdata ディレクトリに保存するジョブ。

    抽出済みのファイルはスキップし、開けない PDF は警告を出して次へ進みます。
    """

    name = "dump-pdf"

    async def __call__(
        self,
        config: ConfigurationSnapshot,
        context: InvocationContext,
        cancel: asyncio.Event,
    ) -> int | None:
        bin_dir = config.paper_bin_dir
        data_dir = config.pdf_data_dir

        pdf_files = await asyncio.to_thread(_list_pdfs, bin_dir)
        done = await asyncio.to_thread(dumped_file_names, data_dir)
        pending = [pdf for pdf in pdf_files if pdf.name not in done]
        logger.info(
            f"Extracting PDF files: {len(pdf_files)} (total) = "
            f"{len(pdf_files) - len(pending)} (skipped) + {len(pending)} (actual)"
        )

        for pdf_file in pending:
            if cancel.is_set():
                logger.warning("PDF extraction cancelled")
                return EXIT_CANCELLED
            try:
                data = await asyncio.to_thread(extract_pdf, pdf_file)
            except PdfExtractionError as e:
                logger.warning(f"Can't extract {pdf_file.name}: {e}")
                continue
            await asyncio.to_thread(save_pdf_data, data, data_dir)
            logger.info(f"Extracted {pdf_file.name}")

        logger.info("PDF text dump completed")
        return None
