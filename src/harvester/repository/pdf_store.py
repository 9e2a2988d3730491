"""ダウンロード済み PDF からのテキスト抽出と、抽出結果の保存。

抽出結果は ``{pdfファイル名}.json`` として保存し、ファイルの有無で抽出済みかを判定します。
"""

from pathlib import Path

import fitz

from harvester.domain.pdf_data import PdfData
from harvester.errors import PdfExtractionError

PDF_DATA_SUFFIX = ".json"


def extract_pdf(pdf_path: Path) -> PdfData:
    """PDF の全ページからテキストと表を抽出します。

    Raises:
        PdfExtractionError: PDF として開けない場合
    """
    try:
        doc = fitz.open(str(pdf_path))
    except fitz.FileDataError as e:
        raise PdfExtractionError(f"Failed to load PDF '{pdf_path.name}': {e}") from e
    try:
        texts: list[str] = []
        tables: list[list[list[list[str | None]]]] = []
        for page in doc:
            texts.append(page.get_text())
            tables.append([table.extract() for table in page.find_tables().tables])
    finally:
        doc.close()
    return PdfData(file_name=pdf_path.name, texts=texts, tables=tables)


def dumped_file_names(directory: Path) -> set[str]:
    """抽出済みの PDF ファイル名を返します。"""
    return {
        path.name.removesuffix(PDF_DATA_SUFFIX)
        for path in directory.glob(f"*{PDF_DATA_SUFFIX}")
    }


def save_pdf_data(data: PdfData, directory: Path) -> Path:
    path = directory / f"{data.file_name}{PDF_DATA_SUFFIX}"
    path.write_text(data.model_dump_json(), encoding="utf-8")
    return path
