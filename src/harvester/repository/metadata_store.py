"""論文メタデータの保存と読み込み。

1論文につき1ファイル（``{sanitized_doi}.json``）として保存します。
"""

from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from harvester.domain.paper import Paper

METADATA_SUFFIX = ".json"


def metadata_path(paper: Paper, directory: Path) -> Path:
    return directory / f"{paper.sanitized_doi}{METADATA_SUFFIX}"


def save_paper(paper: Paper, directory: Path) -> Path:
    """論文メタデータを JSON で保存し、保存先のパスを返します。"""
    path = metadata_path(paper, directory)
    path.write_text(paper.model_dump_json(indent=2), encoding="utf-8")
    return path


def load_papers(directory: Path) -> list[Paper]:
    """ディレクトリ内のメタデータをすべて読み込みます。

    読み込めないファイルは警告を出してスキップします。
    """
    papers: list[Paper] = []
    for file in sorted(directory.glob(f"*{METADATA_SUFFIX}")):
        try:
            papers.append(Paper.model_validate_json(file.read_text(encoding="utf-8")))
        except (OSError, ValidationError) as e:
            logger.warning(f"Error loading paper {file.name}: {e}")
    logger.info(f"Loaded {len(papers)} papers")
    return papers
