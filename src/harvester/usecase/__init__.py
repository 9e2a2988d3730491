from .dump import DumpPdfText
from .scrape import CheckOnly, DownloadPapers, RunAll, ScrapeMetadata

__all__ = ["CheckOnly", "DownloadPapers", "DumpPdfText", "RunAll", "ScrapeMetadata"]
