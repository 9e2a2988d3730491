from .acm_repository import AcmRepository
from .metadata_store import load_papers, save_paper
from .pdf_store import dumped_file_names, extract_pdf, save_pdf_data

__all__ = [
    "AcmRepository",
    "dumped_file_names",
    "extract_pdf",
    "load_papers",
    "save_paper",
    "save_pdf_data",
]
