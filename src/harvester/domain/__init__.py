from .paper import Paper
from .pdf_data import PdfData

__all__ = ["Paper", "PdfData"]
