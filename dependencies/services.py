from functools import lru_cache

from services.batch_store import BatchStore, batch_store
from services.llm.base import MarksheetExtractor
from services.llm.llm_gemini import GeminiMarksheetExtractor
from services.pdf_service import PDFService


@lru_cache
def get_extractor() -> MarksheetExtractor:
    return GeminiMarksheetExtractor()


def get_batch_store() -> BatchStore:
    return batch_store


@lru_cache
def get_pdf_service() -> PDFService:
    return PDFService()
