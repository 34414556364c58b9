# ingestion/__init__.py
from .fetcher import ExtractionError, FetchError, fetch_document
from .loader import DecodeError, DecoderUnavailableError, load_pdf_text
from .cleaner import clean_text
from .extractor import DatasheetExtractor, ExtractionResult, extract_section, extract_sections

__all__ = [
    "ExtractionError",
    "FetchError",
    "fetch_document",
    "DecodeError",
    "DecoderUnavailableError",
    "load_pdf_text",
    "clean_text",
    "DatasheetExtractor",
    "ExtractionResult",
    "extract_section",
    "extract_sections",
]
