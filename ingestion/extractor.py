# ingestion/extractor.py
"""
Datasheet extraction: fetch a PDF, read its text and keep the technical
sections a product question is most likely to need.

Extraction is best effort. The datasheet is supplementary context, so every
failure degrades to empty text and the request carries on without it.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool

from config import (
    DATASHEET_SECTIONS,
    DATASHEET_HEADER,
    DATASHEET_FALLBACK_LENGTH,
    MAX_DATASHEET_CONTENT_LENGTH,
)
from ingestion.fetcher import ExtractionError, FetchError, fetch_document
from ingestion.loader import DecodeError, load_pdf_text
from utils.cache import ContentCache
from utils.validators import validate_url, URLValidationError

logger = logging.getLogger("askbot.ingestion")


@dataclass
class ExtractionResult:
    text: str
    error: Optional[ExtractionError] = None
    cached: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


def extract_section(text: str, keywords: List[str], max_length: int) -> str:
    """Slice max_length characters from the first keyword hit, or return ''."""
    lower_text = text.lower()
    for keyword in keywords:
        index = lower_text.find(keyword.lower())
        if index != -1:
            return text[index:index + max_length]
    return ""


def extract_sections(text: str, table: Dict[str, dict] = DATASHEET_SECTIONS) -> Dict[str, str]:
    """Run the section table over text. Sections that are not found are omitted."""
    sections = {}
    for name, entry in table.items():
        found = extract_section(text, entry["keywords"], entry["max_length"])
        if found:
            sections[name] = found
    return sections


def combine_sections(
    sections: Dict[str, str],
    raw_text: str,
    table: Dict[str, dict] = DATASHEET_SECTIONS,
    fallback_length: int = DATASHEET_FALLBACK_LENGTH,
    max_length: int = MAX_DATASHEET_CONTENT_LENGTH,
) -> str:
    """Join found sections in table order, falling back to raw text when no priority section exists."""
    blocks = [DATASHEET_HEADER]
    for name, entry in table.items():
        if name in sections:
            blocks.append(f"{entry['title']}:\n{sections[name]}")

    has_priority = any(entry.get("priority") and name in sections for name, entry in table.items())
    if not has_priority:
        blocks.append(f"ADDITIONAL DATASHEET TEXT:\n{raw_text[:fallback_length]}")

    return "\n\n".join(blocks)[:max_length]


class DatasheetExtractor:
    """Fetches, decodes and condenses datasheets, caching the result per URL."""

    def __init__(
        self,
        cache: ContentCache,
        fetcher: Callable[[str], bytes] = fetch_document,
        decoder: Callable[[bytes], str] = load_pdf_text,
        table: Dict[str, dict] = DATASHEET_SECTIONS,
    ):
        self.cache = cache
        self.fetcher = fetcher
        self.decoder = decoder
        self.table = table

    async def extract(self, url: str) -> str:
        """Return condensed datasheet text for url, or '' if it cannot be read."""
        result = await self.extract_result(url)
        return result.text

    async def extract_result(self, url: str) -> ExtractionResult:
        cached = self.cache.get(url)
        if cached is not None:
            logger.info(f"Using cached datasheet content for: {url}")
            return ExtractionResult(text=cached, cached=True)

        try:
            content = await run_in_threadpool(self._extract_uncached, url)
        except ExtractionError as e:
            logger.warning(f"Datasheet unavailable, continuing without it: {str(e)}")
            return ExtractionResult(text="", error=e)

        self.cache.set(url, content)
        return ExtractionResult(text=content)

    def _extract_uncached(self, url: str) -> str:
        try:
            url = validate_url(url)
        except URLValidationError as e:
            raise FetchError(f"Refusing datasheet URL: {str(e)}")

        logger.info(f"Fetching datasheet: {url}")
        try:
            raw_text = self.decoder(self.fetcher(url))
        except ExtractionError:
            raise
        except Exception as e:
            raise DecodeError(f"Unexpected failure reading {url}: {str(e)}") from e
        logger.info(f"PDF processing successful, extracted text length: {len(raw_text)}")

        sections = extract_sections(raw_text, self.table)
        logger.info(f"PDF extraction complete. Sections found: {sorted(sections)}")

        return combine_sections(sections, raw_text, self.table)
