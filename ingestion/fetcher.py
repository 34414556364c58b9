# ingestion/fetcher.py
import requests
import logging

from config import DATASHEET_TIMEOUT_SECONDS, MAX_DATASHEET_SIZE_BYTES

logger = logging.getLogger("askbot.ingestion")
CHUNK_SIZE = 64 * 1024

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/pdf,application/octet-stream;q=0.9,*/*;q=0.8",
}


class ExtractionError(Exception):
    """Base error for datasheet extraction. Never reaches the client."""
    pass


class FetchError(ExtractionError):
    """The datasheet could not be downloaded."""
    pass


def _too_large(url: str) -> FetchError:
    return FetchError(f"Document exceeds {MAX_DATASHEET_SIZE_BYTES // (1024 * 1024)}MB limit: {url}")


def _read_body(response: requests.Response, url: str) -> bytes:
    """Read a streamed body, giving up as soon as it passes the size limit."""
    chunks = []
    total = 0
    try:
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            total += len(chunk)
            if total > MAX_DATASHEET_SIZE_BYTES:
                raise _too_large(url)
            chunks.append(chunk)
    except requests.exceptions.RequestException as e:
        raise FetchError(f"Download interrupted for {url}: {str(e)}")
    return b"".join(chunks)


def fetch_document(url: str, timeout: float = DATASHEET_TIMEOUT_SECONDS) -> bytes:
    """
    Download a binary document.

    Returns:
        The response body

    Raises:
        FetchError: On network errors, timeouts, non-200 status or oversized bodies
    """
    try:
        response = requests.get(url, headers=HEADERS, timeout=timeout, allow_redirects=True, stream=True)
    except requests.exceptions.Timeout:
        raise FetchError(f"Request timeout after {timeout}s: {url}")
    except requests.exceptions.TooManyRedirects:
        raise FetchError(f"Too many redirects: {url}")
    except requests.exceptions.SSLError as e:
        raise FetchError(f"SSL error for {url}: {str(e)}")
    except requests.exceptions.ConnectionError as e:
        raise FetchError(f"Connection error for {url}: {str(e)}")
    except requests.exceptions.RequestException as e:
        raise FetchError(f"Request failed for {url}: {str(e)}")

    try:
        if response.status_code != 200:
            raise FetchError(f"Non-200 status ({response.status_code} {response.reason}): {url}")

        declared = response.headers.get("Content-Length", "")
        if declared.isdigit() and int(declared) > MAX_DATASHEET_SIZE_BYTES:
            raise _too_large(url)

        content = _read_body(response, url)
    finally:
        response.close()

    if not content:
        raise FetchError(f"Empty response body: {url}")

    content_type = response.headers.get("Content-Type", "")
    if "pdf" not in content_type and not content.startswith(b"%PDF"):
        logger.debug(f"Unexpected content type ({content_type}) for {url}, trying anyway")

    return content
