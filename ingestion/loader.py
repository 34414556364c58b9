# ingestion/loader.py
import os
import tempfile

from ingestion.fetcher import ExtractionError


class DecodeError(ExtractionError):
    """The document was downloaded but no text could be read from it."""
    pass


class DecoderUnavailableError(DecodeError):
    """The PDF backend is not installed in this runtime."""
    pass


def load_pdf_text(content: bytes) -> str:
    """Extract the text of every page of a PDF, in page order."""
    # PyPDFLoader reads from a path, so the bytes go through a temp file
    with tempfile.NamedTemporaryFile(delete=False, suffix=".pdf") as tmp:
        tmp.write(content)
        temp_path = tmp.name

    try:
        try:
            from langchain_community.document_loaders import PyPDFLoader
            documents = PyPDFLoader(temp_path).load()
        except ImportError as e:
            raise DecoderUnavailableError(f"PDF processing not available: {str(e)}")
        except Exception as e:
            raise DecodeError(f"Failed to parse PDF: {str(e)}")
    finally:
        os.unlink(temp_path)

    text = "\n".join(doc.page_content for doc in documents if doc.page_content)
    if not text.strip():
        raise DecodeError("PDF contains no extractable text")

    return text
