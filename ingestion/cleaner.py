# ingestion/cleaner.py
"""
Cleaner module: normalizes scraped free text before it reaches the prompt.

Widget fields are untrusted. They are expected to be "label: value" lines,
but may carry stray markup from the page they were scraped from.
"""

import re

from bs4 import BeautifulSoup

UNWANTED_TAGS = ["script", "style", "noscript", "iframe"]


def clean_text(text: str) -> str:
    """Strip markup and collapse whitespace, keeping one field per line."""
    if not text:
        return ""

    if "<" in text and ">" in text:
        soup = BeautifulSoup(text, "html.parser")
        for tag in soup(UNWANTED_TAGS):
            tag.decompose()
        text = soup.get_text("\n")

    lines = []
    for line in text.splitlines():
        line = re.sub(r"[ \t\u00a0]+", " ", line).strip()
        if line:
            lines.append(line)

    return "\n".join(lines)
