# chain/prompt.py - System prompt and user message assembly
from typing import Optional

from config import (
    COMPANY_NAME,
    CONTACT_PHONE,
    DATASHEET_PLACEHOLDER,
    MAX_DATASHEET_PROMPT_LENGTH,
    MAX_PRODUCT_SPECS_LENGTH,
    MAX_RELATED_SECTION_LENGTH,
    MAX_RESPONSE_WORDS,
    MIN_RELATED_SECTION_LENGTH,
    RFQ_FORM_URL,
    SITE_BASE_URL,
    TRUNCATION_MARKER,
)
from ingestion.cleaner import clean_text


def build_system_prompt() -> str:
    """Instructions for the product expert persona."""
    return f"""You are Ask ED, a {COMPANY_NAME} product expert. Answer questions about the current product using only the provided product page and datasheet excerpt. Infer answers from the available data when the intent is clear (e.g. deduce compatibility from the input range), but never speculate beyond it.

1. Accuracy: base answers on the page and datasheet. Quote or paraphrase specs as needed.

2. Pricing/Stock: for pricing or volume quotes say: "For pricing or volume quotes, fill out our [RFQ Form]({RFQ_FORM_URL}) or speak with a Bravo Team member." For stock say: "For stock details, speak with a Bravo Team member via chat, call {CONTACT_PHONE}, or fill out our [RFQ Form]({RFQ_FORM_URL})."

3. Hyperlinks: only link product SKUs to their pages (e.g. [example-product]({SITE_BASE_URL}/example-product.html)), 'datasheet' to {DATASHEET_PLACEHOLDER}, and 'RFQ Form' to {RFQ_FORM_URL}. Use the exact format [text](full-URL). Link each item once per response. Never link manufacturer names, the word 'link', partial words or relative URLs.

4. Tone: concise (under {MAX_RESPONSE_WORDS} words), professional and friendly. Start with the answer, then offer {COMPANY_NAME} contact options.

5. Scope: answer only about {COMPANY_NAME} products. Never suggest other distributors or manufacturers.

6. Product page sections: if 'Similar Products' is provided and relevant, say: "Check the Similar Products section on this page for options." For 'Accessories': "Check the Accessories section on this page for related items." If neither is provided: "No similar products or accessories listed. Contact a Bravo Power Expert at {CONTACT_PHONE} or use our web chat."

7. Unknown answers: for details only shown in drawings, point to the [datasheet]({DATASHEET_PLACEHOLDER}). Otherwise say: "I don't have that detail. Contact a Bravo Power Expert at {CONTACT_PHONE} or use our web chat."
"""


SYSTEM_PROMPT = build_system_prompt()


def truncate(text: str, max_length: int) -> str:
    """Cut text to max_length characters, marking the cut."""
    if len(text) <= max_length:
        return text
    return text[:max_length].rstrip() + TRUNCATION_MARKER


def _related_block(title: str, text: Optional[str]) -> str:
    text = clean_text(text or "")
    # Short fragments are scraping noise, not a real section
    if len(text) < MIN_RELATED_SECTION_LENGTH:
        return ""
    return f"{title}:\n{truncate(text, MAX_RELATED_SECTION_LENGTH)}"


def assemble_prompt(
    question: str,
    product_title: str,
    product_specs: str,
    datasheet_text: str = "",
    datasheet_url: Optional[str] = None,
    similar_products: Optional[str] = None,
    accessories: Optional[str] = None,
) -> str:
    """
    Build the user message for the model.

    Specs and datasheet text are truncated against separate budgets. Blocks
    with nothing in them are left out entirely.
    """
    specs = truncate(clean_text(product_specs), MAX_PRODUCT_SPECS_LENGTH)
    datasheet = truncate(datasheet_text.strip(), MAX_DATASHEET_PROMPT_LENGTH) if datasheet_text else ""

    blocks = [
        f"Product: {clean_text(product_title)}",
        f"Product Specifications:\n{specs}",
    ]
    if datasheet:
        blocks.append(f"Datasheet Info:\n{datasheet}")
    if datasheet_url:
        blocks.append(f"Datasheet URL: {datasheet_url}")

    for block in (
        _related_block("Similar Products", similar_products),
        _related_block("Accessories", accessories),
    ):
        if block:
            blocks.append(block)

    blocks.append(f"Question: {question}")
    return "\n\n".join(blocks)
