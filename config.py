# config.py - Centralized configuration for Ask ED
"""
All limits and configuration values in one place.

Values can be overridden through environment variables (a local .env file is
loaded on import). Thresholds are tuning knobs, not contracts.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# === APP ===
APP_VERSION = "2024-12-16"
APP_ENV = os.getenv("APP_ENV", "production")
DEBUG_SENTINEL = "DEBUG_MODEL_CHECK"    # Question that returns diagnostics instead of an answer

# === SITE ===
COMPANY_NAME = os.getenv("COMPANY_NAME", "Bravo Electro")
SITE_DOMAIN = os.getenv("SITE_DOMAIN", "bravoelectro.com")
SITE_BASE_URL = os.getenv("SITE_BASE_URL", "https://www.bravoelectro.com")
RFQ_FORM_URL = f"{SITE_BASE_URL}/rfq-form"
CONTACT_PHONE = os.getenv("CONTACT_PHONE", "408-733-9090")

# === INPUT LIMITS ===
MAX_QUESTION_LENGTH = 500           # Max characters for a question
MAX_URL_LENGTH = 2048               # Max characters for a datasheet URL

# === RATE LIMITING ===
RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "5"))
RATE_LIMIT_PER_DAY = int(os.getenv("RATE_LIMIT_PER_DAY", "50"))
RATE_LIMIT_MINUTE_SECONDS = 60
RATE_LIMIT_DAY_SECONDS = 24 * 60 * 60
RATE_LIMIT_MAX_CLIENTS = 10000      # Stale client records are purged past this size

# === CACHE ===
CACHE_TTL_SECONDS = 30 * 24 * 60 * 60   # 30 days
CACHE_MAX_SIZE = 1000                   # Max cached documents per cache

# === DATASHEET FETCH ===
DATASHEET_TIMEOUT_SECONDS = 15
MAX_DATASHEET_SIZE_MB = 20
MAX_DATASHEET_SIZE_BYTES = MAX_DATASHEET_SIZE_MB * 1024 * 1024

# === DATASHEET EXTRACTION ===
MAX_DATASHEET_CONTENT_LENGTH = 2000     # Combined sections stored in the cache
DATASHEET_FALLBACK_LENGTH = 4000        # Raw prefix used when no priority section is found
DATASHEET_HEADER = "COMPLETE DATASHEET CONTENT:"

# Sections are emitted in this order. A section is found at the first
# case-insensitive keyword hit and sliced max_length characters forward.
DATASHEET_SECTIONS = {
    "electrical": {
        "title": "ELECTRICAL SPECIFICATIONS",
        "keywords": ["electrical specification", "electrical characteristics", "electrical spec"],
        "max_length": 3000,
        "priority": True,
    },
    "voltageAdjust": {
        "title": "VOLTAGE ADJUSTMENT",
        "keywords": [
            "voltage adj. range", "voltage adjustment", "vadj", "output voltage adjustment",
            "potentiometer", "trim pot", "adjustment range", "voltage adj range",
        ],
        "max_length": 3000,
        "priority": True,
    },
    "currentAdjust": {
        "title": "CURRENT ADJUSTMENT",
        "keywords": ["current adj. range", "current adjustment", "iadj", "output current adjustment", "current adj range"],
        "max_length": 2000,
        "priority": False,
    },
    "mechanical": {
        "title": "MECHANICAL SPECIFICATIONS",
        "keywords": [
            "mechanical specification", "mechanical drawing", "mounting", "dimensions",
            "hole diameter", "hole spacing", "mounting holes", "mechanical dimension",
        ],
        "max_length": 2000,
        "priority": False,
    },
    "suffixInfo": {
        "title": "MODEL SUFFIX INFORMATION",
        "keywords": ["model suffix", "suffix code", "model code", "ordering information", "model designation"],
        "max_length": 1500,
        "priority": False,
    },
    "constantCurrent": {
        "title": "CONSTANT CURRENT REGION",
        "keywords": ["constant current region", "constant current", "cc region", "current region", "constant current area"],
        "max_length": 2000,
        "priority": False,
    },
    "modelTable": {
        "title": "MODEL/SPECIFICATIONS TABLE",
        "keywords": ["model no", "part number", "ordering information", "model table", "specifications table"],
        "max_length": 4000,
        "priority": False,
    },
    "dimming": {
        "title": "DIMMING INFORMATION",
        "keywords": ["dimming", "dim function", "dimming operation"],
        "max_length": 1500,
        "priority": False,
    },
}

# === PROMPT ===
MAX_PRODUCT_SPECS_LENGTH = 1600         # Independent of the datasheet budget
MAX_DATASHEET_PROMPT_LENGTH = 2000
MAX_RELATED_SECTION_LENGTH = 800        # Similar products / accessories
MIN_RELATED_SECTION_LENGTH = 10         # Shorter text is treated as absent
TRUNCATION_MARKER = "..."

# === MODEL ===
MODEL_NAME = os.getenv("MODEL_NAME", "grok-2-1212")
MODEL_BASE_URL = os.getenv("MODEL_BASE_URL", "https://api.x.ai/v1")
MODEL_API_KEY_ENV = "XAI_API_KEY"
MODEL_MAX_TOKENS = 150
MODEL_TEMPERATURE = 0.1
MAX_RESPONSE_WORDS = 100

# === POST-PROCESSING ===
DATASHEET_PLACEHOLDER = "[DATASHEET_URL]"
DISALLOWED_LINK_LABELS = {"mean well", "meanwell", "mean", "link"}
LINK_STYLE = "color: white; text-decoration: underline;"

# (pattern, replacement) pairs applied to plain text, case-insensitive
PHRASE_SUBSTITUTIONS = [
    (r"\b(?:request for quote|request a quote|rfq) form\b", "RFQ Form"),
    (r"\bbravo team member\b", "Bravo Team member"),
    (r"\bbravo power expert\b", "Bravo Power Expert"),
]

# === USER-FACING MESSAGES ===
CONTACT_FALLBACK = f"Contact a Bravo Power Expert via web chat or call {CONTACT_PHONE}."
UPSTREAM_ERROR_MESSAGE = (
    "I'm experiencing technical difficulties. Please contact a Bravo Power Expert "
    f"via web chat or call {CONTACT_PHONE}."
)
EMPTY_ANSWER_MESSAGE = (
    "I'm sorry, I couldn't process your question. Please contact a Bravo Power Expert for assistance."
)
RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
