# chain/model.py - Hosted chat model call
import logging
import os
from typing import Optional

from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI

from config import (
    MODEL_API_KEY_ENV,
    MODEL_BASE_URL,
    MODEL_MAX_TOKENS,
    MODEL_NAME,
    MODEL_TEMPERATURE,
)

logger = logging.getLogger("askbot.chain")

# Both parts are passed as variables so braces in scraped text are never templated
PROMPT = ChatPromptTemplate.from_messages([
    ("system", "{system_prompt}"),
    ("human", "{user_message}"),
])


class ModelInvoker:
    """Single-turn completion against an OpenAI-compatible endpoint."""

    def __init__(
        self,
        model: str = MODEL_NAME,
        base_url: str = MODEL_BASE_URL,
        api_key: Optional[str] = None,
        max_tokens: int = MODEL_MAX_TOKENS,
        temperature: float = MODEL_TEMPERATURE,
    ):
        self.model = model
        self.base_url = base_url
        self.api_key = api_key
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._chain = None

    def _get_chain(self):
        # Built on first use so the app starts without credentials
        if self._chain is None:
            api_key = self.api_key or os.getenv(MODEL_API_KEY_ENV)
            logger.info(f"Creating chat model {self.model} (API key present: {bool(api_key)})")
            llm = ChatOpenAI(
                model=self.model,
                base_url=self.base_url,
                api_key=api_key,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
            self._chain = PROMPT | llm | StrOutputParser()
        return self._chain

    async def complete(self, system_prompt: str, user_message: str) -> str:
        """Return the completion text. Errors from the provider propagate."""
        return await self._get_chain().ainvoke({
            "system_prompt": system_prompt,
            "user_message": user_message,
        })
