# chain/handler.py - Request orchestration for /ask
import logging
import time
from typing import Optional, TypedDict

from langgraph.graph import StateGraph, START, END

from chain.model import ModelInvoker
from chain.postprocess import process_answer
from chain.prompt import SYSTEM_PROMPT, assemble_prompt
from config import (
    APP_ENV,
    APP_VERSION,
    DEBUG_SENTINEL,
    EMPTY_ANSWER_MESSAGE,
    MAX_QUESTION_LENGTH,
    MODEL_MAX_TOKENS,
    MODEL_NAME,
    RATE_LIMIT_MESSAGE,
    UPSTREAM_ERROR_MESSAGE,
)
from ingestion.extractor import DatasheetExtractor
from utils.cache import ContentCache
from utils.rate_limiter import RateLimiter
from utils.validators import validate_input

logger = logging.getLogger("askbot.server")
chain_logger = logging.getLogger("askbot.chain")


class AskError(Exception):
    """Error that ends a request with a JSON error envelope."""
    status_code = 500

    def __init__(self, message: str, debug: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.debug = debug


class ClientInputError(AskError):
    status_code = 400


class RateLimitError(AskError):
    status_code = 429


class UpstreamError(AskError):
    status_code = 500


class AskState(TypedDict):
    """State carried through the answer graph."""
    question: str
    product_title: str
    product_specs: str
    datasheet_url: Optional[str]
    similar_products: Optional[str]
    accessories: Optional[str]
    datasheet_text: str
    prompt: str
    raw_answer: str
    answer: str


class AskHandler:
    """
    Runs one question through validation, rate limiting and the answer graph.

    Collaborators are injected so tests can swap the model call and clocks.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        datasheet_cache: ContentCache,
        product_page_cache: ContentCache,
        invoker: ModelInvoker,
        extractor: Optional[DatasheetExtractor] = None,
    ):
        self.rate_limiter = rate_limiter
        self.datasheet_cache = datasheet_cache
        self.product_page_cache = product_page_cache
        self.invoker = invoker
        self.extractor = extractor or DatasheetExtractor(datasheet_cache)
        self.graph = self._build_graph()

    # --- Graph nodes ---

    async def _extract_datasheet(self, state: AskState) -> dict:
        text = await self.extractor.extract(state["datasheet_url"])
        if text:
            chain_logger.info(f"Datasheet content ready, length: {len(text)}")
        return {"datasheet_text": text}

    def _build_prompt(self, state: AskState) -> dict:
        prompt = assemble_prompt(
            question=state["question"],
            product_title=state["product_title"],
            product_specs=state["product_specs"],
            datasheet_text=state.get("datasheet_text", ""),
            datasheet_url=state.get("datasheet_url"),
            similar_products=state.get("similar_products"),
            accessories=state.get("accessories"),
        )
        return {"prompt": prompt}

    async def _generate(self, state: AskState) -> dict:
        raw_answer = await self.invoker.complete(SYSTEM_PROMPT, state["prompt"])
        return {"raw_answer": raw_answer or EMPTY_ANSWER_MESSAGE}

    def _postprocess(self, state: AskState) -> dict:
        return {
            "answer": process_answer(
                state["raw_answer"],
                datasheet_url=state.get("datasheet_url"),
                product_title=state["product_title"],
            )
        }

    def _route_datasheet(self, state: AskState) -> str:
        return "extract" if state.get("datasheet_url") else "prompt"

    def _build_graph(self):
        graph = StateGraph(AskState)

        graph.add_node("extract", self._extract_datasheet)
        graph.add_node("prompt", self._build_prompt)
        graph.add_node("generate", self._generate)
        graph.add_node("postprocess", self._postprocess)

        graph.add_conditional_edges(START, self._route_datasheet, {"extract": "extract", "prompt": "prompt"})
        graph.add_edge("extract", "prompt")
        graph.add_edge("prompt", "generate")
        graph.add_edge("generate", "postprocess")
        graph.add_edge("postprocess", END)

        return graph.compile()

    # --- Entry points ---

    def diagnostics(self) -> dict:
        """Static payload for the debug sentinel question."""
        return {
            "answer": f"Currently using model: {MODEL_NAME}. Deployment successful!",
            "model": MODEL_NAME,
            "version": APP_VERSION,
            "cacheSize": self.datasheet_cache.size,
            "productPageCacheSize": self.product_page_cache.size,
            "maxTokens": MODEL_MAX_TOKENS,
            "config": {
                "maxQuestionLength": MAX_QUESTION_LENGTH,
                "rateLimitPerMinute": self.rate_limiter.per_minute,
                "rateLimitPerDay": self.rate_limiter.per_day,
                "cacheTtlSeconds": self.datasheet_cache.ttl_seconds,
                "cacheMaxSize": self.datasheet_cache.max_size,
            },
        }

    async def handle(
        self,
        client_id: str,
        question: Optional[str],
        product_specs: Optional[str],
        product_title: Optional[str],
        datasheet_url: Optional[str] = None,
        similar_products: Optional[str] = None,
        accessories: Optional[str] = None,
    ) -> dict:
        """
        Answer one question.

        Returns:
            {"answer": ...}, or the diagnostics payload for the sentinel question

        Raises:
            ClientInputError, RateLimitError, UpstreamError
        """
        if question == DEBUG_SENTINEL:
            logger.info(f"[{client_id}] Debug sentinel received")
            return self.diagnostics()

        if not question or not product_specs or not product_title:
            raise ClientInputError("Missing required fields")

        if len(question) > MAX_QUESTION_LENGTH:
            raise ClientInputError("Question too long")

        if not validate_input(question):
            logger.warning(f"[{client_id}] Rejected suspicious question")
            raise ClientInputError("Invalid input detected")

        if self.rate_limiter.is_limited(client_id):
            logger.warning(f"[{client_id}] Rate limit exceeded")
            raise RateLimitError(RATE_LIMIT_MESSAGE)

        start_time = time.time()
        logger.info(f"[{client_id}] Product: {product_title[:80]} - Question: {question[:50]}...")

        initial_state = {
            "question": question,
            "product_title": product_title,
            "product_specs": product_specs,
            "datasheet_url": datasheet_url or None,
            "similar_products": similar_products,
            "accessories": accessories,
            "datasheet_text": "",
            "prompt": "",
            "raw_answer": "",
            "answer": "",
        }

        try:
            result = await self.graph.ainvoke(initial_state)
        except Exception as e:
            logger.exception(f"[{client_id}] Model invocation failed")
            raise UpstreamError(UPSTREAM_ERROR_MESSAGE, debug=str(e) if APP_ENV == "development" else None)

        elapsed = time.time() - start_time
        logger.info(f"[{client_id}] Answered in {elapsed:.2f}s")
        return {"answer": result["answer"]}
