# server.py - FastAPI server for the Ask ED widget
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, field_validator
from starlette.exceptions import HTTPException as StarletteHTTPException

from chain.handler import AskHandler, AskError
from chain.model import ModelInvoker
from ingestion.extractor import DatasheetExtractor
from utils.cache import ContentCache
from utils.logger import get_server_logger, get_ingestion_logger, get_chain_logger
from utils.rate_limiter import RateLimiter, get_client_ip

from config import (
    APP_VERSION,
    CACHE_MAX_SIZE,
    CACHE_TTL_SECONDS,
    DATASHEET_TIMEOUT_SECONDS,
    MAX_DATASHEET_CONTENT_LENGTH,
    MAX_DATASHEET_PROMPT_LENGTH,
    MAX_PRODUCT_SPECS_LENGTH,
    MAX_QUESTION_LENGTH,
    MODEL_MAX_TOKENS,
    MODEL_NAME,
    MODEL_TEMPERATURE,
    RATE_LIMIT_PER_DAY,
    RATE_LIMIT_PER_MINUTE,
)

# Initialize loggers
logger = get_server_logger()
get_ingestion_logger()
get_chain_logger()

# Process-wide services, shared by all requests
rate_limiter = RateLimiter()
datasheet_cache = ContentCache()
product_page_cache = ContentCache()
ask_handler = AskHandler(
    rate_limiter=rate_limiter,
    datasheet_cache=datasheet_cache,
    product_page_cache=product_page_cache,
    invoker=ModelInvoker(),
    extractor=DatasheetExtractor(datasheet_cache),
)


def get_ask_handler() -> AskHandler:
    return ask_handler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup lifecycle handler."""
    logger.info(f"Ask ED API starting (model: {MODEL_NAME})...")
    yield
    logger.info("Ask ED API shutting down...")


app = FastAPI(
    title="Ask ED API",
    description="Answer product questions from page specs and datasheets",
    version="1.0.0",
    lifespan=lifespan
)


class EmptyPreflightCORSMiddleware(CORSMiddleware):
    """CORS middleware whose preflight answer is always an empty 200."""

    def preflight_response(self, request_headers):
        response = super().preflight_response(request_headers=request_headers)
        headers = {
            key: value for key, value in response.headers.items()
            if key not in ("content-length", "content-type")
        }
        return Response(status_code=200, headers=headers)


# The widget is embedded on product pages, so any origin may call /ask
app.add_middleware(
    EmptyPreflightCORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["*"],
)


class AskRequest(BaseModel):
    question: Optional[str] = None
    productSpecs: Optional[str] = None
    productTitle: Optional[str] = None
    datasheetUrl: Optional[str] = None
    similarProducts: Optional[str] = None
    accessories: Optional[str] = None

    @field_validator('question', 'productTitle', 'datasheetUrl')
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


# Error envelopes: every failure is {"error": ...}
@app.exception_handler(AskError)
async def ask_error_handler(request: Request, exc: AskError):
    body = {"error": exc.message}
    if exc.debug:
        body["debug"] = exc.debug
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Malformed request body on {request.url.path}")
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


# Routes
@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "running",
        "message": "Ask ED API is running",
        "cache_size": datasheet_cache.size,
        "product_page_cache_size": product_page_cache.size,
        "tracked_clients": rate_limiter.tracked_clients,
    }


@app.get("/limits")
async def get_limits():
    """Get current API limits and configuration."""
    return {
        "input_limits": {
            "max_question_length": MAX_QUESTION_LENGTH,
        },
        "rate_limits": {
            "requests_per_minute": RATE_LIMIT_PER_MINUTE,
            "requests_per_day": RATE_LIMIT_PER_DAY,
        },
        "cache": {
            "ttl_seconds": CACHE_TTL_SECONDS,
            "max_size": CACHE_MAX_SIZE,
        },
        "datasheet": {
            "timeout_seconds": DATASHEET_TIMEOUT_SECONDS,
            "max_content_length": MAX_DATASHEET_CONTENT_LENGTH,
        },
        "prompt": {
            "max_product_specs_length": MAX_PRODUCT_SPECS_LENGTH,
            "max_datasheet_length": MAX_DATASHEET_PROMPT_LENGTH,
        },
        "model": {
            "name": MODEL_NAME,
            "version": APP_VERSION,
            "max_tokens": MODEL_MAX_TOKENS,
            "temperature": MODEL_TEMPERATURE,
        },
    }


@app.options("/ask")
async def ask_preflight():
    """Bare OPTIONS requests; CORS preflights are answered by the middleware."""
    return Response(status_code=200)


@app.post("/ask", response_model=None)
async def ask(request: AskRequest, req: Request, handler: AskHandler = Depends(get_ask_handler)):
    """Answer a product question."""
    client_id = get_client_ip(req)
    return await handler.handle(
        client_id=client_id,
        question=request.question,
        product_specs=request.productSpecs,
        product_title=request.productTitle,
        datasheet_url=request.datasheetUrl,
        similar_products=request.similarProducts,
        accessories=request.accessories,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3000)
