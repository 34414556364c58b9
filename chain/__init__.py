# chain/__init__.py
from .handler import AskHandler, AskError, ClientInputError, RateLimitError, UpstreamError
from .model import ModelInvoker
from .postprocess import process_answer
from .prompt import SYSTEM_PROMPT, assemble_prompt

__all__ = [
    "AskHandler",
    "AskError",
    "ClientInputError",
    "RateLimitError",
    "UpstreamError",
    "ModelInvoker",
    "process_answer",
    "SYSTEM_PROMPT",
    "assemble_prompt",
]
