"""
Package exceptions, plus helpers that turn noisy provider tracebacks into
short messages fit for the chat transcript.
"""

from __future__ import annotations

import logging
from typing import Final, Optional, Type

import anthropic
import httpx
import openai

__all__: tuple[str, ...] = (
    "CopilotError",
    "ClassifierError",
    "RegistryError",
    "TurnCancelled",
    "classify_error",
    "describe_error",
)


class CopilotError(RuntimeError):
    """Public package-level exception.

    Attributes:
        original_exc: The underlying exception, if any.
    """

    original_exc: Optional[Exception]

    def __init__(self, message: str, original_exc: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.original_exc = original_exc
        if original_exc is not None:
            self.__cause__ = original_exc


class ClassifierError(CopilotError):
    """Remote tool classification failed or returned unusable data."""


class TurnCancelled(CopilotError):
    """Raised at a suspension point after the turn's cancellation token fired."""

    def __init__(self) -> None:
        super().__init__("Turn cancelled")


class RegistryError(ValueError):
    """A tool registry failed validation."""


OpenAI_APIError: Final = openai.APIError
OpenAI_APIConnectionError: Final = openai.APIConnectionError
OpenAI_RateLimitError: Final = openai.RateLimitError

Anthropic_APIError: Final = anthropic.APIError
Anthropic_APIConnectionError: Final = anthropic.APIConnectionError
Anthropic_RateLimitError: Final = anthropic.RateLimitError

API_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAI_APIError,
    Anthropic_APIError,
)

CONN_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAI_APIConnectionError,
    Anthropic_APIConnectionError,
    httpx.TransportError,
    TimeoutError,
    ConnectionError,
)

RATE_LIMIT_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAI_RateLimitError,
    Anthropic_RateLimitError,
)


def classify_error(
    exc: Exception,
    logger: Optional[logging.Logger] = None,
) -> CopilotError:
    """Wrap an SDK exception in CopilotError with a friendly, concise message."""
    log = logger or logging.getLogger("copilot_core.errors")

    if isinstance(exc, RATE_LIMIT_ERRORS):
        msg = "Rate-limit exceeded, please retry later"
    elif isinstance(exc, CONN_ERRORS):
        msg = "Connection problem, unable to reach the model provider"
    elif isinstance(exc, API_ERRORS):
        msg = "Provider reported an internal error"
    else:
        msg = exc.__class__.__name__

    log.warning("Wrapping provider exception", extra={"exc": exc})
    return CopilotError(f"{msg}: {exc}", exc)


def describe_error(exc: BaseException) -> str:
    """Text embedded in the inline assistant error reply."""
    text = str(exc).strip()
    return text or "Unknown error"
