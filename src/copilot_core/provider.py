from __future__ import annotations

import os
from enum import StrEnum
from typing import Final

from dotenv import load_dotenv

load_dotenv()


class Provider(StrEnum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


_ENV_VARS: Final[dict[Provider, str]] = {
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
    Provider.GEMINI: "GEMINI_API_KEY",
}

# model ids are namespaced the way the model picker lists them ("google/gemini-2.5-flash")
_PREFIXES: Final[dict[str, Provider]] = {
    "openai": Provider.OPENAI,
    "anthropic": Provider.ANTHROPIC,
    "google": Provider.GEMINI,
    "gemini": Provider.GEMINI,
}


def get_api_key(provider: Provider) -> str:
    """Return the API key for *provider* or raise RuntimeError."""
    try:
        env_var = _ENV_VARS[provider]
    except KeyError:
        raise RuntimeError(f"No config for {provider!s}") from None

    try:
        return os.environ[env_var]
    except KeyError as exc:
        raise RuntimeError(f"{env_var} missing") from exc


def split_model_id(model_id: str) -> tuple[Provider, str]:
    """
    Split a namespaced model id into its provider and bare model name.

    >>> split_model_id("google/gemini-2.5-flash")
    (<Provider.GEMINI: 'gemini'>, 'gemini-2.5-flash')

    Ids without a known prefix are treated as OpenAI model names.
    """
    prefix, sep, name = model_id.partition("/")
    if sep and prefix.lower() in _PREFIXES:
        return _PREFIXES[prefix.lower()], name
    return Provider.OPENAI, model_id


__all__ = ["Provider", "get_api_key", "split_model_id"]
