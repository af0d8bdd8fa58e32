"""Tunables for tool detection and the chat turn lifecycle."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final, Optional

from dotenv import load_dotenv

load_dotenv()

# Keyword results at or above this confidence skip the remote classifier.
KEYWORD_CONFIDENCE_THRESHOLD: Final[float] = 0.7
FALLBACK_CONFIDENCE: Final[float] = 0.5
CLASSIFIER_CONFIDENCE: Final[float] = 0.9
FALLBACK_TOOL_ID: Final[str] = "general"

DEFAULT_TEMPERATURE: Final[float] = 0.7
CLASSIFIER_TEMPERATURE: Final[float] = 0.1

# Seconds a finished turn stays "completed"/"error" before returning to idle.
IDLE_GRACE_DELAY: Final[float] = 0.1

# Messages this short are submitted as-is, without tool detection.
AUTO_DETECT_MIN_LENGTH: Final[int] = 10

DEFAULT_MODEL: Final[str] = "google/gemini-2.0-flash-lite"


@dataclass(frozen=True)
class CopilotSettings:
    """Process-level settings, read once at the application boundary."""

    default_model: str = DEFAULT_MODEL
    detect_tool_url: Optional[str] = None
    idle_grace_delay: float = IDLE_GRACE_DELAY

    @classmethod
    def from_env(cls) -> "CopilotSettings":
        delay = os.environ.get("COPILOT_IDLE_GRACE_DELAY")
        return cls(
            default_model=os.environ.get("COPILOT_DEFAULT_MODEL", DEFAULT_MODEL),
            detect_tool_url=os.environ.get("COPILOT_DETECT_TOOL_URL") or None,
            idle_grace_delay=float(delay) if delay else IDLE_GRACE_DELAY,
        )


__all__ = [
    "AUTO_DETECT_MIN_LENGTH",
    "CLASSIFIER_CONFIDENCE",
    "CLASSIFIER_TEMPERATURE",
    "CopilotSettings",
    "DEFAULT_MODEL",
    "DEFAULT_TEMPERATURE",
    "FALLBACK_CONFIDENCE",
    "FALLBACK_TOOL_ID",
    "IDLE_GRACE_DELAY",
    "KEYWORD_CONFIDENCE_THRESHOLD",
]
