from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from copilot_core.errors import CopilotError


@dataclass
class ChatResponse:
    """Provider-neutral reply, or one text delta of a streamed reply."""

    content: str
    raw: Any = None
    error: Optional[str] = None
    finish_reason: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def raise_for_error(self) -> None:
        if self.is_error:
            raise CopilotError(self.error or "Unknown provider error")
