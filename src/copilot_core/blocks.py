"""
Fenced code block scanning and collapse decisions for streamed replies.

The extractor runs against whatever text has arrived so far, so it must be
stable while the reply grows: a block's identity is ``language-index``
where ``index`` counts earlier blocks of the same language, which does not
change as more text is appended.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import AbstractSet, Iterable, Iterator, Optional

from copilot_core.types import CollapsibleBlockConfig

__all__ = [
    "BlockToggleState",
    "CodeBlock",
    "ContentBlockExtractor",
    "RenderedBlock",
    "iter_code_blocks",
    "normalize_collapsible_blocks",
]

_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})(.*)$")

LEGACY_JSON_BLOCK = CollapsibleBlockConfig(
    language="json",
    hide_by_default=True,
    collapsed_label="Generating intent...",
    collapsed_icon="sparkles",
    animate=True,
)


def normalize_collapsible_blocks(
    configs: Iterable[CollapsibleBlockConfig],
    hide_json_blocks: bool = False,
) -> tuple[CollapsibleBlockConfig, ...]:
    """
    Expand the legacy "hide JSON blocks" flag into an explicit config.

    An explicit ``json`` entry always wins over the flag.
    """
    normalized = tuple(configs)
    if hide_json_blocks and not any(c.language == "json" for c in normalized):
        normalized += (LEGACY_JSON_BLOCK,)
    return normalized


@dataclass(frozen=True, slots=True)
class CodeBlock:
    language: str
    content: str
    start: int
    end: int
    # False while the closing fence has not streamed in yet
    closed: bool = True


@dataclass(frozen=True, slots=True)
class RenderedBlock:
    block: CodeBlock
    block_id: Optional[str] = None
    collapsed: bool = False
    label: Optional[str] = None
    icon: Optional[str] = None
    animate: bool = False

    @property
    def collapsible(self) -> bool:
        return self.block_id is not None


def _opening_fence(line: str) -> Optional[tuple[str, str]]:
    match = _FENCE_RE.match(line.rstrip("\r\n"))
    if match is None:
        return None
    fence, info = match.group(1), match.group(2).strip()
    # backtick fences may not carry backticks in their info string
    if fence[0] == "`" and "`" in info:
        return None
    return fence, info


def _is_closing_fence(line: str, fence: str) -> bool:
    match = _FENCE_RE.match(line.rstrip("\r\n"))
    if match is None:
        return False
    candidate, rest = match.group(1), match.group(2)
    return candidate[0] == fence[0] and len(candidate) >= len(fence) and not rest.strip()


def iter_code_blocks(text: str) -> Iterator[CodeBlock]:
    """
    Yield fenced code blocks in document order.

    Partial input is expected: an opening fence whose line is still being
    typed (no newline yet) is ignored, and a block missing its closing fence
    runs to the end of the text with ``closed=False``.
    """
    lines = text.splitlines(keepends=True)
    offset = 0
    index = 0

    while index < len(lines):
        line = lines[index]
        opening = _opening_fence(line)
        if opening is None or not line.endswith("\n"):
            offset += len(line)
            index += 1
            continue

        fence, info = opening
        start = offset
        offset += len(line)
        index += 1
        body_start = offset
        body_end: Optional[int] = None

        while index < len(lines):
            inner = lines[index]
            if _is_closing_fence(inner, fence):
                body_end = offset
                offset += len(inner)
                index += 1
                break
            offset += len(inner)
            index += 1

        closed = body_end is not None
        content = text[body_start:body_end if closed else offset]
        if content.endswith("\n"):
            content = content[:-1]
        yield CodeBlock(
            language=info.split()[0] if info else "",
            content=content,
            start=start,
            end=offset,
            closed=closed,
        )


class ContentBlockExtractor:
    """
    Decides, per fenced block, whether it renders collapsed.

    Only configs with ``hide_by_default`` make a block collapsible; other
    blocks render normally and take no part in toggle state. The first
    config for a language wins.
    """

    def __init__(self, configs: Iterable[CollapsibleBlockConfig] = ()) -> None:
        self._configs: dict[str, CollapsibleBlockConfig] = {}
        for config in configs:
            self._configs.setdefault(config.language, config)

    def config_for(self, language: str) -> Optional[CollapsibleBlockConfig]:
        config = self._configs.get(language)
        if config is None or not config.hide_by_default:
            return None
        return config

    def extract(
        self, text: str, expanded: AbstractSet[str] = frozenset()
    ) -> list[RenderedBlock]:
        counts: dict[str, int] = {}
        rendered: list[RenderedBlock] = []

        for block in iter_code_blocks(text):
            occurrence = counts.get(block.language, 0)
            counts[block.language] = occurrence + 1

            config = self.config_for(block.language)
            if config is None:
                rendered.append(RenderedBlock(block=block))
                continue

            block_id = f"{block.language}-{occurrence}"
            rendered.append(
                RenderedBlock(
                    block=block,
                    block_id=block_id,
                    collapsed=block_id not in expanded,
                    label=config.collapsed_label,
                    icon=config.collapsed_icon,
                    animate=config.animate,
                )
            )
        return rendered

    def block_ids(self, text: str) -> list[str]:
        return [r.block_id for r in self.extract(text) if r.block_id is not None]


class BlockToggleState:
    """Which collapsible blocks the user has expanded."""

    def __init__(self) -> None:
        self._expanded: set[str] = set()

    @property
    def expanded(self) -> frozenset[str]:
        return frozenset(self._expanded)

    def is_expanded(self, block_id: str) -> bool:
        return block_id in self._expanded

    def toggle(self, block_id: str) -> bool:
        """Flip a block; returns True when it is now expanded."""
        if block_id in self._expanded:
            self._expanded.discard(block_id)
            return False
        self._expanded.add(block_id)
        return True

    def clear(self) -> None:
        self._expanded.clear()
