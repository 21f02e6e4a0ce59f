"""
Chunk transforms for common server-sent-event payloads.

A transform receives one raw chunk and returns the text to append, or SKIP.
A raw chunk may carry several `data:` lines; their contributions are joined.
"""

import json
from typing import Any, Iterator

from asyncslot.services.stream import SKIP, ChunkTransform, _Skip

DONE_MARKER = "[DONE]"


def iter_sse_data(chunk: str) -> Iterator[str]:
    """Yield the payload of every `data:` line in chunk."""
    for line in chunk.splitlines():
        line = line.strip()
        if line.startswith("data:"):
            yield line[len("data:"):].strip()


def _join(parts: list[str]) -> "str | _Skip":
    text = "".join(parts)
    return text if text else SKIP


def sse_field_transform(field: str) -> ChunkTransform:
    """
    Build a transform extracting a top-level JSON field from `data:` lines.

    Example:
        transform = sse_field_transform("t")
        transform('data: {"t": "a"}')  # "a"
        transform("data: [DONE]")      # SKIP
    """

    def transform(chunk: str) -> "str | _Skip":
        parts = []
        for payload in iter_sse_data(chunk):
            if payload == DONE_MARKER:
                continue
            try:
                data = json.loads(payload)
            except json.JSONDecodeError:
                continue
            if isinstance(data, dict) and data.get(field) is not None:
                parts.append(str(data[field]))
        return _join(parts)

    transform.__name__ = f"sse_field_transform_{field}"
    return transform


def _delta_content(data: Any) -> str | None:
    try:
        return data["choices"][0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None


def openai_sse_transform(chunk: str) -> "str | _Skip":
    """Extract `choices[0].delta.content` from OpenAI-style chat streams."""
    parts = []
    for payload in iter_sse_data(chunk):
        if payload == DONE_MARKER:
            continue
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            continue
        content = _delta_content(data)
        if content:
            parts.append(content)
    return _join(parts)
