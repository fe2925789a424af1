"""
Decoder for newline-delimited JSON response bodies.

The inference server answers /api/chat and /api/generate with one JSON object
per line. The full body is read before decoding; lines that do not parse are
skipped and scanning stops at the first object with ``done: true``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from owllama.models.chat import ChatChunk, GenerateChunk

logger = logging.getLogger(__name__)

_ChunkT = TypeVar("_ChunkT", bound=BaseModel)


def _body_lines(body: bytes | str) -> list[str]:
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    return body.splitlines()


def iter_chunks(body: bytes | str, model: type[_ChunkT]) -> Iterator[_ChunkT]:
    """Yield every line of ``body`` that validates as ``model``."""
    for lineno, line in enumerate(_body_lines(body), 1):
        line = line.strip()
        if not line:
            continue
        try:
            yield model.model_validate_json(line)
        except ValidationError as e:
            logger.debug(f"Skipping malformed line {lineno}: {e.error_count()} error(s)")
            continue


def decode_chat_body(body: bytes | str) -> str:
    """
    Accumulate the assistant reply from a /api/chat response body.

    Args:
        body: Raw response body

    Returns:
        Concatenated assistant content, or "" if nothing decoded
    """
    text = ""
    for chunk in iter_chunks(body, ChatChunk):
        if chunk.message.role == "assistant":
            text += chunk.message.content
        if chunk.done:
            break
    return text


def decode_generate_body(body: bytes | str) -> str:
    """Accumulate the ``response`` fields of a /api/generate response body."""
    text = ""
    for chunk in iter_chunks(body, GenerateChunk):
        text += chunk.response
        if chunk.done:
            break
    return text
