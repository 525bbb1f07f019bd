"""Text helpers for document bodies and query tokens."""

from __future__ import annotations

from typing import Iterable


def decode_content(data: bytes, encoding: str = "utf-8") -> str:
    """Decode raw file content, replacing undecodable bytes."""
    if data.startswith(b"\xef\xbb\xbf"):
        data = data[3:]
    return data.decode(encoding, errors="replace")


def normalize_tokens(tokens: Iterable[str] | None) -> list[str]:
    """Strip tokens and drop the empty ones."""
    if not tokens:
        return []
    return [token.strip() for token in tokens if token and token.strip()]


def quote_token(token: str) -> str:
    """Quote a token as an FTS5 string so operators inside it stay literal."""
    return '"' + token.replace('"', '""') + '"'
