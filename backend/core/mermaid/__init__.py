"""Mermaid 다이어그램 파싱/복구."""
from backend.core.mermaid.sanitizer import (
    FALLBACK_DIAGRAM,
    FALLBACK_RESULT,
    sanitize_mermaid,
)
from backend.core.mermaid.syntax import parse_document, parse_line, tokenize

__all__ = [
    "FALLBACK_DIAGRAM",
    "FALLBACK_RESULT",
    "sanitize_mermaid",
    "parse_document",
    "parse_line",
    "tokenize",
]
