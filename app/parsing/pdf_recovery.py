from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Sequence

logger = logging.getLogger(__name__)

PDF_SIGNATURE = "%PDF"
MIN_RECOVERED_CHARS = 100
LONG_LINE_CHARS = 50

_PAREN_TEXT_RE = re.compile(r"\(([^)]+)\)")
_TEXT_OBJECT_RE = re.compile(r"\bBT\s(.*?)\sET\b", re.DOTALL)
_POSITIONING_RE = re.compile(r"TJ ET|Tj ET|BT\s*/F\d+\s+\d+\s+Tf")
_ARRAY_SHOW_RE = re.compile(r"BT\s*\[(.*?)\]\s*TJ")
_ARRAY_STRING_RE = re.compile(r"\(((?:\\.|[^\\)])*)\)")
_KERNING_RE = re.compile(r"-?\d+(?:\.\d+)?")
_STREAM_RE = re.compile(r"stream([\s\S]*?)endstream")
_NON_PRINTABLE_RE = re.compile(r"[^\x20-\x7E\n]")
_WIDE_GAP_RE = re.compile(r"\s{3,}")
_GAP_RE = re.compile(r"\s{2,}")

# Kerning offsets at or beyond this magnitude read as word gaps.
_WORD_GAP_KERNING = 200


@dataclass(frozen=True)
class RecoveryStrategy:
    name: str
    extract: Callable[[str], str | None]


def has_pdf_signature(content: bytes | str | None) -> bool:
    if not content:
        return False
    if isinstance(content, (bytes, bytearray)):
        return bytes(content[:4]) == PDF_SIGNATURE.encode("ascii")
    return content.startswith(PDF_SIGNATURE)


def _as_text(content: bytes | str) -> str:
    if isinstance(content, (bytes, bytearray)):
        return bytes(content).decode("latin-1")
    return content


def _unescape(text: str) -> str:
    return text.replace("\\n", "\n").replace("\\r", "").replace("\\t", "  ").replace("\\", "")


def _drop_blank_lines(text: str) -> str:
    return "\n".join(line for line in text.split("\n") if line.strip())


def remove_repeated_headers_footers(text: str) -> str:
    lines = text.split("\n")
    frequency = Counter(line.strip() for line in lines if line.strip())
    threshold = max(3, len(lines) // 10)
    kept = [
        line
        for line in lines
        if not line.strip()
        or frequency[line.strip()] < threshold
        or len(line.strip()) > LONG_LINE_CHARS
    ]
    return "\n".join(kept)


def parenthesized_text(content: str) -> str | None:
    # inside BT...ET text objects when there are any, so the Info dictionary is skipped
    blocks = _TEXT_OBJECT_RE.findall(content)
    scope = "\n".join(blocks) if blocks else content
    matches = [match for match in _PAREN_TEXT_RE.findall(scope) if len(match.strip()) > 1]
    if not matches:
        return None
    text = _unescape("\n".join(matches))
    text = _POSITIONING_RE.sub("", text)
    text = _WIDE_GAP_RE.sub("\n", text).strip()
    text = _drop_blank_lines(text)
    return remove_repeated_headers_footers(text)


def _array_body_text(body: str) -> str:
    pieces: list[str] = []
    cursor = 0
    for match in _ARRAY_STRING_RE.finditer(body):
        between = body[cursor:match.start()]
        offsets = [abs(float(value)) for value in _KERNING_RE.findall(between)]
        if pieces and any(offset >= _WORD_GAP_KERNING for offset in offsets):
            pieces.append(" ")
        pieces.append(_unescape(match.group(1)))
        cursor = match.end()
    if not pieces:
        return _KERNING_RE.sub(" ", body)
    return "".join(pieces)


def bracketed_array_text(content: str) -> str | None:
    bodies = _ARRAY_SHOW_RE.findall(content)
    if not bodies:
        return None
    text = "\n".join(_array_body_text(body) for body in bodies)
    return _GAP_RE.sub("\n", text).strip()


def largest_stream_text(content: str) -> str | None:
    streams = _STREAM_RE.findall(content)
    if not streams:
        return None
    largest = max(streams, key=len)
    text = _NON_PRINTABLE_RE.sub(" ", largest)
    return _GAP_RE.sub("\n", text).strip()


DEFAULT_STRATEGIES: tuple[RecoveryStrategy, ...] = (
    RecoveryStrategy("parenthesized_text", parenthesized_text),
    RecoveryStrategy("bracketed_array_text", bracketed_array_text),
    RecoveryStrategy("largest_stream_text", largest_stream_text),
)


def run_strategies(
    content: str,
    strategies: Sequence[RecoveryStrategy],
    *,
    min_chars: int = MIN_RECOVERED_CHARS,
) -> tuple[str, str | None]:
    for strategy in strategies:
        try:
            candidate = strategy.extract(content)
        except Exception as exc:  # noqa: BLE001 - a failing strategy falls through to the next
            logger.warning("pdf_recovery_strategy_failed strategy=%s: %s", strategy.name, exc)
            continue
        if candidate and len(candidate) >= min_chars:
            logger.info("pdf_recovery_strategy_selected strategy=%s chars=%s", strategy.name, len(candidate))
            return candidate, strategy.name
    return "", None


def recover_pdf_text(
    content: bytes | str | None,
    strategies: Sequence[RecoveryStrategy] = DEFAULT_STRATEGIES,
) -> str:
    """Best-effort plain text from raw PDF content.

    Returns "" when the signature is missing or no strategy produces at least
    ``MIN_RECOVERED_CHARS`` characters. Never raises.
    """
    if not has_pdf_signature(content):
        return ""
    text, _ = run_strategies(_as_text(content), strategies)
    return text
