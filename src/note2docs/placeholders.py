"""Reversible placeholder extraction used by every pre-render stage."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern, Sequence, Tuple, Union

PLACEHOLDER_PREFIX = "NTDXQPH"
PLACEHOLDER_SUFFIX = "QX"

KIND_CODE_BLOCK = "CB"
KIND_CODE_INLINE = "CI"
KIND_MATH_DISPLAY = "MD"
KIND_MATH_INLINE = "MI"
KIND_IMAGE = "IM"


@dataclass
class Extraction:
    placeholder: str
    original: str


@dataclass
class MathExtraction(Extraction):
    is_display: bool
    latex: str


@dataclass
class ImageExtraction(Extraction):
    vault_path: str
    alt: str
    width: Optional[str]
    is_svg: bool


Builder = Callable[["re.Match[str]", str], Extraction]


def make_placeholder(kind: str, index: int) -> str:
    # The suffix keeps "...MI1QX" from being a prefix of "...MI10QX".
    return f"{PLACEHOLDER_PREFIX}{kind}{index}{PLACEHOLDER_SUFFIX}"


def _default_builder(match: "re.Match[str]", placeholder: str) -> Extraction:
    return Extraction(placeholder=placeholder, original=match.group(0))


def extract(
    text: str,
    pattern: Union[str, Pattern[str]],
    kind: str,
    start: int = 0,
    build: Optional[Builder] = None,
) -> Tuple[str, List[Extraction]]:
    """Replace every match of ``pattern`` with a fresh placeholder.

    Indices begin at ``start`` so callers chaining several patterns of one
    pass can keep placeholders unique. Returns the cleaned text and the
    records in creation order.
    """
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern
    builder = build or _default_builder
    records: List[Extraction] = []

    def repl(match: "re.Match[str]") -> str:
        placeholder = make_placeholder(kind, start + len(records))
        records.append(builder(match, placeholder))
        return placeholder

    cleaned = regex.sub(repl, text)
    return cleaned, records


def restore(text: str, records: Sequence[Extraction]) -> str:
    """Substitute placeholders back, newest first, without pattern expansion."""
    result = text
    for record in reversed(records):
        result = result.replace(record.placeholder, record.original)
    return result
