"""Renderer-agnostic document model produced by the HTML walker."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass
class TextRun:
    """Text with inherited inline formatting. ``line_break`` runs carry no text."""

    text: str = ""
    bold: bool = False
    italic: bool = False
    monospace: bool = False
    line_break: bool = False


@dataclass
class ImageRun:
    data: bytes
    width: int
    height: int


@dataclass
class Hyperlink:
    """Link wrapping leaf runs only; hyperlinks never nest."""

    runs: List[Union[TextRun, ImageRun]]
    target: str


Run = Union[TextRun, ImageRun, Hyperlink]


@dataclass
class Heading:
    level: int
    runs: List[Run]
    anchor: Optional[str] = None


@dataclass
class Paragraph:
    runs: List[Run]
    centered: bool = False


@dataclass
class CodeBlock:
    lines: List[str]


@dataclass
class Blockquote:
    blocks: List["Block"]


@dataclass
class TableCell:
    runs: List[Run]


@dataclass
class TableRow:
    cells: List[TableCell]
    header: bool = False


@dataclass
class Table:
    rows: List[TableRow]


@dataclass
class ListItem:
    runs: List[Run]
    children: List["ListBlock"] = field(default_factory=list)


@dataclass
class ListBlock:
    items: List[ListItem]
    ordered: bool = False


@dataclass
class Image:
    data: bytes
    width: int
    height: int


@dataclass
class HorizontalRule:
    pass


Block = Union[Heading, Paragraph, CodeBlock, Blockquote, Table, ListBlock, Image, HorizontalRule]


@dataclass
class Document:
    title: str
    blocks: List[Block] = field(default_factory=list)


def runs_text(runs: List[Run]) -> str:
    """Plain text of a run sequence, used for logging and tests."""
    parts: List[str] = []
    for run in runs:
        if isinstance(run, TextRun):
            parts.append("\n" if run.line_break else run.text)
        elif isinstance(run, Hyperlink):
            parts.append(runs_text(list(run.runs)))
    return "".join(parts)
