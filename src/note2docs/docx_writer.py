"""Serialize the document model to a ``.docx`` file with python-docx."""

from __future__ import annotations

import io
import logging
import re
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .document import (
    Block,
    Blockquote,
    CodeBlock,
    Document,
    Heading,
    HorizontalRule,
    Hyperlink,
    Image,
    ImageRun,
    ListBlock,
    Paragraph,
    Run,
    Table,
    TextRun,
)
from .themes import Theme, get_theme, primary_font
from .version import __version__

LOG = logging.getLogger("note2docs")

EMU_PER_PIXEL = 9525
CODE_FONT_SIZE_PT = 10
CODE_SHADING = "F5F5F5"
QUOTE_TEXT_COLOR = "666666"
QUOTE_BORDER_COLOR = "CCCCCC"
QUOTE_INDENT_INCHES = 0.5
RULE_COLOR = "CCCCCC"
MAX_LIST_LEVEL = 3
# Word rejects longer bookmark names.
BOOKMARK_NAME_MAX = 40

CSS_SIZE_RE = re.compile(r"^\s*([\d.]+)\s*(px|pt)\s*$", re.IGNORECASE)

# Successor tags, in schema order, used to place new property children.
PPR_AFTER_SHD = (
    "w:tabs", "w:suppressAutoHyphens", "w:kinsoku", "w:wordWrap", "w:overflowPunct",
    "w:topLinePunct", "w:autoSpaceDE", "w:autoSpaceDN", "w:bidi", "w:adjustRightInd",
    "w:snapToGrid", "w:spacing", "w:ind", "w:contextualSpacing", "w:mirrorIndents",
    "w:suppressOverlap", "w:jc", "w:textDirection", "w:textAlignment", "w:textboxTightWrap",
    "w:outlineLvl", "w:divId", "w:cnfStyle", "w:rPr", "w:sectPr", "w:pPrChange",
)
TCPR_AFTER_SHD = (
    "w:noWrap", "w:tcMar", "w:textDirection", "w:tcFitText", "w:vAlign", "w:hideMark",
    "w:headers", "w:cellIns", "w:cellDel", "w:cellMerge", "w:tcPrChange",
)
TBLPR_AFTER_BORDERS = (
    "w:shd", "w:tblLayout", "w:tblCellMar", "w:tblLook", "w:tblCaption", "w:tblDescription", "w:tblPrChange",
)


def bookmark_name(anchor: str) -> str:
    return anchor[:BOOKMARK_NAME_MAX]


def css_points(value: str) -> Optional[float]:
    """``"14px"`` -> 10.5, ``"12pt"`` -> 12.0; relative units give ``None``."""
    match = CSS_SIZE_RE.match(value or "")
    if match is None:
        return None
    number = float(match.group(1))
    return number * 0.75 if match.group(2).lower() == "px" else number


def css_hex_color(value: str) -> Optional[str]:
    color = (value or "").strip().lstrip("#")
    if re.fullmatch(r"[0-9a-fA-F]{3}", color):
        color = "".join(ch * 2 for ch in color)
    if re.fullmatch(r"[0-9a-fA-F]{6}", color):
        return color.upper()
    return None


class DocxWriter:
    def __init__(self, theme: Optional[Theme] = None, author: str = "note2docs") -> None:
        try:
            import docx  # type: ignore
        except Exception as exc:
            raise RuntimeError(f"python-docx not available: {exc}") from exc

        self.theme = theme or get_theme(None)
        self.author = author
        self.doc = docx.Document()
        self.code_font = primary_font(self.theme.code_font_family)
        self.link_color = css_hex_color(self.theme.link_color) or "1A73E8"
        self._quote_depth = 0
        self._bookmark_id = 0
        self._handlers: Dict[type, Callable[[Block], None]] = {
            Heading: self._heading,
            Paragraph: self._paragraph,
            CodeBlock: self._code_block,
            Blockquote: self._blockquote,
            Table: self._table,
            ListBlock: self._list,
            Image: self._image,
            HorizontalRule: self._rule,
        }

    # ---- document ----

    def write(self, document: Document, target: Path) -> Path:
        self._apply_theme()
        props = self.doc.core_properties
        props.title = document.title
        props.author = self.author
        props.comments = f"Generated by note2docs {__version__}"

        for block in document.blocks:
            self.write_block(block)

        target = Path(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        self.doc.save(str(target))
        LOG.info("DOCX written: %s (%d block(s))", target, len(document.blocks))
        return target

    def write_block(self, block: Block) -> None:
        handler = self._handlers.get(type(block))
        if handler is None:
            LOG.warning("Skipping unsupported block %s", type(block).__name__)
            return
        handler(block)

    def _apply_theme(self) -> None:
        from docx.shared import Pt, RGBColor  # type: ignore

        t = self.theme
        normal = self.doc.styles["Normal"].font
        normal.name = primary_font(t.font_family)
        size = css_points(t.font_size)
        if size:
            normal.size = Pt(size)
        color = css_hex_color(t.text_color)
        if color:
            normal.color.rgb = RGBColor.from_string(color)

        heading_color = css_hex_color(t.heading_color)
        for level in range(1, 7):
            font = self.doc.styles[f"Heading {level}"].font
            font.name = primary_font(t.heading_font_family)
            if heading_color:
                font.color.rgb = RGBColor.from_string(heading_color)

    # ---- xml helpers ----

    def _shade_paragraph(self, paragraph, fill: str) -> None:
        from docx.oxml import parse_xml  # type: ignore
        from docx.oxml.ns import nsdecls  # type: ignore

        shading = parse_xml(f'<w:shd {nsdecls("w")} w:fill="{fill}" w:val="clear"/>')
        paragraph._p.get_or_add_pPr().insert_element_before(shading, *PPR_AFTER_SHD)

    def _shade_cell(self, cell, fill: str) -> None:
        from docx.oxml import parse_xml  # type: ignore
        from docx.oxml.ns import nsdecls  # type: ignore

        shading = parse_xml(f'<w:shd {nsdecls("w")} w:fill="{fill}" w:val="clear"/>')
        cell._tc.get_or_add_tcPr().insert_element_before(shading, *TCPR_AFTER_SHD)

    def _set_borders(self, paragraph, sides: List[Tuple[str, str, int]]) -> None:
        """``sides`` holds ``(side, color, size)`` in schema order (top, left, bottom)."""
        from docx.oxml import parse_xml  # type: ignore
        from docx.oxml.ns import nsdecls  # type: ignore

        edges = "".join(
            f'<w:{side} w:val="single" w:sz="{size}" w:space="4" w:color="{color}"/>' for side, color, size in sides
        )
        borders = parse_xml(f'<w:pBdr {nsdecls("w")}>{edges}</w:pBdr>')
        paragraph._p.get_or_add_pPr().insert_element_before(borders, "w:shd", *PPR_AFTER_SHD)

    def _add_bookmark(self, paragraph, anchor: str) -> None:
        from docx.oxml import OxmlElement  # type: ignore
        from docx.oxml.ns import qn  # type: ignore

        self._bookmark_id += 1
        start = OxmlElement("w:bookmarkStart")
        start.set(qn("w:id"), str(self._bookmark_id))
        start.set(qn("w:name"), bookmark_name(anchor))
        end = OxmlElement("w:bookmarkEnd")
        end.set(qn("w:id"), str(self._bookmark_id))
        paragraph._p.insert(1 if paragraph._p.pPr is not None else 0, start)
        paragraph._p.append(end)

    # ---- runs ----

    def _new_paragraph(self, style: Optional[str] = None, rule: bool = False):
        from docx.shared import Inches  # type: ignore

        paragraph = self.doc.add_paragraph(style=style)
        sides: List[Tuple[str, str, int]] = []
        if self._quote_depth:
            paragraph.paragraph_format.left_indent = Inches(QUOTE_INDENT_INCHES * self._quote_depth)
            sides.append(("left", QUOTE_BORDER_COLOR, 12))
        if rule:
            sides.append(("bottom", RULE_COLOR, 6))
        if sides:
            self._set_borders(paragraph, sides)
        return paragraph

    def _picture(self, paragraph, data: bytes, width: int, height: int):
        from docx.shared import Emu  # type: ignore

        run = paragraph.add_run()
        try:
            run.add_picture(io.BytesIO(data), width=Emu(width * EMU_PER_PIXEL), height=Emu(height * EMU_PER_PIXEL))
        except Exception as exc:
            LOG.warning("Unable to place picture in DOCX: %s", exc)
            run.text = "[Image]"
            run.italic = True
        return run

    def _add_leaf(self, paragraph, leaf, bold: bool = False):
        from docx.shared import Pt, RGBColor  # type: ignore

        if isinstance(leaf, ImageRun):
            return self._picture(paragraph, leaf.data, leaf.width, leaf.height)
        run = paragraph.add_run()
        if leaf.line_break:
            run.add_break()
            return run
        run.text = leaf.text
        if leaf.bold or bold:
            run.bold = True
        if leaf.italic or self._quote_depth:
            run.italic = True
        if leaf.monospace:
            run.font.name = self.code_font
            run.font.size = Pt(CODE_FONT_SIZE_PT)
        if self._quote_depth:
            run.font.color.rgb = RGBColor.from_string(QUOTE_TEXT_COLOR)
        return run

    def _add_hyperlink(self, paragraph, link: Hyperlink, bold: bool = False) -> None:
        from docx.opc.constants import RELATIONSHIP_TYPE as RT  # type: ignore
        from docx.oxml import OxmlElement  # type: ignore
        from docx.oxml.ns import qn  # type: ignore
        from docx.shared import RGBColor  # type: ignore

        element = OxmlElement("w:hyperlink")
        if link.target.startswith("#"):
            element.set(qn("w:anchor"), bookmark_name(link.target[1:]))
        else:
            element.set(qn("r:id"), paragraph.part.relate_to(link.target, RT.HYPERLINK, is_external=True))

        for leaf in link.runs:
            run = self._add_leaf(paragraph, leaf, bold)
            if isinstance(leaf, TextRun) and not leaf.line_break:
                run.font.color.rgb = RGBColor.from_string(self.link_color)
                run.font.underline = True
            element.append(run._r)
        paragraph._p.append(element)

    def add_runs(self, paragraph, runs: List[Run], bold: bool = False) -> None:
        for run in runs:
            if isinstance(run, Hyperlink):
                self._add_hyperlink(paragraph, run, bold)
            else:
                self._add_leaf(paragraph, run, bold)

    # ---- blocks ----

    def _heading(self, block: Heading) -> None:
        paragraph = self.doc.add_heading(level=max(1, min(block.level, 6)))
        self.add_runs(paragraph, block.runs)
        if block.anchor:
            self._add_bookmark(paragraph, block.anchor)

    def _paragraph(self, block: Paragraph) -> None:
        from docx.enum.text import WD_ALIGN_PARAGRAPH  # type: ignore

        paragraph = self._new_paragraph()
        if block.centered:
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        self.add_runs(paragraph, block.runs)

    def _code_block(self, block: CodeBlock) -> None:
        from docx.shared import Pt  # type: ignore

        for line in block.lines:
            paragraph = self._new_paragraph()
            paragraph.paragraph_format.space_before = Pt(0)
            paragraph.paragraph_format.space_after = Pt(0)
            self._shade_paragraph(paragraph, CODE_SHADING)
            run = paragraph.add_run(line)
            run.font.name = self.code_font
            run.font.size = Pt(CODE_FONT_SIZE_PT)

    def _blockquote(self, block: Blockquote) -> None:
        self._quote_depth += 1
        try:
            for child in block.blocks:
                self.write_block(child)
        finally:
            self._quote_depth -= 1

    def _table(self, block: Table) -> None:
        from docx.oxml import parse_xml  # type: ignore
        from docx.oxml.ns import nsdecls  # type: ignore

        columns = max((len(row.cells) for row in block.rows), default=0)
        if not columns:
            return
        table = self.doc.add_table(rows=len(block.rows), cols=columns)
        table.style = "Table Grid"

        border = css_hex_color(self.theme.table_border_color) or "999999"
        edges = "".join(
            f'<w:{edge} w:val="single" w:sz="4" w:space="0" w:color="{border}"/>'
            for edge in ("top", "left", "bottom", "right", "insideH", "insideV")
        )
        table._tbl.tblPr.insert_element_before(
            parse_xml(f'<w:tblBorders {nsdecls("w")}>{edges}</w:tblBorders>'), *TBLPR_AFTER_BORDERS
        )

        header_fill = css_hex_color(self.theme.table_header_background) or CODE_SHADING
        for i, row in enumerate(block.rows):
            for j, cell in enumerate(row.cells):
                target = table.cell(i, j)
                self.add_runs(target.paragraphs[0], cell.runs, bold=row.header)
                if row.header:
                    self._shade_cell(target, header_fill)

    def _list(self, block: ListBlock, level: int = 1) -> None:
        base = "List Number" if block.ordered else "List Bullet"
        depth = min(level, MAX_LIST_LEVEL)
        style = base if depth == 1 else f"{base} {depth}"
        for item in block.items:
            paragraph = self._new_paragraph(style=style)
            self.add_runs(paragraph, item.runs)
            for child in item.children:
                self._list(child, level + 1)

    def _image(self, block: Image) -> None:
        from docx.enum.text import WD_ALIGN_PARAGRAPH  # type: ignore

        paragraph = self._new_paragraph()
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        self._picture(paragraph, block.data, block.width, block.height)

    def _rule(self, block: HorizontalRule) -> None:
        self._new_paragraph(rule=True)


def write_docx(
    document: Document,
    target: Path,
    theme: Optional[Theme] = None,
    author: str = "note2docs",
) -> Path:
    return DocxWriter(theme=theme, author=author).write(document, target)
