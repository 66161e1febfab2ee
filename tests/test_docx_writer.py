import io

from note2docs.document import (
    Blockquote,
    CodeBlock,
    Document,
    Heading,
    HorizontalRule,
    Hyperlink,
    Image,
    ImageRun,
    ListBlock,
    ListItem,
    Paragraph,
    Table,
    TableCell,
    TableRow,
    TextRun,
)
from note2docs.docx_writer import bookmark_name, css_hex_color, css_points, write_docx
from note2docs.themes import get_theme


def _png_bytes(width, height):
    from PIL import Image as PILImage

    out = io.BytesIO()
    PILImage.new("RGB", (width, height), (200, 10, 10)).save(out, format="PNG")
    return out.getvalue()


def _sample_document():
    png = _png_bytes(40, 20)
    return Document(
        title="My Note",
        blocks=[
            Heading(1, [TextRun("Intro")], anchor="toc-1-intro"),
            Paragraph(
                [
                    TextRun("Hello "),
                    TextRun("bold", bold=True),
                    TextRun(line_break=True),
                    Hyperlink([TextRun("site")], "https://example.test/page"),
                    Hyperlink([TextRun("jump")], "#toc-1-intro"),
                    ImageRun(png, 20, 10),
                ]
            ),
            CodeBlock(["line 1", "  line 2"]),
            Blockquote([Paragraph([TextRun("quoted")])]),
            Table(
                [
                    TableRow([TableCell([TextRun("H")]), TableCell([TextRun("V")])], header=True),
                    TableRow([TableCell([TextRun("a")]), TableCell([TextRun("b")])]),
                ]
            ),
            ListBlock([ListItem([TextRun("one")], children=[ListBlock([ListItem([TextRun("inner")])], ordered=True)])]),
            Image(png, 40, 20),
            HorizontalRule(),
        ],
    )


def _open(path):
    import docx

    return docx.Document(str(path))


def _paragraph_with_text(doc, text):
    for paragraph in doc.paragraphs:
        if paragraph.text == text:
            return paragraph
    raise AssertionError(f"paragraph {text!r} not found")


def test_write_docx_creates_file_with_properties(tmp_path):
    target = write_docx(_sample_document(), tmp_path / "out" / "note.docx")
    assert target.exists()
    doc = _open(target)
    assert doc.core_properties.title == "My Note"
    assert doc.core_properties.author == "note2docs"


def test_headings_carry_bookmarks_and_links_resolve(tmp_path):
    doc = _open(write_docx(_sample_document(), tmp_path / "note.docx"))

    heading = _paragraph_with_text(doc, "Intro")
    assert heading.style.name == "Heading 1"
    assert 'w:name="toc-1-intro"' in heading._p.xml

    body_xml = doc.element.body.xml
    assert 'w:anchor="toc-1-intro"' in body_xml
    assert any(rel.target_ref == "https://example.test/page" for rel in doc.part.rels.values() if rel.is_external)


def test_code_quote_and_list_formatting(tmp_path):
    from docx.shared import Inches

    doc = _open(write_docx(_sample_document(), tmp_path / "note.docx"))

    code_line = _paragraph_with_text(doc, "  line 2")
    assert 'w:fill="F5F5F5"' in code_line._p.xml
    assert code_line.runs[0].font.name == "Courier New"

    quote = _paragraph_with_text(doc, "quoted")
    assert quote.paragraph_format.left_indent == Inches(0.5)
    assert quote.runs[0].italic
    assert "w:left" in quote._p.xml

    assert _paragraph_with_text(doc, "one").style.name == "List Bullet"
    assert _paragraph_with_text(doc, "inner").style.name == "List Number 2"


def test_tables_images_and_theme(tmp_path):
    theme = get_theme("business")
    doc = _open(write_docx(_sample_document(), tmp_path / "note.docx", theme))

    table = doc.tables[0]
    assert table.cell(0, 0).text == "H"
    assert table.cell(0, 0).paragraphs[0].runs[0].bold
    assert 'w:fill="1B3A5C"' in table.cell(0, 0)._tc.xml
    assert table.cell(1, 1).text == "b"

    assert len(doc.inline_shapes) == 2
    assert doc.styles["Normal"].font.name == "Segoe UI"


def test_unreadable_picture_degrades_to_marker(tmp_path):
    document = Document(title="x", blocks=[Image(b"not an image", 10, 10)])
    doc = _open(write_docx(document, tmp_path / "note.docx"))
    assert _paragraph_with_text(doc, "[Image]").runs[0].italic


def test_css_helpers():
    assert css_points("14px") == 10.5
    assert css_points("12pt") == 12.0
    assert css_points("1.5em") is None
    assert css_hex_color("#ccc") == "CCCCCC"
    assert css_hex_color("#1b3a5c") == "1B3A5C"
    assert css_hex_color("blue") is None
    assert len(bookmark_name("toc-1-" + "x" * 60)) == 40


def test_centered_paragraphs_are_aligned_center(tmp_path):
    from docx.enum.text import WD_ALIGN_PARAGRAPH

    document = Document(
        title="Math",
        blocks=[Paragraph([TextRun("middle")], centered=True), Paragraph([TextRun("left")])],
    )
    target = tmp_path / "math.docx"
    write_docx(document, target)
    doc = _open(target)
    assert _paragraph_with_text(doc, "middle").alignment == WD_ALIGN_PARAGRAPH.CENTER
    assert _paragraph_with_text(doc, "left").alignment is None
