import note2docs.core as core
import note2docs.extract as extract
from note2docs.placeholders import (
    KIND_MATH_INLINE,
    PLACEHOLDER_PREFIX,
    extract as extract_pattern,
    make_placeholder,
    restore,
)


def test_strip_frontmatter_lf_and_crlf():
    assert extract.strip_frontmatter("---\ntitle: x\ntags: [a]\n---\nBody\n") == "Body\n"
    assert extract.strip_frontmatter("---\r\ntitle: x\r\n---\r\nBody") == "Body"
    assert extract.strip_frontmatter("Body\n---\nnot: frontmatter\n---\n") == "Body\n---\nnot: frontmatter\n---\n"


def test_placeholders_are_never_prefixes_of_each_other():
    first = make_placeholder(KIND_MATH_INLINE, 1)
    tenth = make_placeholder(KIND_MATH_INLINE, 10)
    assert first.startswith(PLACEHOLDER_PREFIX)
    assert not tenth.startswith(first)
    assert first.isalnum()


def test_restore_is_literal_and_round_trips():
    text = r"keep \1 and \g<0> here"
    cleaned, records = extract_pattern(text, r"\\[0-9g]\S*", "CI")
    assert len(records) == 2
    assert "\\" not in cleaned
    assert restore(cleaned, records) == text


def test_extract_start_index_is_threaded():
    _, records = extract_pattern("a b", r"\w", "CB", start=3)
    assert [r.placeholder for r in records] == [make_placeholder("CB", 3), make_placeholder("CB", 4)]


def test_code_spans_hide_math_and_images():
    text = "Use `$x$` and `![[a.png]]` inline.\n\n```\n$$y$$\n![[b.png]]\n```\n"
    cleaned, code = extract.extract_code_spans(text)
    assert len(code) == 3
    assert len({record.placeholder for record in code}) == 3

    cleaned, math = extract.extract_math(cleaned)
    cleaned, images = extract.extract_image_embeds(cleaned)
    assert math == []
    assert images == []
    assert restore(cleaned, code) == text


def test_display_and_inline_math():
    cleaned, math = extract.extract_math("$$a=b$$")
    assert len(math) == 1
    assert math[0].is_display
    assert math[0].latex == "a=b"
    assert cleaned == math[0].placeholder

    cleaned, math = extract.extract_math("Let $a=b$ hold.")
    assert len(math) == 1
    assert not math[0].is_display
    assert math[0].latex == "a=b"
    assert cleaned == f"Let {math[0].placeholder} hold."


def test_multiline_display_math_is_trimmed():
    _, math = extract.extract_math("$$\n\\sum_i x_i\n$$")
    assert math[0].latex == "\\sum_i x_i"


def test_currency_is_not_math():
    text = "It costs $5 or $10 today."
    cleaned, math = extract.extract_math(text)
    assert math == []
    assert cleaned == text


def test_many_inline_math_round_trip():
    text = " ".join(f"${i}x$" for i in range(12))
    cleaned, math = extract.extract_math(text)
    assert len(math) == 12
    assert restore(cleaned, math) == text


def test_restore_math_escapes_latex():
    cleaned, math = extract.extract_math("$a<b$ and $$x & y$$")
    html_text = extract.restore_math(f"<p>{cleaned}</p>", math)
    assert html_text == "<p>\\(a&lt;b\\) and \\[x &amp; y\\]</p>"


def test_wikilink_image_width_suffix():
    cleaned, images = extract.extract_image_embeds("![[pic.svg|200]]")
    assert len(images) == 1
    img = images[0]
    assert cleaned == img.placeholder
    assert img.vault_path == "pic.svg"
    assert img.width == "200"
    assert img.alt == ""
    assert img.is_svg


def test_wikilink_image_dimension_and_alt_suffixes():
    _, images = extract.extract_image_embeds("![[pic.png|300x200]] ![[pic.png|a caption]]")
    assert images[0].width == "300"
    assert images[0].alt == ""
    assert images[1].width is None
    assert images[1].alt == "a caption"
    assert not images[1].is_svg


def test_markdown_image_path_is_percent_decoded():
    _, images = extract.extract_image_embeds("![Chart](attachments/my%20chart.PNG)")
    assert images[0].vault_path == "attachments/my chart.PNG"
    assert images[0].alt == "Chart"
    assert images[0].width is None


def test_remote_markdown_images_stay_in_text():
    text = "![logo](https://example.com/logo.png)"
    cleaned, images = extract.extract_image_embeds(text)
    assert images == []
    assert cleaned == text


def test_wikilinks_are_extracted_before_markdown_images():
    _, images = extract.extract_image_embeds("![a](one.png) ![[two.png]]")
    assert [img.vault_path for img in images] == ["two.png", "one.png"]
    assert len({img.placeholder for img in images}) == 2


def test_prepare_markdown_without_extractions_is_identity():
    text = "# Title\n\nPlain paragraph with `code`.\n"
    prepared = core.prepare_markdown(text)
    assert prepared.markdown == text
    assert prepared.math == []
    assert prepared.images == []


def test_prepare_markdown_restores_nested_records():
    prepared = core.prepare_markdown("Let $f(`x`)$ be. ![[a.png|area $x^2$ with `cfg`]]")
    assert prepared.math[0].latex == "f(`x`)"
    assert prepared.math[0].original == "$f(`x`)$"
    image = prepared.images[0]
    assert image.alt == "area $x^2$ with `cfg`"
    assert image.original == "![[a.png|area $x^2$ with `cfg`]]"
    assert PLACEHOLDER_PREFIX not in image.alt
