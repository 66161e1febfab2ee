from note2docs.toc import add_table_of_contents, heading_slug, parse_headings


def test_no_headings_is_identity():
    html_text = "<p>Just text</p>"
    assert add_table_of_contents(html_text) == html_text


def test_empty_headings_are_skipped_and_ids_follow_document_order():
    html_text = "<h2>Intro</h2><h2>  </h2><h3>Details <em>here</em></h3>"
    entries = parse_headings(html_text)
    assert [(e.level, e.text, e.id) for e in entries] == [
        (2, "Intro", "toc-1-intro"),
        (3, "Details here", "toc-2-details-here"),
    ]


def test_toc_indents_relative_to_shallowest_heading():
    result = add_table_of_contents("<h2>A</h2><p>x</p><h3>B</h3>")
    assert 'padding-left:0px;' in result
    assert 'padding-left:20px;' in result
    assert result.startswith("<div")
    assert '<h2 id="toc-1-a">A</h2>' in result
    assert '<h3 id="toc-2-b">B</h3>' in result
    assert 'href="#toc-2-b"' in result


def test_toc_inserted_after_first_h1():
    result = add_table_of_contents("<h1>Top</h1><p>body</p><h2>Sub</h2>")
    head, _, rest = result.partition("</h1>")
    assert head == '<h1 id="toc-1-top">Top'
    assert rest.lstrip().startswith("<div")
    assert rest.index("Table of Contents") < rest.index("<p>body</p>")


def test_heading_slug_is_truncated():
    slug = heading_slug("Word " * 30)
    assert len(slug) == 50
    assert not slug.startswith("-")
