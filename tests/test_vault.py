import asyncio

from note2docs.themes import THEMES, get_theme, primary_font, theme_options
from note2docs.vault import DirectoryAssetStore, FileVault, normalize_link_path, slugify_filename, unique_target


def _make_vault(tmp_path):
    root = tmp_path / "vault"
    for rel in ("notes/a.png", "a.png", "deep/nested/b.png", "other/b.png", "notes/sub/c.png"):
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(rel.encode("utf-8"))
    return FileVault(root)


def test_resolution_prefers_note_relative_then_root(tmp_path):
    vault = _make_vault(tmp_path)
    assert vault.resolve_asset("a.png", "notes/n.md").path == "notes/a.png"
    assert vault.resolve_asset("a.png", "n.md").path == "a.png"
    assert vault.resolve_asset("sub/c.png", "notes/n.md").path == "notes/sub/c.png"


def test_resolution_by_name_picks_shortest_path(tmp_path):
    vault = _make_vault(tmp_path)
    asset = vault.resolve_asset("b.png", "notes/n.md")
    assert asset.path == "other/b.png"
    assert (asset.name, asset.basename, asset.extension) == ("b.png", "b", "png")
    assert vault.resolve_asset("nope.png", "notes/n.md") is None


def test_read_binary_and_text(tmp_path):
    vault = _make_vault(tmp_path)
    asset = vault.resolve_asset("c.png", "")
    assert asyncio.run(vault.read_binary(asset)) == b"notes/sub/c.png"
    (vault.root / "n.md").write_text("# Note", encoding="utf-8")
    assert asyncio.run(vault.read_text("n.md")) == "# Note"


def test_normalize_link_path():
    assert normalize_link_path("\\img\\a.png#section") == "img/a.png"


def test_directory_store_deduplicates_names(tmp_path):
    store = DirectoryAssetStore(tmp_path / "out" / "assets")

    async def run():
        return [await store(b"1", "my pic.png", "image/png"), await store(b"2", "my pic.png", "image/png")]

    first, second = asyncio.run(run())
    assert first == "assets/my_pic.png"
    assert second == "assets/my_pic__1.png"
    assert (tmp_path / "out" / "assets" / "my_pic__1.png").read_bytes() == b"2"


def test_slugify_and_unique_target(tmp_path):
    assert slugify_filename(" Q3 report (final).png ") == "Q3_report__final_.png"
    target = tmp_path / "x.txt"
    assert unique_target(target) == target
    target.write_text("x", encoding="utf-8")
    assert unique_target(target) == tmp_path / "x__1.txt"


def test_theme_lookup_falls_back_to_default():
    assert get_theme("Business") is THEMES["business"]
    assert get_theme("nonexistent") is THEMES["default"]
    assert get_theme(None) is THEMES["default"]
    assert [option["value"] for option in theme_options()] == list(THEMES)


def test_primary_font():
    assert primary_font("'Times New Roman', Georgia, serif") == "Times New Roman"
    assert primary_font("") == "Arial"
