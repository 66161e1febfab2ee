from pathlib import Path

import note2docs.cli as cli
from note2docs.version import __version__


def _write_test_png(path: Path, *, width: int, height: int) -> None:
    from PIL import Image

    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", (width, height), color=(200, 10, 10)).save(path)


def _create_vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    _write_test_png(vault / "attachments" / "chart.png", width=64, height=32)
    note = vault / "notes" / "Weekly Report.md"
    note.parent.mkdir(parents=True, exist_ok=True)
    note.write_text(
        "---\nstatus: draft\n---\n"
        "# Summary\n\n"
        "> [!note] Heads up\n> Numbers are preliminary.\n\n"
        "Budget is $5 and growth is $g^2$.\n\n"
        "![[chart.png]]\n\n"
        "See [[Other Note|the other note]].\n",
        encoding="utf-8",
    )
    return vault


def test_version_flags_print_version(capsys):
    assert cli.main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == __version__
    assert cli.main(["--ver"]) == 0
    assert capsys.readouterr().out.strip() == __version__


def test_help_and_no_args_show_usage(capsys):
    assert cli.main([]) == 0
    assert "Usage:" in capsys.readouterr().out
    assert cli.main(["--help"]) == 0
    assert "--to-dir" in capsys.readouterr().out


def test_unknown_option_returns_2(capsys):
    assert cli.main(["note.md", "--bogus"]) == 2


def test_list_themes(capsys):
    assert cli.main(["--list-themes"]) == 0
    out = capsys.readouterr().out
    for name in ("default", "academic", "business", "minimal", "colorful"):
        assert name in out


def test_invalid_choices_and_missing_inputs(tmp_path, capsys):
    assert cli.main(["n.md", "--to-dir", str(tmp_path), "--format", "pdf"]) == 6
    assert cli.main(["n.md", "--to-dir", str(tmp_path), "--image-mode", "fax"]) == 6
    assert cli.main(["--to-dir", str(tmp_path)]) == 6
    assert cli.main([str(tmp_path / "missing.md"), "--to-dir", str(tmp_path)]) == 6


def test_note_outside_vault_is_rejected(tmp_path):
    vault = _create_vault(tmp_path)
    outside = tmp_path / "elsewhere.md"
    outside.write_text("x", encoding="utf-8")
    assert cli.main([str(outside), "--vault", str(vault), "--to-dir", str(tmp_path / "out")]) == 6


def test_output_path_that_is_a_file_returns_7(tmp_path):
    vault = _create_vault(tmp_path)
    blocker = tmp_path / "out"
    blocker.write_text("not a dir", encoding="utf-8")
    note = vault / "notes" / "Weekly Report.md"
    assert cli.main([str(note), "--vault", str(vault), "--to-dir", str(blocker)]) == 7


def test_convert_html_upload_mode_copies_assets(tmp_path):
    vault = _create_vault(tmp_path)
    out_dir = tmp_path / "out"
    note = vault / "notes" / "Weekly Report.md"

    rc = cli.main([str(note), "--vault", str(vault), "--to-dir", str(out_dir), "--toc", "--theme", "business"])

    assert rc == 0
    html_text = (out_dir / "Weekly_Report.html").read_text(encoding="utf-8")
    assert "status: draft" not in html_text
    assert "<title>Weekly Report</title>" in html_text
    assert "Budget is $5 and growth is \\(g^2\\)." in html_text
    assert 'src="assets/chart.png"' in html_text
    assert "<b>Heads up</b>" in html_text
    assert "<b>the other note</b>" in html_text
    assert 'id="toc-1-summary"' in html_text
    assert "Segoe UI" in html_text
    assert (out_dir / "assets" / "chart.png").exists()


def test_convert_both_formats(tmp_path, monkeypatch):
    import note2docs.walker as walker

    monkeypatch.setattr(walker, "render_latex_png", lambda latex, is_display: (_png_bytes(), 40, 20))
    monkeypatch.setenv("NOTE2DOCS_THEME", "minimal")
    vault = _create_vault(tmp_path)
    out_dir = tmp_path / "out"
    note = vault / "notes" / "Weekly Report.md"

    rc = cli.main([str(note), "--vault", str(vault), "--to-dir", str(out_dir), "--format", "both", "--image-mode", "embed"])

    assert rc == 0
    html_text = (out_dir / "Weekly_Report.html").read_text(encoding="utf-8")
    assert "data:image/png;base64," in html_text
    assert "Helvetica Neue" in html_text
    assert not (out_dir / "assets").exists()
    assert (out_dir / "Weekly_Report.docx").stat().st_size > 0


def test_render_failure_returns_8(tmp_path, monkeypatch):
    import note2docs.core as core
    from note2docs.errors import RenderError

    def broken_renderer():
        def render(markdown, source_path):
            raise RenderError("renderer offline")

        return render

    monkeypatch.setattr(core, "default_renderer", broken_renderer)
    vault = _create_vault(tmp_path)
    note = vault / "notes" / "Weekly Report.md"
    assert cli.main([str(note), "--vault", str(vault), "--to-dir", str(tmp_path / "out")]) == 8


def _png_bytes():
    import io

    from PIL import Image

    out = io.BytesIO()
    Image.new("RGB", (80, 40), (255, 255, 255)).save(out, format="PNG")
    return out.getvalue()


def test_exit_codes_are_named():
    assert (cli.EXIT_UNKNOWN_ARGS, cli.EXIT_INVALID_ARGS, cli.EXIT_OUTPUT_DIR, cli.EXIT_CONVERSION) == (2, 6, 7, 8)
    assert cli.main(["note.md", "--bogus"]) == cli.EXIT_UNKNOWN_ARGS
