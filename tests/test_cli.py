from pathlib import Path

from typer.testing import CliRunner

from markdown_packer.cli import app

runner = CliRunner()


def test_pack_command_rewrites_and_exports_log(tmp_path: Path) -> None:
    (tmp_path / "img").mkdir()
    (tmp_path / "img" / "a.png").write_bytes(b"a")
    doc = tmp_path / "doc.md"
    doc.write_text("![a](img/a.png)\n", encoding="utf-8")
    log_path = tmp_path / "out.log"
    result = runner.invoke(
        app,
        ["pack", str(doc), "--naming", "sequence", "--backup", "--export-log", str(log_path)],
    )
    assert result.exit_code == 0, result.output
    assert doc.read_text(encoding="utf-8") == "![a](assets/img-1.png)\n"
    assert (tmp_path / "doc.md.copy").exists()
    assert "[OK]" in log_path.read_text(encoding="utf-8")


def test_pack_command_exit_code_on_missing_image(tmp_path: Path) -> None:
    doc = tmp_path / "doc.md"
    doc.write_text("![a](img/none.png)\n", encoding="utf-8")
    result = runner.invoke(app, ["pack", str(doc)])
    assert result.exit_code == 1


def test_pack_command_rejects_bad_assets_dir(tmp_path: Path) -> None:
    doc = tmp_path / "doc.md"
    doc.write_text("text\n", encoding="utf-8")
    result = runner.invoke(app, ["pack", str(doc), "--assets-dir", "a/b"])
    assert result.exit_code == 2
    assert "Invalid options" in result.output


def test_show_config(tmp_path: Path) -> None:
    result = runner.invoke(app, ["show-config", "--config", str(tmp_path / "none.toml")])
    assert result.exit_code == 0
    assert '"assets_dir_name": "assets"' in result.output


def test_serve_refuses_when_api_disabled(tmp_path: Path) -> None:
    config = tmp_path / "config.toml"
    config.write_text("[runtime]\nenable_local_api = false\n", encoding="utf-8")
    result = runner.invoke(app, ["serve", "--config", str(config)])
    assert result.exit_code == 1
    assert "disabled" in result.output


def test_main_module_launches_cli() -> None:
    import main

    assert main.app is app
