from __future__ import annotations

from typer.testing import CliRunner

from mirrorsync.cli import app

from conftest import write_tree

runner = CliRunner()


def test_once_mirrors_and_writes_log(tmp_path):
    source = write_tree(tmp_path / "src", {"a.txt": "a", "sub/b.txt": "b"})
    destination = tmp_path / "dst"
    destination.mkdir()
    write_tree(destination, {"stale.txt": "s"})
    log_file = tmp_path / "logs" / "sync.log"

    result = runner.invoke(
        app, [str(source), str(destination), "5", str(log_file), "--once"]
    )

    assert result.exit_code == 0, result.output
    assert (destination / "sub" / "b.txt").read_text(encoding="utf-8") == "b"
    assert not (destination / "stale.txt").exists()
    assert "Copied files: 2" in result.output
    assert "Deleted files: 1" in result.output
    assert "Copied file (MD5 OK): a.txt" in log_file.read_text(encoding="utf-8")


def test_negative_interval_is_accepted(tmp_path):
    source = write_tree(tmp_path / "src", {"a.txt": "a"})
    destination = tmp_path / "dst"

    result = runner.invoke(
        app,
        [str(source), str(destination), "-10", str(tmp_path / "sync.log"), "--once"],
    )

    assert result.exit_code == 0, result.output
    assert (destination / "a.txt").exists()


def test_nested_directories_exit_with_error(tmp_path):
    source = write_tree(tmp_path / "src", {})

    result = runner.invoke(
        app,
        [str(source), str(source / "inner"), "5", str(tmp_path / "sync.log"), "--once"],
    )

    assert result.exit_code == 2
    assert "nested" in (tmp_path / "sync.log").read_text(encoding="utf-8")


def test_invalid_log_path_exits_before_logging(tmp_path):
    source = write_tree(tmp_path / "src", {})

    result = runner.invoke(
        app, [str(source), str(tmp_path / "dst"), "5", str(tmp_path), "--once"]
    )

    assert result.exit_code == 2
    assert "Invalid log file" in result.output


def test_scheduled_mode_stops_on_enter(tmp_path):
    source = write_tree(tmp_path / "src", {"a.txt": "a"})
    destination = tmp_path / "dst"

    result = runner.invoke(
        app,
        [str(source), str(destination), "3600", str(tmp_path / "sync.log")],
        input="\n",
    )

    assert result.exit_code == 0, result.output
    assert 'Press "Enter" to end the program.' in result.output
    assert "Synchronization stopped." in (tmp_path / "sync.log").read_text(encoding="utf-8")
