"""
Tests for the command line driver
"""
import pytest

from reel.cli import main
from reel.history import RenameHistoryManager
from reel.settings import SettingsManager

ARRIVAL_FILE = "Arrival.2016.1080p.BluRay.x264-SPARKS.mkv"
OFFICE_FILE = "The.Office.US.S02E01.The.Dundies.1080p.mkv"


@pytest.fixture
def media(tmp_path):
    folder = tmp_path / "inbox"
    folder.mkdir()
    for name in (ARRIVAL_FILE, OFFICE_FILE, "notes.txt"):
        (folder / name).write_text("x")
    return folder


@pytest.fixture
def settings(tmp_path):
    return SettingsManager(tmp_path / "settings.json")


@pytest.fixture
def history(tmp_path):
    mgr = RenameHistoryManager(tmp_path / "history.db")
    yield mgr
    mgr.close()


def test_dry_run_changes_nothing(media, provider, settings, history, capsys):
    """Test that a dry run only previews"""
    code = main([str(media), "--dry-run"], provider=provider, settings=settings, history=history)

    out = capsys.readouterr().out
    assert code == 0
    assert "Found 2 media file(s)" in out
    assert "Arrival (2016).mkv" in out
    assert "The Office US - S02E01 - The Dundies.mkv" in out
    assert "Would rename: 2 files" in out
    assert (media / ARRIVAL_FILE).exists()
    assert not history.has_undoable()


def test_rename_then_undo(media, provider, settings, history, capsys):
    code = main([str(media)], provider=provider, settings=settings, history=history)

    assert code == 0
    assert (media / "Arrival (2016).mkv").exists()
    assert (media / "The Office US - S02E01 - The Dundies.mkv").exists()
    assert "Renamed: 2 | Skipped: 0 | Errors: 0" in capsys.readouterr().out
    assert settings.get("last_input_directory") == str(media.resolve())

    code = main(["--undo"], settings=settings, history=history)

    assert code == 0
    assert (media / ARRIVAL_FILE).exists()
    assert (media / OFFICE_FILE).exists()
    assert not history.has_undoable()


def test_custom_templates_and_destination(media, provider, settings, history, tmp_path):
    library = tmp_path / "library"

    code = main(
        [
            str(media),
            "--movie-template", "{title} [{year}]",
            "--series-template", "{show} {season:1}x{episode:02}",
            "--destination", str(library),
            "--workers", "2",
        ],
        provider=provider, settings=settings, history=history,
    )

    assert code == 0
    assert (library / "Arrival [2016].mkv").exists()
    assert (library / "The Office US 2x01.mkv").exists()


def test_unmatched_file_is_skipped(media, provider, settings, history, capsys):
    (media / "Completely.Unknown.Film.1999.mkv").write_text("x")

    code = main([str(media), "--dry-run"], provider=provider, settings=settings, history=history)

    out = capsys.readouterr().out
    assert code == 0
    assert "[SKIP] Completely.Unknown.Film.1999.mkv" in out
    assert "Would rename: 2 files" in out


def test_invalid_template(media, provider, settings, history, capsys):
    code = main(
        [str(media), "--movie-template", "{title} {season}"],
        provider=provider, settings=settings, history=history,
    )

    assert code == 1
    assert "Invalid movie template" in capsys.readouterr().out


def test_missing_path(provider, settings, history, tmp_path, capsys):
    code = main([str(tmp_path / "nope")], provider=provider, settings=settings, history=history)

    assert code == 1
    assert "Path does not exist" in capsys.readouterr().out


def test_undo_with_empty_history(settings, history, capsys):
    assert main(["--undo"], settings=settings, history=history) == 0
    assert "Nothing to undo." in capsys.readouterr().out
