import asyncio
import pathlib
import sys
import zipfile
from contextlib import contextmanager
from datetime import datetime

import pytest

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1]))
import bulknote.core.exporter as exporter
from bulknote.core import BatchEngine, BatchSettings, RemoteCallError, StagingError, WorkItem
from bulknote.core.staging import create_export_filename, item_file_name, stage, staging_area


def test_item_file_name_is_sanitized():
    assert item_file_name("Q3: plan / review?", "0123456789abcdef") == "Q3_ plan _ review__01234567.md"
    assert item_file_name("..hidden", "ab") == "hidden_ab.md"
    assert item_file_name("", "abcdefghij") == "untitled_abcdefgh.md"


def test_create_export_filename():
    when = datetime(2024, 5, 1, 9, 5, 7)
    assert create_export_filename("bulknote_export", when) == "bulknote_export_2024-05-01_09-05-07.zip"


def test_write_item_groups_and_dedupes(tmp_path):
    area = stage(base_dir=tmp_path)
    assert area.write_item("a", "Standup_aaaa.md", "one", "Team") == "Team/Standup_aaaa.md"
    assert area.write_item("b", "Standup_aaaa.md", "two", "Team") == "Team/Standup_aaaa-2.md"
    assert area.write_item("c", "Standup_aaaa.md", "three", "../Team") == "_Team/Standup_aaaa.md"
    assert area.write_item("d", "Loose.md", "four") == "Loose.md"
    assert area.folder_attribution == {"a": "Team", "b": "Team", "c": "../Team"}
    assert (area.temp_dir / "Team" / "Standup_aaaa-2.md").read_text(encoding="utf-8") == "two"
    area.cleanup()


def test_finalize_packs_tree_and_cleanup_is_idempotent(tmp_path):
    area = stage(base_dir=tmp_path)
    area.write_item("a", "One_aaaa.md", "# One", "Folder A")
    area.write_item("b", "Two_bbbb.md", "# Two")
    archive = area.finalize("out.zip", tmp_path / "out")

    with zipfile.ZipFile(archive) as zf:
        assert sorted(zf.namelist()) == ["Folder A/One_aaaa.md", "Two_bbbb.md"]
        assert zf.read("Two_bbbb.md") == b"# Two"

    area.cleanup()
    area.cleanup()
    assert not area.temp_dir.exists()
    with pytest.raises(StagingError):
        area.write_item("c", "Three.md", "late")


def test_staging_area_removed_on_error(tmp_path):
    with pytest.raises(RuntimeError):
        with staging_area(base_dir=tmp_path) as area:
            area.write_item("a", "x.md", "x")
            raise RuntimeError("boom")
    assert area.removed
    assert not area.temp_dir.exists()


def test_runs_get_distinct_directories(tmp_path):
    first, second = stage(base_dir=tmp_path), stage(base_dir=tmp_path)
    assert first.temp_dir != second.temp_dir
    first.cleanup()
    second.cleanup()


def _spy_staging(monkeypatch, tmp_path):
    areas = []
    real = exporter.staging_area

    @contextmanager
    def spy(prefix="bulknote_export", base_dir=None):
        with real(prefix, tmp_path / "staging") as area:
            areas.append(area)
            yield area

    (tmp_path / "staging").mkdir()
    monkeypatch.setattr(exporter, "staging_area", spy)
    return areas


def _notes():
    return [
        WorkItem("aaaaaaaa-1", "Standup", {"id": "aaaaaaaa-1", "title": "Standup", "created_at": "2024-05-01T10:00:00Z"}),
        WorkItem("bbbbbbbb-2", "Retro", {"id": "bbbbbbbb-2", "title": "Retro"}),
        WorkItem("cccccccc-3", "Planning", {"id": "cccccccc-3", "title": "Planning"}),
    ]


def test_export_notes_partial_failure(monkeypatch, tmp_path):
    areas = _spy_staging(monkeypatch, tmp_path)
    progress = []
    engine = BatchEngine(BatchSettings(summary_delay=0), on_progress=progress.append)

    async def fetch(item):
        if item.id == "bbbbbbbb-2":
            raise RemoteCallError(500, "Internal Server Error")
        return f"content of {item.title}"

    outcome = asyncio.run(
        exporter.export_notes(engine, _notes(), fetch, out_dir=tmp_path / "out", folder_of={"aaaaaaaa-1": "Team"})
    )

    assert outcome.archive_path.name.startswith("bulknote_export_")
    with zipfile.ZipFile(outcome.archive_path) as zf:
        assert sorted(zf.namelist()) == ["Planning_cccccccc.md", "Team/Standup_aaaaaaaa.md"]
        standup = zf.read("Team/Standup_aaaaaaaa.md").decode("utf-8")
    assert standup.startswith("# Standup\n\n## Notes\n\ncontent of Standup")
    assert "**Created:** 2024-05-01" in standup
    assert [r.status.value for r in outcome.results] == ["success", "error", "success"]
    assert progress[-1] == "Creating zip archive..."
    assert areas[0].removed


def test_export_fetch_timeout_marks_item_failed(monkeypatch, tmp_path):
    _spy_staging(monkeypatch, tmp_path)
    engine = BatchEngine(BatchSettings(summary_delay=0))

    async def fetch(item):
        if item.id == "bbbbbbbb-2":
            raise TimeoutError("The read operation timed out")
        return "body"

    outcome = asyncio.run(exporter.export_notes(engine, _notes(), fetch, out_dir=tmp_path / "out"))

    statuses = {r.item_id: r.status.value for r in outcome.results}
    assert statuses == {"aaaaaaaa-1": "success", "bbbbbbbb-2": "error", "cccccccc-3": "success"}
    assert "timed out" in engine.results.get("bbbbbbbb-2").error
    assert engine.results.summary().pending_count == 0
    with zipfile.ZipFile(outcome.archive_path) as zf:
        assert sorted(zf.namelist()) == ["Planning_cccccccc.md", "Standup_aaaaaaaa.md"]


def test_export_notes_without_success_skips_archive(monkeypatch, tmp_path):
    areas = _spy_staging(monkeypatch, tmp_path)
    engine = BatchEngine(BatchSettings(summary_delay=0))

    async def fetch(item):
        raise RemoteCallError(404, "not found")

    outcome = asyncio.run(exporter.export_notes(engine, _notes(), fetch, out_dir=tmp_path / "out"))
    assert outcome.archive_path is None
    assert not (tmp_path / "out").exists()
    assert areas[0].removed


def test_export_notes_archive_failure_still_cleans_up(monkeypatch, tmp_path):
    areas = _spy_staging(monkeypatch, tmp_path)
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    engine = BatchEngine(BatchSettings(summary_delay=0))

    async def fetch(item):
        return "body"

    with pytest.raises(StagingError):
        asyncio.run(exporter.export_notes(engine, _notes(), fetch, out_dir=blocker))
    assert areas[0].removed
    assert not areas[0].temp_dir.exists()


def test_render_note_without_body():
    text = exporter.render_note({"title": "Empty"}, "  ", heading="Transcript", now=datetime(2024, 1, 2, 3, 4, 5))
    assert "No transcript available." in text
    assert "*Exported on 2024-01-02 03:04:05*" in text
    assert "**Created:** Unknown | **Source:** Unknown" in text
