import json

from split_image.errors import EncodeError, FetchError
from split_image.failure_log import append_failure_log
from split_image.planner import TileRect


def _settings_with_log(log_path):
    class DummyLogging:
        failure_log_path = log_path

    class DummySettings:
        logging = DummyLogging()

    return DummySettings()


def test_append_failure_log_writes_rect_and_cause(monkeypatch, tmp_path):
    log_path = tmp_path / "ops" / "failures.jsonl"
    monkeypatch.setattr("split_image.failure_log.get_settings", lambda: _settings_with_log(log_path))
    cause = MemoryError("vips: out of memory")
    error = EncodeError(TileRect(start_x=0, end_x=10, start_y=5, end_y=15), cause)
    error.__cause__ = cause

    append_failure_log(record_id="rec-1", image_location="https://h/x.png", error=error)

    entry = json.loads(log_path.read_text().strip())
    assert entry["record_id"] == "rec-1"
    assert entry["error"]["type"] == "EncodeError"
    assert entry["error"]["rect"] == {"start_x": 0, "end_x": 10, "start_y": 5, "end_y": 15}
    assert entry["error"]["cause"] == "MemoryError: vips: out of memory"


def test_append_failure_log_appends_lines(monkeypatch, tmp_path):
    log_path = tmp_path / "failures.jsonl"
    monkeypatch.setattr("split_image.failure_log.get_settings", lambda: _settings_with_log(log_path))

    for idx in range(2):
        append_failure_log(
            record_id=f"rec-{idx}",
            image_location="https://h/x.png",
            error=FetchError("boom", url="https://h/x.png", status_code=500),
        )

    lines = log_path.read_text().splitlines()
    assert [json.loads(line)["record_id"] for line in lines] == ["rec-0", "rec-1"]
    assert json.loads(lines[0])["error"]["status_code"] == 500


def test_append_failure_log_disabled_without_path(monkeypatch, tmp_path):
    monkeypatch.setattr("split_image.failure_log.get_settings", lambda: _settings_with_log(None))

    append_failure_log(record_id="rec-1", image_location=None, error=RuntimeError("boom"))

    assert list(tmp_path.iterdir()) == []


def test_append_failure_log_survives_unwritable_path(monkeypatch, tmp_path, caplog):
    blocker = tmp_path / "ops"
    blocker.write_text("not a directory")
    monkeypatch.setattr(
        "split_image.failure_log.get_settings", lambda: _settings_with_log(blocker / "failures.jsonl")
    )

    append_failure_log(record_id="rec-1", image_location="https://h/x.png", error=RuntimeError("boom"))

    assert blocker.read_text() == "not a directory"
    assert "Could not append to failure log" in caplog.text
