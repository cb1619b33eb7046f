"""ApplyUpdate: validation before mutation, migration, atomic replace."""
import json
import threading

import pytest

from activity_studio.application.content_versioning_service import ContentVersioningEngine, _KeyedLocks
from activity_studio.core import config
from activity_studio.domain.common import errors
from activity_studio.domain.common.errors import MigrationError
from activity_studio.domain.h5p.models import DISPLAY_ALL, DISPLAY_FRAME
from activity_studio.integrations.h5p_editor import (
    JsonParamsValidator,
    ParameterProcessor,
)
from activity_studio.persistence.db import get_connection

ALL_FLAGS = {"frame": True, "download": True, "embed": True, "copyright": True}


def _raw_row(db_path, content_id):
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM h5p_contents WHERE id = ?", (content_id,)).fetchone()
    conn.close()
    return tuple(row)


@pytest.fixture
def content(studio, make_h5p_activity):
    activity = make_h5p_activity()
    return studio.content_repo.get(activity.h5p_content_id)


class FailingProcessor(ParameterProcessor):
    def process_parameters(self, content_id, library, params, old_library, old_params):
        raise MigrationError("asset store offline")


class CountingProcessor(ParameterProcessor):
    def __init__(self):
        self.calls = []

    def process_parameters(self, content_id, library, params, old_library, old_params):
        self.calls.append((content_id, str(library), str(old_library)))
        return params


def _engine_with(studio, processor):
    return ContentVersioningEngine(studio.content_repo, studio.registry, processor, JsonParamsValidator())


# ------------------------------------------------------------------
# Successful updates
# ------------------------------------------------------------------
def test_update_replaces_library_params_and_metadata(studio, content):
    raw = json.dumps({"params": {"statement": "Dimples reduce drag."}, "metadata": {"title": "  True or false  "}})

    result = studio.engine.apply_update(content.id, "H5P.TrueFalse 1.8", raw, {"frame": True, "copyright": True})

    assert result.is_success, result.error
    stored = studio.content_repo.get(content.id)
    assert str(stored.library) == "H5P.TrueFalse 1.8"
    assert stored.params == {"statement": "Dimples reduce drag."}
    assert stored.metadata["title"] == "True or false"
    assert stored.display_options == DISPLAY_FRAME | 8
    assert stored.disable_flag == content.disable_flag
    assert stored.created_at == content.created_at


def test_update_records_new_dependencies(studio, content):
    studio.engine.apply_update(content.id, "H5P.TrueFalse 1.8", studio.payload("TF"), ALL_FLAGS)

    dep_ids = {library_id for library_id, _ in studio.content_repo.get_dependencies(content.id)}
    expected = {
        studio.registry.resolve_string("H5P.TrueFalse 1.8").value.library_id,
        studio.registry.resolve_string("H5P.Question 1.4").value.library_id,
    }
    assert dep_ids == expected


def test_update_moves_editor_assets_into_content(studio, content):
    params = {
        "media": {"type": {"params": {"file": {"path": "images/dimples.png#tmp", "mime": "image/png"}}}},
        "answers": [{"image": {"path": "../12/images/ball.jpg"}}, {"image": {"path": "https://cdn/x.png"}}],
    }
    result = studio.engine.apply_update(content.id, "H5P.MultiChoice 1.16", studio.payload("Quiz", params), ALL_FLAGS)

    assert result.is_success
    stored = studio.content_repo.get(content.id).params
    assert stored["media"]["type"]["params"]["file"]["path"] == "images/dimples.png"
    assert stored["answers"][0]["image"]["path"] == "images/ball.jpg"
    assert stored["answers"][1]["image"]["path"] == "https://cdn/x.png"


def test_migration_skipped_when_nothing_changed(studio, content):
    processor = CountingProcessor()
    engine = _engine_with(studio, processor)
    same = {"params": content.params, "metadata": {"title": "Renamed only"}}

    assert engine.apply_update(content.id, "H5P.MultiChoice 1.16", same, ALL_FLAGS).is_success
    assert processor.calls == []

    changed = {"params": {"question": "New?"}, "metadata": {"title": "Renamed only"}}
    assert engine.apply_update(content.id, "H5P.MultiChoice 1.16", changed, ALL_FLAGS).is_success
    assert processor.calls == [(content.id, "H5P.MultiChoice 1.16", "H5P.MultiChoice 1.16")]


def test_previous_disable_flag_narrows_requested_options(studio, monkeypatch):
    monkeypatch.setattr(config, "H5P_DEFAULT_DISABLE_FLAG", "frame")
    created = studio.engine.create_content("H5P.MultiChoice 1.16", studio.payload(), ALL_FLAGS).value
    assert created.display_options == DISPLAY_ALL & ~DISPLAY_FRAME

    monkeypatch.setattr(config, "H5P_DEFAULT_DISABLE_FLAG", "none")
    updated = studio.engine.apply_update(created.id, "H5P.MultiChoice 1.16", studio.payload(), ALL_FLAGS).value
    assert updated.disable_flag == "frame"
    assert updated.display_options == DISPLAY_ALL & ~DISPLAY_FRAME


# ------------------------------------------------------------------
# Rejections leave the record untouched
# ------------------------------------------------------------------
def test_unresolved_library_leaves_record_unchanged(studio, content):
    before = _raw_row(studio.db_path, content.id)

    result = studio.engine.apply_update(content.id, "circle 1.2", studio.payload("New"), ALL_FLAGS)

    assert result.code == errors.LIBRARY_NOT_FOUND
    assert _raw_row(studio.db_path, content.id) == before


@pytest.mark.parametrize(
    "library, parameters, code",
    [
        ("circle", {"params": {}, "metadata": {"title": "x"}}, errors.MALFORMED_LIBRARY_STRING),
        ("H5P.MultiChoice 1.16", "{broken", errors.INVALID_PARAMETERS),
        ("H5P.MultiChoice 1.16", {"foo": "bar"}, errors.INVALID_PARAMETERS),
        ("H5P.MultiChoice 1.16", {"params": {}, "metadata": {"title": "  "}}, errors.MISSING_TITLE),
        ("H5P.MultiChoice 1.16", {"params": {}, "metadata": {"title": "x" * 300}}, errors.TITLE_TOO_LONG),
        ("H5P.MultiChoice 1.16", {"params": "just text", "metadata": {"title": "x"}}, errors.INVALID_PARAMETERS),
    ],
)
def test_validation_errors(studio, content, library, parameters, code):
    before = _raw_row(studio.db_path, content.id)

    result = studio.engine.apply_update(content.id, library, parameters, ALL_FLAGS)

    assert not result.is_success
    assert result.code == code
    assert _raw_row(studio.db_path, content.id) == before


def test_unknown_content(studio):
    result = studio.engine.apply_update(9999, "H5P.MultiChoice 1.16", studio.payload(), ALL_FLAGS)
    assert result.code == errors.CONTENT_NOT_FOUND


def test_migration_failure_aborts_and_is_retryable(studio, content):
    before = _raw_row(studio.db_path, content.id)
    update = studio.payload("After migration", {"question": "Changed"})

    failed = _engine_with(studio, FailingProcessor()).apply_update(content.id, "H5P.TrueFalse 1.8", update, ALL_FLAGS)

    assert failed.code == errors.MIGRATION_FAILED
    assert _raw_row(studio.db_path, content.id) == before

    retried = studio.engine.apply_update(content.id, "H5P.TrueFalse 1.8", update, ALL_FLAGS)
    assert retried.is_success
    assert studio.content_repo.get(content.id).title == "After migration"


def test_create_content_rolls_back_on_migration_failure(studio):
    before = studio.count("h5p_contents")
    result = _engine_with(studio, FailingProcessor()).create_content("H5P.MultiChoice 1.16", studio.payload(), ALL_FLAGS)
    assert result.code == errors.MIGRATION_FAILED
    assert studio.count("h5p_contents") == before


# ------------------------------------------------------------------
# Concurrency
# ------------------------------------------------------------------
def test_concurrent_updates_never_tear(studio, content):
    libraries = ["H5P.MultiChoice 1.16", "H5P.TrueFalse 1.8"]
    failures = []
    stop = threading.Event()

    def writer(i):
        payload = {"params": {"marker": i}, "metadata": {"title": f"v{i}"}}
        result = studio.engine.apply_update(content.id, libraries[i % 2], payload, ALL_FLAGS)
        if not result.is_success:
            failures.append(result.error)

    def reader():
        while not stop.is_set():
            record = studio.content_repo.get(content.id)
            marker = record.params.get("marker")
            if marker is None:
                continue
            if str(record.library) != libraries[marker % 2] or record.title != f"v{marker}":
                failures.append(f"torn record: {record}")

    watcher = threading.Thread(target=reader)
    watcher.start()
    writers = [threading.Thread(target=writer, args=(i,)) for i in range(12)]
    for t in writers:
        t.start()
    for t in writers:
        t.join()
    stop.set()
    watcher.join()

    assert failures == []
    final = studio.content_repo.get(content.id)
    assert str(final.library) == libraries[final.params["marker"] % 2]
    assert len(studio.engine._locks) == 0


def test_content_locks_are_released_after_use():
    locks = _KeyedLocks()
    with locks.hold(7):
        with locks.hold(8):
            assert len(locks) == 2
        assert len(locks) == 1
    assert len(locks) == 0
