"""EmbedBuilder: markup, settings, preview override, access paths and view events."""
import json

import pytest

from activity_studio.application.embed_service import ACCESS_OPEN, ACCESS_PRIVATE, ACCESS_SHARED, EmbedBuilder
from activity_studio.core import config
from activity_studio.domain.activity.models import Viewer
from activity_studio.domain.common import errors
from activity_studio.integrations.notifier import EventQueue, Notifier
from activity_studio.persistence.db import get_connection

ADMIN = Viewer(id="admin-1", is_admin=True, name="admin", email="admin@example.com")
MEMBER = Viewer(id="member-1", name="member", email="member@example.com")
STRANGER = Viewer(id="stranger-1", name="stranger")


def test_iframe_embed_and_settings(studio, make_h5p_activity):
    activity = make_h5p_activity(title="Dimples")
    content_id = activity.h5p_content_id

    embed = studio.embeds.build_embed(content_id, MEMBER).value

    assert embed["embed_type"] == "iframe"
    assert f'id="h5p-iframe-{content_id}"' in embed["embed_code"]
    entry = embed["settings"]["contents"][f"cid-{content_id}"]
    assert entry["library"] == "H5P.MultiChoice 1.16"
    assert json.loads(entry["jsonContent"]) == {"question": "Why do balls have dimples?"}
    assert entry["title"] == "Dimples"
    assert entry["displayOptions"]["frame"] is True
    assert embed["settings"]["user"] == {"id": "member-1", "name": "member", "mail": "member@example.com"}


def test_anonymous_settings_carry_no_identity(studio, make_h5p_activity):
    activity = make_h5p_activity()
    settings = studio.embeds.build_embed(activity.h5p_content_id, None).value["settings"]
    assert "user" not in settings
    assert settings["postUserStatistics"] is False


def test_div_embed_for_div_libraries(studio, make_h5p_activity):
    activity = make_h5p_activity(library="H5P.Text 1.1")
    embed = studio.embeds.build_embed(activity.h5p_content_id).value
    assert embed["embed_type"] == "div"
    assert embed["embed_code"] == f'<div class="h5p-content" data-content-id="{activity.h5p_content_id}"></div>'


def test_preview_flag_overrides_only_for_the_render(studio, make_h5p_activity, monkeypatch):
    activity = make_h5p_activity()
    before = studio.content_repo.get(activity.h5p_content_id)
    monkeypatch.setattr(config, "H5P_PREVIEW_FLAG", "all")

    embed = studio.embeds.build_embed(activity.h5p_content_id).value

    options = embed["settings"]["contents"][f"cid-{activity.h5p_content_id}"]["displayOptions"]
    assert not any(options.values())
    assert studio.content_repo.get(activity.h5p_content_id) == before


def test_unknown_content(studio):
    assert studio.embeds.build_embed(424242).code == errors.CONTENT_NOT_FOUND


# ------------------------------------------------------------------
# View events
# ------------------------------------------------------------------
def test_view_event_is_published(studio, make_h5p_activity):
    activity = make_h5p_activity(title="Dimples")
    studio.embeds.build_embed(activity.h5p_content_id, MEMBER)

    studio.events.drain()

    assert studio.notifier.sent == [(
        "member-1",
        {
            "kind": "content-viewed",
            "contentId": activity.h5p_content_id,
            "title": "Dimples",
            "libraryName": "H5P.MultiChoice",
            "libraryVersion": "1.16",
        },
    )]


class BrokenNotifier(Notifier):
    def send(self, recipient, event):
        raise ConnectionError("mail server down")


def test_broken_notifier_does_not_fail_embed(studio, make_h5p_activity):
    events = EventQueue(BrokenNotifier())
    builder = EmbedBuilder(studio.content_repo, studio.registry, studio.activity_repo, studio.playlist_repo, events)
    activity = make_h5p_activity()

    assert builder.build_embed(activity.h5p_content_id).is_success
    assert events.drain() == 1


def test_full_queue_drops_new_notifications(studio):
    events = EventQueue(studio.notifier, maxsize=1)

    events.publish("a@example.com", {"kind": "first"})
    events.publish("b@example.com", {"kind": "second"})

    assert events.drain() == 1
    assert studio.notifier.sent == [("a@example.com", {"kind": "first"})]


# ------------------------------------------------------------------
# Access paths
# ------------------------------------------------------------------
def test_shared_path_requires_shared_activity(studio, make_h5p_activity):
    activity = make_h5p_activity(shared=False)

    result = studio.embeds.build_for_activity(activity.id, MEMBER, ACCESS_SHARED)
    assert result.code == errors.CONTENT_NOT_ACCESSIBLE

    studio.activities.set_shared(activity.id, True)
    shared = studio.embeds.build_for_activity(activity.id, MEMBER, ACCESS_SHARED)
    assert shared.is_success
    assert "user" not in shared.value["settings"]


def test_shared_path_allows_approved_projects(studio, make_h5p_activity):
    activity = make_h5p_activity(shared=False)

    conn = get_connection(studio.db_path)
    conn.execute("UPDATE projects SET indexing = ? WHERE id = ?", (config.INDEXING_APPROVED, studio.project.id))
    conn.commit()
    conn.close()

    assert studio.embeds.build_for_activity(activity.id, None, ACCESS_SHARED).is_success


@pytest.mark.parametrize(
    "viewer, allowed",
    [(ADMIN, True), (MEMBER, True), (Viewer(id="owner-1"), True), (STRANGER, False), (None, False)],
)
def test_private_path_checks_project_membership(studio, make_h5p_activity, viewer, allowed):
    activity = make_h5p_activity()
    result = studio.embeds.build_for_activity(activity.id, viewer, ACCESS_PRIVATE)
    assert result.is_success is allowed
    if not allowed:
        assert result.code == errors.CONTENT_NOT_ACCESSIBLE


def test_open_path_has_no_guard(studio, make_h5p_activity):
    activity = make_h5p_activity()
    assert studio.embeds.build_for_activity(activity.id, STRANGER, ACCESS_OPEN).is_success


def test_non_h5p_activity_has_no_embed(studio):
    activity = studio.activities.create_activity(
        {"title": "Reading", "type": "text", "playlist_id": studio.playlist.id}
    ).value
    result = studio.embeds.build_for_activity(activity.id, ADMIN, ACCESS_PRIVATE)
    assert result.code == errors.CONTENT_NOT_FOUND
