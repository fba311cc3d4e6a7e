"""
tests/test_posts.py — Submission, Feed, Edit & Delete
=======================================================
"""

from __future__ import annotations

import pytest
from conftest import bearer, make_post, make_user, reload_post
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ecoleveling.database.models import Comment, PostLike, PostStatus
from ecoleveling.errors import Forbidden, NotFound, ValidationError
from ecoleveling.services import comment_service, engagement_service, post_service


@pytest.fixture
def engine(db_engine):
    return db_engine


# ===========================================================================
# Submission
# ===========================================================================
class TestSubmit:
    def test_new_post_is_pending_with_name_snapshot(self, engine):
        alice = make_user(engine, "alice")
        post = post_service.submit_post(
            engine,
            body="Picked up litter",
            media_url="/api/uploads/a.jpg",
            quest_id="pick-litter",
            user=alice,
        )
        assert post.status == PostStatus.PENDING.value
        assert post.author_id == alice.id
        assert post.author_name == "alice"
        assert post.likes == 0
        assert post.comments == 0

    def test_anonymous_flag_hides_name(self, engine):
        alice = make_user(engine, "alice")
        post = post_service.submit_post(
            engine, body="x", media_url="/m.jpg", anonymous=True, user=alice
        )
        assert post.anonymous is True
        assert post.author_name is None

    def test_guest_post_is_anonymous(self, engine):
        post = post_service.submit_post(engine, body="x", media_url="/m.jpg")
        assert post.anonymous is True
        assert post.author_id is None

    def test_body_required(self, engine):
        with pytest.raises(ValidationError):
            post_service.submit_post(engine, body="  ", media_url="/m.jpg")

    def test_media_required_by_default(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            post_service.submit_post(engine, body="no photo")
        assert exc_info.value.field == "media_url"

    def test_media_optional_when_configured(self, engine):
        post = post_service.submit_post(engine, body="text only", require_media=False)
        assert post.media_url is None


# ===========================================================================
# Reading
# ===========================================================================
class TestFeed:
    def test_only_visible_posts_newest_first(self, engine):
        alice = make_user(engine, "alice")
        old = make_post(engine, alice, status=PostStatus.APPROVED.value, body="old")
        make_post(engine, alice, status=PostStatus.PENDING.value)
        make_post(engine, alice, status=PostStatus.DECLINED.value)
        legacy = make_post(engine, alice, status=None, body="legacy")
        new = make_post(engine, alice, status=PostStatus.APPROVED.value, body="new")

        feed = post_service.list_feed(engine)
        assert [p.id for p in feed] == [new.id, legacy.id, old.id]

    def test_limit(self, engine):
        alice = make_user(engine, "alice")
        for _ in range(3):
            make_post(engine, alice, status=PostStatus.APPROVED.value)
        assert len(post_service.list_feed(engine, limit=2)) == 2

    def test_by_author_skips_anonymous_and_hidden(self, engine):
        alice = make_user(engine, "alice")
        shown = make_post(engine, alice, status=PostStatus.APPROVED.value)
        make_post(engine, alice, status=PostStatus.APPROVED.value, anonymous=True)
        make_post(engine, alice, status=PostStatus.PENDING.value)
        assert [p.id for p in post_service.list_by_author(engine, alice.id)] == [shown.id]

    def test_can_view_hidden_post(self, engine):
        alice = make_user(engine, "alice")
        bob = make_user(engine, "bob")
        mod = make_user(engine, "mod", moderator=True)
        post = make_post(engine, alice, status=PostStatus.PENDING.value)
        assert post_service.can_view(post, alice)
        assert post_service.can_view(post, mod)
        assert not post_service.can_view(post, bob)
        assert not post_service.can_view(post, None)


# ===========================================================================
# Edit
# ===========================================================================
class TestUpdate:
    def test_author_edits_body_keeps_status(self, engine):
        alice = make_user(engine, "alice")
        post = make_post(engine, alice, status=PostStatus.APPROVED.value)
        updated = post_service.update_post(engine, post.id, alice, body="edited")
        assert updated.body == "edited"
        assert updated.status == PostStatus.APPROVED.value

    def test_non_author_forbidden(self, engine):
        alice = make_user(engine, "alice")
        post = make_post(engine, alice)
        with pytest.raises(Forbidden):
            post_service.update_post(engine, post.id, make_user(engine, "bob"), body="x")

    def test_moderator_cannot_edit_others(self, engine):
        post = make_post(engine, make_user(engine, "alice"))
        with pytest.raises(Forbidden):
            post_service.update_post(
                engine, post.id, make_user(engine, "mod", moderator=True), body="x"
            )


# ===========================================================================
# Delete
# ===========================================================================
class TestDelete:
    def test_cascades_comments_and_likes(self, engine):
        alice = make_user(engine, "alice")
        bob = make_user(engine, "bob")
        post = make_post(engine, alice, status=PostStatus.APPROVED.value)
        comment_service.create_comment(engine, post_id=post.id, body="one", user=bob)
        comment_service.create_comment(engine, post_id=post.id, body="two")
        engagement_service.toggle_like(engine, post.id, bob)

        removed = post_service.delete_post(engine, post.id, alice)

        assert removed == 2
        assert reload_post(engine, post.id) is None
        assert comment_service.list_for_post(engine, post.id) == []
        with Session(engine) as session:
            assert session.scalar(select(func.count()).select_from(Comment)) == 0
            assert session.scalar(select(func.count()).select_from(PostLike)) == 0

    def test_moderator_can_delete(self, engine):
        post = make_post(engine, make_user(engine, "alice"))
        post_service.delete_post(engine, post.id, make_user(engine, "mod", moderator=True))
        assert reload_post(engine, post.id) is None

    def test_stranger_cannot_delete(self, engine):
        post = make_post(engine, make_user(engine, "alice"))
        with pytest.raises(Forbidden):
            post_service.delete_post(engine, post.id, make_user(engine, "bob"))
        assert reload_post(engine, post.id) is not None

    def test_missing_post(self, engine):
        with pytest.raises(NotFound):
            post_service.delete_post(engine, "nope", make_user(engine, "alice"))


# ===========================================================================
# HTTP
# ===========================================================================
class TestPostRoutes:
    def test_submit_returns_pending(self, client, db_engine):
        alice = make_user(db_engine, "alice")
        resp = client.post(
            "/api/posts",
            json={"body": "Watered the garden", "image_url": "/api/uploads/g.jpg"},
            headers=bearer(alice),
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["status"] == "pending"
        assert reload_post(db_engine, data["id"]).media_url == "/api/uploads/g.jpg"

    def test_feed_marks_liked_by_me(self, client, db_engine):
        alice = make_user(db_engine, "alice")
        bob = make_user(db_engine, "bob")
        post = make_post(db_engine, alice, status=PostStatus.APPROVED.value)
        client.post(f"/api/posts/{post.id}/like", headers=bearer(bob))

        [row] = client.get("/api/posts", headers=bearer(bob)).json()
        assert row["liked_by_me"] is True
        assert row["likes"] == 1
        assert row["media_type"] == "image"

        [anon_row] = client.get("/api/posts").json()
        assert "liked_by_me" not in anon_row

    def test_anonymous_post_hides_author(self, client, db_engine):
        alice = make_user(db_engine, "alice")
        make_post(db_engine, alice, status=PostStatus.APPROVED.value, anonymous=True)
        [row] = client.get("/api/posts").json()
        assert row["author_name"] == "Anonymous"
        assert row["author_id"] is None

    def test_pending_post_hidden_from_strangers(self, client, db_engine):
        alice = make_user(db_engine, "alice")
        post = make_post(db_engine, alice)
        assert client.get(f"/api/posts/{post.id}").status_code == 404
        resp = client.get(f"/api/posts/{post.id}", headers=bearer(alice))
        assert resp.status_code == 200
        assert resp.json()["status"] == "pending"

    def test_delete_reports_comment_count(self, client, db_engine):
        alice = make_user(db_engine, "alice")
        post = make_post(db_engine, alice, status=PostStatus.APPROVED.value)
        comment_service.create_comment(db_engine, post_id=post.id, body="hi")
        resp = client.delete(f"/api/posts/{post.id}", headers=bearer(alice))
        assert resp.status_code == 200
        assert resp.json() == {"deleted": 1, "comments_deleted": 1}
        assert client.get(f"/api/comments/by-post/{post.id}").json() == []

    def test_patch_by_stranger_is_403(self, client, db_engine):
        post = make_post(db_engine, make_user(db_engine, "alice"))
        bob = make_user(db_engine, "bob")
        resp = client.patch(f"/api/posts/{post.id}", json={"body": "x"}, headers=bearer(bob))
        assert resp.status_code == 403
