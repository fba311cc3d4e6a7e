"""
tests/test_comments.py — Comments
===================================
"""

from __future__ import annotations

import pytest
from conftest import bearer, make_post, make_user, reload_post

from ecoleveling.database.models import PostStatus
from ecoleveling.errors import Forbidden, NotFound, Unauthorized, ValidationError
from ecoleveling.services import comment_service


@pytest.fixture
def engine(db_engine):
    return db_engine


@pytest.fixture
def post(engine):
    return make_post(engine, make_user(engine, "alice"), status=PostStatus.APPROVED.value)


class TestCreate:
    def test_attaches_and_counts(self, engine, post):
        bob = make_user(engine, "bob")
        comment = comment_service.create_comment(
            engine, post_id=post.id, body=" Nice work! ", user=bob
        )
        assert comment.body == "Nice work!"
        assert comment.author_name == "bob"
        assert comment.anonymous is False
        assert reload_post(engine, post.id).comments == 1

    def test_guest_comment_is_anonymous(self, engine, post):
        comment = comment_service.create_comment(engine, post_id=post.id, body="hi")
        assert comment.anonymous is True
        assert comment.author_id is None

    def test_post_must_exist(self, engine):
        with pytest.raises(NotFound):
            comment_service.create_comment(engine, post_id="missing", body="hi")

    def test_body_required(self, engine, post):
        with pytest.raises(ValidationError):
            comment_service.create_comment(engine, post_id=post.id, body="   ")


class TestList:
    def test_oldest_first(self, engine, post):
        first = comment_service.create_comment(engine, post_id=post.id, body="one")
        second = comment_service.create_comment(engine, post_id=post.id, body="two")
        listed = comment_service.list_for_post(engine, post.id)
        assert [c.id for c in listed] == [first.id, second.id]

    def test_unknown_post_is_empty(self, engine):
        assert comment_service.list_for_post(engine, "missing") == []


class TestHiddenPosts:
    @pytest.mark.parametrize("status", [PostStatus.PENDING.value, PostStatus.DECLINED.value])
    def test_strangers_cannot_read_or_comment(self, engine, status):
        alice = make_user(engine, "alice")
        hidden = make_post(engine, alice, status=status)
        bob = make_user(engine, "bob")

        for viewer in (None, bob):
            with pytest.raises(NotFound):
                comment_service.list_for_post(engine, hidden.id, viewer)
            with pytest.raises(NotFound):
                comment_service.create_comment(
                    engine, post_id=hidden.id, body="hi", user=viewer
                )
        assert reload_post(engine, hidden.id).comments == 0

    def test_author_and_moderator_keep_access(self, engine):
        alice = make_user(engine, "alice")
        mod = make_user(engine, "mod", moderator=True)
        hidden = make_post(engine, alice)

        comment_service.create_comment(engine, post_id=hidden.id, body="note", user=mod)
        comment_service.create_comment(engine, post_id=hidden.id, body="thanks", user=alice)

        assert len(comment_service.list_for_post(engine, hidden.id, alice)) == 2
        assert len(comment_service.list_for_post(engine, hidden.id, mod)) == 2

    def test_legacy_post_is_open(self, engine):
        legacy = make_post(engine, make_user(engine, "alice"), status=None)
        comment_service.create_comment(engine, post_id=legacy.id, body="hi")
        assert len(comment_service.list_for_post(engine, legacy.id)) == 1


class TestEditDelete:
    def test_author_can_edit(self, engine, post):
        bob = make_user(engine, "bob")
        comment = comment_service.create_comment(engine, post_id=post.id, body="x", user=bob)
        updated = comment_service.update_comment(engine, comment.id, bob, "fixed")
        assert updated.body == "fixed"

    def test_other_user_cannot_edit(self, engine, post):
        bob = make_user(engine, "bob")
        carol = make_user(engine, "carol")
        comment = comment_service.create_comment(engine, post_id=post.id, body="x", user=bob)
        with pytest.raises(Forbidden):
            comment_service.update_comment(engine, comment.id, carol, "hijack")

    def test_anonymous_comment_cannot_be_edited(self, engine, post):
        comment = comment_service.create_comment(engine, post_id=post.id, body="x")
        with pytest.raises(Forbidden):
            comment_service.update_comment(engine, comment.id, make_user(engine, "bob"), "y")

    def test_delete_decrements_counter(self, engine, post):
        bob = make_user(engine, "bob")
        comment = comment_service.create_comment(engine, post_id=post.id, body="x", user=bob)
        comment_service.delete_comment(engine, comment.id, bob)
        assert reload_post(engine, post.id).comments == 0
        with pytest.raises(NotFound):
            comment_service.get_comment(engine, comment.id)

    def test_moderator_can_delete_any(self, engine, post):
        comment = comment_service.create_comment(engine, post_id=post.id, body="spam")
        mod = make_user(engine, "mod", moderator=True)
        comment_service.delete_comment(engine, comment.id, mod)
        assert comment_service.list_for_post(engine, post.id) == []

    def test_delete_requires_user(self, engine, post):
        comment = comment_service.create_comment(engine, post_id=post.id, body="x")
        with pytest.raises(Unauthorized):
            comment_service.delete_comment(engine, comment.id, None)


class TestCommentRoutes:
    def test_create_and_list(self, client, db_engine, post):
        bob = make_user(db_engine, "bob")
        resp = client.post(
            "/api/comments", json={"post_id": post.id, "body": "Great!"}, headers=bearer(bob)
        )
        assert resp.status_code == 201

        listed = client.get(f"/api/comments/by-post/{post.id}").json()
        assert len(listed) == 1
        assert listed[0]["author_name"] == "bob"

    def test_guest_comment_shows_anonymous(self, client, post):
        client.post("/api/comments", json={"post_id": post.id, "body": "hello"})
        [row] = client.get(f"/api/comments/by-post/{post.id}").json()
        assert row["author_name"] == "Anonymous"
        assert row["author_id"] is None

    def test_create_on_missing_post_is_404(self, client):
        resp = client.post("/api/comments", json={"post_id": "nope", "body": "hello"})
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"

    def test_delete_by_stranger_is_403(self, client, db_engine, post):
        bob = make_user(db_engine, "bob")
        carol = make_user(db_engine, "carol")
        created = client.post(
            "/api/comments", json={"post_id": post.id, "body": "x"}, headers=bearer(bob)
        ).json()
        resp = client.delete(f"/api/comments/{created['id']}", headers=bearer(carol))
        assert resp.status_code == 403

    def test_pending_thread_hidden_from_guests(self, client, db_engine):
        alice = make_user(db_engine, "alice")
        pending = make_post(db_engine, alice)

        assert client.get(f"/api/comments/by-post/{pending.id}").status_code == 404
        resp = client.post("/api/comments", json={"post_id": pending.id, "body": "hi"})
        assert resp.status_code == 404
        resp = client.get(f"/api/comments/by-post/{pending.id}", headers=bearer(alice))
        assert resp.status_code == 200
        assert resp.json() == []
