"""
Post lifecycle and the view engine.
"""
from datetime import timedelta

import pytest

from adrewards.core.errors import ConflictError, NotFoundError, PermissionDenied, ValidationError
from adrewards.database import utcnow
from adrewards.models.post import Post, PostStatus, PostView
from adrewards.services import assets, bonuses, posts
from conftest import assert_ledger_consistent


@pytest.fixture
def publisher(db, make_member):
    member = make_member()
    bonuses.give_pass(db, member.id, "publisher", "Silver", 14)
    return member


@pytest.fixture
def active_post(db, make_member):
    owner = make_member()
    post = Post(publisher_id=owner.id, title="Mint day", content="Mint opens at noon",
                status=PostStatus.active.value, expires_at=utcnow() + timedelta(days=7))
    db.add(post)
    db.commit()
    return post


class TestPostLifecycle:
    def test_pass_required(self, db, settings, make_member):
        member = make_member()
        with pytest.raises(PermissionDenied):
            posts.create_post(db, member, "Title", "Body", "ad", settings)

    def test_new_post_is_pending_with_pass_duration(self, db, settings, publisher):
        post = posts.create_post(db, publisher, "Title", "Body", "ad", settings)
        assert post.status == PostStatus.pending.value
        assert timedelta(days=13) < post.expires_at - utcnow() <= timedelta(days=14)

    def test_admin_post_is_auto_approved(self, db, settings, make_member):
        admin = make_member(is_admin=True)
        post = posts.create_post(db, admin, "News", "Body", "announcement", settings)
        assert post.status == PostStatus.active.value
        assert post.approved_by == admin.id

    def test_open_post_limit(self, db, settings, publisher):
        for i in range(settings.MAX_POSTS_PER_PUBLISHER):
            posts.create_post(db, publisher, f"Post {i}", "Body", "post", settings)
        with pytest.raises(ConflictError, match="Maximum 3 active posts allowed"):
            posts.create_post(db, publisher, "One more", "Body", "post", settings)

    def test_deleted_posts_free_a_slot(self, db, settings, publisher):
        created = [posts.create_post(db, publisher, f"Post {i}", "Body", "post", settings) for i in range(3)]
        posts.delete_post(db, publisher, created[0].id)
        assert posts.create_post(db, publisher, "Replacement", "Body", "post", settings).id

    def test_edit_returns_post_to_review(self, db, settings, make_member, publisher):
        admin = make_member(is_admin=True)
        post = posts.create_post(db, publisher, "Title", "Body", "post", settings)
        posts.review_post(db, admin, post.id, approved=True)

        updated = posts.update_post(db, publisher, post.id, "New title", None)
        assert updated.status == PostStatus.pending.value
        assert updated.approved_by is None
        assert updated.approved_at is None

    def test_unchanged_edit_keeps_post_live(self, db, settings, make_member, publisher):
        admin = make_member(is_admin=True)
        post = posts.create_post(db, publisher, "Title", "Body", "post", settings)
        posts.review_post(db, admin, post.id, approved=True)

        updated = posts.update_post(db, publisher, post.id, " Title ", "Body")
        assert updated.status == PostStatus.active.value
        assert updated.approved_by == admin.id

    def test_only_owner_edits(self, db, settings, make_member, publisher):
        post = posts.create_post(db, publisher, "Title", "Body", "post", settings)
        with pytest.raises(PermissionDenied):
            posts.update_post(db, make_member(), post.id, "Hijack", None)

    def test_reject_sets_inactive(self, db, settings, make_member, publisher):
        post = posts.create_post(db, publisher, "Title", "Body", "post", settings)
        reviewed = posts.review_post(db, make_member(is_admin=True), post.id, approved=False)
        assert reviewed.status == PostStatus.inactive.value

    def test_lazy_expiry_on_read(self, db, active_post):
        active_post.expires_at = utcnow() - timedelta(minutes=1)
        db.commit()
        assert posts.get_post(db, active_post.id).status == PostStatus.expired.value
        assert posts.list_active(db)["pagination"]["total"] == 0


class TestRecordView:
    def test_awards_base_points(self, db, settings, make_member, active_post):
        viewer = make_member()
        result = posts.record_view(db, viewer, active_post.id, 12, settings)
        assert result == {"pointsEarned": 1, "alreadyViewed": False, "duration": 12}
        db.refresh(viewer)
        assert viewer.points == 1
        assert_ledger_consistent(db, viewer.id)

    def test_repeat_inside_cooldown_earns_nothing(self, db, settings, make_member, active_post):
        viewer = make_member()
        posts.record_view(db, viewer, active_post.id, 12, settings)
        again = posts.record_view(db, viewer, active_post.id, 30, settings)
        assert again["pointsEarned"] == 0
        assert again["alreadyViewed"] is True
        assert db.query(PostView).count() == 1
        db.refresh(viewer)
        assert viewer.points == 1

    def test_view_after_cooldown_earns_again(self, db, settings, make_member, active_post):
        viewer = make_member()
        posts.record_view(db, viewer, active_post.id, 12, settings)
        view = db.query(PostView).one()
        view.viewed_at = utcnow() - timedelta(hours=settings.VIEW_COOLDOWN_HOURS + 1)
        db.commit()
        assert posts.record_view(db, viewer, active_post.id, 12, settings)["pointsEarned"] == 1

    def test_short_view_rejected(self, db, settings, make_member, active_post):
        viewer = make_member()
        with pytest.raises(ValidationError):
            posts.record_view(db, viewer, active_post.id, settings.VIEW_DURATION_REQUIRED - 1, settings)
        assert db.query(PostView).count() == 0

    def test_inactive_post(self, db, settings, make_member, active_post):
        active_post.status = PostStatus.pending.value
        db.commit()
        with pytest.raises(NotFoundError):
            posts.record_view(db, make_member(), active_post.id, 12, settings)

    def test_click_pass_and_nft_bonus(self, db, settings, make_member, active_post):
        viewer = make_member()
        bonuses.give_pass(db, viewer.id, "click", "Silver", 2)
        collection = assets.add_collection(db, "Apes", "0x" + "11" * 20, points_per_nft=2, max_nfts=3)
        assets.update_holdings(db, viewer, collection.id, 5)

        result = posts.record_view(db, viewer, active_post.id, 15, settings)
        # 1 base + 2 pass + min(5, 3) * 2 nft
        assert result["pointsEarned"] == 9
        assert_ledger_consistent(db, viewer.id)

    def test_expired_click_pass_is_ignored(self, db, settings, make_member, active_post):
        viewer = make_member()
        click_pass = bonuses.give_pass(db, viewer.id, "click", "Golden", 5)
        click_pass.expires_at = utcnow() - timedelta(days=1)
        db.commit()
        assert posts.record_view(db, viewer, active_post.id, 15, settings)["pointsEarned"] == 1


class TestPostEndpoints:
    def test_list_and_detail(self, client, active_post):
        listing = client.get("/api/posts").json()["data"]
        assert [p["id"] for p in listing["posts"]] == [active_post.id]
        detail = client.get(f"/api/posts/{active_post.id}").json()["data"]
        assert detail["view_count"] == 0

    def test_view_endpoint(self, client, make_member, auth_headers, active_post):
        headers = auth_headers(make_member())
        first = client.post(f"/api/posts/{active_post.id}/view", json={"duration": 11}, headers=headers)
        assert first.status_code == 200
        assert first.json()["data"]["pointsEarned"] == 1
        second = client.post(f"/api/posts/{active_post.id}/view", json={"duration": 11}, headers=headers)
        assert second.json()["data"]["alreadyViewed"] is True

    def test_missing_post_404(self, client, make_member, auth_headers):
        response = client.post("/api/posts/999/view", json={"duration": 11}, headers=auth_headers(make_member()))
        assert response.status_code == 404
        assert response.json()["error"] == "Post not found or not active"

    def test_create_and_review_flow(self, client, db, make_member, auth_headers, publisher):
        created = client.post(
            "/api/posts",
            json={"title": "Launch", "content": "We launch Friday", "post_type": "ad"},
            headers=auth_headers(publisher),
        )
        assert created.status_code == 200
        post_id = created.json()["data"]["id"]

        admin_headers = auth_headers(make_member(is_admin=True))
        pending = client.get("/api/admin/pending-posts", headers=admin_headers).json()["data"]
        assert [p["id"] for p in pending] == [post_id]

        reviewed = client.post(f"/api/posts/{post_id}/review", json={"approved": True}, headers=admin_headers)
        assert reviewed.json()["data"]["status"] == "active"

    def test_stats_owner_only(self, client, make_member, auth_headers, active_post):
        response = client.get(f"/api/posts/{active_post.id}/stats", headers=auth_headers(make_member()))
        assert response.status_code == 403
