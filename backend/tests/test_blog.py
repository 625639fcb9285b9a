"""블로그 글 공개 범위, 조회수, 루트 하드 삭제를 검증합니다."""

from datetime import timedelta

import pytest

from engagement.models.blog import BlogPost
from engagement.models.comment import Comment, CommentReply
from engagement.models.like import LikeFact
from engagement.schemas.blog import BlogPostCreate
from engagement.services import blog_service, comment_service, like_service
from engagement.utils.exceptions import ForbiddenError, NotFoundError
from engagement.utils.helpers import utcnow
from tests.conftest import auth_headers


def test_draft_is_visible_only_to_author_and_admin(db, seed_users):
    author = seed_users["user"]
    draft = blog_service.create_post(db, BlogPostCreate(title="초안", content="본문"), author)
    assert draft.published_at is None

    assert blog_service.get_post(db, draft.post_id, author).post_id == draft.post_id
    assert blog_service.get_post(db, draft.post_id, seed_users["admin"]).post_id == draft.post_id
    with pytest.raises(NotFoundError):
        blog_service.get_post(db, draft.post_id, seed_users["other"])
    with pytest.raises(NotFoundError):
        blog_service.get_post(db, draft.post_id, None)


def test_first_publish_sets_published_at_once(db, seed_users):
    author = seed_users["user"]
    post = blog_service.create_post(db, BlogPostCreate(title="글", content="본문"), author)

    published = blog_service.update_post_status(db, post.post_id, "published", author)
    first_published_at = published.published_at
    assert first_published_at is not None

    blog_service.update_post_status(db, post.post_id, "archived", author)
    again = blog_service.update_post_status(db, post.post_id, "published", author)
    assert again.published_at == first_published_at

    with pytest.raises(ForbiddenError):
        blog_service.update_post_status(db, post.post_id, "draft", seed_users["other"])


def test_increment_view_and_trending_order(db, seed_users, seed_post):
    other = blog_service.create_post(
        db, BlogPostCreate(title="인기글", content="본문", status="published"), seed_users["other"]
    )
    for _ in range(3):
        blog_service.increment_view(db, other.post_id)
    blog_service.increment_view(db, seed_post.post_id)
    blog_service.increment_view(db, "missing")

    trending = blog_service.get_trending_posts(db, limit=5)
    assert [p.post_id for p in trending] == [other.post_id, seed_post.post_id]
    assert trending[0].view_count == 3


def test_trending_excludes_old_posts(db, seed_users, seed_post):
    seed_post.published_at = utcnow() - timedelta(days=30)
    db.commit()
    assert blog_service.get_trending_posts(db, days=7) == []


def test_list_posts_marks_liked_for_viewer(db, seed_users, seed_post):
    like_service.toggle_like(db, seed_users["other"].user_id, seed_post.post_id, "post")
    blog_service.create_post(db, BlogPostCreate(title="초안", content="본문"), seed_users["user"])

    page = blog_service.list_posts(db, seed_users["other"])
    assert page["total"] == 1
    assert page["posts"][0].liked is True

    drafts = blog_service.list_posts(db, seed_users["user"], status="draft")
    assert drafts["total"] == 1
    assert blog_service.list_posts(db, seed_users["other"], status="draft")["total"] == 0
    assert blog_service.list_posts(db, None, status="draft")["total"] == 0


def test_delete_post_removes_thread_and_like_facts(db, seed_users, seed_post):
    author = seed_users["user"]
    post_id = seed_post.post_id
    comment = comment_service.create_comment(db, post_id, author, "댓글")
    reply = comment_service.create_reply(db, comment.comment_id, author, "답글")
    like_service.toggle_like(db, author.user_id, post_id, "post")
    like_service.toggle_like(db, author.user_id, comment.comment_id, "comment")
    like_service.toggle_like(db, author.user_id, reply.reply_id, "reply")
    keep = blog_service.create_post(db, BlogPostCreate(title="남는 글", content="본문", status="published"), author)
    like_service.toggle_like(db, author.user_id, keep.post_id, "post")

    with pytest.raises(ForbiddenError):
        blog_service.delete_post(db, post_id, seed_users["other"])

    blog_service.delete_post(db, post_id, author)

    db.expire_all()
    assert db.query(BlogPost).filter(BlogPost.post_id == post_id).first() is None
    assert db.query(Comment).count() == 0
    assert db.query(CommentReply).count() == 0
    assert db.query(LikeFact).count() == 1


def test_blog_api_flow(client, seed_users):
    headers = auth_headers(client, "user001")
    created = client.post(
        "/api/blog/posts",
        json={"title": "API 글", "content": "본문", "status": "published", "category": "tech"},
        headers=headers,
    )
    assert created.status_code == 200, created.text
    post_id = created.json()["post_id"]

    viewed = client.get(f"/api/blog/posts/{post_id}")
    assert viewed.status_code == 200, viewed.text
    assert viewed.json()["view_count"] == 1
    assert viewed.json()["liked"] is None

    client.post(f"/api/likes/post/{post_id}", headers=headers)
    mine = client.get(f"/api/blog/posts/{post_id}", headers=headers)
    assert mine.json()["liked"] is True
    assert mine.json()["like_count"] == 1

    listing = client.get("/api/blog/posts", params={"category": "tech"})
    assert listing.json()["total"] == 1

    trending = client.get("/api/blog/posts/trending")
    assert trending.status_code == 200, trending.text
    assert trending.json()[0]["post_id"] == post_id

    other = auth_headers(client, "user002")
    assert client.delete(f"/api/blog/posts/{post_id}", headers=other).status_code == 403
    assert client.delete(f"/api/blog/posts/{post_id}", headers=headers).status_code == 200
    assert client.get(f"/api/blog/posts/{post_id}").status_code == 404
