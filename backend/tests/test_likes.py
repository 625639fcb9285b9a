"""좋아요 토글 프로토콜과 like_count 일관성을 검증합니다."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from engagement.models.blog import BlogPost
from engagement.models.comment import Comment
from engagement.models.like import LikeFact
from engagement.models.user import User
from engagement.services import comment_service, like_service
from engagement.utils.exceptions import InvalidStateError, NotFoundError
from tests.conftest import TestingSession, auth_headers


def _fact_count(db, target_id, kind="post"):
    return db.query(LikeFact).filter(LikeFact.target_id == target_id, LikeFact.target_kind == kind).count()


def _like_count(db, post_id):
    db.expire_all()
    return db.query(BlogPost).filter(BlogPost.post_id == post_id).one().like_count


def test_two_users_like_then_one_unlikes(db, seed_users, seed_post):
    u1 = seed_users["user"].user_id
    u2 = seed_users["other"].user_id
    post_id = seed_post.post_id

    first = like_service.toggle_like(db, u1, post_id, "post")
    second = like_service.toggle_like(db, u2, post_id, "post")
    third = like_service.toggle_like(db, u1, post_id, "post")

    assert (first.liked, first.like_count) == (True, 1)
    assert (second.liked, second.like_count) == (True, 2)
    assert (third.liked, third.like_count) == (False, 1)
    assert _fact_count(db, post_id) == 1


def test_double_toggle_restores_state(db, seed_users, seed_post):
    user_id = seed_users["user"].user_id
    before = _like_count(db, seed_post.post_id)

    like_service.toggle_like(db, user_id, seed_post.post_id, "post")
    result = like_service.toggle_like(db, user_id, seed_post.post_id, "post")

    assert result.liked is False
    assert result.like_count == before
    assert like_service.get_like_state(db, user_id, seed_post.post_id, "post") is False
    assert _fact_count(db, seed_post.post_id) == 0


def test_like_count_matches_facts_across_kinds(db, seed_users, seed_post):
    author = seed_users["user"]
    comment = comment_service.create_comment(db, seed_post.post_id, author, "댓글")
    reply = comment_service.create_reply(db, comment.comment_id, author, "답글")

    for user in seed_users.values():
        like_service.toggle_like(db, user.user_id, comment.comment_id, "comment")
        like_service.toggle_like(db, user.user_id, reply.reply_id, "reply")
    like_service.toggle_like(db, seed_users["admin"].user_id, reply.reply_id, "reply")

    db.expire_all()
    assert db.query(Comment).filter(Comment.comment_id == comment.comment_id).one().like_count == 3
    assert _fact_count(db, comment.comment_id, "comment") == 3
    assert _fact_count(db, reply.reply_id, "reply") == 2


def test_unknown_kind_and_missing_target(db, seed_users, seed_post):
    user_id = seed_users["user"].user_id
    with pytest.raises(InvalidStateError):
        like_service.toggle_like(db, user_id, seed_post.post_id, "video")
    with pytest.raises(NotFoundError):
        like_service.toggle_like(db, user_id, "missing-post", "post")
    assert db.query(LikeFact).count() == 0


def test_liked_target_ids_marks_only_own_likes(db, seed_users, seed_post):
    like_service.toggle_like(db, seed_users["user"].user_id, seed_post.post_id, "post")
    mine = like_service.liked_target_ids(db, seed_users["user"].user_id, "post", [seed_post.post_id, "x"])
    others = like_service.liked_target_ids(db, seed_users["other"].user_id, "post", [seed_post.post_id])
    assert mine == {seed_post.post_id}
    assert others == set()
    assert like_service.liked_target_ids(db, None, "post", [seed_post.post_id]) == set()


def _toggle_in_own_session(user_id, post_id):
    session = TestingSession()
    try:
        return like_service.toggle_like(session, user_id, post_id, "post")
    finally:
        session.close()


def test_concurrent_likes_from_many_users_are_all_counted(db, seed_post):
    post_id = seed_post.post_id
    users = [User(login_id=f"racer{i:02d}", name=f"Racer{i}", role="user") for i in range(50)]
    db.add_all(users)
    db.commit()
    user_ids = [u.user_id for u in users]

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(lambda uid: _toggle_in_own_session(uid, post_id), user_ids))

    assert all(r.liked for r in results)
    assert _fact_count(db, post_id) == 50
    assert _like_count(db, post_id) == 50


def test_concurrent_toggles_by_one_user_never_fail(db, seed_users, seed_post):
    user_id = seed_users["user"].user_id
    post_id = seed_post.post_id

    for _ in range(3):
        before = _like_count(db, post_id)
        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(lambda _: _toggle_in_own_session(user_id, post_id), range(50)))

        assert len(results) == 50
        # 한 사용자만 누르므로 각 결과의 카운트는 그 시점의 liked 상태와 같아야 한다
        assert all(r.like_count == (1 if r.liked else 0) for r in results)
        facts = _fact_count(db, post_id)
        after = _like_count(db, post_id)
        assert facts in (0, 1)
        assert after == facts
        assert abs(after - before) <= 1
        assert like_service.get_like_state(db, user_id, post_id, "post") is (facts == 1)


def test_losing_insert_race_returns_committed_like(db, seed_users, seed_post, monkeypatch):
    user_id = seed_users["user"].user_id
    post_id = seed_post.post_id
    original_add = like_service._add_like

    def add_after_other_request_commits(session, uid, target_id, kind):
        # 같은 사용자의 다른 요청이 먼저 좋아요를 커밋한 상황
        other = TestingSession()
        try:
            other.add(LikeFact(user_id=uid, target_id=target_id, target_kind=kind))
            other.query(BlogPost).filter(BlogPost.post_id == target_id).update(
                {BlogPost.like_count: BlogPost.like_count + 1}, synchronize_session=False
            )
            other.commit()
        finally:
            other.close()
        return original_add(session, uid, target_id, kind)

    monkeypatch.setattr(like_service, "_add_like", add_after_other_request_commits)

    result = like_service.toggle_like(db, user_id, post_id, "post")

    assert (result.liked, result.like_count) == (True, 1)
    assert _fact_count(db, post_id) == 1
    assert _like_count(db, post_id) == 1


def test_like_api_toggle_and_state(client, seed_users, seed_post):
    headers = auth_headers(client, "user001")
    url = f"/api/likes/post/{seed_post.post_id}"

    resp = client.post(url, headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"liked": True, "like_count": 1}

    state = client.get(url, headers=headers)
    assert state.status_code == 200, state.text
    assert state.json()["liked"] is True

    resp = client.post(url, headers=headers)
    assert resp.json() == {"liked": False, "like_count": 0}


def test_like_api_error_codes(client, seed_users, seed_post):
    headers = auth_headers(client, "user001")
    bad_kind = client.post(f"/api/likes/video/{seed_post.post_id}", headers=headers)
    assert bad_kind.status_code == 409
    assert bad_kind.json()["code"] == "invalid_state"

    missing = client.post("/api/likes/post/no-such-post", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["code"] == "not_found"

    anonymous = client.post(f"/api/likes/post/{seed_post.post_id}")
    assert anonymous.status_code == 401
