"""Tests for like toggling and comments."""
import pytest
from sqlalchemy import func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import Delete

from app.errors import ContentTooLong, EmptyContent, LikeConflict, PostNotFound
from app.models import Like, Post, User
from app.services.engagement import EngagementService
from app.services.feed import FeedService


@pytest.fixture
def post_by(db_session):
    async def _post(user, content="Hello"):
        return await FeedService(db_session).create_post(user.id, content)

    return _post


async def _like_exists(db_session, user_id, post_id) -> bool:
    result = await db_session.execute(
        select(Like.id).where(Like.user_id == user_id, Like.post_id == post_id)
    )
    return result.first() is not None


async def test_like_once_increments_count(db_session, make_user, post_by):
    author, fan = await make_user(), await make_user()
    post = await post_by(author)

    result = await EngagementService(db_session).toggle_like(fan.id, post.id)

    assert result.is_liked is True
    assert result.likes_count == 1
    assert result.post.likes_count == 1
    assert await _like_exists(db_session, fan.id, post.id)


async def test_like_twice_restores_original_count(db_session, make_user, post_by):
    author, fan = await make_user(), await make_user()
    post = await post_by(author, "Hello")
    service = EngagementService(db_session)

    first = await service.toggle_like(fan.id, post.id)
    assert (first.is_liked, first.likes_count) == (True, 1)

    second = await service.toggle_like(fan.id, post.id)
    assert (second.is_liked, second.likes_count) == (False, 0)
    assert not await _like_exists(db_session, fan.id, post.id)


async def test_like_toggles_keep_flipping(db_session, make_user, post_by):
    author, fan, other = await make_user(), await make_user(), await make_user()
    post = await post_by(author)
    service = EngagementService(db_session)

    await service.toggle_like(other.id, post.id)
    states = [(await service.toggle_like(fan.id, post.id)).is_liked for _ in range(3)]

    assert states == [True, False, True]
    refreshed = await FeedService(db_session).get_post(post.id)
    assert refreshed.post.likes_count == 2


async def test_like_missing_post(db_session, make_user):
    fan = await make_user()

    with pytest.raises(PostNotFound):
        await EngagementService(db_session).toggle_like(fan.id, 999)


async def test_likes_listed_newest_first(db_session, make_user, post_by):
    author = await make_user("Author")
    early, late = await make_user("Early"), await make_user("Late")
    post = await post_by(author)
    service = EngagementService(db_session)
    await service.toggle_like(early.id, post.id)
    await service.toggle_like(late.id, post.id)

    likes = await service.list_likes(post.id)

    assert [like.user.name for like in likes] == ["Late", "Early"]


async def test_add_comment_increments_count_and_lists_last(db_session, make_user, post_by):
    author, commenter = await make_user("Author"), await make_user("Commenter")
    post = await post_by(author)
    service = EngagementService(db_session)
    await service.add_comment(author.id, post.id, "First!")

    comment = await service.add_comment(commenter.id, post.id, "  Great post  ")

    assert comment.content == "Great post"
    assert comment.user.name == "Commenter"
    refreshed = await FeedService(db_session).get_post(post.id)
    assert refreshed.post.comments_count == 2

    comments = await service.list_comments(post.id)
    assert [c.content for c in comments] == ["First!", "Great post"]
    assert comments[-1].id == comment.id


async def test_comment_validation(db_session, make_user, post_by):
    author = await make_user()
    post = await post_by(author)
    service = EngagementService(db_session)

    with pytest.raises(EmptyContent):
        await service.add_comment(author.id, post.id, "   ")
    with pytest.raises(ContentTooLong):
        await service.add_comment(author.id, post.id, "x" * 2001)

    comment = await service.add_comment(author.id, post.id, "x" * 2000)
    assert len(comment.content) == 2000


async def test_comment_on_missing_post(db_session, make_user):
    user = await make_user()

    with pytest.raises(PostNotFound):
        await EngagementService(db_session).add_comment(user.id, 404, "hi")
    with pytest.raises(PostNotFound):
        await EngagementService(db_session).list_comments(404)


async def test_store_allows_one_like_per_user_and_post(db_session, make_user, post_by):
    author, fan = await make_user(), await make_user()
    post = await post_by(author)

    db_session.add(Like(user_id=fan.id, post_id=post.id))
    await db_session.flush()
    db_session.add(Like(user_id=fan.id, post_id=post.id))

    with pytest.raises(IntegrityError):
        await db_session.flush()


async def test_like_that_loses_insert_race_raises_conflict(session_factory, monkeypatch):
    async with session_factory() as session:
        author = User(name="Author", email="author@acme.io", password_hash="x")
        fan = User(name="Fan", email="fan@acme.io", password_hash="x")
        session.add_all([author, fan])
        await session.flush()
        post = Post(user_id=author.id, content="Hello")
        session.add(post)
        await session.commit()

    real_execute = AsyncSession.execute
    raced = []

    async def execute_with_competing_like(self, statement, *args, **kwargs):
        result = await real_execute(self, statement, *args, **kwargs)
        # A concurrent toggle inserts its like right after ours found nothing to delete
        if isinstance(statement, Delete) and not raced:
            raced.append(True)
            await real_execute(self, insert(Like).values(user_id=fan.id, post_id=post.id))
        return result

    monkeypatch.setattr(AsyncSession, "execute", execute_with_competing_like)

    async with session_factory() as session:
        with pytest.raises(LikeConflict):
            await EngagementService(session).toggle_like(fan.id, post.id)

    assert raced == [True]
    async with session_factory() as session:
        likes = await session.execute(select(func.count(Like.id)))
        assert likes.scalar_one() == 0
        assert (await session.get(Post, post.id)).likes_count == 0
