import pytest

from watchme.domain.identity.exceptions import ProfileNotFound
from watchme.domain.identity.models import MovieInteractionRecord
from watchme.domain.identity.profile_service import require_profile
from watchme.domain.interactions import service
from watchme.infra.auth import AuthenticatedUser

ALICE = AuthenticatedUser(id="alice")


def _record(movie_id=550, media_type="movie", title="Fight Club"):
    return MovieInteractionRecord(movie_id=movie_id, media_type=media_type, title=title, poster_path="/p.jpg")


@pytest.mark.asyncio
async def test_like_clears_dislike_and_toggles(create_user):
    await create_user("alice")

    assert await service.react(ALICE, _record(), "dislike") == "disliked"
    assert await service.react(ALICE, _record(), "like") == "liked"
    profile = await require_profile("alice")
    assert [item.key for item in profile.liked_movies] == [(550, "movie")]
    assert profile.disliked_movies == []

    assert await service.react(ALICE, _record(), "like") == "none"
    profile = await require_profile("alice")
    assert profile.liked_movies == [] and profile.disliked_movies == []


@pytest.mark.asyncio
async def test_react_without_toggle_keeps_existing_like(create_user):
    await create_user("alice")
    await service.react(ALICE, _record(), "like")

    assert await service.react(ALICE, _record(), "like", toggle=False) == "liked"
    profile = await require_profile("alice")
    assert len(profile.liked_movies) == 1


@pytest.mark.asyncio
async def test_same_id_different_media_type_are_distinct(create_user):
    await create_user("alice")
    await service.react(ALICE, _record(1399, "movie", "A film"), "like")
    await service.react(ALICE, _record(1399, "tv", "A show"), "like")

    profile = await require_profile("alice")
    assert {item.key for item in profile.liked_movies} == {(1399, "movie"), (1399, "tv")}


@pytest.mark.asyncio
async def test_clear_reaction(create_user):
    await create_user("alice")
    await service.react(ALICE, _record(), "dislike")
    await service.clear_reaction(ALICE, 550, "movie")

    state = await service.get_title_state(ALICE, 550, "movie")
    assert state.reaction == "none"


@pytest.mark.asyncio
async def test_watched_toggle(create_user):
    await create_user("alice")
    assert await service.toggle_watched(ALICE, _record()) is True
    assert (await service.get_title_state(ALICE, 550, "movie")).watched is True
    assert await service.toggle_watched(ALICE, _record()) is False
    assert (await service.get_title_state(ALICE, 550, "movie")).watched is False


@pytest.mark.asyncio
async def test_rating_replaces_previous_value(create_user):
    await create_user("alice")
    await service.rate(ALICE, 550, "movie", 3)
    await service.rate(ALICE, 550, "movie", 5)
    await service.rate(ALICE, 13, "movie", 4)

    profile = await require_profile("alice")
    ratings = {item.key: item.rating for item in profile.rated_movies}
    assert ratings == {(550, "movie"): 5, (13, "movie"): 4}

    await service.remove_rating(ALICE, 550, "movie")
    state = await service.get_title_state(ALICE, 550, "movie")
    assert state.rating is None


@pytest.mark.asyncio
async def test_interactions_listing(create_user):
    await create_user("alice")
    await service.react(ALICE, _record(1, title="One"), "like")
    await service.react(ALICE, _record(2, title="Two"), "dislike")
    await service.rate(ALICE, 1, "movie", 4)

    out = await service.get_interactions("alice")
    assert [item.title for item in out.liked] == ["One"]
    assert [item.title for item in out.disliked] == ["Two"]
    assert [(item.movie_id, item.rating) for item in out.rated] == [(1, 4)]


@pytest.mark.asyncio
async def test_react_requires_profile():
    with pytest.raises(ProfileNotFound):
        await service.react(ALICE, _record(), "like")
