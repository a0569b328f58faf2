import asyncio

import pytest

from watchme.domain.ai import service as ai_service
from watchme.domain.ai.schemas import WATCHLIST_TITLES_MAX, RecommendedTitles
from watchme.domain.catalog import service as catalog_service
from watchme.domain.catalog.schemas import CatalogItem
from watchme.domain.identity.models import MovieInteractionRecord
from watchme.domain.identity.profile_service import require_profile
from watchme.domain.watchlists import service
from watchme.domain.watchlists.exceptions import AlreadyInList, InvalidName, WatchlistNotFound
from watchme.infra.auth import AuthenticatedUser

ALICE = AuthenticatedUser(id="alice")


def _record(movie_id, title="", media_type="movie"):
    return MovieInteractionRecord(movie_id=movie_id, media_type=media_type, title=title, poster_path="/p.jpg")


def test_normalise_name():
    assert service.normalise_name("  Friday   night ") == "Friday night"
    with pytest.raises(InvalidName):
        service.normalise_name("   ")
    with pytest.raises(InvalidName):
        service.normalise_name("x" * (service.NAME_MAX_LENGTH + 1))


@pytest.mark.asyncio
async def test_create_rename_delete(create_user):
    await create_user("alice")
    created = await service.create(ALICE, "Weekend")
    assert created.name == "Weekend" and created.movies == []

    renamed = await service.rename(ALICE, created.id, "Sunday")
    assert renamed.id == created.id and renamed.name == "Sunday"

    await service.delete(ALICE, created.id)
    assert await service.list_watchlists(ALICE) == []
    with pytest.raises(WatchlistNotFound):
        await service.get_watchlist(ALICE, created.id)


@pytest.mark.asyncio
async def test_add_item_rejects_duplicates(create_user):
    await create_user("alice")
    watchlist = await service.create(ALICE, "Horror")

    updated = await service.add_item(ALICE, watchlist.id, _record(1, "Alien"))
    assert [movie.title for movie in updated.movies] == ["Alien"]

    with pytest.raises(AlreadyInList):
        await service.add_item(ALICE, watchlist.id, _record(1, "Alien"))

    # same id, other media type is another title
    updated = await service.add_item(ALICE, watchlist.id, _record(1, "Alien series", "tv"))
    assert len(updated.movies) == 2

    updated = await service.remove_item(ALICE, watchlist.id, 1, "movie")
    assert [(movie.movie_id, movie.media_type) for movie in updated.movies] == [(1, "tv")]


@pytest.mark.asyncio
async def test_create_and_add(create_user):
    await create_user("alice")
    created = await service.create_and_add(ALICE, "Classics", _record(2, "Casablanca"))
    stored = await service.get_watchlist(ALICE, created.id)
    assert [movie.title for movie in stored.movies] == ["Casablanca"]


@pytest.mark.asyncio
async def test_missing_watchlist(create_user):
    await create_user("alice")
    with pytest.raises(WatchlistNotFound):
        await service.add_item(ALICE, "nope", _record(1))


@pytest.mark.asyncio
async def test_concurrent_creates_are_all_kept(create_user):
    await create_user("alice")
    await asyncio.gather(*(service.create(ALICE, f"List {i}") for i in range(4)))

    profile = await require_profile("alice")
    assert sorted(item.name for item in profile.watchlists) == ["List 0", "List 1", "List 2", "List 3"]


@pytest.mark.asyncio
async def test_recommend_on_empty_list_skips_model(create_user, monkeypatch):
    await create_user("alice")
    watchlist = await service.create(ALICE, "Empty")

    async def boom(payload):
        raise AssertionError("model must not be called")

    monkeypatch.setattr(ai_service, "watchlist_recommendations", boom)
    result = await service.recommend(ALICE, watchlist.id)
    assert result.results == []
    assert result.watchlist.id == watchlist.id


@pytest.mark.asyncio
async def test_recommend_resolves_titles_and_excludes_list_members(create_user, monkeypatch):
    await create_user("alice")
    watchlist = await service.create_and_add(ALICE, "Sci-fi", _record(1, "Alien"))
    prompts = []

    async def fake_recommendations(payload):
        prompts.append(payload.titles)
        return RecommendedTitles(recommendations=["Aliens", "Alien", "Unknown", "Aliens"])

    class FakeCatalog:
        async def find_by_title(self, title):
            catalog = {
                "Aliens": CatalogItem(id=2, media_type="movie", title="Aliens", poster_path="/b.jpg"),
                "Alien": CatalogItem(id=1, media_type="movie", title="Alien", poster_path="/a.jpg"),
            }
            return catalog.get(title)

    monkeypatch.setattr(ai_service, "watchlist_recommendations", fake_recommendations)
    catalog_service.set_client(FakeCatalog())

    result = await service.recommend(ALICE, watchlist.id)
    assert prompts == [["Alien"]]
    assert [item.id for item in result.results] == [2]


@pytest.mark.asyncio
async def test_recommend_on_long_list_sends_most_recent_titles(create_user, monkeypatch):
    movies = [_record(n, f"Film {n}").to_doc() for n in range(1, 202)]
    await create_user("alice", watchlists=[{"id": "w1", "name": "Everything", "movies": movies}])
    prompts = []

    async def fake_recommendations(payload):
        prompts.append(payload.titles)
        return RecommendedTitles(recommendations=[])

    monkeypatch.setattr(ai_service, "watchlist_recommendations", fake_recommendations)
    result = await service.recommend(ALICE, "w1")

    assert result.results == []
    assert len(prompts[0]) == WATCHLIST_TITLES_MAX
    assert prompts[0][0] == "Film 2" and prompts[0][-1] == "Film 201"
