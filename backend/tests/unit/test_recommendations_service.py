import pytest

from watchme.domain import live
from watchme.domain.chat import service as chat_service
from watchme.domain.identity.schemas import PublicProfile
from watchme.domain.recommendations import service
from watchme.domain.recommendations.exceptions import RecommendationForbidden, RecommendationNotFound
from watchme.domain.recommendations.schemas import RecommendationOut, SendRecommendationRequest
from watchme.infra.auth import AuthenticatedUser

ALICE = AuthenticatedUser(id="alice")
BOB = AuthenticatedUser(id="bob")


@pytest.fixture
def emitted(monkeypatch):
    events = []

    async def fake_emit(user_id, event, payload):
        events.append((user_id, event, payload))

    monkeypatch.setattr(live, "emit_to_user", fake_emit)
    return events


def _request(**overrides):
    payload = {
        "to_user_id": "bob",
        "movie_id": 550,
        "media_type": "movie",
        "movie_title": "Fight Club",
        "movie_poster": "/f.jpg",
    }
    payload.update(overrides)
    return SendRecommendationRequest(**payload)


def _rec(rec_id, sender, created_at):
    return RecommendationOut(
        id=rec_id,
        from_user_id=sender,
        from_username=sender,
        to_user_id="carol",
        movie_id=1,
        movie_title="x",
        media_type="movie",
        created_at=created_at,
    )


@pytest.mark.asyncio
async def test_send_stores_recommendation_and_posts_in_chat(create_user, emitted):
    await create_user("alice", friends=["bob"])
    await create_user("bob", friends=["alice"])

    rec = await service.send(ALICE, _request())
    assert rec.from_user_id == "alice" and rec.from_username == "alice"
    assert rec.created_at

    assert ("bob", "recommendation:new") in {(uid, event) for uid, event, _ in emitted}
    messages = await chat_service.list_messages(BOB, "alice")
    assert [(item.type, item.movie.id) for item in messages] == [("recommendation", 550)]


@pytest.mark.asyncio
async def test_send_without_chat_share(create_user, emitted):
    await create_user("alice", friends=["bob"])
    await create_user("bob", friends=["alice"])

    await service.send(ALICE, _request(share_in_chat=False))
    assert await chat_service.list_messages(BOB, "alice") == []


@pytest.mark.asyncio
async def test_send_requires_friendship(create_user, emitted):
    await create_user("alice")
    await create_user("bob")
    with pytest.raises(RecommendationForbidden):
        await service.send(ALICE, _request())


def test_group_by_sender_orders_groups_by_latest():
    items = [
        _rec("r1", "alice", "2024-01-01T00:00:00"),
        _rec("r2", "bob", "2024-01-03T00:00:00"),
        _rec("r3", "alice", "2024-01-02T00:00:00"),
    ]
    senders = {"alice": PublicProfile(uid="alice", username="alice_a")}

    groups = service.group_by_sender(items, senders)
    assert [group.sender.uid for group in groups] == ["bob", "alice"]
    assert groups[1].sender.username == "alice_a"
    assert groups[0].sender.username == "bob"
    assert [rec.id for rec in groups[1].recommendations] == ["r3", "r1"]


@pytest.mark.asyncio
async def test_list_received_and_delete(create_user, emitted):
    await create_user("alice", friends=["bob", "carol"])
    await create_user("bob", friends=["alice"])
    await create_user("carol", friends=["alice"])

    first = await service.send(ALICE, _request(share_in_chat=False))
    await service.send(ALICE, _request(movie_id=13, movie_title="Forrest Gump", share_in_chat=False))

    groups = await service.list_received(BOB)
    assert len(groups) == 1
    assert groups[0].sender.uid == "alice"
    assert len(groups[0].recommendations) == 2
    assert await service.list_received(AuthenticatedUser(id="carol")) == []

    with pytest.raises(RecommendationNotFound):
        await service.delete(AuthenticatedUser(id="carol"), first.id)
    await service.delete(BOB, first.id)
    groups = await service.list_received(BOB)
    assert [rec.movie_id for rec in groups[0].recommendations] == [13]
