import pytest

from watchme.domain import live
from watchme.domain.chat import service
from watchme.domain.chat.exceptions import ChatForbidden, ChatNotFound, InvalidMessage
from watchme.domain.chat.models import RECOMMENDATION_PREVIEW, chat_id, is_unread
from watchme.domain.chat.schemas import MovieRef
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


async def _friends(create_user):
    await create_user("alice", friends=["bob"])
    await create_user("bob", friends=["alice"])


def test_chat_id_is_order_independent():
    assert chat_id("bob", "alice") == chat_id("alice", "bob") == "alice_bob"


def test_is_unread():
    last = {"text": "hi", "sender_id": "alice", "read_by": ["alice"]}
    assert is_unread(last, "bob") is True
    assert is_unread(last, "alice") is False
    assert is_unread({**last, "read_by": ["alice", "bob"]}, "bob") is False
    assert is_unread(None, "bob") is False


@pytest.mark.asyncio
async def test_send_message_creates_chat_and_pushes_to_both(create_user, emitted):
    await _friends(create_user)

    message = await service.send_message(ALICE, "bob", "  movie night?  ")
    assert message.text == "movie night?"
    assert message.sender_id == "alice"
    assert message.type == "text"

    assert sorted(uid for uid, event, _ in emitted if event == "chat:message") == ["alice", "bob"]

    bob_chats = await service.list_chats(BOB)
    assert [chat.id for chat in bob_chats] == ["alice_bob"]
    assert bob_chats[0].peer.uid == "alice"
    assert bob_chats[0].unread is True
    assert bob_chats[0].last_message.text == "movie night?"
    assert (await service.list_chats(ALICE))[0].unread is False


@pytest.mark.asyncio
async def test_mark_read_clears_unread(create_user, emitted):
    await _friends(create_user)
    await service.send_message(ALICE, "bob", "hello")

    await service.mark_read(BOB, "alice")

    assert (await service.list_chats(BOB))[0].unread is False
    assert ("alice", "chat:read") in {(uid, event) for uid, event, _ in emitted}


@pytest.mark.asyncio
async def test_reply_resets_unread_for_the_other_side(create_user, emitted):
    await _friends(create_user)
    await service.send_message(ALICE, "bob", "hello")
    await service.mark_read(BOB, "alice")
    await service.send_message(BOB, "alice", "hey")

    assert (await service.list_chats(ALICE))[0].unread is True
    assert (await service.list_chats(BOB))[0].unread is False


@pytest.mark.asyncio
async def test_messages_are_listed_oldest_first_and_limited(create_user, emitted):
    await _friends(create_user)
    for text in ("one", "two", "three"):
        await service.send_message(ALICE, "bob", text)

    messages = await service.list_messages(BOB, "alice")
    assert [item.text for item in messages] == ["one", "two", "three"]
    latest = await service.list_messages(BOB, "alice", limit=2)
    assert [item.text for item in latest] == ["two", "three"]


@pytest.mark.asyncio
async def test_chat_requires_friendship(create_user, emitted):
    await create_user("alice")
    await create_user("bob")

    with pytest.raises(ChatForbidden):
        await service.send_message(ALICE, "bob", "hi")
    with pytest.raises(ChatForbidden):
        await service.list_messages(ALICE, "bob")
    with pytest.raises(ChatNotFound):
        await service.mark_read(ALICE, "bob")


@pytest.mark.asyncio
async def test_empty_chat_between_friends(create_user, emitted):
    await _friends(create_user)
    assert await service.list_messages(ALICE, "bob") == []


@pytest.mark.asyncio
async def test_invalid_messages(create_user, emitted):
    await _friends(create_user)
    with pytest.raises(InvalidMessage):
        await service.send_message(ALICE, "bob", "   ")
    with pytest.raises(InvalidMessage):
        await service.send_message(ALICE, "bob", "x" * 2001)


@pytest.mark.asyncio
async def test_recommendation_message(create_user, emitted):
    await _friends(create_user)
    movie = MovieRef(id=550, title="Fight Club", poster_path="/f.jpg", media_type="movie")

    message = await service.send_recommendation_message(ALICE, "bob", movie)
    assert message.type == "recommendation"
    assert message.text == "Recommended: Fight Club"
    assert message.movie.id == 550

    chats = await service.list_chats(BOB)
    assert chats[0].last_message.text == RECOMMENDATION_PREVIEW
