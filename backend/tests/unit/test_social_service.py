import pytest
import pytest_asyncio

from watchme.domain import live
from watchme.domain.identity.profile_service import require_profile
from watchme.domain.social import blend_requests, service
from watchme.domain.social.exceptions import (
    AlreadyFriends,
    BlendAlreadyActive,
    NotFriends,
    RequestAlreadySent,
    RequestForbidden,
    RequestNotFound,
    RequestRateLimitExceeded,
    SelfRequest,
    UserNotFound,
)
from watchme.domain.social.models import REQUEST_PER_MINUTE
from watchme.infra.auth import AuthenticatedUser
from watchme.infra.docstore import get_store

ALICE = AuthenticatedUser(id="alice")
BOB = AuthenticatedUser(id="bob")


@pytest.fixture
def emitted(monkeypatch):
    events = []

    async def fake_emit(user_id, event, payload):
        events.append((user_id, event, payload))

    monkeypatch.setattr(live, "emit_to_user", fake_emit)
    return events


@pytest_asyncio.fixture
async def pair(create_user):
    await create_user("alice")
    await create_user("bob")


async def _befriend():
    await service.send_request(ALICE, "bob")
    await service.accept_request(BOB, "alice_bob")


@pytest.mark.asyncio
async def test_send_request_writes_doc_and_both_request_lists(pair, emitted):
    summary = await service.send_request(ALICE, "bob")

    assert summary.id == "alice_bob"
    assert summary.status == "pending"
    assert summary.from_username == "alice" and summary.to_username == "bob"
    assert (await require_profile("alice")).outgoing_requests == ["alice_bob"]
    assert (await require_profile("bob")).incoming_requests == ["alice_bob"]
    assert [(uid, event) for uid, event, _ in emitted] == [("bob", "friend_request:new")]

    incoming = await service.incoming_requests(BOB)
    assert [item.id for item in incoming] == ["alice_bob"]
    assert [item.id for item in await service.outgoing_requests(ALICE)] == ["alice_bob"]


@pytest.mark.asyncio
async def test_send_request_guards(pair, emitted):
    with pytest.raises(SelfRequest):
        await service.send_request(ALICE, "alice")
    with pytest.raises(UserNotFound):
        await service.send_request(ALICE, "carol")

    await service.send_request(ALICE, "bob")
    with pytest.raises(RequestAlreadySent):
        await service.send_request(ALICE, "bob")


@pytest.mark.asyncio
async def test_accept_makes_friends_on_both_sides_and_clears_request(pair, emitted):
    await service.send_request(ALICE, "bob")
    summary = await service.accept_request(BOB, "alice_bob")

    assert summary.status == "accepted"
    alice = await require_profile("alice")
    bob = await require_profile("bob")
    assert alice.friends == ["bob"] and bob.friends == ["alice"]
    assert alice.outgoing_requests == [] and bob.incoming_requests == []
    assert not (await get_store().get("friendRequests/alice_bob")).exists

    events = {(uid, event) for uid, event, _ in emitted}
    assert ("alice", "friend:update") in events and ("bob", "friend:update") in events

    with pytest.raises(AlreadyFriends):
        await service.send_request(ALICE, "bob")


@pytest.mark.asyncio
async def test_only_recipient_can_accept_and_only_sender_can_cancel(pair, emitted):
    await service.send_request(ALICE, "bob")
    with pytest.raises(RequestForbidden):
        await service.accept_request(ALICE, "alice_bob")
    with pytest.raises(RequestForbidden):
        await service.cancel_request(BOB, "alice_bob")

    cancelled = await service.cancel_request(ALICE, "alice_bob")
    assert cancelled.status == "cancelled"
    assert (await require_profile("bob")).incoming_requests == []
    with pytest.raises(RequestNotFound):
        await service.decline_request(BOB, "alice_bob")


@pytest.mark.asyncio
async def test_decline_removes_request_without_friendship(pair, emitted):
    await service.send_request(ALICE, "bob")
    declined = await service.decline_request(BOB, "alice_bob")

    assert declined.status == "declined"
    assert (await require_profile("alice")).friends == []
    assert (await require_profile("alice")).outgoing_requests == []


@pytest.mark.asyncio
async def test_mutual_requests_auto_accept(pair, emitted):
    await service.send_request(ALICE, "bob")
    summary = await service.send_request(BOB, "alice")

    assert summary.status == "accepted"
    assert (await require_profile("alice")).friends == ["bob"]
    assert not (await get_store().get("friendRequests/bob_alice")).exists


@pytest.mark.asyncio
async def test_request_rate_limit(pair, create_user, emitted):
    for i in range(REQUEST_PER_MINUTE):
        await create_user(f"user{i}")
        await service.send_request(ALICE, f"user{i}")

    with pytest.raises(RequestRateLimitExceeded):
        await service.send_request(ALICE, "bob")


@pytest.mark.asyncio
async def test_remove_friend_ends_blend_and_pending_blend_requests(pair, emitted):
    await _befriend()
    await blend_requests.send_blend_request(ALICE, "bob")
    await blend_requests.accept_blend_request(BOB, "alice_bob")
    await blend_requests.end_blend(ALICE, "bob")
    await blend_requests.send_blend_request(BOB, "alice")

    await service.remove_friend(ALICE, "bob")

    alice = await require_profile("alice")
    bob = await require_profile("bob")
    assert alice.friends == [] and bob.friends == []
    assert alice.active_blends_with == [] and bob.active_blends_with == []
    assert not (await get_store().get("blendRequests/bob_alice")).exists
    assert await service.list_friends(ALICE) == []

    with pytest.raises(NotFriends):
        await service.remove_friend(ALICE, "bob")


@pytest.mark.asyncio
async def test_blend_request_lifecycle(pair, emitted):
    with pytest.raises(NotFriends):
        await blend_requests.send_blend_request(ALICE, "bob")

    await _befriend()
    await blend_requests.send_blend_request(ALICE, "bob")
    with pytest.raises(RequestAlreadySent):
        await blend_requests.send_blend_request(BOB, "alice")

    pending = await blend_requests.list_blend_requests(BOB)
    assert [item.id for item in pending] == ["alice_bob"]

    accepted = await blend_requests.accept_blend_request(BOB, "alice_bob")
    assert accepted.status == "accepted"
    assert (await require_profile("alice")).active_blends_with == ["bob"]
    assert (await require_profile("bob")).active_blends_with == ["alice"]
    assert await blend_requests.list_blend_requests(BOB) == []

    with pytest.raises(BlendAlreadyActive):
        await blend_requests.send_blend_request(ALICE, "bob")

    blend_events = [(uid, payload["status"]) for uid, event, payload in emitted if event == "blend:update"]
    assert sorted(blend_events) == [("alice", "active"), ("bob", "active")]

    await blend_requests.end_blend(BOB, "alice")
    assert (await require_profile("alice")).active_blends_with == []
    with pytest.raises(RequestNotFound):
        await blend_requests.end_blend(BOB, "alice")


@pytest.mark.asyncio
async def test_decline_blend_request(pair, emitted):
    await _befriend()
    await blend_requests.send_blend_request(ALICE, "bob")
    declined = await blend_requests.decline_blend_request(BOB, "alice_bob")

    assert declined.status == "declined"
    assert (await require_profile("alice")).active_blends_with == []
    assert ("alice", "blend_request:update") in {(uid, event) for uid, event, _ in emitted}
